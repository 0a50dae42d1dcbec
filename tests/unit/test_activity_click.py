"""Unit tests for activity CLI commands."""

from datetime import datetime, timedelta, timezone

import click
import pytest
from click.testing import CliRunner
from conftest import PROJECT_ID, add_project, make_env, set_environments, table_rows

from plcli.activity_click import activity_description, register_activity_commands
from plcli.records import Record

ENV_ACTIVITIES = f"/projects/{PROJECT_ID}/environments/main/activities"
PROJECT_ACTIVITIES = f"/projects/{PROJECT_ID}/activities"
BASE_TIME = datetime(2014, 4, 1, 10, 0, tzinfo=timezone.utc)


def make_cli():
    """Create CLI instance with activity commands for testing."""

    @click.group()
    def test_cli():
        pass

    register_activity_commands(test_cli)
    return test_cli


def make_activity(activity_id, created, text, environments=("main",), **extra):
    activity = {
        "id": activity_id,
        "type": "environment.variable.create",
        "state": "complete",
        "result": "success",
        "completion_percent": 100,
        "project": PROJECT_ID,
        "environments": list(environments),
        "description": f"<user>Mock User</user> {text}",
        "text": f"Mock User {text}",
        "created_at": created.isoformat(),
        "updated_at": created.isoformat(),
    }
    activity.update(extra)
    return activity


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def activities(fake_api):
    add_project(fake_api)
    main = make_env(PROJECT_ID, "main")
    main["_links"]["#activities"] = {"href": ENV_ACTIVITIES}
    set_environments(fake_api, [main])

    act1 = make_activity("act1", BASE_TIME, "created variable X on environment main")
    act2 = make_activity(
        "act2",
        BASE_TIME - timedelta(hours=1),
        "created variable X",
        environments=(),
        type="project.variable.create",
    )
    fake_api.add(ENV_ACTIVITIES, [act1])
    fake_api.add(PROJECT_ACTIVITIES, [act2, act1])
    fake_api.add(f"{ENV_ACTIVITIES}/act1", act1)


class TestActivityList:
    def test_environment_activities(self, runner):
        result = runner.invoke(make_cli(), ["activity", "list", "-p", PROJECT_ID, "-e", "."])

        assert result.exit_code == 0, result.output
        assert table_rows(result.stdout) == [
            ["ID", "Created", "Description", "Progress", "State", "Result"],
            [
                "act1",
                "2014-04-01T10:00:00+00:00",
                "Mock User created variable X on environment main",
                "100%",
                "complete",
                "success",
            ],
        ]

    def test_all_environments_adds_column(self, runner):
        result = runner.invoke(
            make_cli(), ["activity", "list", "-p", PROJECT_ID, "--all", "--format", "plain"]
        )

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "ID\tCreated\tDescription\tProgress\tState\tResult\tEnvironment(s)"
        assert lines[1].startswith("act1\t") and lines[1].endswith("\tmain")
        assert lines[2].startswith("act2\t") and lines[2].endswith("\tsuccess\t")

    def test_newest_first_with_limit(self, runner, fake_api):
        many = [
            make_activity(f"act{i + 1}", BASE_TIME + timedelta(minutes=i), f"created variable X{i + 1}")
            for i in range(30)
        ]
        fake_api.add(ENV_ACTIVITIES, many)

        result = runner.invoke(
            make_cli(),
            ["activity", "list", "-p", PROJECT_ID, "-e", ".", "--format", "plain", "--limit", "5"],
        )

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert [line.split("\t")[0] for line in lines[1:]] == ["act30", "act29", "act28", "act27", "act26"]
        assert lines[1].split("\t")[1] == "2014-04-01T10:29:00+00:00"

    def test_default_limit_is_ten(self, runner, fake_api):
        many = [make_activity(f"act{i}", BASE_TIME + timedelta(minutes=i), "x") for i in range(15)]
        fake_api.add(ENV_ACTIVITIES, many)

        result = runner.invoke(make_cli(), ["activity", "list", "-p", PROJECT_ID, "--pipe"])
        assert len(result.stdout.splitlines()) == 10

    def test_type_filters(self, runner):
        result = runner.invoke(
            make_cli(),
            ["activity", "list", "-p", PROJECT_ID, "--all", "--pipe", "--type", "project.*"],
        )
        assert result.stdout == "act2\n"

        result = runner.invoke(
            make_cli(),
            ["activity", "list", "-p", PROJECT_ID, "--all", "--pipe", "-x", "project.*"],
        )
        assert result.stdout == "act1\n"

    def test_incomplete(self, runner, fake_api):
        fake_api.add(
            ENV_ACTIVITIES,
            [
                make_activity("done", BASE_TIME, "x"),
                make_activity("running", BASE_TIME, "y", state="in_progress", result=None),
            ],
        )
        result = runner.invoke(make_cli(), ["activity", "list", "-p", PROJECT_ID, "-i", "--pipe"])
        assert result.stdout == "running\n"

    def test_extra_columns(self, runner, fake_api):
        fake_api.add(
            ENV_ACTIVITIES,
            [make_activity("act1", BASE_TIME, "x", timings={"execute": 90, "wait": 5})],
        )
        result = runner.invoke(
            make_cli(),
            ["activity", "list", "-p", PROJECT_ID, "-c", "id,time_*", "--format", "csv"],
        )

        assert result.exit_code == 0, result.output
        assert result.stdout == "ID,Execution time,Wait time,Build time,Deploy time\nact1,1m 30s,5s,,\n"


class TestActivityGet:
    def test_property(self, runner):
        result = runner.invoke(
            make_cli(), ["activity", "get", "-p", PROJECT_ID, "-e", ".", "act1", "-P", "state"]
        )
        assert result.exit_code == 0, result.output
        assert result.stdout == "complete\n"

    def test_date_property(self, runner):
        result = runner.invoke(
            make_cli(), ["activity", "get", "-p", PROJECT_ID, "-e", ".", "act1", "-P", "created_at"]
        )
        assert result.stdout == "2014-04-01T10:00:00+00:00\n"

    def test_not_found(self, runner):
        result = runner.invoke(make_cli(), ["activity", "get", "-p", PROJECT_ID, "-e", ".", "nope"])
        assert result.exit_code == 3


def test_description_strips_markup():
    record = Record({"description": "<user>Mock User</user> created <variable>X</variable>"})
    assert activity_description(record) == "Mock User created X"
