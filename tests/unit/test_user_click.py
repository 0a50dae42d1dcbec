"""Unit tests for user CLI commands."""

import json

import click
import pytest
from click.testing import CliRunner
from conftest import PROJECT_ID, add_project, table_rows

from plcli.api_client import ApiClient
from plcli.config import load_config
from plcli.fetcher import ResourceFetcher
from plcli.records import Record
from plcli.user_click import display_name, fetch_users, project_role, register_user_commands

ACCESS = f"/projects/{PROJECT_ID}/user-access"


def make_cli():
    """Create CLI instance with user commands for testing."""

    @click.group()
    def test_cli():
        pass

    register_user_commands(test_cli)
    return test_cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def users(fake_api):
    add_project(fake_api)
    fake_api.add(
        ACCESS,
        {
            "items": [
                {"user_id": "user-2", "permissions": ["viewer", "development:contributor"]},
                {"user_id": "user-1", "permissions": ["admin"]},
            ]
        },
    )
    fake_api.add(
        "/users/user-1",
        {"id": "user-1", "email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"},
    )
    fake_api.add(
        "/users/user-2",
        {"id": "user-2", "email": "bob@example.com", "display_name": "Bob"},
    )


class TestUserList:
    """Test user list command."""

    def test_table(self, runner):
        result = runner.invoke(make_cli(), ["user", "list", "-p", PROJECT_ID])

        assert result.exit_code == 0, result.output
        assert table_rows(result.stdout) == [
            ["Email address", "Name", "Project role", "ID"],
            ["bob@example.com", "Bob", "viewer", "user-2"],
            ["jane@example.com", "Jane Doe", "admin", "user-1"],
        ]

    def test_permissions_plain(self, runner):
        result = runner.invoke(
            make_cli(),
            ["user", "list", "-p", PROJECT_ID, "-c", "email,permissions", "--format", "plain"],
        )

        assert result.exit_code == 0, result.output
        assert result.stdout == (
            "Email address\tPermissions\n"
            "bob@example.com\tviewer, development:contributor\n"
            "jane@example.com\tadmin\n"
        )

    def test_json(self, runner):
        result = runner.invoke(
            make_cli(), ["user", "list", "-p", PROJECT_ID, "--format", "json", "-c", "email,role"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"Email address": "bob@example.com", "Project role": "viewer"},
            {"Email address": "jane@example.com", "Project role": "admin"},
        ]

    def test_each_user_fetched_once(self, runner, fake_api):
        runner.invoke(make_cli(), ["user", "list", "-p", PROJECT_ID, "--pipe"])

        assert len(fake_api.requests_to("/users/user-1")) == 1
        assert len(fake_api.requests_to("/users/user-2")) == 1

    def test_deleted_user(self, runner, fake_api):
        fake_api.add(ACCESS, [{"user_id": "gone", "permissions": ["viewer"]}])
        result = runner.invoke(make_cli(), ["user", "list", "-p", PROJECT_ID, "--format", "csv"])

        assert result.exit_code == 0, result.output
        assert result.stdout == "Email address,Name,Project role,ID\n,,viewer,gone\n"


class TestHelpers:
    def test_project_role(self):
        assert project_role(Record({"permissions": ["admin"]})) == "admin"
        assert project_role(Record({"permissions": ["viewer"]})) == "viewer"
        assert project_role(Record({"role": "admin", "permissions": []})) == "admin"

    def test_display_name(self):
        assert display_name(Record({"first_name": "Jane", "last_name": "Doe"})) == "Jane Doe"
        assert display_name(Record({"display_name": "Bob", "first_name": "Robert"})) == "Bob"

    def test_fetch_users_refresh_bypasses_cache(self, fake_api):
        fetcher = ResourceFetcher(ApiClient(load_config()))
        fetch_users(fetcher, ["user-1"])
        fetch_users(fetcher, ["user-1"])
        assert len(fake_api.requests_to("/users/user-1")) == 1

        users = fetch_users(fetcher, ["user-1", ""], refresh=True)
        assert list(users) == ["user-1"]
        assert len(fake_api.requests_to("/users/user-1")) == 2
