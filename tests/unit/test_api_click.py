"""Unit tests for the api curl command."""

import json

import click
import pytest
from click.testing import CliRunner
from conftest import FakeResponse

from plcli.api_click import parse_headers, register_api_commands
from plcli.exceptions import ValidationError


def make_cli():
    """Create CLI instance with api commands for testing."""

    @click.group()
    def test_cli():
        pass

    register_api_commands(test_cli)
    return test_cli


@pytest.fixture
def runner():
    return CliRunner()


class TestCurl:
    def test_get(self, runner, fake_api):
        fake_api.add("/users/me", {"id": "my-user-id"})
        result = runner.invoke(make_cli(), ["api", "curl", "users/me"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"id": "my-user-id"}

    def test_json_body_defaults_to_post(self, runner, fake_api):
        fake_api.add("/projects/p1/variables", {"id": "x"}, method="POST", status=201)
        result = runner.invoke(
            make_cli(), ["api", "curl", "/projects/p1/variables", "--json", '{"name": "x"}']
        )

        assert result.exit_code == 0, result.output
        (request,) = fake_api.requests_to("/projects/p1/variables", method="POST")
        assert request["data"] == b'{"name": "x"}'
        assert request["headers"]["Content-Type"] == "application/json"

    def test_method_and_headers(self, runner, fake_api):
        fake_api.add("/projects/p1", {}, method="DELETE", status=204)
        result = runner.invoke(
            make_cli(), ["api", "curl", "-X", "delete", "-H", "X-Test: yes", "/projects/p1"]
        )

        assert result.exit_code == 0, result.output
        (request,) = fake_api.requests_to("/projects/p1", method="DELETE")
        assert request["headers"]["X-Test"] == "yes"

    def test_include_headers(self, runner, fake_api):
        fake_api.add("/users/me", {"id": "my-user-id"})
        result = runner.invoke(make_cli(), ["api", "curl", "-i", "/users/me"])

        lines = result.stdout.splitlines()
        assert lines[0] == "HTTP 200 OK"
        assert "Content-Type: application/json" in lines

    def test_error_status_exits_22(self, runner, fake_api):
        result = runner.invoke(make_cli(), ["api", "curl", "/nope"])

        assert result.exit_code == 22
        assert "Not found: /nope" in result.stdout

    def test_fail_suppresses_output(self, runner):
        result = runner.invoke(make_cli(), ["api", "curl", "--fail", "/nope"])

        assert result.exit_code == 22
        assert result.stdout == ""

    def test_no_retry_401(self, runner, fake_api):
        fake_api.add("/secret", lambda **_: FakeResponse(401, {"error": "denied"}))
        result = runner.invoke(make_cli(), ["api", "curl", "--no-retry-401", "/secret"])

        assert result.exit_code == 22
        assert fake_api.token_fetches == 1
        assert len(fake_api.requests_to("/secret")) == 1

    def test_401_retried_once(self, runner, fake_api):
        fake_api.add("/secret", lambda **_: FakeResponse(401, {"error": "denied"}))
        result = runner.invoke(make_cli(), ["api", "curl", "/secret"])

        assert result.exit_code == 4
        assert fake_api.token_fetches == 2
        assert len(fake_api.requests_to("/secret")) == 2

    def test_absolute_url_rejected(self, runner, fake_api):
        result = runner.invoke(make_cli(), ["api", "curl", "https://evil.example.com/x"])

        assert result.exit_code == 2
        assert fake_api.requests == []

    def test_data_and_json_conflict(self, runner):
        result = runner.invoke(make_cli(), ["api", "curl", "/x", "-d", "a", "--json", "{}"])

        assert result.exit_code == 2
        assert "Use only one of --data and --json" in result.stderr

    def test_invalid_json(self, runner):
        result = runner.invoke(make_cli(), ["api", "curl", "/x", "--json", "{nope"])

        assert result.exit_code == 2
        assert "Invalid JSON data" in result.stderr


class TestParseHeaders:
    def test_parse(self):
        assert parse_headers(("Accept: text/plain", "X-A:b:c")) == {"Accept": "text/plain", "X-A": "b:c"}

    def test_invalid(self):
        with pytest.raises(ValidationError):
            parse_headers(("nocolon",))
