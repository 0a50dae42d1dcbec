"""Unit tests for configuration loading."""

import json
from typing import Any

import keyring
from keyring.errors import KeyringError
from pytest import MonkeyPatch

from plcli.config import (
    DEFAULT_PAGE_LIMIT,
    get_config_file_path,
    get_stored_api_token,
    load_config,
)


def write_settings(settings: Any) -> None:
    path = get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings), encoding="utf-8")


def test_defaults_from_environment() -> None:
    config = load_config()

    assert config.api_url == "https://api.example.com"
    assert config.token_url == "https://auth.example.com/oauth2/token"
    assert config.ssh_cert_url == "https://auth.example.com/ssh"
    assert config.api_token == "test-api-token"
    assert config.page_limit == DEFAULT_PAGE_LIMIT
    assert config.env_prefix == "PLATFORM_"


def test_settings_file_below_environment(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv("PLCLI_TABLE_WIDTH")
    write_settings(
        {
            "api_url": "https://file.example.com/",
            "table_width": 120,
            "default_project": "from-file",
            "ssl_verify": False,
        }
    )

    config = load_config()

    assert config.api_url == "https://api.example.com"
    assert config.table_width == 120
    assert config.default_project == "from-file"
    assert config.ssl_verify is False


def test_unreadable_settings_file_is_ignored() -> None:
    path = get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{not json", encoding="utf-8")

    assert load_config().api_url == "https://api.example.com"


def test_ssh_options_split_on_newlines(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("PLCLI_SSH_OPTIONS", "ServerAliveInterval 30\n\nPort 2222\n")
    assert load_config().ssh_options == ["ServerAliveInterval 30", "Port 2222"]


def test_invalid_page_limit_uses_default(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("PLCLI_PAGE_LIMIT", "lots")
    assert load_config().page_limit == DEFAULT_PAGE_LIMIT


def test_access_token(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("PLCLI_ACCESS_TOKEN", "static")
    assert load_config().access_token == "static"


def test_keyring_token_when_env_unset(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv("PLCLI_TOKEN")
    monkeypatch.setattr(
        keyring,
        "get_password",
        lambda service, key: "from-keyring" if (service, key) == ("platform-cli", "api-token") else None,
    )

    assert load_config().api_token == "from-keyring"


def test_keyring_errors_are_ignored(monkeypatch: MonkeyPatch) -> None:
    def broken(service: str, key: str) -> None:
        raise KeyringError("locked")

    monkeypatch.setattr(keyring, "get_password", broken)
    assert get_stored_api_token() is None
