"""Configuration management for plcli.

Settings are resolved in increasing order of precedence:

1. built-in defaults
2. the JSON settings file (``$XDG_CONFIG_HOME/plcli/config.json``)
3. ``PLCLI_*`` environment variables

The API token is never written to the settings file; it comes from the
``PLCLI_TOKEN`` environment variable or from the system keyring.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "platform-cli"
KEYRING_API_TOKEN = "api-token"

DEFAULT_API_URL = "https://api.platform.sh"
DEFAULT_AUTH_URL = "https://auth.api.platform.sh"
DEFAULT_PAGE_LIMIT = 2000


def get_config_dir() -> Path:
    """Get the plcli configuration directory."""
    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "plcli"
    return Path.home() / ".config" / "plcli"


def get_config_file_path() -> Path:
    """Get the path to the plcli settings file."""
    return get_config_dir() / "config.json"


def load_settings_file() -> Dict[str, Any]:
    """Load settings from the config file.

    Returns:
        Dictionary containing configuration values, empty if the file is
        missing or unreadable
    """
    config_file = get_config_file_path()
    if not config_file.exists():
        return {}

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
        return {}
    return data if isinstance(data, dict) else {}


def get_stored_api_token() -> Optional[str]:
    """Return the API token stored in the keyring, if any."""
    try:
        return keyring.get_password(KEYRING_SERVICE, KEYRING_API_TOKEN)
    except KeyringError as exc:
        logger.debug("Keyring unavailable: %s", exc)
        return None


def store_api_token(api_token: str) -> None:
    """Store the API token in the keyring."""
    keyring.set_password(KEYRING_SERVICE, KEYRING_API_TOKEN, api_token)


def delete_api_token() -> bool:
    """Remove the stored API token. Returns whether one was removed."""
    try:
        keyring.delete_password(KEYRING_SERVICE, KEYRING_API_TOKEN)
    except KeyringError:
        return False
    return True


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _env_int(value: Optional[str], default: Optional[int]) -> Optional[int]:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer setting value: %r", value)
        return default


@dataclass(frozen=True)
class Config:
    """Resolved settings for one CLI invocation."""

    api_url: str = DEFAULT_API_URL
    auth_url: str = DEFAULT_AUTH_URL
    client_id: str = "platform-cli"
    api_token: Optional[str] = None
    access_token: Optional[str] = None
    ssl_verify: bool = True
    timezone: Optional[str] = None
    date_format: Optional[str] = None
    table_width: Optional[int] = None
    page_limit: int = DEFAULT_PAGE_LIMIT
    ssh_options: List[str] = field(default_factory=list)
    ssh_cert_auto_load: bool = True
    env_prefix: str = "PLATFORM_"
    default_project: Optional[str] = None

    @property
    def token_url(self) -> str:
        """The OAuth2 token endpoint."""
        return self.auth_url.rstrip("/") + "/oauth2/token"

    @property
    def ssh_cert_url(self) -> str:
        """The SSH certificate authority endpoint."""
        return self.auth_url.rstrip("/") + "/ssh"


def load_config(environ: Optional[Dict[str, str]] = None) -> Config:
    """Build the configuration from defaults, the settings file and the environment."""
    env = os.environ if environ is None else environ
    settings = load_settings_file()

    def setting(key: str, env_name: str, default: Any = None) -> Any:
        if env_name in env:
            return env[env_name]
        return settings.get(key, default)

    ssh_options = setting("ssh_options", "PLCLI_SSH_OPTIONS", [])
    if isinstance(ssh_options, str):
        ssh_options = [line.strip() for line in ssh_options.splitlines() if line.strip()]

    api_token = env.get("PLCLI_TOKEN") or get_stored_api_token()

    return Config(
        api_url=str(setting("api_url", "PLCLI_API_URL", DEFAULT_API_URL)).rstrip("/"),
        auth_url=str(setting("auth_url", "PLCLI_AUTH_URL", DEFAULT_AUTH_URL)).rstrip("/"),
        client_id=str(setting("client_id", "PLCLI_CLIENT_ID", "platform-cli")),
        api_token=api_token or None,
        access_token=env.get("PLCLI_ACCESS_TOKEN") or None,
        ssl_verify=_env_bool(str(setting("ssl_verify", "PLCLI_SSL_VERIFY", "1")), True),
        timezone=setting("timezone", "PLCLI_TIMEZONE"),
        date_format=setting("date_format", "PLCLI_DATE_FORMAT"),
        table_width=_env_int(_as_text(setting("table_width", "PLCLI_TABLE_WIDTH")), None),
        page_limit=_env_int(_as_text(setting("page_limit", "PLCLI_PAGE_LIMIT")), DEFAULT_PAGE_LIMIT)
        or DEFAULT_PAGE_LIMIT,
        ssh_options=list(ssh_options),
        ssh_cert_auto_load=_env_bool(
            str(setting("ssh_cert_auto_load", "PLCLI_SSH_AUTO_LOAD_CERT", "1")), True
        ),
        env_prefix=str(setting("env_prefix", "PLCLI_ENV_PREFIX", "PLATFORM_")),
        default_project=setting("default_project", "PLCLI_PROJECT"),
    )
