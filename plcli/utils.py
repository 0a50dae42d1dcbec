"""Shared utility functions for plcli commands.

Per-invocation state (configuration, API client, resource fetcher) is kept on
the root click context, so two invocations in one interpreter never share a
token or a cache.
"""

import base64
import binascii
import json
from typing import Any, Dict, Optional

import click

from .api_client import ApiClient
from .config import Config, load_config
from .exceptions import ExitCodes, ValidationError
from .fetcher import ResourceFetcher
from .selector import Selector

__all__ = [
    "ExitCodes",
    "decode_env_json",
    "get_api_client",
    "get_config",
    "get_fetcher",
    "get_selector",
    "get_state",
    "is_debug",
    "parse_bool",
]


def get_state() -> Dict[str, Any]:
    """Return the state dictionary of the current invocation."""
    ctx = click.get_current_context()
    return ctx.find_root().ensure_object(dict)


def get_config() -> Config:
    """Return the configuration for the current invocation, loading it once."""
    state = get_state()
    if "config" not in state:
        state["config"] = load_config()
    return state["config"]


def get_api_client() -> ApiClient:
    """Return the API client for the current invocation."""
    state = get_state()
    if "api_client" not in state:
        client = ApiClient(get_config())
        state["api_client"] = client
        click.get_current_context().find_root().call_on_close(client.close)
    return state["api_client"]


def get_fetcher() -> ResourceFetcher:
    """Return the resource fetcher (and its cache) for the current invocation."""
    state = get_state()
    if "fetcher" not in state:
        state["fetcher"] = ResourceFetcher(get_api_client())
    return state["fetcher"]


def get_selector() -> Selector:
    """Return a project/environment selector for the current invocation."""
    return Selector(get_fetcher(), get_config())


def is_debug() -> bool:
    """Whether --debug was given."""
    return bool(get_state().get("debug"))


def parse_bool(value: Optional[str], name: str) -> Optional[bool]:
    """Parse a strict ``true``/``false`` option value.

    Raises:
        ValidationError: For any other value
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValidationError(f"The value for {name} must be 'true' or 'false', got: {value}")


def decode_env_json(name: str, value: str) -> Any:
    """Decode a base64-encoded JSON environment variable.

    Raises:
        ValidationError: If the value is not base64-encoded JSON
    """
    try:
        return json.loads(base64.b64decode(value, validate=False).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ValidationError(f"Failed to decode the {name} environment variable: {exc}") from exc
