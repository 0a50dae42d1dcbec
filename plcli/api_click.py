"""CLI command for raw, authenticated API requests."""

import json
import sys
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

import click

from .exceptions import ValidationError
from .utils import ExitCodes, get_api_client


def parse_headers(values: Tuple[str, ...]) -> Dict[str, str]:
    """Parse ``Name: value`` header options.

    Raises:
        ValidationError: If a header has no colon
    """
    headers: Dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValidationError(f"Invalid header: {value} (expected 'Name: value')")
        headers[name.strip()] = content.strip()
    return headers


def register_api_commands(cli: click.Group) -> None:
    """Register CLI commands for raw API access."""

    @cli.group()
    def api() -> None:
        """Make raw requests to the API."""
        pass

    @api.command(name="curl")
    @click.argument("path")
    @click.option("--request", "-X", "method", default=None, help="The request method to use")
    @click.option("--data", "-d", help="Data to send in the request body")
    @click.option("--json", "json_data", help="JSON data to send (sets the Content-Type header)")
    @click.option("--header", "-H", "headers", multiple=True, help="Extra header, e.g. 'Name: value'")
    @click.option("--include", "-i", is_flag=True, help="Include response headers in the output")
    @click.option("--no-retry-401", is_flag=True, help="Do not re-authenticate and retry on a 401 response")
    @click.option("--fail", "-f", is_flag=True, help="Fail with no output on an error response")
    def curl(
        path: str,
        method: Optional[str],
        data: Optional[str],
        json_data: Optional[str],
        headers: Tuple[str, ...],
        include: bool,
        no_retry_401: bool,
        fail: bool,
    ) -> None:
        """Run an authenticated request against an API path.

        Non-2xx responses exit with status 22.
        """
        if urlparse(path).scheme:
            raise ValidationError("Only API paths are accepted, not absolute URLs")
        if data is not None and json_data is not None:
            raise ValidationError("Use only one of --data and --json")

        request_headers = parse_headers(headers)
        body: Optional[str] = data
        if json_data is not None:
            try:
                json.loads(json_data)
            except ValueError as exc:
                raise ValidationError(f"Invalid JSON data: {exc}") from exc
            body = json_data
            request_headers.setdefault("Content-Type", "application/json")
        if method is None:
            method = "POST" if body is not None else "GET"

        resp = get_api_client().request(
            method,
            "/" + path.lstrip("/"),
            data=body.encode("utf-8") if body is not None else None,
            headers=request_headers,
            retry_401=not no_retry_401,
        )

        ok = 200 <= resp.status_code < 300
        if not ok and fail:
            sys.exit(ExitCodes.REQUEST_FAILED)
        if include:
            click.echo(f"HTTP {resp.status_code} {resp.reason or ''}".rstrip())
            for name, value in resp.headers.items():
                click.echo(f"{name}: {value}")
            click.echo()
        click.echo(resp.text, nl=False)
        if not ok:
            sys.exit(ExitCodes.REQUEST_FAILED)
