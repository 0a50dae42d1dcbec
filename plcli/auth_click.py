"""CLI commands for authentication details."""

from typing import Optional

import click

from .cli_utils import get_format_option, property_option
from .universal_handlers import UniversalResponseHandler
from .utils import get_api_client, get_config, get_fetcher


def register_auth_commands(cli: click.Group) -> None:
    """Register CLI commands for authentication."""

    @cli.group()
    def auth() -> None:
        """Inspect authentication."""
        pass

    @auth.command(name="token")
    def token() -> None:
        """Print an access token for the API.

        The token is fetched with the configured API token; it is printed on
        stdout only, for use in scripts.
        """
        click.echo(get_api_client().token_store.get_token().value)

    @auth.command(name="info")
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def info(prop: Optional[str], output_format: str, refresh: bool) -> None:
        """Show information about the current user."""
        record = get_fetcher().fetch_one("/users/me", refresh=refresh)
        UniversalResponseHandler.handle_get(
            record,
            config=get_config(),
            prop=prop,
            output_format=output_format,
            properties=None if prop else _info_properties(record),
        )


def _info_properties(record) -> Optional[list]:
    preferred = ["id", "email", "username", "first_name", "last_name", "phone_number_verified"]
    keys = [key for key in preferred if key in record]
    return keys or None
