"""plcli entry points."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import tomllib

from .activity_click import register_activity_commands
from .api_click import register_api_commands
from .auth import OAuth2TokenFetcher
from .auth_click import register_auth_commands
from .backup_click import register_backup_commands
from .config import delete_api_token, load_config, store_api_token
from .environment_click import register_environment_commands
from .organization_click import register_organization_commands
from .project_click import register_project_commands
from .route_click import register_route_commands
from .ssh_click import register_ssh_commands
from .ssl_trust import OS_TRUST_INJECTED, OS_TRUST_REASON
from .universal_handlers import format_success
from .user_click import register_user_commands
from .utils import get_state
from .variable_click import register_variable_commands

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_version() -> str:
    """Get the version from pyproject.toml."""
    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject_data = tomllib.load(f)
        return pyproject_data["tool"]["poetry"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def configure_logging(debug: bool) -> None:
    """Send log records to stderr, at DEBUG level with --debug."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--debug", is_flag=True, help="Log requests and other details on stderr")
@click.pass_context
def cli(ctx: click.Context, version: bool, debug: bool) -> None:
    """Platform CLI (plcli) - Command-line interface for projects and environments."""  # noqa: D403
    if version:
        click.echo(f"plcli version {get_version()}")
        ctx.exit()
    ctx.ensure_object(dict)["debug"] = debug
    configure_logging(debug)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(hidden=True, name="_ca-info")
def ca_info() -> None:
    """Show TLS CA trust source (hidden diagnostic)."""
    if OS_TRUST_INJECTED:
        click.echo(f"CA Source: system (reason={OS_TRUST_REASON})")
    else:
        click.echo(f"CA Source: certifi (reason={OS_TRUST_REASON})")


@cli.command()
@click.option("--api-token", help="API token (prompted for if omitted)")
@click.option("--no-verify", is_flag=True, help="Store the token without checking it")
def login(api_token: Optional[str], no_verify: bool) -> None:
    """Store your API token securely in the system keyring."""
    if not api_token:
        api_token = click.prompt("Enter your API token", hide_input=True)
    assert isinstance(api_token, str)
    api_token = api_token.strip()
    if not api_token:
        raise click.ClickException("API token cannot be empty.")

    if not no_verify:
        config = load_config()
        # Raises AuthenticationError if the token is rejected.
        OAuth2TokenFetcher(
            config.token_url, api_token, client_id=config.client_id, verify=config.ssl_verify
        )()
    store_api_token(api_token)
    get_state().pop("config", None)
    format_success("API token stored in the system keyring.")


@cli.command()
def logout() -> None:
    """Remove your stored API token."""
    if delete_api_token():
        format_success("API token removed from the system keyring.")
    else:
        click.echo("No stored API token found.", err=True)


register_activity_commands(cli)
register_api_commands(cli)
register_auth_commands(cli)
register_backup_commands(cli)
register_environment_commands(cli)
register_organization_commands(cli)
register_project_commands(cli)
register_route_commands(cli)
register_ssh_commands(cli)
register_user_commands(cli)
register_variable_commands(cli)
