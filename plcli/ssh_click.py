"""CLI command for SSH access to an environment."""

import logging
import sys
from typing import Optional, Tuple

import click

from .cli_utils import environment_option, project_option
from .local_env import LocalEnvironment
from .ssh import build_ssh_command, resolve_target, run_ssh
from .ssh_cert import Certifier
from .utils import get_api_client, get_config, get_selector, is_debug

logger = logging.getLogger(__name__)


def default_app(env_prefix: str) -> Optional[str]:
    """The app name of the current application container, if running in one."""
    application = LocalEnvironment(env_prefix).application()
    if isinstance(application, dict) and application.get("name"):
        return str(application["name"])
    return None


def register_ssh_commands(cli: click.Group) -> None:
    """Register the ssh command."""

    @cli.command(name="ssh", context_settings={"ignore_unknown_options": True})
    @project_option
    @environment_option
    @click.option("--app", "-A", help="The app name")
    @click.option("--instance", "-I", help="An instance ID")
    @click.option("--pipe", is_flag=True, help="Output the SSH URL only")
    @click.argument("remote_command", nargs=-1, type=click.UNPROCESSED)
    def ssh(
        project: Optional[str],
        environment: Optional[str],
        app: Optional[str],
        instance: Optional[str],
        pipe: bool,
        remote_command: Tuple[str, ...],
    ) -> None:
        """SSH to the current environment.

        Any arguments after the options are run as a command on the remote
        host; the command's exit code becomes this command's exit code.
        """
        config = get_config()
        selection = get_selector().select(project, environment)
        target = resolve_target(
            selection.require_environment(),
            app or default_app(config.env_prefix),
            instance,
        )

        if pipe:
            click.echo(target.url)
            return

        certificate = None
        if config.ssh_cert_auto_load:
            certificate = Certifier(get_api_client()).ensure_certificate()

        argv = build_ssh_command(
            target,
            remote_command,
            options=config.ssh_options,
            certificate=certificate,
            debug=is_debug(),
        )
        sys.exit(run_ssh(argv))
