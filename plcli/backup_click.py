"""CLI commands for environment backups."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import click

from .cli_utils import (
    environment_option,
    get_format_option,
    list_options,
    project_option,
    property_option,
)
from .columns import ColumnRegistry, ColumnSpec, field
from .exceptions import FetchError, NotFoundError, ValidationError
from .fetcher import describe_error
from .records import Record
from .selector import Selection
from .sorting import Filter
from .universal_handlers import RenderRequest, UniversalResponseHandler, format_success
from .utils import get_api_client, get_config, get_fetcher, get_selector

logger = logging.getLogger(__name__)

BACKUP_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("created", "Created", default_visible=True, extract=field("created_at"), hint="date"),
        ColumnSpec("id", "Backup ID", default_visible=True, wrap=False),
        ColumnSpec("restorable", "Restorable", default_visible=True, hint="bool"),
        ColumnSpec("automated", "Automated", hint="bool"),
        ColumnSpec("commit_id", "Commit ID"),
        ColumnSpec("expires", "Expires", extract=field("expires_at"), hint="date"),
        ColumnSpec("live", "Live", extract=lambda r: not r.get_bool("safe"), hint="bool"),
        ColumnSpec("status", "Status"),
    ],
    primary="id",
)


def backups_url(selection: Selection) -> str:
    env = selection.require_environment()
    return env.link(
        "backups",
        f"/projects/{quote(selection.project_id, safe='')}"
        f"/environments/{quote(selection.environment_id, safe='')}/backups",
    )


def register_backup_commands(cli: click.Group) -> None:
    """Register CLI commands for backups."""

    @cli.group()
    def backup() -> None:
        """List, view and create backups of an environment."""
        pass

    @backup.command(name="list")
    @list_options(BACKUP_COLUMNS, default_sort="created (newest first)")
    @project_option
    @environment_option
    @click.option("--automated", "kind", flag_value="automated", help="Only list automated backups")
    @click.option("--manual", "kind", flag_value="manual", help="Only list manual backups")
    def list_backups(
        project: Optional[str], environment: Optional[str], kind: Optional[str], list_opts: dict
    ) -> None:
        """List the backups of an environment, newest first."""
        filters = []
        if kind:
            filters.append(Filter("automated", ("true" if kind == "automated" else "false",)))
        request = RenderRequest.from_options(
            list_opts, default_sort="created", default_descending=True, filters=filters
        )
        refresh = list_opts["refresh"]

        def load() -> List[Record]:
            selection = get_selector().select(project, environment, refresh=refresh)
            return get_fetcher().fetch_collection(backups_url(selection), refresh=refresh)

        UniversalResponseHandler.handle_list(
            request, BACKUP_COLUMNS, load, "backups", config=get_config()
        )

    @backup.command(name="get")
    @click.argument("backup_id")
    @project_option
    @environment_option
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def get_backup(
        backup_id: str,
        project: Optional[str],
        environment: Optional[str],
        prop: Optional[str],
        output_format: str,
        refresh: bool,
    ) -> None:
        """View a backup."""
        selection = get_selector().select(project, environment, refresh=refresh)
        for record in get_fetcher().fetch_collection(backups_url(selection), refresh=refresh):
            if record.get_str("id") == backup_id:
                UniversalResponseHandler.handle_get(
                    record, config=get_config(), prop=prop, output_format=output_format
                )
                return
        raise NotFoundError(f"Backup not found: {backup_id}")

    @backup.command(name="create")
    @project_option
    @environment_option
    @click.option(
        "--live",
        is_flag=True,
        help="Live backup: do not stop the environment (avoids downtime, risks inconsistency)",
    )
    def create_backup(project: Optional[str], environment: Optional[str], live: bool) -> None:
        """Make a backup of an environment."""
        selection = get_selector().select(project, environment)
        env = selection.require_environment()
        if not env.has_link("#backup"):
            raise ValidationError(
                f"Backups are not available for the environment: {selection.environment_id}"
            )

        resp = get_api_client().request("POST", env.link("#backup"), json={"safe": not live})
        if not resp.ok:
            raise FetchError(f"Failed to create backup: {describe_error(resp)}")
        get_fetcher().invalidate()

        details: Dict[str, Any] = {
            "Project": selection.project_id,
            "Environment": selection.environment_id,
        }
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            activities = (body.get("_embedded") or {}).get("activities") or []
            ids = [a.get("id") for a in activities if isinstance(a, dict) and a.get("id")]
            if ids:
                details["Activity"] = ", ".join(ids)
        logger.debug("Backup requested (live=%s)", live)
        format_success("Live backup started" if live else "Backup started", details)
