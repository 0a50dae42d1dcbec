"""CLI commands for listing and inspecting environments."""

from typing import List, Optional, Tuple

import click

from .cli_utils import (
    environment_option,
    get_format_option,
    list_options,
    project_option,
    property_option,
    split_values,
)
from .columns import ColumnRegistry, ColumnSpec, field
from .records import Record
from .sorting import Filter
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_selector


def format_status(record: Record) -> str:
    """Display form of an environment status."""
    status = record.get_str("status")
    if status == "dirty":
        return "In progress"
    return status.title()


ENVIRONMENT_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("id", "ID", default_visible=True, wrap=False),
        ColumnSpec("machine_name", "Machine name"),
        ColumnSpec("title", "Title", default_visible=True),
        ColumnSpec("status", "Status", default_visible=True, extract=format_status),
        ColumnSpec("type", "Type", default_visible=True),
        ColumnSpec("created", "Created", extract=field("created_at"), hint="date"),
        ColumnSpec("updated", "Updated", extract=field("updated_at"), hint="date"),
    ],
    primary="id",
)


def environment_filters(
    status: Tuple[str, ...], env_type: Tuple[str, ...], no_inactive: bool
) -> List[Filter]:
    """Build filters from the environment list options."""
    filters = []
    if status:
        filters.append(Filter("status", split_values(status)))
    if env_type:
        filters.append(Filter("type", split_values(env_type)))
    if no_inactive:
        filters.append(Filter("status", ("inactive",), negate=True))
    return filters


def register_environment_commands(cli: click.Group) -> None:
    """Register CLI commands for environments."""

    @cli.group()
    def environment() -> None:
        """List and inspect environments."""
        pass

    @environment.command(name="list")
    @list_options(ENVIRONMENT_COLUMNS, default_sort="title")
    @project_option
    @click.option(
        "--status",
        multiple=True,
        help="Filter by status (active, inactive, dirty, paused, deleting); comma-separated",
    )
    @click.option(
        "--type",
        "env_type",
        multiple=True,
        help="Filter by type (production, staging, development); comma-separated",
    )
    @click.option("--no-inactive", is_flag=True, help="Do not show inactive environments")
    def list_environments(
        project: Optional[str],
        status: Tuple[str, ...],
        env_type: Tuple[str, ...],
        no_inactive: bool,
        list_opts: dict,
    ) -> None:
        """List the environments of a project."""
        request = RenderRequest.from_options(
            list_opts,
            default_sort="title",
            filters=environment_filters(status, env_type, no_inactive),
        )
        selector = get_selector()

        def load() -> List[Record]:
            record = selector.select_project(project, refresh=list_opts["refresh"])
            return selector.list_environments(record, refresh=list_opts["refresh"])

        UniversalResponseHandler.handle_list(
            request, ENVIRONMENT_COLUMNS, load, "environments", config=get_config()
        )

    @environment.command(name="info")
    @project_option
    @environment_option
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def environment_info(
        project: Optional[str],
        environment: Optional[str],
        prop: Optional[str],
        output_format: str,
        refresh: bool,
    ) -> None:
        """Show the properties of an environment."""
        selection = get_selector().select(project, environment, refresh=refresh)
        UniversalResponseHandler.handle_get(
            selection.environment, config=get_config(), prop=prop, output_format=output_format
        )
