"""CLI commands for organizations."""

from typing import Optional

import click

from .cli_utils import list_options
from .columns import ColumnRegistry, ColumnSpec
from .sorting import Filter
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_fetcher

ORGANIZATION_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("id", "ID", wrap=False),
        ColumnSpec("name", "Name", default_visible=True),
        ColumnSpec("label", "Label", default_visible=True),
        ColumnSpec("type", "Type", default_visible=True),
        ColumnSpec("owner_id", "Owner ID", default_visible=True, wrap=False),
        ColumnSpec("vendor", "Vendor"),
        ColumnSpec("created_at", "Created", hint="date"),
    ],
    primary="name",
)


def register_organization_commands(cli: click.Group) -> None:
    """Register CLI commands for organizations."""

    @cli.group()
    def organization() -> None:
        """List organizations."""
        pass

    @organization.command(name="list")
    @list_options(ORGANIZATION_COLUMNS, default_sort="name")
    @click.option("--type", "org_type", help="Only list organizations of this type")
    def list_organizations(org_type: Optional[str], list_opts: dict) -> None:
        """List the organizations you have access to."""
        filters = [Filter("type", (org_type,))] if org_type else []
        request = RenderRequest.from_options(list_opts, default_sort="name", filters=filters)
        UniversalResponseHandler.handle_list(
            request,
            ORGANIZATION_COLUMNS,
            lambda: get_fetcher().fetch_collection("/organizations", refresh=list_opts["refresh"]),
            "organizations",
            config=get_config(),
        )
