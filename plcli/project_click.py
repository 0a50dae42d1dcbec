"""CLI commands for listing and inspecting projects."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

import click

from .cli_utils import get_format_option, list_options, project_option, property_option
from .columns import ColumnRegistry, ColumnSpec
from .exceptions import NotFoundError
from .fetcher import ResourceFetcher
from .records import Record
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_fetcher, get_selector

logger = logging.getLogger(__name__)

MAX_LOOKUP_WORKERS = 8

PROJECT_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("id", "ID", default_visible=True, wrap=False),
        ColumnSpec("title", "Title", default_visible=True),
        ColumnSpec("region", "Region", default_visible=True),
        ColumnSpec("organization_name", "Organization", default_visible=True),
        ColumnSpec("organization_id", "Organization ID"),
        ColumnSpec("organization_label", "Organization label"),
        ColumnSpec("created_at", "Created", hint="date"),
    ],
    primary="id",
)


def fetch_organizations(
    fetcher: ResourceFetcher, org_ids: Iterable[str], refresh: bool = False
) -> Dict[str, Record]:
    """Look up organizations in parallel, skipping any that no longer exist."""
    ids = sorted({org_id for org_id in org_ids if org_id})

    def lookup(org_id: str) -> Optional[Record]:
        try:
            return fetcher.fetch_one(
                f"/organizations/{quote(org_id, safe='')}", refresh=refresh
            )
        except NotFoundError:
            logger.debug("Organization not found: %s", org_id)
            return None

    if not ids:
        return {}
    with ThreadPoolExecutor(max_workers=min(MAX_LOOKUP_WORKERS, len(ids))) as pool:
        results = list(pool.map(lookup, ids))
    return {org_id: org for org_id, org in zip(ids, results) if org is not None}


def load_projects(fetcher: ResourceFetcher, my: bool = False, refresh: bool = False) -> List[Record]:
    """Fetch projects, adding the name and label of each one's organization."""
    projects = fetcher.fetch_collection("/projects", refresh=refresh)
    orgs = fetch_organizations(
        fetcher, (p.get_str("organization") for p in projects), refresh=refresh
    )

    if my:
        me = fetcher.fetch_one("/users/me", refresh=refresh)
        my_id = me.get_str("id")
        owned = {org_id for org_id, org in orgs.items() if org.get_str("owner_id") == my_id}
        projects = [p for p in projects if p.get_str("organization") in owned]

    result = []
    for project in projects:
        org_id = project.get_str("organization")
        org = orgs.get(org_id)
        data = project.to_dict()
        data["organization_id"] = org_id or None
        data["organization_name"] = org.get_str("name") if org else None
        data["organization_label"] = org.get_str("label") if org else None
        result.append(Record(data))
    return result


def register_project_commands(cli: click.Group) -> None:
    """Register CLI commands for projects."""

    @cli.group()
    def project() -> None:
        """List and inspect projects."""
        pass

    @project.command(name="list")
    @list_options(PROJECT_COLUMNS, default_sort="title")
    @click.option("--my", is_flag=True, help="Only list projects in organizations you own")
    def list_projects(my: bool, list_opts: dict) -> None:
        """List the projects you have access to."""
        request = RenderRequest.from_options(list_opts, default_sort="title")
        UniversalResponseHandler.handle_list(
            request,
            PROJECT_COLUMNS,
            lambda: load_projects(get_fetcher(), my=my, refresh=list_opts["refresh"]),
            "projects",
            config=get_config(),
        )

    @project.command(name="info")
    @project_option
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def project_info(
        project: Optional[str], prop: Optional[str], output_format: str, refresh: bool
    ) -> None:
        """Show the properties of a project."""
        record = get_selector().select_project(project, refresh=refresh)
        UniversalResponseHandler.handle_get(
            record, config=get_config(), prop=prop, output_format=output_format
        )
