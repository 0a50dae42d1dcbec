"""CLI commands for the routes of an environment."""

import logging
from typing import List, Optional
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
from .exceptions import NotFoundError
from .local_env import LocalEnvironment, routes_to_records
from .records import Record, thaw
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_fetcher, get_selector

logger = logging.getLogger(__name__)


def route_target(record: Record) -> str:
    """Where a route points: a redirect target or an upstream."""
    return record.get_str("to") or record.get_str("upstream")


ROUTE_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("route", "Route", default_visible=True, extract=field("original_url")),
        ColumnSpec("type", "Type", default_visible=True),
        ColumnSpec("to", "To", default_visible=True, extract=route_target),
        ColumnSpec("url", "URL"),
        ColumnSpec("primary", "Primary", hint="bool"),
        ColumnSpec("id", "ID"),
    ],
    primary="route",
)


def load_routes(project: Optional[str], environment: Optional[str], refresh: bool = False) -> List[Record]:
    """Fetch routes from the environment's current deployment.

    Inside an application container, when no project is given, the routes are
    read from the local environment variables instead, without any request.
    """
    config = get_config()
    local = LocalEnvironment(config.env_prefix)
    if project is None and environment is None and local.has_routes:
        logger.debug("Reading routes from %sROUTES", config.env_prefix)
        return local.routes()

    selection = get_selector().select(project, environment, refresh=refresh)
    env = selection.require_environment()
    url = env.link(
        "current-deployment",
        f"/projects/{quote(selection.project_id, safe='')}"
        f"/environments/{quote(selection.environment_id, safe='')}/deployments/current",
    )
    deployment = get_fetcher().fetch_one(url, refresh=refresh)
    routes = thaw(deployment.get_path("routes")) or {}
    return routes_to_records(routes)


def find_route(records: List[Record], route: str) -> Record:
    """Find a route by its original URL, or by its resolved URL.

    Raises:
        NotFoundError: If no route matches
    """
    for key in ("original_url", "url"):
        for record in records:
            if record.get_str(key) == route:
                return record
    raise NotFoundError(f"Route not found: {route}")


def register_route_commands(cli: click.Group) -> None:
    """Register CLI commands for routes."""

    @cli.group()
    def route() -> None:
        """List and inspect the routes of an environment."""
        pass

    @route.command(name="list")
    @list_options(ROUTE_COLUMNS, default_sort="route")
    @project_option
    @environment_option
    def list_routes(project: Optional[str], environment: Optional[str], list_opts: dict) -> None:
        """List the routes of an environment."""
        request = RenderRequest.from_options(list_opts, default_sort="route")
        UniversalResponseHandler.handle_list(
            request,
            ROUTE_COLUMNS,
            lambda: load_routes(project, environment, refresh=list_opts["refresh"]),
            "routes",
            config=get_config(),
        )

    @route.command(name="get")
    @click.argument("route_url", metavar="ROUTE")
    @project_option
    @environment_option
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def get_route(
        route_url: str,
        project: Optional[str],
        environment: Optional[str],
        prop: Optional[str],
        output_format: str,
        refresh: bool,
    ) -> None:
        """View a route, by its original URL (e.g. 'https://{default}/')."""
        record = find_route(load_routes(project, environment, refresh=refresh), route_url)
        UniversalResponseHandler.handle_get(
            record, config=get_config(), prop=prop, output_format=output_format
        )
