"""CLI commands for listing and inspecting activities."""

import re
from typing import List, Optional, Tuple
from urllib.parse import quote

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
from .selector import Selection
from .sorting import Filter
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_fetcher, get_selector

DEFAULT_LIMIT = 10

INCOMPLETE_STATES = ("pending", "in_progress", "staged", "cancelling")

_TAG = re.compile(r"<[^>]+>")


def activity_description(record: Record) -> str:
    """Plain-text description of an activity."""
    text = record.get_str("text")
    if text:
        return text
    return _TAG.sub("", record.get_str("description"))


ACTIVITY_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("id", "ID", default_visible=True, wrap=False),
        ColumnSpec("created", "Created", default_visible=True, extract=field("created_at"), hint="date"),
        ColumnSpec("completed", "Completed", extract=field("completed_at"), hint="date"),
        ColumnSpec("description", "Description", default_visible=True, extract=activity_description),
        ColumnSpec("type", "Type"),
        ColumnSpec(
            "progress",
            "Progress",
            default_visible=True,
            extract=field("completion_percent"),
            hint="percent",
        ),
        ColumnSpec("state", "State", default_visible=True),
        ColumnSpec("result", "Result", default_visible=True),
        ColumnSpec("environments", "Environment(s)", hint="list"),
        ColumnSpec("time_execute", "Execution time", extract=field("timings.execute"), hint="duration"),
        ColumnSpec("time_wait", "Wait time", extract=field("timings.wait"), hint="duration"),
        ColumnSpec("time_build", "Build time", extract=field("timings.build"), hint="duration"),
        ColumnSpec("time_deploy", "Deploy time", extract=field("timings.deploy"), hint="duration"),
    ],
    primary="id",
)


def activity_filters(
    types: Tuple[str, ...],
    exclude_types: Tuple[str, ...],
    states: Tuple[str, ...],
    results: Tuple[str, ...],
    incomplete: bool,
) -> List[Filter]:
    """Build filters from the activity list options."""
    filters = []
    if types:
        filters.append(Filter("type", split_values(types)))
    if exclude_types:
        filters.append(Filter("type", split_values(exclude_types), negate=True))
    if states:
        filters.append(Filter("state", split_values(states)))
    if incomplete:
        filters.append(Filter("state", INCOMPLETE_STATES))
    if results:
        filters.append(Filter("result", split_values(results)))
    return filters


def activities_url(selection: Selection) -> str:
    """Return the activities collection of the selected environment, or of the project."""
    project_path = f"/projects/{quote(selection.project_id, safe='')}"
    if selection.environment is not None:
        env_path = f"{project_path}/environments/{quote(selection.environment_id, safe='')}"
        return selection.environment.link("#activities", env_path + "/activities")
    return selection.project.link("#activities", project_path + "/activities")


def register_activity_commands(cli: click.Group) -> None:
    """Register CLI commands for activities."""

    @cli.group()
    def activity() -> None:
        """List and inspect activities."""
        pass

    @activity.command(name="list")
    @list_options(ACTIVITY_COLUMNS, default_sort="created (newest first)", default_limit=DEFAULT_LIMIT)
    @project_option
    @environment_option
    @click.option("--all", "-a", "all_envs", is_flag=True, help="List activities on all environments")
    @click.option("--type", "-t", "types", multiple=True, help="Only list activities of this type (wildcards allowed)")
    @click.option("--exclude-type", "-x", "exclude_types", multiple=True, help="Exclude activities of this type")
    @click.option("--state", "states", multiple=True, help="Filter by state: in_progress, pending, complete, cancelled")
    @click.option("--result", "results", multiple=True, help="Filter by result: success or failure")
    @click.option("--incomplete", "-i", is_flag=True, help="Only list incomplete activities")
    def list_activities(
        project: Optional[str],
        environment: Optional[str],
        all_envs: bool,
        types: Tuple[str, ...],
        exclude_types: Tuple[str, ...],
        states: Tuple[str, ...],
        results: Tuple[str, ...],
        incomplete: bool,
        list_opts: dict,
    ) -> None:
        """List activities, newest first."""
        request = RenderRequest.from_options(
            list_opts,
            default_sort="created",
            default_descending=True,
            filters=activity_filters(types, exclude_types, states, results, incomplete),
        )
        refresh = list_opts["refresh"]

        def load() -> List[Record]:
            selection = get_selector().select(
                project, None if all_envs else environment, env_required=not all_envs, refresh=refresh
            )
            return get_fetcher().fetch_collection(activities_url(selection), refresh=refresh)

        UniversalResponseHandler.handle_list(
            request,
            ACTIVITY_COLUMNS,
            load,
            "activities",
            config=get_config(),
            extra_defaults=["environments"] if all_envs else [],
        )

    @activity.command(name="get")
    @click.argument("activity_id")
    @project_option
    @environment_option
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def get_activity(
        activity_id: str,
        project: Optional[str],
        environment: Optional[str],
        prop: Optional[str],
        output_format: str,
        refresh: bool,
    ) -> None:
        """View a single activity."""
        selection = get_selector().select(project, environment, env_required=False, refresh=refresh)
        url = activities_url(selection).rstrip("/") + "/" + quote(activity_id, safe="")
        record = get_fetcher().fetch_one(url, refresh=refresh)
        UniversalResponseHandler.handle_get(
            record,
            config=get_config(),
            prop=prop,
            output_format=output_format,
            hidden=["log", "payload"],
        )


