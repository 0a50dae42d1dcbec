"""CLI commands for project and environment variables."""

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
from .columns import ColumnRegistry, ColumnSpec
from .exceptions import FetchError, NotFoundError, SensitiveValueError, ValidationError
from .fetcher import ResourceFetcher, describe_error
from .records import Record
from .selector import Selection
from .universal_handlers import RenderRequest, UniversalResponseHandler, format_success
from .utils import get_api_client, get_config, get_fetcher, get_selector, parse_bool

logger = logging.getLogger(__name__)

LEVEL_PROJECT = "project"
LEVEL_ENVIRONMENT = "environment"

SENSITIVE_PLACEHOLDER = "[Hidden: sensitive value]"

LEVEL_ALIASES = {
    "p": LEVEL_PROJECT,
    "project": LEVEL_PROJECT,
    "e": LEVEL_ENVIRONMENT,
    "env": LEVEL_ENVIRONMENT,
    "environment": LEVEL_ENVIRONMENT,
}


def display_value(record: Record) -> str:
    """The variable value, or a placeholder if it is sensitive."""
    if record.get_bool("is_sensitive"):
        return SENSITIVE_PLACEHOLDER
    return record.get_str("value")


def enabled_value(record: Record) -> Optional[bool]:
    # Project-level variables have no enabled state.
    if record.get_str("level") == LEVEL_PROJECT:
        return None
    return record.get_path("is_enabled")


VARIABLE_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("name", "Name", default_visible=True),
        ColumnSpec("level", "Level", default_visible=True),
        ColumnSpec("value", "Value", default_visible=True, extract=display_value),
        ColumnSpec("enabled", "Enabled", default_visible=True, extract=enabled_value, hint="bool"),
        ColumnSpec("sensitive", "Sensitive", extract=lambda r: r.get_bool("is_sensitive"), hint="bool"),
        ColumnSpec("visible_build", "Visible at build time", hint="bool"),
        ColumnSpec("visible_runtime", "Visible at runtime", hint="bool"),
        ColumnSpec("inherited", "Inherited", hint="bool"),
    ],
    primary="name",
)


def normalize_level(level: Optional[str]) -> Optional[str]:
    """Expand a ``--level`` value, accepting the abbreviations ``p`` and ``e``.

    Raises:
        ValidationError: For an unknown level
    """
    if level is None:
        return None
    try:
        return LEVEL_ALIASES[level.strip().lower()]
    except KeyError:
        raise ValidationError(
            f"Invalid level: {level}. Use 'project' or 'environment'."
        ) from None


def _with_level(records: List[Record], level: str) -> List[Record]:
    return [Record({**record.to_dict(), "level": level}) for record in records]


def project_variables(fetcher: ResourceFetcher, project: Record, refresh: bool = False) -> List[Record]:
    url = project.link(
        "#variables", f"/projects/{quote(project.get_str('id'), safe='')}/variables"
    )
    return _with_level(fetcher.fetch_collection(url, refresh=refresh), LEVEL_PROJECT)


def environment_variables(
    fetcher: ResourceFetcher, selection: Selection, refresh: bool = False
) -> List[Record]:
    """Fetch the variables set on an environment itself, skipping inherited ones."""
    env = selection.require_environment()
    url = env.link(
        "#variables",
        f"/projects/{quote(selection.project_id, safe='')}"
        f"/environments/{quote(selection.environment_id, safe='')}/variables",
    )
    records = fetcher.fetch_collection(url, refresh=refresh)
    return _with_level([r for r in records if not r.get_bool("inherited")], LEVEL_ENVIRONMENT)


def load_variables(
    selection: Selection, level: Optional[str], refresh: bool = False
) -> List[Record]:
    """Fetch the variables at the requested level, or at both levels."""
    fetcher = get_fetcher()
    records: List[Record] = []
    if level in (None, LEVEL_PROJECT):
        records += project_variables(fetcher, selection.project, refresh=refresh)
    if level in (None, LEVEL_ENVIRONMENT) and selection.environment is not None:
        records += environment_variables(fetcher, selection, refresh=refresh)
    return records


def find_variable(
    selection: Selection, name: str, level: Optional[str], refresh: bool = False
) -> Record:
    """Find a variable by name, looking at the environment level first.

    Raises:
        NotFoundError: If no variable has this name
    """
    fetcher = get_fetcher()
    if level in (None, LEVEL_ENVIRONMENT) and selection.environment is not None:
        for record in environment_variables(fetcher, selection, refresh=refresh):
            if record.get_str("name") == name:
                return record
    if level in (None, LEVEL_PROJECT):
        for record in project_variables(fetcher, selection.project, refresh=refresh):
            if record.get_str("name") == name:
                return record
    raise NotFoundError(f"Variable not found: {name}")


def register_variable_commands(cli: click.Group) -> None:
    """Register CLI commands for variables."""

    @cli.group()
    def variable() -> None:
        """List, view and update variables."""
        pass

    @variable.command(name="list")
    @list_options(VARIABLE_COLUMNS, default_sort="name")
    @project_option
    @environment_option
    @click.option("--level", "-l", help="Only list variables at this level (project or environment)")
    def list_variables(
        project: Optional[str], environment: Optional[str], level: Optional[str], list_opts: dict
    ) -> None:
        """List the variables of a project and environment."""
        level = normalize_level(level)
        request = RenderRequest.from_options(list_opts, default_sort="name")
        refresh = list_opts["refresh"]

        def load() -> List[Record]:
            selection = get_selector().select(
                project,
                environment,
                env_required=level != LEVEL_PROJECT,
                refresh=refresh,
            )
            return load_variables(selection, level, refresh=refresh)

        UniversalResponseHandler.handle_list(
            request, VARIABLE_COLUMNS, load, "variables", config=get_config()
        )

    @variable.command(name="get")
    @click.argument("name")
    @project_option
    @environment_option
    @click.option("--level", "-l", help="The variable level (project or environment)")
    @property_option
    @get_format_option
    @click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources")
    def get_variable(
        name: str,
        project: Optional[str],
        environment: Optional[str],
        level: Optional[str],
        prop: Optional[str],
        output_format: str,
        refresh: bool,
    ) -> None:
        """View a variable."""
        level = normalize_level(level)
        selection = get_selector().select(
            project, environment, env_required=level != LEVEL_PROJECT, refresh=refresh
        )
        record = find_variable(selection, name, level, refresh=refresh)
        if prop == "value" and record.get_bool("is_sensitive"):
            raise SensitiveValueError(
                "The variable's value is sensitive and cannot be displayed"
            )
        hidden = ["value"] if record.get_bool("is_sensitive") else []
        UniversalResponseHandler.handle_get(
            record, config=get_config(), prop=prop, output_format=output_format, hidden=hidden
        )

    @variable.command(name="update")
    @click.argument("name")
    @project_option
    @environment_option
    @click.option("--level", "-l", help="The variable level (project or environment)")
    @click.option("--value", help="The new value")
    @click.option("--enabled", help="Whether the variable is enabled (true or false)")
    @click.option("--sensitive", help="Whether the value is sensitive (true or false)")
    @click.option("--visible-build", help="Whether the variable is visible at build time (true or false)")
    @click.option("--visible-runtime", help="Whether the variable is visible at runtime (true or false)")
    def update_variable(
        name: str,
        project: Optional[str],
        environment: Optional[str],
        level: Optional[str],
        value: Optional[str],
        enabled: Optional[str],
        sensitive: Optional[str],
        visible_build: Optional[str],
        visible_runtime: Optional[str],
    ) -> None:
        """Update a variable."""
        level = normalize_level(level)
        changes: Dict[str, Any] = {}
        if value is not None:
            changes["value"] = value
        for key, raw, option in (
            ("is_enabled", enabled, "--enabled"),
            ("is_sensitive", sensitive, "--sensitive"),
            ("visible_build", visible_build, "--visible-build"),
            ("visible_runtime", visible_runtime, "--visible-runtime"),
        ):
            parsed = parse_bool(raw, option)
            if parsed is not None:
                changes[key] = parsed
        if not changes:
            raise ValidationError("No changes were provided")

        selection = get_selector().select(
            project, environment, env_required=level != LEVEL_PROJECT
        )
        record = find_variable(selection, name, level)
        if "is_enabled" in changes and record.get_str("level") == LEVEL_PROJECT:
            raise ValidationError("The --enabled option only applies to environment-level variables")

        edit_url = record.link("#edit", record.link("self", ""))
        if not edit_url:
            raise ValidationError(f"The variable cannot be edited: {name}")
        resp = get_api_client().request("PATCH", edit_url, json=changes)
        if not resp.ok:
            raise FetchError(f"Failed to update variable {name}: {describe_error(resp)}")
        get_fetcher().invalidate()
        logger.debug("Updated variable %s with %s", name, sorted(changes))
        format_success(
            f"Variable updated: {name}",
            {"Level": record.get_str("level"), "Changed": ", ".join(sorted(changes))},
        )
