"""CLI commands for listing the users of a project.

The project's access list names users by ID only; each user's email address
and name are looked up through ``/users/{id}``, in parallel.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

import click

from .cli_utils import list_options, project_option
from .columns import ColumnRegistry, ColumnSpec
from .exceptions import NotFoundError
from .fetcher import ResourceFetcher
from .records import Record
from .universal_handlers import RenderRequest, UniversalResponseHandler
from .utils import get_config, get_fetcher, get_selector

logger = logging.getLogger(__name__)

MAX_LOOKUP_WORKERS = 8

USER_COLUMNS = ColumnRegistry(
    [
        ColumnSpec("email", "Email address", default_visible=True),
        ColumnSpec("name", "Name", default_visible=True),
        ColumnSpec("role", "Project role", default_visible=True),
        ColumnSpec("id", "ID", default_visible=True, wrap=False),
        ColumnSpec("permissions", "Permissions", hint="list"),
    ],
    primary="email",
)


def project_role(access: Record) -> str:
    """Return ``admin`` or ``viewer`` for an access entry."""
    role = access.get_str("role")
    if role:
        return role
    return "admin" if "admin" in access.get_list("permissions") else "viewer"


def display_name(user: Record) -> str:
    name = user.get_str("display_name")
    if name:
        return name
    return " ".join(p for p in (user.get_str("first_name"), user.get_str("last_name")) if p)


def fetch_users(
    fetcher: ResourceFetcher, user_ids: Iterable[str], refresh: bool = False
) -> Dict[str, Record]:
    """Look up users by ID in parallel, skipping any that no longer exist."""
    ids = sorted({user_id for user_id in user_ids if user_id})

    def lookup(user_id: str) -> Optional[Record]:
        try:
            return fetcher.fetch_one(f"/users/{quote(user_id, safe='')}", refresh=refresh)
        except NotFoundError:
            logger.debug("User not found: %s", user_id)
            return None

    if not ids:
        return {}
    with ThreadPoolExecutor(max_workers=min(MAX_LOOKUP_WORKERS, len(ids))) as pool:
        results = list(pool.map(lookup, ids))
    return {user_id: user for user_id, user in zip(ids, results) if user is not None}


def load_users(fetcher: ResourceFetcher, project: Record, refresh: bool = False) -> List[Record]:
    """Fetch a project's access list joined with user details."""
    url = project.link(
        "access", f"/projects/{quote(project.get_str('id'), safe='')}/user-access"
    )
    access = fetcher.fetch_collection(url, refresh=refresh)
    user_ids = [a.get_str("user_id") or a.get_str("id") for a in access]
    users = fetch_users(fetcher, user_ids, refresh=refresh)

    result = []
    for entry, user_id in zip(access, user_ids):
        user = users.get(user_id)
        result.append(
            Record(
                {
                    "id": user_id,
                    "email": user.get_str("email") if user else None,
                    "name": display_name(user) if user else None,
                    "role": project_role(entry),
                    "permissions": list(entry.get_list("permissions")),
                }
            )
        )
    return result


def register_user_commands(cli: click.Group) -> None:
    """Register CLI commands for users."""

    @cli.group()
    def user() -> None:
        """List project users."""
        pass

    @user.command(name="list")
    @list_options(USER_COLUMNS, default_sort="email")
    @project_option
    def list_users(project: Optional[str], list_opts: dict) -> None:
        """List the users with access to a project."""
        request = RenderRequest.from_options(list_opts, default_sort="email")
        refresh = list_opts["refresh"]

        def load() -> List[Record]:
            record = get_selector().select_project(project, refresh=refresh)
            return load_users(get_fetcher(), record, refresh=refresh)

        UniversalResponseHandler.handle_list(
            request, USER_COLUMNS, load, "users", config=get_config()
        )
