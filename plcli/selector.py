"""Resolution of the project and environment a command operates on."""

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional
from urllib.parse import quote

from .config import Config
from .exceptions import NotFoundError, ValidationError
from .fetcher import ResourceFetcher
from .records import Record

logger = logging.getLogger(__name__)

CURRENT_ENVIRONMENT = "."


@dataclass(frozen=True)
class Selection:
    """A resolved project and, optionally, one of its environments."""

    project: Record
    environment: Optional[Record] = None

    @property
    def project_id(self) -> str:
        return self.project.get_str("id")

    @property
    def environment_id(self) -> str:
        return self.environment.get_str("id") if self.environment is not None else ""

    def require_environment(self) -> Record:
        """Return the environment, failing if none was selected."""
        if self.environment is None:
            raise ValidationError("No environment specified")
        return self.environment


class Selector:
    """Resolve ``--project`` and ``--environment`` options into records.

    Args:
        fetcher: Resource fetcher of the current invocation
        config: Configuration (default project, environment variable prefix)
        environ: Environment variables, for the app-container fallbacks
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: Config,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config
        self.environ = os.environ if environ is None else environ

    def _env(self, name: str) -> Optional[str]:
        return self.environ.get(self.config.env_prefix + name) or None

    def project_id(self, project: Optional[str]) -> str:
        """Return the project ID to use.

        Raises:
            ValidationError: If no project was given or can be inferred
        """
        project_id = project or self.config.default_project or self._env("PROJECT")
        if not project_id:
            raise ValidationError("No project specified. Use the --project (-p) option.")
        return project_id

    def select_project(self, project: Optional[str], refresh: bool = False) -> Record:
        """Fetch the selected project.

        Raises:
            NotFoundError: If the project does not exist
        """
        project_id = self.project_id(project)
        try:
            return self.fetcher.fetch_one(f"/projects/{quote(project_id, safe='')}", refresh=refresh)
        except NotFoundError:
            raise NotFoundError(f"Project not found: {project_id}") from None

    def list_environments(self, project: Record, refresh: bool = False) -> List[Record]:
        """Fetch the environments of a project via its ``environments`` link."""
        if project.has_link("environments"):
            url = project.link("environments")
        else:
            url = f"/projects/{quote(project.get_str('id'), safe='')}/environments"
        return self.fetcher.fetch_collection(url, refresh=refresh)

    def select_environment(
        self, project: Record, environment: Optional[str], refresh: bool = False
    ) -> Record:
        """Find an environment by ID, then by machine name.

        ``.`` or no value selects ``$PLATFORM_BRANCH`` inside an app container,
        otherwise the project's default branch.

        Raises:
            NotFoundError: If no environment matches
        """
        if not environment or environment == CURRENT_ENVIRONMENT:
            environment = self._env("BRANCH") or project.get_str("default_branch")
            if not environment:
                raise ValidationError(
                    "No environment specified. Use the --environment (-e) option."
                )
            logger.debug("Using environment %s", environment)

        environments = self.list_environments(project, refresh=refresh)
        for candidate in environments:
            if candidate.get_str("id") == environment:
                return candidate
        for candidate in environments:
            if candidate.get_str("machine_name") == environment:
                return candidate
        raise NotFoundError(f"Environment not found: {environment}")

    def select(
        self,
        project: Optional[str],
        environment: Optional[str] = None,
        env_required: bool = True,
        refresh: bool = False,
    ) -> Selection:
        """Resolve a project and, if required or given, an environment."""
        project_record = self.select_project(project, refresh=refresh)
        if not env_required and environment is None:
            return Selection(project_record)
        return Selection(
            project_record, self.select_environment(project_record, environment, refresh=refresh)
        )
