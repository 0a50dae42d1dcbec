"""Access to the application container's environment variables.

Inside a provisioned application container the platform describes the app
and its routes in base64-encoded JSON variables (``PLATFORM_APPLICATION`` and
``PLATFORM_ROUTES``).
Commands that can work from these values make no API calls.
"""

import os
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import ValidationError
from .records import Record
from .utils import decode_env_json


class LocalEnvironment:
    """Read the platform variables of the current process.

    Args:
        prefix: Variable name prefix, ``PLATFORM_`` by default
        environ: Environment mapping, ``os.environ`` by default
    """

    def __init__(self, prefix: str = "PLATFORM_", environ: Optional[Mapping[str, str]] = None) -> None:
        self.prefix = prefix
        self.environ = os.environ if environ is None else environ

    def get(self, name: str) -> Optional[str]:
        return self.environ.get(self.prefix + name) or None

    def decoded(self, name: str) -> Optional[Any]:
        """Decode a base64 JSON variable, or return None if it is unset.

        Raises:
            ValidationError: If the value cannot be decoded
        """
        value = self.get(name)
        if value is None:
            return None
        return decode_env_json(self.prefix + name, value)

    @property
    def has_routes(self) -> bool:
        return self.get("ROUTES") is not None

    def routes(self) -> List[Record]:
        """Return the routes as records, each with its resolved ``url``."""
        data = self.decoded("ROUTES")
        if data is None:
            return []
        if not isinstance(data, dict):
            raise ValidationError(f"The {self.prefix}ROUTES variable does not contain a routes object")
        return routes_to_records(data)

    def application(self) -> Optional[Dict[str, Any]]:
        return self.decoded("APPLICATION")


def routes_to_records(routes: Mapping[str, Any]) -> List[Record]:
    """Convert a URL-keyed routes mapping into records with a ``url`` field."""
    records = []
    for url, route in routes.items():
        if isinstance(route, Mapping):
            records.append(Record({**dict(route), "url": url}))
    return records
