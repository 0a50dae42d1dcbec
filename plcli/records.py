"""Immutable API resource records.

A :class:`Record` wraps one decoded JSON object returned by the API. Records are
created once at the fetch boundary and never mutated; everything downstream
reads them through the typed accessors below.
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) or epoch seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Convert a frozen record value back into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


class Record(Mapping):
    """A read-only key/value view of one API resource."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = _freeze(dict(data))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Record({dict(self._data)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record):
            return thaw(self._data) == thaw(other._data)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def get_path(self, path: str, default: Any = None) -> Any:
        """Return a nested value addressed by a dot-separated path."""
        value: Any = self._data
        for part in path.split("."):
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            elif isinstance(value, tuple) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                return default
        return value

    def has_path(self, path: str) -> bool:
        """Return whether a dot-separated path exists in the record."""
        sentinel = object()
        return self.get_path(path, sentinel) is not sentinel

    def get_str(self, path: str, default: str = "") -> str:
        value = self.get_path(path)
        if value is None:
            return default
        return str(value)

    def get_int(self, path: str, default: Optional[int] = None) -> Optional[int]:
        value = self.get_path(path)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                return default
        return default

    def get_bool(self, path: str, default: bool = False) -> bool:
        value = self.get_path(path)
        if value is None:
            return default
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def get_datetime(self, path: str) -> Optional[datetime]:
        return parse_datetime(self.get_path(path))

    def get_list(self, path: str) -> List[Any]:
        value = self.get_path(path)
        if isinstance(value, tuple):
            return list(value)
        if value is None:
            return []
        return [value]

    @property
    def links(self) -> Dict[str, str]:
        """Map of link relation to href (HAL ``_links``)."""
        links = self._data.get("_links") or {}
        result = {}
        for rel, link in links.items():
            if isinstance(link, Mapping) and link.get("href"):
                result[rel] = str(link["href"])
        return result

    def has_link(self, rel: str) -> bool:
        return rel in self.links

    def link(self, rel: str, default: Optional[str] = None) -> str:
        """Return the href for a link relation.

        Raises:
            KeyError: If the record has no such link and no default is given
        """
        links = self.links
        if rel not in links:
            if default is not None:
                return default
            raise KeyError(f"Link not found: {rel}")
        return links[rel]

    def to_dict(self) -> Dict[str, Any]:
        """Return a mutable deep copy of the record's data."""
        return thaw(self._data)
