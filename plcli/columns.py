"""Column model for list commands.

Each list command declares a :class:`ColumnRegistry` once: the displayable
columns, how to extract each value from a record, and which columns are shown
by default. User input from ``--columns`` is parsed into a normalized list of
column names by :func:`parse_column_selection` and resolved against the registry.

Selection syntax::

    id,title          replace the default columns
    +owner            default columns, then "owner"
    id,+              "id", then the default columns
    created*          every column whose name starts with "created"
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .exceptions import ColumnError
from .records import Record, parse_datetime

DEFAULTS_PLACEHOLDER = "+"


def field(path: str) -> Callable[[Record], Any]:
    """Return an extractor reading a dot-separated path from a record."""

    def extract(record: Record) -> Any:
        return record.get_path(path)

    return extract


@dataclass(frozen=True)
class ColumnSpec:
    """One displayable field of a list command.

    Attributes:
        key: Machine name used in ``--columns`` and ``--sort``
        header: Display header
        default_visible: Shown when no columns are requested
        extract: Function returning the raw value for a record
        sortable: Whether the column may be used as a sort key
        hint: Formatting hint (``date``, ``percent``, ``bool``, ``list``)
        wrap: Whether table output may word-wrap this column
        sort_value: Optional function returning the value to sort by
    """

    key: str
    header: str
    default_visible: bool = False
    extract: Optional[Callable[[Record], Any]] = None
    sortable: bool = True
    hint: Optional[str] = None
    wrap: bool = True
    sort_value: Optional[Callable[[Record], Any]] = None

    def value(self, record: Record) -> Any:
        """Extract the raw value of this column from a record."""
        if self.extract is None:
            return record.get_path(self.key)
        return self.extract(record)

    def sort_key_value(self, record: Record) -> Any:
        if self.sort_value is not None:
            return self.sort_value(record)
        value = self.value(record)
        if self.hint == "date":
            return parse_datetime(value) or value
        return value


def _split(values: Iterable[str]) -> List[str]:
    result = []
    for value in values:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def parse_column_selection(selection: Optional[Sequence[str]]) -> List[str]:
    """Normalize ``--columns`` input into an ordered list of names.

    The ``+`` placeholder is kept as its own item wherever it appears; a ``+``
    attached to a name (``+a`` or ``a+``) is split from it.

    Args:
        selection: Raw option values (the option may be repeated)

    Returns:
        Lower-cased names and placeholders, in order
    """
    if not selection:
        return []
    values = list(selection)
    if len(values) == 1 and DEFAULTS_PLACEHOLDER in values[0]:
        first = re.sub(r"([\w%*])\+", r"\1,+", values[0])
        first = re.sub(r"\+([\w%*])", r"+,\1", first)
        values = [first]
    return [name.lower() for name in _split(values)]


def wildcard_pattern(name: str) -> "re.Pattern[str]":
    """Compile a column name with ``*``/``%`` wildcards into an anchored pattern."""
    parts = re.split(r"[*%]", name)
    return re.compile("^" + ".*".join(re.escape(p) for p in parts) + "$", re.IGNORECASE)


class ColumnRegistry:
    """The immutable set of columns available to one list command.

    Args:
        specs: Column specs in display order
        primary: Key of the column printed by pipe output
    """

    def __init__(self, specs: Sequence[ColumnSpec], primary: str) -> None:
        self.specs = tuple(specs)
        self._by_key = {spec.key: spec for spec in self.specs}
        if primary not in self._by_key:
            raise ValueError(f"Primary column {primary!r} is not defined")
        self.primary = self._by_key[primary]

    def __iter__(self):
        return iter(self.specs)

    def __contains__(self, key: str) -> bool:
        return self.lookup(key) is not None

    def keys(self) -> List[str]:
        return [spec.key for spec in self.specs]

    def defaults(self, extra_defaults: Iterable[str] = ()) -> List[ColumnSpec]:
        """Return the default-visible columns, plus any keys in ``extra_defaults``."""
        extra = set(extra_defaults)
        return [spec for spec in self.specs if spec.default_visible or spec.key in extra]

    def lookup(self, name: str) -> Optional[ColumnSpec]:
        """Find a column by key or (case-insensitive) header."""
        lowered = name.lower()
        for spec in self.specs:
            if spec.key.lower() == lowered or spec.header.lower() == lowered:
                return spec
        return None

    def match(self, name: str) -> List[ColumnSpec]:
        """Return the columns matching a name that may contain wildcards."""
        if "*" not in name and "%" not in name:
            spec = self.lookup(name)
            return [spec] if spec else []
        pattern = wildcard_pattern(name)
        return [
            spec
            for spec in self.specs
            if pattern.match(spec.key) or pattern.match(spec.header.lower())
        ]

    def resolve(
        self,
        selection: Optional[Sequence[str]] = None,
        extra_defaults: Iterable[str] = (),
    ) -> List[ColumnSpec]:
        """Resolve user input into an ordered, de-duplicated list of columns.

        Args:
            selection: Raw ``--columns`` values; empty means the defaults
            extra_defaults: Keys that are default-visible for this invocation

        Raises:
            ColumnError: If a requested name matches no column
        """
        defaults = self.defaults(extra_defaults)
        names = parse_column_selection(selection)
        if not names:
            return defaults

        resolved: List[ColumnSpec] = []
        for name in names:
            if name == DEFAULTS_PLACEHOLDER:
                matched = defaults
            else:
                matched = self.match(name)
            if not matched:
                raise ColumnError(name, self.keys())
            for spec in matched:
                if spec not in resolved:
                    resolved.append(spec)
        return resolved

    def available_help(self) -> str:
        """Describe the available columns, marking defaults with ``*``."""
        names = [spec.key + ("*" if spec.default_visible else "") for spec in self.specs]
        return (
            "Columns to display. Available columns: "
            + ", ".join(names)
            + " (* = default columns, use + to add to the defaults, % or * as wildcards)"
        )
