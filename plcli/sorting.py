"""Sorting, filtering and limiting of fetched records."""

import functools
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .columns import ColumnRegistry, wildcard_pattern
from .exceptions import ColumnError, ValidationError
from .records import Record

_NUMERIC = re.compile(r"^\s*-?\d+(\.\d+)?\s*$")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMERIC.match(value):
        return float(value)
    return None


def _rank(value: Any) -> Tuple[int, Any]:
    """Map a value onto a (type rank, comparable) pair."""
    if value is None or value == "":
        return (0, 0)
    number = _as_number(value)
    if number is not None:
        return (1, number)
    if isinstance(value, datetime):
        # Naive and aware datetimes cannot be compared directly; naive ones are local time.
        return (2, value.timestamp())
    if isinstance(value, bool):
        return (3, int(value))
    return (4, str(value).casefold())


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison used by :func:`sort_records`.

    Missing values come first, then numbers (including numeric strings), dates,
    booleans, and finally case-insensitive text.
    """
    ra, rb = _rank(a), _rank(b)
    if ra < rb:
        return -1
    if ra > rb:
        return 1
    return 0


def sort_records(
    records: Sequence[Record],
    key_func,
    descending: bool = False,
) -> List[Record]:
    """Sort records stably by ``key_func``.

    Ties keep their original order in both directions, so sorting is total
    and repeatable.
    """
    indexed = list(enumerate(records))

    def compare(x: Tuple[int, Record], y: Tuple[int, Record]) -> int:
        result = compare_values(key_func(x[1]), key_func(y[1]))
        if descending:
            result = -result
        if result == 0:
            result = (x[0] > y[0]) - (x[0] < y[0])
        return result

    return [record for _, record in sorted(indexed, key=functools.cmp_to_key(compare))]


@dataclass(frozen=True)
class Filter:
    """A predicate on one record field: ``field=a,b`` or ``field!=a``."""

    field: str
    values: Tuple[str, ...]
    negate: bool = False

    @classmethod
    def parse(cls, expression: str) -> "Filter":
        """Parse ``field=v1,v2`` or ``field!=v1``.

        Raises:
            ValidationError: If the expression has no ``=``
        """
        match = re.match(r"^\s*([\w.-]+)\s*(!?=)(.*)$", expression)
        if not match:
            raise ValidationError(f"Invalid filter: {expression} (expected field=value)")
        name, operator, raw = match.groups()
        values = tuple(v.strip() for v in raw.split(",") if v.strip())
        return cls(name, values, negate=operator == "!=")

    def matches(self, record: Record, value: Any = None, present: Optional[bool] = None) -> bool:
        """Evaluate the filter against a record.

        A record lacking the field never matches, negated or not.
        """
        if present is None:
            present = record.has_path(self.field)
            value = record.get_path(self.field)
        if not present or value is None:
            return False
        text = _filter_text(value)
        hit = any(wildcard_pattern(v).match(text) for v in self.values)
        return not hit if self.negate else hit


def _filter_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SortFilterEngine:
    """Apply sort, filters and limit for one list command.

    Args:
        registry: Columns of the command; sort keys and filter fields naming a
            column use its extractor
    """

    def __init__(self, registry: Optional[ColumnRegistry] = None) -> None:
        self.registry = registry

    def sort_key(self, name: str):
        """Return the value function for a sort key.

        Raises:
            ColumnError: If the key names a column that cannot be sorted
        """
        if self.registry is not None:
            spec = self.registry.lookup(name)
            if spec is not None:
                if not spec.sortable:
                    raise ColumnError(name, message=f"Column cannot be used for sorting: {name}")
                return spec.sort_key_value
        return lambda record: record.get_path(name)

    def _filter_matches(self, flt: Filter, record: Record) -> bool:
        if not record.has_path(flt.field) and self.registry is not None:
            spec = self.registry.lookup(flt.field)
            if spec is not None:
                value = spec.value(record)
                return flt.matches(record, value, present=value is not None)
        return flt.matches(record)

    def apply(
        self,
        records: Iterable[Record],
        sort_key: Optional[str] = None,
        descending: bool = False,
        filters: Sequence[Filter] = (),
        limit: Optional[int] = None,
    ) -> List[Record]:
        """Filter, then sort, then truncate to ``limit`` rows."""
        result = [r for r in records if all(self._filter_matches(f, r) for f in filters)]
        if sort_key:
            result = sort_records(result, self.sort_key(sort_key), descending)
        elif descending:
            result = list(reversed(result))
        if limit is not None and limit >= 0:
            result = result[:limit]
        return result
