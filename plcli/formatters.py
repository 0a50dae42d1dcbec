"""Value formatting for display.

Formatting hints declared on columns (``date``, ``percent``, ``bool``, ``list``,
``duration``) are applied here, before any renderer sees the values. Renderers
only ever receive strings.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .config import Config
from .exceptions import ValidationError
from .records import Record, parse_datetime, thaw

logger = logging.getLogger(__name__)

# Properties holding timestamps, formatted as dates wherever they appear.
DATE_PROPERTIES = {
    "created_at",
    "updated_at",
    "expires_at",
    "started_at",
    "completed_at",
    "granted_at",
    "author.date",
    "committer.date",
    "ssl.expires_on",
}

HIDDEN_VALUE = "******"


def _format_duration(duration: Any) -> str:
    """Format a duration in seconds for display."""
    if duration is None or duration == "":
        return ""
    if isinstance(duration, str):
        return duration
    try:
        duration = float(duration)
    except (TypeError, ValueError):
        return str(duration)
    if duration < 60:
        return f"{duration:.0f}s" if duration == int(duration) else f"{duration:.1f}s"
    if duration < 3600:
        return f"{duration // 60:.0f}m {duration % 60:.0f}s"
    hours = duration // 3600
    minutes = (duration % 3600) // 60
    return f"{hours:.0f}h {minutes:.0f}m"


def _format_percent(value: Any) -> str:
    if value is None or value == "":
        return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number == int(number):
        return f"{int(number)}%"
    return f"{number:.1f}%"


def dump_yaml(value: Any) -> str:
    """Dump a nested structure as block-style YAML without a trailing newline."""
    return yaml.safe_dump(
        thaw(value), default_flow_style=False, sort_keys=False, allow_unicode=True
    ).rstrip()


class PropertyFormatter:
    """Turn record values into display strings.

    Args:
        config: Supplies the display time zone and date format
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self._tz = self._load_timezone(self.config.timezone)

    @staticmethod
    def _load_timezone(name: Optional[str]):
        if not name:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone %r, using the local time zone", name)
            return None

    def format_date(self, value: Any) -> str:
        """Format a timestamp in the configured time zone and date format."""
        dt = parse_datetime(value)
        if dt is None:
            return "" if value is None else str(value)
        dt = dt.astimezone(self._tz) if self._tz is not None else dt.astimezone()
        if self.config.date_format:
            return dt.strftime(self.config.date_format)
        return dt.isoformat()

    def format(self, value: Any, prop: Optional[str] = None, hint: Optional[str] = None) -> str:
        """Format a value for display.

        Args:
            value: Raw value from a record
            prop: Property name (dot path), used to recognize dates and secrets
            hint: Formatting hint from a column

        Returns:
            The display string; ``None`` becomes an empty string
        """
        if prop == "token":
            return HIDDEN_VALUE
        if value is None:
            return ""
        if hint == "date" or (hint is None and prop in DATE_PROPERTIES):
            return self.format_date(value)
        if hint == "percent":
            return _format_percent(value)
        if hint == "duration":
            return _format_duration(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        if hint == "bool":
            if isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            return "true" if value else "false"
        if isinstance(value, (list, tuple)) and (
            hint == "list" or all(not isinstance(v, (Mapping, list, tuple)) for v in value)
        ):
            return ", ".join(self.format(v) for v in value)
        if isinstance(value, Mapping) or isinstance(value, (list, tuple)):
            return dump_yaml(value)
        if isinstance(value, datetime):
            return self.format_date(value)
        return str(value)

    def display_property(self, record: Record, prop: str) -> str:
        """Return one property of a record formatted for ``--property`` output.

        Scalars are formatted as in tables; nested values are dumped as YAML.

        Raises:
            ValidationError: If the property does not exist
        """
        if not record.has_path(prop):
            raise ValidationError(f"Property not found: {prop}")
        value = record.get_path(prop)
        key = prop.rsplit(".", 1)[-1]
        if isinstance(value, Mapping) or (
            isinstance(value, (list, tuple)) and any(isinstance(v, Mapping) for v in value)
        ):
            return dump_yaml(value)
        return self.format(value, prop if prop in DATE_PROPERTIES else key)
