"""Shared handlers that turn fetched records into command output."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import click

from .columns import ColumnRegistry, ColumnSpec
from .config import Config
from .exceptions import ValidationError
from .formatters import PropertyFormatter
from .records import Record
from .sorting import Filter, SortFilterEngine
from .table_utils import FORMATS, render_pipe, render_rows


@dataclass(frozen=True)
class RenderRequest:
    """How one list command should render its rows, built from CLI options."""

    format: str = "table"
    columns: Sequence[str] = ()
    sort_key: Optional[str] = None
    sort_descending: bool = False
    limit: Optional[int] = None
    no_header: bool = False
    filters: Sequence[Filter] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.format not in FORMATS:
            raise ValidationError(
                f"Invalid format: {self.format}. Supported formats: {', '.join(FORMATS)}"
            )
        if self.limit is not None and self.limit < 0:
            raise ValidationError("The limit must be zero or greater")

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any],
        default_sort: Optional[str] = None,
        default_descending: bool = False,
        filters: Iterable[Filter] = (),
    ) -> "RenderRequest":
        """Build a request from the values of the shared list options.

        ``--reverse`` flips the command's default direction; ``--pipe`` is a
        shortcut for ``--format pipe``.
        """
        output_format = "pipe" if options.get("pipe") else (options.get("format") or "table")
        sort_key = options.get("sort") or default_sort
        descending = default_descending if not options.get("sort") else False
        if options.get("reverse"):
            descending = not descending
        return cls(
            format=output_format,
            columns=tuple(options.get("columns") or ()),
            sort_key=sort_key,
            sort_descending=descending,
            limit=options.get("limit"),
            no_header=bool(options.get("no_header")),
            filters=tuple(filters),
        )


def _cells(record: Record, columns: Sequence[ColumnSpec], formatter: PropertyFormatter) -> List[str]:
    return [formatter.format(spec.value(record), spec.key, spec.hint) for spec in columns]


class UniversalResponseHandler:
    """Render list and detail output for all commands."""

    @staticmethod
    def handle_list(
        request: RenderRequest,
        registry: ColumnRegistry,
        load_records: Callable[[], Iterable[Record]],
        item_name: str,
        config: Optional[Config] = None,
        extra_defaults: Iterable[str] = (),
    ) -> None:
        """Run the list pipeline and print the result.

        Columns and the sort key are validated before ``load_records`` is
        called, so bad input fails without any network traffic. The pipe
        format prints the primary column only and ignores ``--columns``.

        Args:
            request: Rendering options
            registry: The command's columns
            load_records: Callable fetching the records
            item_name: Plural item name for the empty-result message
            config: Configuration for value formatting and table width
            extra_defaults: Column keys shown by default for this invocation
        """
        config = config or Config()
        columns: List[ColumnSpec] = []
        if request.format != "pipe":
            columns = registry.resolve(request.columns, extra_defaults)
        engine = SortFilterEngine(registry)
        if request.sort_key:
            engine.sort_key(request.sort_key)

        records = list(load_records())
        records = engine.apply(
            records,
            sort_key=request.sort_key,
            descending=request.sort_descending,
            filters=request.filters,
            limit=request.limit,
        )
        formatter = PropertyFormatter(config)

        if request.format == "pipe":
            primary = registry.primary
            values = [formatter.format(primary.value(r), primary.key, primary.hint) for r in records]
            if values:
                click.echo(render_pipe(values))
            return

        if not records and request.format == "table":
            click.echo(f"No {item_name} found.", err=True)
            return

        headers = [spec.header for spec in columns]
        rows = [_cells(record, columns, formatter) for record in records]
        output = render_rows(
            request.format,
            headers,
            rows,
            no_header=request.no_header,
            wrap=[spec.wrap for spec in columns],
            max_width=config.table_width,
        )
        if output:
            click.echo(output)

    @staticmethod
    def handle_get(
        record: Record,
        config: Optional[Config] = None,
        prop: Optional[str] = None,
        output_format: str = "table",
        properties: Optional[Sequence[str]] = None,
        hidden: Sequence[str] = (),
    ) -> None:
        """Print a single record as a Property/Value listing, or one property.

        Args:
            record: The resource
            config: Configuration for value formatting
            prop: Print only this property (dot path)
            output_format: Output format for the full listing
            properties: Properties to list; defaults to every top-level key
                except links and embedded resources
            hidden: Properties never listed
        """
        config = config or Config()
        formatter = PropertyFormatter(config)
        if prop:
            click.echo(formatter.display_property(record, prop))
            return

        if output_format == "json":
            data = {k: v for k, v in record.to_dict().items() if k not in hidden}
            click.echo(json.dumps(data, indent=2, default=str))
            return

        keys = list(properties) if properties else [
            k for k in record if not k.startswith("_") and k not in hidden
        ]
        rows = [[key, formatter.format(record.get_path(key), key)] for key in keys]
        click.echo(
            render_rows(
                "table" if output_format == "pipe" else output_format,
                ["Property", "Value"],
                rows,
                wrap=[False, True],
                max_width=config.table_width,
            )
        )


def format_success(message: str, data: Optional[Dict[str, Any]] = None) -> None:
    """Print a confirmation on stderr, keeping stdout machine readable.

    Args:
        message: Success message to display
        data: Optional key/value details to display with the message
    """
    click.echo(f"✓ {message}", err=True)
    for key, value in (data or {}).items():
        click.echo(f"  {key}: {value}", err=True)
