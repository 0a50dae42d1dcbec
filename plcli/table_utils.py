"""Rendering of rows into the supported output formats.

All renderers take already-formatted string cells and return the complete
document as a string, so nothing is printed until all data has been fetched.
"""

import csv
import io
import json
import shutil
from typing import List, Optional, Sequence

import tabulate

FORMATS = ["table", "plain", "tsv", "csv", "json", "pipe"]

MIN_COLUMN_WIDTH = 10
DEFAULT_TERMINAL_WIDTH = 80


def get_table_width(configured: Optional[int] = None) -> int:
    """Return the maximum table width: the configured value or the terminal width."""
    if configured:
        return configured
    return shutil.get_terminal_size((DEFAULT_TERMINAL_WIDTH, 24)).columns


def _cell_width(cell: str) -> int:
    return max((len(line) for line in cell.split("\n")), default=0)


def compute_column_widths(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    max_width: int,
    wrap: Optional[Sequence[bool]] = None,
    min_width: int = MIN_COLUMN_WIDTH,
) -> List[Optional[int]]:
    """Work out the maximum content width of each column for a table.

    Columns keep their natural width when the table fits. Otherwise the
    available width is shared out in proportion to each column's natural
    width, narrowest column first, without shrinking a column below its
    minimum. A column's minimum is ``min_width``, or its natural width when
    that is smaller, when it must not wrap, or for the header row.

    Returns:
        Per-column widths for wrapping, ``None`` where no wrapping is needed
    """
    count = len(headers) if headers else max((len(r) for r in rows), default=0)
    if count == 0:
        return []
    wrap = list(wrap) if wrap is not None else [True] * count

    natural = [0] * count
    minimum = [0] * count
    for row_index, row in enumerate(list(rows) + [list(headers)]):
        is_header = row_index == len(rows)
        for col, cell in enumerate(row[:count]):
            width = _cell_width(cell)
            natural[col] = max(natural[col], width)
            if width < min_width or not wrap[col] or is_header:
                min_cell = width
            else:
                min_cell = min_width
            minimum[col] = max(minimum[col], min_cell)

    # "| " and " |" decoration: one border per column plus one, one space each side.
    max_content = max_width - (count + 1) - count * 2
    total = sum(natural)
    if total <= max_content or total == 0:
        return [None] * count

    widths: List[Optional[int]] = [None] * count
    remaining_content = max_content
    for col in sorted(range(count), key=lambda c: natural[c]):
        share = round(remaining_content / total * natural[col]) if total else natural[col]
        share = max(share, minimum[col])
        widths[col] = share if share < natural[col] and wrap[col] else None
        total -= natural[col]
        remaining_content -= share
    return widths


def render_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    no_header: bool = False,
    wrap: Optional[Sequence[bool]] = None,
    max_width: Optional[int] = None,
) -> str:
    """Render a bordered grid, word-wrapping long cells to fit ``max_width``."""
    width = get_table_width(max_width)
    widths = compute_column_widths(headers, rows, width, wrap)
    kwargs = {}
    if rows and any(w is not None for w in widths):
        kwargs["maxcolwidths"] = widths
    # Cells are shown exactly as in the other formats, surrounding spaces included.
    preserve = tabulate.PRESERVE_WHITESPACE
    tabulate.PRESERVE_WHITESPACE = True
    try:
        return tabulate.tabulate(
            [list(r) for r in rows],
            headers=[] if no_header else list(headers),
            tablefmt="pretty",
            stralign="left",
            disable_numparse=True,
            **kwargs,
        )
    finally:
        tabulate.PRESERVE_WHITESPACE = preserve


def render_plain(headers: Sequence[str], rows: Sequence[Sequence[str]], no_header: bool = False) -> str:
    """Render tab-separated lines without any escaping."""
    lines = []
    if not no_header:
        lines.append("\t".join(headers))
    lines.extend("\t".join(row) for row in rows)
    return "\n".join(lines)


def render_csv(headers: Sequence[str], rows: Sequence[Sequence[str]], no_header: bool = False) -> str:
    """Render RFC 4180 style CSV."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    if not no_header:
        writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def render_json(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render an array of objects keyed by column header."""
    return json.dumps([dict(zip(headers, row)) for row in rows], indent=2)


def render_pipe(values: Sequence[str]) -> str:
    """Render one value per line."""
    return "\n".join(values)


def render_rows(
    output_format: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    no_header: bool = False,
    wrap: Optional[Sequence[bool]] = None,
    max_width: Optional[int] = None,
) -> str:
    """Render rows in any format except ``pipe``.

    Raises:
        ValueError: For an unknown format
    """
    if output_format == "table":
        return render_table(headers, rows, no_header, wrap, max_width)
    if output_format in ("plain", "tsv"):
        return render_plain(headers, rows, no_header)
    if output_format == "csv":
        return render_csv(headers, rows, no_header)
    if output_format == "json":
        return render_json(headers, rows)
    raise ValueError(f"Unsupported format: {output_format}")
