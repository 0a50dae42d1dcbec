"""Common option decorators for all CLI commands."""

import functools
from typing import Any, Callable, Optional, Tuple

import click

from .columns import ColumnRegistry
from .table_utils import FORMATS

LIST_OPTION_NAMES = (
    "format",
    "columns",
    "no_header",
    "sort",
    "reverse",
    "limit",
    "refresh",
    "pipe",
)


def list_options(
    registry: ColumnRegistry,
    default_sort: Optional[str] = None,
    default_limit: Optional[int] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Attach the shared list options to a command.

    The option values are collected into a single ``list_opts`` dictionary
    argument, ready for :meth:`RenderRequest.from_options`.

    Args:
        registry: Columns of the command, listed in ``--columns`` help
        default_sort: Sort key shown in ``--sort`` help
        default_limit: Default for ``--limit``
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            kwargs["list_opts"] = {name: kwargs.pop(name) for name in LIST_OPTION_NAMES}
            return func(*args, **kwargs)

        options = [
            click.option(
                "--format",
                "-f",
                type=click.Choice(FORMATS),
                default="table",
                show_default=True,
                help="Output format",
            ),
            click.option(
                "--columns",
                "-c",
                multiple=True,
                help=registry.available_help(),
            ),
            click.option("--no-header", is_flag=True, help="Do not output the table header"),
            click.option(
                "--sort",
                help="A property to sort by"
                + (f" (default: {default_sort})" if default_sort else ""),
            ),
            click.option("--reverse", is_flag=True, help="Reverse the sort order"),
            click.option(
                "--limit",
                "--count",
                "limit",
                type=click.IntRange(min=0),
                default=default_limit,
                show_default=default_limit is not None,
                help="The maximum number of items to display",
            ),
            click.option("--refresh", is_flag=True, help="Bypass the cache of fetched resources"),
            click.option(
                "--pipe",
                is_flag=True,
                help=f"Output a list of {registry.primary.key} values only",
            ),
        ]
        for option in reversed(options):
            wrapper = option(wrapper)
        return wrapper

    return decorator


def split_values(values: Tuple[str, ...]) -> Tuple[str, ...]:
    """Flatten repeated, comma-separated option values."""
    return tuple(v.strip() for value in values for v in value.split(",") if v.strip())


def project_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``-p/--project``."""
    return click.option("--project", "-p", help="The project ID")(func)


def environment_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``-e/--environment``."""
    return click.option(
        "--environment",
        "-e",
        help="The environment ID or machine name ('.' for the default branch)",
    )(func)


def property_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``-P/--property`` for printing a single property."""
    return click.option(
        "--property", "-P", "prop", help="The name of a property to view"
    )(func)


def get_format_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``--format`` for single-resource output."""
    return click.option(
        "--format",
        "-f",
        "output_format",
        type=click.Choice(["table", "plain", "csv", "json"]),
        default="table",
        show_default=True,
        help="Output format",
    )(func)

