"""Exception hierarchy and exit codes for plcli.

Every error that should reach the user derives from :class:`PlatformCliError`.
Because it is a :class:`click.ClickException`, click's own error boundary prints
it as a single line on stderr and exits with the class's exit code.

Hierarchy
---------
PlatformCliError
├── AuthenticationError   token fetch/refresh failed, or two consecutive 401s
├── FetchError            network or decode failure while retrieving resources
├── ColumnError           unknown or unusable column requested
├── ValidationError       invalid user input
│   └── SensitiveValueError
└── NotFoundError         resource or instance does not exist
"""

from typing import IO, Any, Optional

import click


class ExitCodes:
    """Standard exit codes for CLI operations."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_INPUT = 2
    NOT_FOUND = 3
    PERMISSION_DENIED = 4
    NETWORK_ERROR = 5
    # Matches curl's exit status for "HTTP page not retrieved" with --fail.
    REQUEST_FAILED = 22


class PlatformCliError(click.ClickException):
    """Base class for all user-facing errors."""

    exit_code = ExitCodes.GENERAL_ERROR

    def show(self, file: Optional[IO[Any]] = None) -> None:
        """Print the error as a single line on stderr."""
        click.echo(f"✗ {self.format_message()}", err=True, file=file)


class AuthenticationError(PlatformCliError):
    """Raised when a token cannot be obtained or is rejected twice."""

    exit_code = ExitCodes.PERMISSION_DENIED


class FetchError(PlatformCliError):
    """Raised when resources cannot be retrieved or decoded."""

    exit_code = ExitCodes.NETWORK_ERROR


class ColumnError(PlatformCliError):
    """Raised when a requested column does not exist."""

    exit_code = ExitCodes.INVALID_INPUT

    def __init__(
        self, column: str, available: Optional[list] = None, message: Optional[str] = None
    ) -> None:
        message = message or f"Column not found: {column}"
        if available:
            message += f" (available columns: {', '.join(available)})"
        super().__init__(message)
        self.column = column


class ValidationError(PlatformCliError):
    """Raised for invalid input values."""

    exit_code = ExitCodes.INVALID_INPUT


class SensitiveValueError(ValidationError):
    """Raised when a sensitive value is requested for display."""


class NotFoundError(PlatformCliError):
    """Raised when a resource does not exist."""

    exit_code = ExitCodes.NOT_FOUND
