"""Entry point for the platform CLI application.

Performs system trust store injection (via truststore) before loading the main CLI.
Set PLCLI_DISABLE_OS_TRUST=1 to skip it.
"""

from __future__ import annotations

from plcli.ssl_trust import inject_os_trust  # noqa: E402,I100,I202

# Inject before importing the CLI so requests-based modules see the patched SSL configuration.
inject_os_trust()

from plcli.main import cli  # noqa: E402,I100,I202


def main() -> None:
    """Run the CLI."""
    cli()


if __name__ == "__main__":
    main()
