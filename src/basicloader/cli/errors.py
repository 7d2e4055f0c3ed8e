"""
Unified CLI Error Handling
==========================

Provides consistent error messages and exit codes for the command-line tool.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for the CLI."""
    SUCCESS = 0
    CONVERSION_ERROR = 1  # Bad input, conflicting addresses, oversized program
    INVALID_ARGS = 2      # Invalid arguments or option combinations
    INTERNAL_ERROR = 3    # Violated internal invariant


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None
) -> NoReturn:
    """
    Report an error on stderr and exit.

    User errors get a one-line "Error:" message. Internal errors are
    reported as such, with a traceback when ``verbose`` is set.

    Args:
        error: The exception caught by the command
        verbose: Print the traceback of internal errors
        error_type: Word used in place of "Error" (e.g., "Output")

    Raises:
        SystemExit: Always, with the ExitCode for the error
    """
    from basicloader.errors import ConfigurationError, InternalError, LoaderError

    if isinstance(error, InternalError):
        # A bug rather than bad input: framed differently
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)

    elif isinstance(error, (ConfigurationError, click.BadParameter)):
        # Invalid command-line arguments or combinations
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, LoaderError):
        # Input, address and program size errors
        prefix = f"{error_type} error: " if error_type else "Error: "
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.CONVERSION_ERROR)

    elif isinstance(error, OSError):
        # Missing files, permission denied, failed writes
        prefix = f"{error_type} error: " if error_type else "Error: "
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.CONVERSION_ERROR)

    else:
        # Unexpected internal error
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
