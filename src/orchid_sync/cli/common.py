"""Common CLI option types and helpers.

This module provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- Option/argument type aliases shared by the sync commands
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from orchid_sync.github.sync.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

IssueIdArgument = Annotated[
    str,
    typer.Argument(help="Local issue id"),
]

ReplyIdArgument = Annotated[
    str,
    typer.Argument(help="Local reply id"),
]
