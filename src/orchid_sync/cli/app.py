"""Main CLI application for Orchid GitHub Sync."""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from orchid_sync import __version__
from orchid_sync.cli import sync as sync_cmd
from orchid_sync.config import get_settings
from orchid_sync.db import create_tables, dispose_engine, get_session_factory
from orchid_sync.documents import SqlDocumentStore
from orchid_sync.logging import setup_logging

from .common import run_async_command

app = typer.Typer(
    name="orchid-sync",
    help="Reconcile local Orchid issues and replies with GitHub.",
    add_completion=False,
)
console = Console()


class Collection(str, Enum):
    """Document collections that can be shown."""

    ISSUES = "issues"
    REPLIES = "issueMessages"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"orchid-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Orchid GitHub Sync - push local issues and replies to GitHub."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        environment=settings.environment,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


@app.command("init-db")
def init_db() -> None:
    """Create the document store tables."""

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Database setup failed")
    console.print(f"[green]Initialized[/green] {get_settings().database_url}")


@app.command("show")
def show(
    collection: Annotated[Collection, typer.Argument(help="Document collection")],
    document_id: Annotated[str, typer.Argument(help="Document id")],
) -> None:
    """Print the materialized fields of a stored document."""

    async def _show() -> dict[str, object] | None:
        try:
            return await SqlDocumentStore(get_session_factory()).get(
                collection.value, document_id
            )
        finally:
            await dispose_engine()

    material = run_async_command(_show(), error_prefix="Read failed")
    if material is None:
        console.print(f"[red]Error:[/red] {collection.value}/{document_id} not found")
        raise typer.Exit(1)
    console.print_json(json.dumps(material))


# Register sync commands at the top level
app.command("issue")(sync_cmd.sync_issue)
app.command("reply")(sync_cmd.sync_reply)
app.command("labels")(sync_cmd.sync_labels)


if __name__ == "__main__":
    app()
