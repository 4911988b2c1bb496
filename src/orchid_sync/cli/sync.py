"""Sync commands: enqueue a sync, wait for it, report the outcome."""

from __future__ import annotations

import json
from typing import Any

import typer

from orchid_sync.db import dispose_engine, get_session_factory
from orchid_sync.documents import ISSUES, REPLIES, SqlDocumentStore
from orchid_sync.github import EntityKind, GitHubClient, SyncEngine
from orchid_sync.github.sync.enums import EnqueueStatus, OutputFormat

from .common import (
    IssueIdArgument,
    OutputFormatOption,
    ReplyIdArgument,
    console,
    run_async_command,
)

_COLLECTIONS = {
    EntityKind.ISSUE: ISSUES,
    EntityKind.REPLY: REPLIES,
    EntityKind.LABELS: ISSUES,
}


async def _run_sync(kind: EntityKind, entity_id: str) -> dict[str, Any]:
    """Enqueue one sync, wait for the engine to go idle, and summarize."""
    store = SqlDocumentStore(get_session_factory())
    try:
        async with GitHubClient() as client:
            async with SyncEngine(store, client) as engine:
                if kind is EntityKind.ISSUE:
                    status = await engine.enqueue_issue_sync(entity_id)
                elif kind is EntityKind.REPLY:
                    status = await engine.enqueue_reply_sync(entity_id)
                else:
                    status = await engine.enqueue_status_label_sync(entity_id)
                await engine.wait_idle()
                result = engine.last_result(kind, entity_id)

        material = await store.get(_COLLECTIONS[kind], entity_id)
    finally:
        await dispose_engine()

    summary: dict[str, Any] = {
        "kind": kind.value,
        "id": entity_id,
        "enqueue": status.value,
        "result": result.to_dict() if result is not None else None,
    }
    if material is not None:
        summary["github_sync_status"] = material.get("githubSyncStatus")
        summary["github_sync_error"] = material.get("githubSyncError")
    return summary


def _report(summary: dict[str, Any], output_format: OutputFormat) -> None:
    """Print a sync summary and exit non-zero on failure."""
    result = summary["result"]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(summary))
        if result is not None and not result["success"]:
            raise typer.Exit(1)
        return

    label = f"{summary['kind']} {summary['id']}"

    if summary["enqueue"] == EnqueueStatus.NOOP.value:
        console.print(
            f"[yellow]Nothing to do[/yellow] for {label} "
            f"(githubSyncStatus={summary.get('github_sync_status')})"
        )
        return

    if result is None:
        console.print(f"[yellow]Gave up waiting[/yellow] for {label}: not visible or not linked yet")
        raise typer.Exit(1)

    if not result["success"]:
        console.print(f"[red]Error:[/red] {label}: {result.get('error', 'Unknown error')}")
        raise typer.Exit(1)

    action = result["action"].replace("_", " ").title()
    target = f"#{result['github_number']}" if "github_number" in result else ""
    url = result.get("github_url", "")
    console.print(f"[bold]{action}[/bold] {label} {target} {url}".rstrip())
    if result.get("labels"):
        console.print(f"  [dim]labels:[/dim] {', '.join(result['labels'])}")


def sync_issue(
    issue_id: IssueIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Create or link the GitHub issue for a local issue.

    Examples:
        orchid-sync issue 3f6c...
        orchid-sync issue 3f6c... --format json
        orchid-sync -v issue 3f6c...  # Debug logging
    """
    summary = run_async_command(
        _run_sync(EntityKind.ISSUE, issue_id),
        error_prefix="Issue sync failed",
    )
    _report(summary, output_format)


def sync_reply(
    reply_id: ReplyIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Post a local reply as a comment on its parent's GitHub issue.

    Waits (with backoff) while the parent issue is not linked yet.
    """
    summary = run_async_command(
        _run_sync(EntityKind.REPLY, reply_id),
        error_prefix="Reply sync failed",
    )
    _report(summary, output_format)


def sync_labels(
    issue_id: IssueIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Push a linked issue's status and severity labels to GitHub."""
    summary = run_async_command(
        _run_sync(EntityKind.LABELS, issue_id),
        error_prefix="Label sync failed",
    )
    _report(summary, output_format)
