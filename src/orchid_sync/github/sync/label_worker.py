"""Label Sync Worker - push status/severity changes to a linked issue."""

from __future__ import annotations

from typing import TYPE_CHECKING

from orchid_sync.documents import ISSUES, DocumentStore, now_ms
from orchid_sync.github.labels import LabelReconciler
from orchid_sync.logging import bind_issue
from orchid_sync.schemas import Issue

from .composer import describe_error, resolve_severity
from .enums import EntityKind
from .results import SyncResult

if TYPE_CHECKING:
    from orchid_sync.github.client import GitHubClient


class LabelSyncWorker:
    """Reconciles managed labels on an already-linked GitHub issue.

    The issue stays ``synced`` whatever happens here: the GitHub link is
    intact, so a failure only records ``githubSyncError`` and success
    clears it.
    """

    def __init__(self, store: DocumentStore, client: GitHubClient) -> None:
        self._store = store
        self._labels = LabelReconciler(client)

    async def sync(self, issue_id: str) -> SyncResult:
        """Apply the issue's current status and severity labels."""
        issue_logger = bind_issue(issue_id)

        material = await self._store.get(ISSUES, issue_id)
        if material is None:
            issue_logger.warning("Issue not visible at label sync dispatch, skipping")
            return SyncResult.from_skipped(EntityKind.LABELS, issue_id)

        number: int | None = None
        try:
            issue = Issue.from_document(material)
            number = issue.github_issue_number
            if number is None:
                issue_logger.warning("Issue not linked at label sync dispatch, skipping")
                return SyncResult.from_skipped(EntityKind.LABELS, issue_id)

            labels = await self._labels.reconcile(number, issue.status, resolve_severity(issue))
            if issue.github_sync_error is not None:
                await self._store.patch(ISSUES, issue_id, {}, ["githubSyncError"])
        except Exception as e:
            issue_logger.error("Label sync failed on #{}: {}", number or "?", e)
            try:
                await self._store.patch(
                    ISSUES,
                    issue_id,
                    {"githubSyncError": describe_error(e), "updatedAt": now_ms()},
                )
            except Exception:
                issue_logger.exception("Failed to record label sync error on issue")
            return SyncResult.from_error(EntityKind.LABELS, issue_id, e)

        issue_logger.info("Labels on #{} now {}", number, labels)
        return SyncResult(
            kind=EntityKind.LABELS,
            entity_id=issue_id,
            labels_updated=True,
            github_number=number,
            github_url=issue.github_issue_url,
            labels=labels,
        )
