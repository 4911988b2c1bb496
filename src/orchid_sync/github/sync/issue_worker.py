"""Issue Sync Worker - find-or-create a GitHub issue for a local issue.

Search-before-create on the body marker is what makes the flow
idempotent: a duplicate dispatch, a retry, or a crash between the GitHub
call and the local write all converge on the same GitHub issue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from orchid_sync.documents import ISSUES, DocumentStore, build_delta, now_ms
from orchid_sync.github.labels import LabelReconciler
from orchid_sync.logging import bind_issue
from orchid_sync.schemas import GithubSyncStatus, InvalidSyncTransition, Issue

from .composer import build_search_query, compose_issue_body, describe_error, resolve_severity
from .enums import EntityKind
from .results import SyncResult

if TYPE_CHECKING:
    from loguru import Logger

    from orchid_sync.github.client import GitHubClient
    from orchid_sync.schemas import GitHubIssueRef


def check_transition(
    current: GithubSyncStatus | None,
    target: GithubSyncStatus,
    entity_logger: Logger,
) -> None:
    """Log (not raise) when a worker writes a status out of sequence.

    Workers are dispatched only after the guard marked the entity
    creating, so anything else means a concurrent writer got there first.
    """
    try:
        GithubSyncStatus.transition(current, target)
    except InvalidSyncTransition as e:
        entity_logger.warning("Unexpected sync status write: {}", e)


def _projection(
    material: dict[str, Any],
    set_fields: dict[str, Any],
    delete_fields: list[str],
) -> dict[str, Any]:
    projection = {**material, **set_fields}
    for key in delete_fields:
        projection.pop(key, None)
    return projection


class IssueSyncWorker:
    """Syncs one local issue to GitHub.

    Usage:
        worker = IssueSyncWorker(store, client)
        result = await worker.sync(issue_id)
        if result.success:
            print(f"{result.action}: #{result.github_number}")
    """

    def __init__(self, store: DocumentStore, client: GitHubClient) -> None:
        """Initialize the worker.

        Args:
            store: Document store holding the issue
            client: GitHub client scoped to the target repository
        """
        self._store = store
        self._client = client
        self._labels = LabelReconciler(client)

    async def sync(self, issue_id: str) -> SyncResult:
        """Find or create the GitHub issue and link it locally.

        Flow:
            1. Re-read the issue; stop if it is already linked
            2. Capture the document state as the merge base
            3. Resolve severity (explicit field, else ``## Severity`` section)
            4. Search GitHub for the issue marker
            5. Found: reconcile labels on it
            6. Not found: ensure labels exist, create the issue
            7. Merge the link fields back with a field-level delta

        Args:
            issue_id: Local issue id

        Returns:
            SyncResult describing the outcome

        Note:
            Errors are recorded on the issue and in result.error, not raised.
        """
        issue_logger = bind_issue(issue_id)

        material = await self._store.get(ISSUES, issue_id)
        if material is None:
            issue_logger.warning("Issue not visible at dispatch, skipping")
            return SyncResult.from_skipped(EntityKind.ISSUE, issue_id)

        issue: Issue | None = None
        try:
            issue = Issue.from_document(material)
            if issue.is_linked:
                issue_logger.debug("Issue already linked to {}, skipping", issue.github_issue_url)
                return SyncResult.from_skipped(EntityKind.ISSUE, issue_id)

            issue_logger.info("Syncing issue to {}", self._client.repo)
            state = await self._store.get_state(ISSUES, issue_id)
            base_state = state.bytes if state is not None else None
            severity = resolve_severity(issue)

            query = build_search_query(self._client.repo, issue_id)
            matches = await self._client.search_issues(query)

            ref: GitHubIssueRef
            if matches:
                ref = matches[0]
                issue_logger.info("Found existing GitHub issue #{}", ref.number)
                labels = await self._labels.reconcile(ref.number, issue.status, severity)
                created = False
            else:
                labels = await self._labels.ensure_labels(issue.status, severity)
                ref = await self._client.create_issue(
                    issue.title,
                    compose_issue_body(issue),
                    labels,
                )
                issue_logger.info("Created GitHub issue #{}", ref.number)
                created = True

            await self._record_success(issue, material, base_state, ref)
        except Exception as e:
            issue_logger.error("Issue sync failed: {}", e)
            await self._record_failure(issue_id, issue, material, e)
            return SyncResult.from_error(EntityKind.ISSUE, issue_id, e)

        return SyncResult(
            kind=EntityKind.ISSUE,
            entity_id=issue_id,
            created=created,
            found=not created,
            github_number=ref.number,
            github_url=ref.url,
            labels=labels,
        )

    async def _record_success(
        self,
        issue: Issue,
        material: dict[str, Any],
        base_state: bytes | None,
        ref: GitHubIssueRef,
    ) -> None:
        check_transition(issue.github_sync_status, GithubSyncStatus.SYNCED, bind_issue(issue.id))
        now = now_ms()
        set_fields: dict[str, Any] = {
            "githubRepo": self._client.repo,
            "githubIssueUrl": ref.url,
            "githubIssueNumber": ref.number,
            "githubSyncStatus": GithubSyncStatus.SYNCED.value,
            "githubSyncedAt": now,
            "updatedAt": now,
        }
        delete_fields = ["githubSyncError"]
        delta = build_delta(base_state, set_fields, delete_fields)
        await self._store.apply_delta(
            ISSUES,
            issue.id,
            delta,
            _projection(material, set_fields, delete_fields),
        )

    async def _record_failure(
        self,
        issue_id: str,
        issue: Issue | None,
        material: dict[str, Any],
        error: Exception,
    ) -> None:
        issue_logger = bind_issue(issue_id)
        if issue is not None:
            check_transition(issue.github_sync_status, GithubSyncStatus.ERROR, issue_logger)

        try:
            state = await self._store.get_state(ISSUES, issue_id)
        except Exception as e:
            issue_logger.warning("Could not re-read issue state, building error delta blind: {}", e)
            state = None

        set_fields: dict[str, Any] = {
            "githubRepo": self._client.repo,
            "githubSyncStatus": GithubSyncStatus.ERROR.value,
            "githubSyncError": describe_error(error),
            "updatedAt": now_ms(),
        }
        try:
            delta = build_delta(state.bytes if state is not None else None, set_fields)
            await self._store.apply_delta(
                ISSUES,
                issue_id,
                delta,
                _projection(material, set_fields, []),
            )
        except Exception:
            issue_logger.exception("Failed to record sync error on issue")
