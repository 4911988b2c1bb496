"""Sync Engine - enqueue guard, dispatch and retry wiring.

The guard is the only place that decides whether a sync runs. It is
re-run from scratch on every retry, so a retry never resumes stale
work: the entity may have been linked, edited or marked creating by
someone else in the meantime.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import ValidationError

from orchid_sync.config import get_settings
from orchid_sync.documents import ISSUES, REPLIES, DocumentStore, now_ms
from orchid_sync.github.exceptions import ReplicationLagError
from orchid_sync.logging import bind_issue, bind_reply, get_logger
from orchid_sync.schemas import GithubSyncStatus, Issue, Reply, ReplyType

from .backoff import BackoffPolicy, RetryScheduler, SleepFunc
from .enums import EnqueueStatus, EntityKind
from .issue_worker import IssueSyncWorker
from .label_worker import LabelSyncWorker
from .reply_worker import ReplySyncWorker
from .results import SyncResult

if TYPE_CHECKING:
    from orchid_sync.github.client import GitHubClient

logger = get_logger(__name__)


class SyncEngine:
    """Entry point for the local mutation layer.

    Each enqueue either no-ops, marks the entity creating and dispatches
    a worker task, or hands the entity to the retry scheduler. Workers
    run as independent asyncio tasks; ``wait_idle`` waits for all of
    them and for any retries still pending.

    Usage:
        engine = SyncEngine(store, client)
        status = await engine.enqueue_issue_sync(issue_id)
        await engine.wait_idle()
        result = engine.last_result(EntityKind.ISSUE, issue_id)
    """

    def __init__(
        self,
        store: DocumentStore,
        client: GitHubClient,
        *,
        policy: BackoffPolicy | None = None,
        sleep: SleepFunc = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Document store holding issues and replies
            client: GitHub client scoped to the target repository
            policy: Retry backoff policy (defaults to settings.retry)
            sleep: Sleep used between retries (tests inject a no-op)
            rng: Jitter source for retry delays
        """
        self._store = store
        self._client = client
        self._retry = RetryScheduler(
            policy or BackoffPolicy.from_config(get_settings().retry),
            self._retry_guard,
            sleep=sleep,
            rng=rng,
        )
        self._issue_worker = IssueSyncWorker(store, client)
        self._reply_worker = ReplySyncWorker(store, client)
        self._label_worker = LabelSyncWorker(store, client)
        self._tasks: set[asyncio.Task[None]] = set()
        self._results: dict[tuple[EntityKind, str], SyncResult] = {}

    @property
    def retry_scheduler(self) -> RetryScheduler:
        """Scheduler handling precondition retries."""
        return self._retry

    @property
    def in_flight(self) -> int:
        """Number of worker tasks currently running."""
        return len(self._tasks)

    def last_result(self, kind: EntityKind, entity_id: str) -> SyncResult | None:
        """Result of the most recent worker run for an entity, if any."""
        return self._results.get((kind, entity_id))

    # -------------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------------
    async def enqueue_issue_sync(self, issue_id: str) -> EnqueueStatus:
        """Create or link the GitHub issue for a local issue."""
        return await self._enqueue(EntityKind.ISSUE, issue_id)

    async def enqueue_reply_sync(self, reply_id: str) -> EnqueueStatus:
        """Post a reply to its parent's GitHub issue."""
        return await self._enqueue(EntityKind.REPLY, reply_id)

    async def enqueue_status_label_sync(self, issue_id: str) -> EnqueueStatus:
        """Push a linked issue's status/severity labels to GitHub."""
        return await self._enqueue(EntityKind.LABELS, issue_id)

    async def _enqueue(self, kind: EntityKind, entity_id: str) -> EnqueueStatus:
        try:
            dispatched = await self._guard(kind, entity_id)
        except ReplicationLagError as e:
            logger.info("Deferring {} sync: {}", kind.value, e.reason, entity_id=entity_id)
            self._retry.reschedule(kind, entity_id, 0)
            return EnqueueStatus.SCHEDULED_RETRY
        return EnqueueStatus.ENQUEUED if dispatched else EnqueueStatus.NOOP

    async def _retry_guard(self, kind: EntityKind, entity_id: str, attempt: int) -> None:
        """Re-run the guard for a scheduled retry."""
        try:
            await self._guard(kind, entity_id)
        except ReplicationLagError as e:
            logger.debug(
                "Still deferring {} sync after attempt {}: {}",
                kind.value,
                attempt,
                e.reason,
                entity_id=entity_id,
            )
            self._retry.reschedule(kind, entity_id, attempt + 1)

    async def _guard(self, kind: EntityKind, entity_id: str) -> bool:
        """Check preconditions and dispatch a worker.

        Returns:
            True if a worker was dispatched, False for a no-op

        Raises:
            ReplicationLagError: If the entity or its parent link is not visible yet
        """
        try:
            if kind is EntityKind.ISSUE:
                return await self._guard_issue(entity_id)
            if kind is EntityKind.REPLY:
                return await self._guard_reply(entity_id)
            return await self._guard_labels(entity_id)
        except ValidationError as e:
            logger.error(
                "Cannot sync malformed {} document: {}", kind.value, e, entity_id=entity_id
            )
            return False

    async def _guard_issue(self, issue_id: str) -> bool:
        issue_logger = bind_issue(issue_id)
        material = await self._store.get(ISSUES, issue_id)
        if material is None:
            raise ReplicationLagError(EntityKind.ISSUE.value, issue_id, "issue not visible yet")

        issue = Issue.from_document(material)
        if issue.is_linked or not GithubSyncStatus.can_begin_sync(issue.github_sync_status):
            issue_logger.debug(
                "Issue sync noop (status={}, linked={})",
                issue.github_sync_status,
                issue.is_linked,
            )
            return False

        status = GithubSyncStatus.transition(issue.github_sync_status, GithubSyncStatus.CREATING)
        await self._store.patch(
            ISSUES,
            issue_id,
            {
                "githubRepo": self._client.repo,
                "githubSyncStatus": status.value,
                "updatedAt": now_ms(),
            },
            ["githubSyncError"],
        )
        issue_logger.info("Issue marked creating, dispatching sync")
        self._dispatch(EntityKind.ISSUE, issue_id)
        return True

    async def _guard_reply(self, reply_id: str) -> bool:
        material = await self._store.get(REPLIES, reply_id)
        if material is None:
            raise ReplicationLagError(EntityKind.REPLY.value, reply_id, "reply not visible yet")

        reply = Reply.from_document(material)
        reply_logger = bind_reply(reply_id, reply.issue_id)
        if reply.type != ReplyType.REPLY:
            reply_logger.debug("Reply sync noop (type={})", reply.type.value)
            return False
        if reply.is_linked or not GithubSyncStatus.can_begin_sync(reply.github_sync_status):
            reply_logger.debug("Reply sync noop (status={})", reply.github_sync_status)
            return False

        parent = await self._store.get(ISSUES, reply.issue_id)
        if parent is None or Issue.from_document(parent).github_issue_number is None:
            raise ReplicationLagError(
                EntityKind.REPLY.value,
                reply_id,
                f"parent issue {reply.issue_id} has no GitHub issue number yet",
            )

        status = GithubSyncStatus.transition(reply.github_sync_status, GithubSyncStatus.CREATING)
        await self._store.patch(
            REPLIES,
            reply_id,
            {"githubSyncStatus": status.value},
            ["githubSyncError", "githubSyncedAt"],
        )
        reply_logger.info("Reply marked creating, dispatching sync")
        self._dispatch(EntityKind.REPLY, reply_id)
        return True

    async def _guard_labels(self, issue_id: str) -> bool:
        material = await self._store.get(ISSUES, issue_id)
        if material is None:
            raise ReplicationLagError(EntityKind.LABELS.value, issue_id, "issue not visible yet")
        if Issue.from_document(material).github_issue_number is None:
            raise ReplicationLagError(
                EntityKind.LABELS.value, issue_id, "issue has no GitHub issue number yet"
            )

        bind_issue(issue_id).info("Dispatching label sync")
        self._dispatch(EntityKind.LABELS, issue_id)
        return True

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------
    def _dispatch(self, kind: EntityKind, entity_id: str) -> None:
        task = asyncio.create_task(
            self._run_worker(kind, entity_id),
            name=f"sync-{kind.value}-{entity_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_worker(self, kind: EntityKind, entity_id: str) -> None:
        try:
            if kind is EntityKind.ISSUE:
                result = await self._issue_worker.sync(entity_id)
            elif kind is EntityKind.REPLY:
                result = await self._reply_worker.sync(entity_id)
            else:
                result = await self._label_worker.sync(entity_id)
        except Exception as e:
            # Workers record GitHub failures themselves; this is a store failure
            logger.exception("{} worker crashed", kind.value, entity_id=entity_id)
            result = SyncResult.from_error(kind, entity_id, e)
        self._results[(kind, entity_id)] = result

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def wait_idle(self) -> None:
        """Wait for in-flight workers and pending retries, including new ones."""
        while self._tasks or self._retry.pending:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self._retry.wait_idle()

    async def shutdown(self) -> None:
        """Cancel pending retries and let running workers finish."""
        await self._retry.cancel_all()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def __aenter__(self) -> SyncEngine:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.shutdown()
