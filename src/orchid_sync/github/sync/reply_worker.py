"""Reply Sync Worker - post a local reply as a GitHub issue comment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from orchid_sync.documents import ISSUES, REPLIES, DocumentStore, now_ms
from orchid_sync.github.exceptions import ReplicationLagError
from orchid_sync.logging import bind_reply
from orchid_sync.schemas import GithubSyncStatus, Issue, Reply, ReplyType

from .composer import compose_reply_body, describe_error
from .enums import EntityKind
from .issue_worker import check_transition
from .results import SyncResult

if TYPE_CHECKING:
    from orchid_sync.github.client import GitHubClient


class ReplySyncWorker:
    """Syncs one local reply to a comment on its parent's GitHub issue.

    Comments carry no marker, so idempotency is textual: an existing
    comment whose body equals the composed body is reused.

    Usage:
        worker = ReplySyncWorker(store, client)
        result = await worker.sync(reply_id)
    """

    def __init__(self, store: DocumentStore, client: GitHubClient) -> None:
        self._store = store
        self._client = client

    async def sync(self, reply_id: str) -> SyncResult:
        """Find or create the GitHub comment and persist the link.

        Args:
            reply_id: Local reply id

        Returns:
            SyncResult describing the outcome
        """
        material = await self._store.get(REPLIES, reply_id)
        if material is None:
            bind_reply(reply_id).warning("Reply not visible at dispatch, skipping")
            return SyncResult.from_skipped(EntityKind.REPLY, reply_id)

        reply: Reply | None = None
        reply_logger = bind_reply(reply_id)
        try:
            reply = Reply.from_document(material)
            reply_logger = bind_reply(reply_id, reply.issue_id)
            if reply.type != ReplyType.REPLY or reply.is_linked:
                reply_logger.debug("Reply not eligible for sync, skipping")
                return SyncResult.from_skipped(EntityKind.REPLY, reply_id)

            issue_number = await self._parent_issue_number(reply)
            body = compose_reply_body(reply)

            comments = await self._client.list_issue_comments(issue_number)
            existing = next((c for c in comments if c.body == body), None)
            if existing is not None:
                comment = existing
                reply_logger.info("Found matching comment {} on #{}", comment.id, issue_number)
            else:
                comment = await self._client.create_issue_comment(issue_number, body)
                reply_logger.info("Created comment {} on #{}", comment.id, issue_number)

            check_transition(reply.github_sync_status, GithubSyncStatus.SYNCED, reply_logger)
            await self._store.patch(
                REPLIES,
                reply_id,
                {
                    "githubCommentId": comment.id,
                    "githubCommentUrl": comment.url,
                    "githubSyncStatus": GithubSyncStatus.SYNCED.value,
                    "githubSyncedAt": now_ms(),
                },
                ["githubSyncError"],
            )
        except Exception as e:
            reply_logger.error("Reply sync failed: {}", e)
            await self._record_failure(reply_id, reply, e)
            return SyncResult.from_error(EntityKind.REPLY, reply_id, e)

        return SyncResult(
            kind=EntityKind.REPLY,
            entity_id=reply_id,
            created=existing is None,
            found=existing is not None,
            github_number=issue_number,
            github_url=comment.url,
            github_comment_id=comment.id,
        )

    async def _parent_issue_number(self, reply: Reply) -> int:
        """Parent's GitHub issue number, re-checked at run time."""
        material = await self._store.get(ISSUES, reply.issue_id)
        parent = Issue.from_document(material) if material is not None else None
        if parent is None or parent.github_issue_number is None:
            raise ReplicationLagError(
                EntityKind.REPLY.value,
                reply.id,
                f"parent issue {reply.issue_id} is not linked to GitHub",
            )
        return parent.github_issue_number

    async def _record_failure(
        self,
        reply_id: str,
        reply: Reply | None,
        error: Exception,
    ) -> None:
        if reply is None:
            reply_logger = bind_reply(reply_id)
        else:
            reply_logger = bind_reply(reply_id, reply.issue_id)
            check_transition(reply.github_sync_status, GithubSyncStatus.ERROR, reply_logger)
        set_fields: dict[str, Any] = {
            "githubSyncStatus": GithubSyncStatus.ERROR.value,
            "githubSyncError": describe_error(error),
        }
        try:
            await self._store.patch(REPLIES, reply_id, set_fields, ["githubSyncedAt"])
        except Exception:
            reply_logger.exception("Failed to record sync error on reply")
