"""Local mutations on issues and replies.

These stand in for the UI/mutation layer: they write records into the
document store exactly the way a local client would, and are what the
CLI and the tests use to create the entities the sync engine works on.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

from orchid_sync.schemas import Author, Issue, IssueStatus, Reply, ReplyType, Severity

from .store import ISSUES, REPLIES, SqlDocumentStore


def now_ms() -> int:
    """Current time as epoch milliseconds (the document timestamp format)."""
    return int(time.time() * 1000)


async def create_issue(
    store: SqlDocumentStore,
    *,
    title: str,
    body: str,
    created_by: Author,
    status: IssueStatus = IssueStatus.BACKLOG,
    severity: Severity | None = None,
    issue_id: str | None = None,
) -> Issue:
    """Create a local issue.

    Args:
        store: Document store
        title: Issue title
        body: Markdown body
        created_by: Author identity
        status: Initial status (backlog unless given)
        severity: Optional explicit severity
        issue_id: Record id (a uuid4 is generated when omitted)

    Returns:
        The created issue
    """
    created_at = now_ms()
    issue = Issue(
        id=issue_id or str(uuid.uuid4()),
        title=title,
        body=body,
        status=status,
        severity=severity,
        created_at=created_at,
        updated_at=created_at,
        created_by=created_by,
    )
    material = await store.insert(ISSUES, issue.id, issue.to_document())
    return Issue.from_document(material)


async def update_issue(store: SqlDocumentStore, issue_id: str, **fields: Any) -> Issue:
    """Change issue fields with a field-level delta and bump ``updatedAt``.

    Keyword names are Issue attributes (``status=IssueStatus.DONE``);
    a value of None deletes the field.
    """
    set_fields: dict[str, Any] = {}
    delete_fields: list[str] = []
    for name, value in fields.items():
        key = Issue.model_fields[name].alias or name
        if value is None:
            delete_fields.append(key)
        else:
            set_fields[key] = value.value if isinstance(value, IssueStatus | Severity) else value
    set_fields["updatedAt"] = now_ms()

    material = await store.patch(ISSUES, issue_id, set_fields, delete_fields)
    return Issue.from_document(material)


async def create_reply(
    store: SqlDocumentStore,
    *,
    issue_id: str,
    body: str,
    author: Author,
    type: ReplyType = ReplyType.REPLY,
    reply_id: str | None = None,
) -> Reply:
    """Post a reply (or system comment) into an issue thread."""
    reply = Reply(
        id=reply_id or str(uuid.uuid4()),
        issue_id=issue_id,
        type=type,
        body=body,
        created_at=now_ms(),
        author=author,
    )
    material = await store.insert(REPLIES, reply.id, reply.to_document())
    return Reply.from_document(material)


async def get_issue(store: SqlDocumentStore, issue_id: str) -> Issue | None:
    """Read an issue, or None if it is not visible."""
    material = await store.get(ISSUES, issue_id)
    return Issue.from_document(material) if material is not None else None


async def get_reply(store: SqlDocumentStore, reply_id: str) -> Reply | None:
    """Read a reply, or None if it is not visible."""
    material = await store.get(REPLIES, reply_id)
    return Reply.from_document(material) if material is not None else None


async def list_replies(store: SqlDocumentStore, issue_id: str) -> list[Reply]:
    """List an issue's thread ordered by ``createdAt``."""
    materials = await store.list_by_field(REPLIES, "issueId", issue_id)
    replies = [Reply.from_document(material) for material in materials]
    return sorted(replies, key=lambda reply: reply.created_at)
