"""Replicated document access: CRDT deltas, the store, local mutations."""

from .delta import build_delta, initial_document, merge_updates, read_fields
from .mutations import (
    create_issue,
    create_reply,
    get_issue,
    get_reply,
    list_replies,
    now_ms,
    update_issue,
)
from .store import (
    ISSUES,
    REPLIES,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentState,
    DocumentStore,
    SqlDocumentStore,
)

__all__ = [
    # Delta builder
    "build_delta",
    "initial_document",
    "merge_updates",
    "read_fields",
    # Store
    "ISSUES",
    "REPLIES",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentState",
    "DocumentStore",
    "SqlDocumentStore",
    # Local mutations
    "create_issue",
    "create_reply",
    "get_issue",
    "get_reply",
    "list_replies",
    "now_ms",
    "update_issue",
]
