"""Enums for sync operations."""

from enum import Enum


class EnqueueStatus(str, Enum):
    """Outcome of an enqueue call."""

    ENQUEUED = "enqueued"
    """Entity marked creating and a worker was dispatched."""

    NOOP = "noop"
    """Already synced or in flight (or not eligible); nothing done."""

    SCHEDULED_RETRY = "scheduled_retry"
    """A precondition is missing; the retry scheduler will look again."""


class EntityKind(str, Enum):
    """Kind of sync a retry refers to."""

    ISSUE = "issue"
    REPLY = "reply"
    LABELS = "labels"


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
