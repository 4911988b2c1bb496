"""Enums for the local issue model and its GitHub sync state."""

from __future__ import annotations

from enum import Enum


class InvalidSyncTransition(ValueError):
    """Raised when a githubSyncStatus transition is not allowed."""

    pass


class IssueStatus(str, Enum):
    """Workflow status of a local issue."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    DONE = "done"
    CANCELED = "canceled"


class Severity(str, Enum):
    """Reported severity of an issue."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: str | None) -> Severity | None:
        """Match a free-form value case-insensitively, or return None."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ReplyType(str, Enum):
    """Kind of message in an issue thread. Only replies are synced."""

    REPLY = "reply"
    COMMENT = "comment"


class GithubSyncStatus(str, Enum):
    """Sync state of an entity against GitHub.

    Transitions:
        (unset) | pending -> creating
        creating -> synced | error
        error -> creating   (fresh enqueue)
        synced -> (terminal)
    """

    PENDING = "pending"
    CREATING = "creating"
    SYNCED = "synced"
    ERROR = "error"

    def can_transition_to(self, target: GithubSyncStatus) -> bool:
        """Check whether moving from this status to ``target`` is allowed."""
        return target in _TRANSITIONS[self]

    @classmethod
    def can_begin_sync(cls, current: GithubSyncStatus | None) -> bool:
        """Check whether an entity in ``current`` may be marked creating."""
        if current is None:
            return True
        return current.can_transition_to(cls.CREATING)

    @classmethod
    def transition(
        cls,
        current: GithubSyncStatus | None,
        target: GithubSyncStatus,
    ) -> GithubSyncStatus:
        """Validate a transition and return the target status.

        Raises:
            InvalidSyncTransition: If the move is not part of the state machine.
        """
        source = current or cls.PENDING
        if not source.can_transition_to(target):
            raise InvalidSyncTransition(
                f"githubSyncStatus cannot move from {source.value} to {target.value}"
            )
        return target


_TRANSITIONS: dict[GithubSyncStatus, frozenset[GithubSyncStatus]] = {
    GithubSyncStatus.PENDING: frozenset({GithubSyncStatus.CREATING}),
    GithubSyncStatus.CREATING: frozenset({GithubSyncStatus.SYNCED, GithubSyncStatus.ERROR}),
    GithubSyncStatus.ERROR: frozenset({GithubSyncStatus.CREATING}),
    GithubSyncStatus.SYNCED: frozenset(),
}
