"""Result objects for sync operations.

Workers persist their outcome on the entity itself; these results mirror
that outcome for callers (CLI output, tests, logs).
"""

from dataclasses import dataclass

from .enums import EntityKind


@dataclass
class SyncResult:
    """Result of a single worker run."""

    kind: EntityKind
    """What was synced."""

    entity_id: str
    """Local id of the issue or reply."""

    created: bool = False
    """True if a new GitHub issue/comment was created."""

    found: bool = False
    """True if an existing GitHub issue/comment was reused."""

    labels_updated: bool = False
    """True if a label-only sync applied labels."""

    skipped: bool = False
    """True if the worker found nothing to do (already linked, not eligible)."""

    github_number: int | None = None
    """GitHub issue number (issue and label syncs)."""

    github_url: str | None = None
    """GitHub issue or comment URL."""

    github_comment_id: int | None = None
    """GitHub comment id (reply syncs)."""

    labels: list[str] | None = None
    """Label set written to the issue, when labels were reconciled."""

    error: Exception | None = None
    """Exception if the run failed."""

    @property
    def success(self) -> bool:
        """Check if operation completed without errors."""
        return self.error is None

    @property
    def action(self) -> str:
        """Get human-readable description of action taken.

        Returns one of "error", "created", "found", "labels_updated",
        "skipped" or "unknown".
        """
        if self.error:
            return "error"
        if self.created:
            return "created"
        if self.found:
            return "found"
        if self.labels_updated:
            return "labels_updated"
        if self.skipped:
            return "skipped"
        return "unknown"

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, object] = {
            "kind": self.kind.value,
            "entity_id": self.entity_id,
            "success": self.success,
            "action": self.action,
        }
        if self.github_number is not None:
            result["github_number"] = self.github_number
        if self.github_url is not None:
            result["github_url"] = self.github_url
        if self.github_comment_id is not None:
            result["github_comment_id"] = self.github_comment_id
        if self.labels is not None:
            result["labels"] = self.labels
        if self.error:
            result["error"] = str(self.error)
            result["error_type"] = type(self.error).__name__
        return result

    @classmethod
    def from_error(cls, kind: EntityKind, entity_id: str, error: Exception) -> "SyncResult":
        """Create a result representing a failed run."""
        return cls(kind=kind, entity_id=entity_id, error=error)

    @classmethod
    def from_skipped(cls, kind: EntityKind, entity_id: str) -> "SyncResult":
        """Create a result for a run that had nothing to do."""
        return cls(kind=kind, entity_id=entity_id, skipped=True)
