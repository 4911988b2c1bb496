"""Sync engine exceptions."""

from orchid_sync.schemas.enums import InvalidSyncTransition

__all__ = [
    "AuthConfigError",
    "AuthExchangeError",
    "GithubApiError",
    "InvalidSyncTransition",
    "ReplicationLagError",
    "SyncError",
]


class SyncError(Exception):
    """Base exception for GitHub sync errors."""

    pass


class GithubApiError(SyncError):
    """Raised for any non-2xx GitHub response, or a transport failure/timeout.

    Terminal per attempt: workers record it on the entity, and only a
    fresh enqueue tries again.
    """

    def __init__(self, status: int | None, body: str) -> None:
        self.status = status
        self.body = body
        label = status if status is not None else "transport"
        super().__init__(f"GitHub API error {label}: {body}")


class AuthConfigError(SyncError):
    """Raised when GitHub App credentials are missing from configuration."""

    pass


class AuthExchangeError(SyncError):
    """Raised when exchanging the App assertion for an installation token fails."""

    pass


class ReplicationLagError(SyncError):
    """Raised when an entity (or its parent link) is not yet visible.

    Never surfaced to callers: the enqueue guard converts it into a
    scheduled retry.
    """

    def __init__(self, kind: str, entity_id: str, reason: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{kind} {entity_id}: {reason}")
