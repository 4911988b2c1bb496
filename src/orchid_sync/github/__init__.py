"""GitHub side of the sync engine.

This module provides:
- GitHubClient: Async REST client scoped to the target repository
- GitHubAppTokenProvider: Cached GitHub App installation tokens
- LabelReconciler: Managed status/severity labels
- Sync: SyncEngine, IssueSyncWorker, ReplySyncWorker, LabelSyncWorker
"""

from .auth import CachedToken, GitHubAppTokenProvider, get_token_provider
from .client import GitHubClient, TokenProvider
from .exceptions import (
    AuthConfigError,
    AuthExchangeError,
    GithubApiError,
    InvalidSyncTransition,
    ReplicationLagError,
    SyncError,
)
from .labels import (
    MANAGED_LABEL_NAMES,
    LabelReconciler,
    compute_next_labels,
    severity_label,
    status_label,
)
from .sync import (
    BackoffPolicy,
    EnqueueStatus,
    EntityKind,
    IssueSyncWorker,
    LabelSyncWorker,
    OutputFormat,
    ReplySyncWorker,
    RetryScheduler,
    SyncEngine,
    SyncResult,
)

__all__ = [
    # Client
    "GitHubClient",
    "TokenProvider",
    # Credentials
    "CachedToken",
    "GitHubAppTokenProvider",
    "get_token_provider",
    # Exceptions
    "AuthConfigError",
    "AuthExchangeError",
    "GithubApiError",
    "InvalidSyncTransition",
    "ReplicationLagError",
    "SyncError",
    # Labels
    "MANAGED_LABEL_NAMES",
    "LabelReconciler",
    "compute_next_labels",
    "severity_label",
    "status_label",
    # Sync
    "BackoffPolicy",
    "EnqueueStatus",
    "EntityKind",
    "IssueSyncWorker",
    "LabelSyncWorker",
    "OutputFormat",
    "ReplySyncWorker",
    "RetryScheduler",
    "SyncEngine",
    "SyncResult",
]
