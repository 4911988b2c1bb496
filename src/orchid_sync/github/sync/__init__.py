"""Sync module - local issues and replies to GitHub.

Services:
- SyncEngine: Enqueue guard, worker dispatch and retry wiring
- IssueSyncWorker: Find-or-create a GitHub issue for a local issue
- ReplySyncWorker: Find-or-create a GitHub comment for a local reply
- LabelSyncWorker: Managed label reconciliation for a linked issue
- RetryScheduler: Bounded, jittered retries for unmet preconditions
"""

from .backoff import BackoffPolicy, RetryScheduler
from .engine import SyncEngine
from .enums import EnqueueStatus, EntityKind, OutputFormat
from .issue_worker import IssueSyncWorker
from .label_worker import LabelSyncWorker
from .reply_worker import ReplySyncWorker
from .results import SyncResult

__all__ = [
    # Engine
    "EnqueueStatus",
    "EntityKind",
    "SyncEngine",
    # Workers
    "IssueSyncWorker",
    "LabelSyncWorker",
    "ReplySyncWorker",
    "SyncResult",
    # Retries
    "BackoffPolicy",
    "RetryScheduler",
    # CLI
    "OutputFormat",
]
