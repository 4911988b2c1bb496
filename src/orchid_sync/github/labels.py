"""Managed GitHub labels and the label reconciler.

The engine owns two label families: one label per issue status and one
per severity. On a synced issue exactly one status label and at most one
severity label are present; every other label belongs to humans and is
never touched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from orchid_sync.logging import get_logger
from orchid_sync.schemas import IssueStatus, ManagedLabel, Severity

if TYPE_CHECKING:
    from .client import GitHubClient

logger = get_logger(__name__)

STATUS_LABEL_COLOR = "5319e7"
STATUS_LABEL_DESCRIPTION = "Orchid issue status (managed automatically)"

SEVERITY_LABEL_COLOR = "d93f0b"
SEVERITY_LABEL_DESCRIPTION = "Orchid issue severity (managed automatically)"


def status_label(status: IssueStatus) -> ManagedLabel:
    """Managed label for an issue status."""
    return ManagedLabel(
        name=f"status:{status.value}",
        color=STATUS_LABEL_COLOR,
        description=STATUS_LABEL_DESCRIPTION,
    )


def severity_label(severity: Severity) -> ManagedLabel:
    """Managed label for a severity."""
    return ManagedLabel(
        name=f"severity:{severity.value}",
        color=SEVERITY_LABEL_COLOR,
        description=SEVERITY_LABEL_DESCRIPTION,
    )


STATUS_LABEL_NAMES: frozenset[str] = frozenset(status_label(s).name for s in IssueStatus)
SEVERITY_LABEL_NAMES: frozenset[str] = frozenset(severity_label(s).name for s in Severity)
MANAGED_LABEL_NAMES: frozenset[str] = STATUS_LABEL_NAMES | SEVERITY_LABEL_NAMES


def target_labels(status: IssueStatus, severity: Severity | None) -> list[ManagedLabel]:
    """Managed labels an issue with this status/severity should carry."""
    labels = [status_label(status)]
    if severity is not None:
        labels.append(severity_label(severity))
    return labels


def compute_next_labels(
    current: list[str],
    status: IssueStatus,
    severity: Severity | None,
) -> list[str]:
    """Compute the full label set to PUT on an issue.

    Every managed name is stripped from ``current`` (stale ones included),
    unmanaged names keep their order, then the target status and severity
    labels are appended. Duplicates are dropped.
    """
    keep = [name for name in current if name not in MANAGED_LABEL_NAMES]
    wanted = keep + [label.name for label in target_labels(status, severity)]
    return list(dict.fromkeys(wanted))


class LabelReconciler:
    """Ensures managed labels exist and applies them to issues.

    Usage:
        reconciler = LabelReconciler(client)
        await reconciler.reconcile(42, IssueStatus.TODO, Severity.HIGH)
    """

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def ensure_label(self, label: ManagedLabel) -> None:
        """Create the label in the repository if it does not exist yet."""
        existing = await self._client.get_label(label.name)
        if existing is None:
            await self._client.create_label(label)

    async def ensure_labels(self, status: IssueStatus, severity: Severity | None) -> list[str]:
        """Ensure target labels exist; return their names."""
        labels = target_labels(status, severity)
        for label in labels:
            await self.ensure_label(label)
        return [label.name for label in labels]

    async def reconcile(
        self,
        issue_number: int,
        status: IssueStatus,
        severity: Severity | None,
    ) -> list[str]:
        """Replace the managed subset of an issue's labels.

        Args:
            issue_number: GitHub issue number
            status: Target status
            severity: Target severity (None removes any severity label)

        Returns:
            The label set written to the issue
        """
        await self.ensure_labels(status, severity)

        current = [label.name for label in await self._client.get_issue_labels(issue_number)]
        next_labels = compute_next_labels(current, status, severity)

        # The endpoint replaces the whole set, so unmanaged names must be resent
        await self._client.set_issue_labels(issue_number, next_labels)
        logger.debug(
            "Reconciled labels on #{}: {} -> {}",
            issue_number,
            current,
            next_labels,
        )
        return next_labels
