"""Tests for LabelSyncWorker."""

import pytest

from orchid_sync.documents import ISSUES, get_issue, update_issue
from orchid_sync.github.exceptions import GithubApiError
from orchid_sync.github.sync import EntityKind, LabelSyncWorker
from orchid_sync.schemas import GithubSyncStatus, IssueStatus
from tests.factories import seed_issue, seed_linked_issue
from tests.fixtures import FakeGitHubClient


@pytest.fixture
def github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def worker(store, github) -> LabelSyncWorker:
    return LabelSyncWorker(store, github)


@pytest.fixture
async def remote(store, github):
    """Linked issue whose GitHub side carries a human label."""
    issue = github.add_issue("Bug", "desc", ["good-first-issue", "status:todo"])
    await seed_linked_issue(store, number=issue.number)
    return issue


class TestLabelSync:
    """Tests for label-only syncs."""

    async def test_applies_status_change(self, store, github, worker, remote):
        """A status change swaps the status label and keeps human labels."""
        await update_issue(store, "i1", status=IssueStatus.IN_REVIEW, severity="critical")

        result = await worker.sync("i1")

        assert result.success
        assert result.kind is EntityKind.LABELS
        assert result.action == "labels_updated"
        assert remote.labels == ["good-first-issue", "status:in_review", "severity:critical"]
        assert result.labels == remote.labels

    async def test_success_clears_error(self, store, worker, remote):
        """A previous label failure is cleared once labels apply."""
        await update_issue(store, "i1", github_sync_error="GitHub API error 500: boom")

        await worker.sync("i1")

        issue = await get_issue(store, "i1")
        assert issue.github_sync_error is None
        assert issue.github_sync_status is GithubSyncStatus.SYNCED

    async def test_failure_keeps_synced(self, store, github, worker, remote):
        """The link is intact, so a failure only records the error."""
        github.fail("set_issue_labels", GithubApiError(500, "boom"))

        result = await worker.sync("i1")

        assert not result.success
        issue = await get_issue(store, "i1")
        assert issue.github_sync_status is GithubSyncStatus.SYNCED
        assert issue.github_sync_error == "GitHub API error 500: boom"
        assert issue.github_issue_number == remote.number

    async def test_unlinked_issue_skipped(self, store, github, worker):
        await seed_issue(store)

        result = await worker.sync("i1")

        assert result.action == "skipped"
        assert github.calls == []

    async def test_malformed_document_recorded(self, store, github, worker, remote):
        """An unparseable issue records the error and keeps its link."""
        await store.patch(ISSUES, "i1", {"status": "bogus"})

        result = await worker.sync("i1")

        assert not result.success
        assert github.calls == []
        material = await store.get(ISSUES, "i1")
        assert material["githubSyncStatus"] == "synced"
        assert material["githubSyncError"]
