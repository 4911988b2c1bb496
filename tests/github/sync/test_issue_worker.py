"""Tests for IssueSyncWorker.

Tests cover:
- Create path (labels ensured, marker in body, link written back)
- Found path (existing marker issue reused, labels reconciled)
- Idempotent creation across a crash between GitHub and the local write
- Concurrent local edits surviving the link merge
- Failure recording
"""

import pytest

from orchid_sync.documents import ISSUES, get_issue, update_issue
from orchid_sync.github.exceptions import GithubApiError
from orchid_sync.github.sync import EntityKind, IssueSyncWorker, LabelSyncWorker
from orchid_sync.github.sync.composer import MAX_ERROR_LENGTH
from orchid_sync.schemas import GithubSyncStatus
from tests.conftest import TEST_REPO
from tests.factories import make_issue_document, seed_issue, seed_linked_issue
from tests.fixtures import FakeGitHubClient


@pytest.fixture
def github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def worker(store, github) -> IssueSyncWorker:
    return IssueSyncWorker(store, github)


class TestIssueCreate:
    """Tests for the create path."""

    async def test_creates_and_links(self, store, github, worker):
        """A new issue is created on GitHub and linked locally."""
        await seed_issue(store, githubSyncStatus="creating")

        result = await worker.sync("i1")

        assert result.success
        assert result.action == "created"
        assert result.kind is EntityKind.ISSUE

        [(title, body, labels)] = github.calls_to("create_issue")
        assert title == "Bug"
        assert "Orchid issue id: i1" in body
        assert labels == ["status:todo"]

        issue = await get_issue(store, "i1")
        assert issue.github_sync_status is GithubSyncStatus.SYNCED
        assert issue.github_issue_number == result.github_number
        assert issue.github_issue_url == f"https://github.com/{TEST_REPO}/issues/1"
        assert issue.github_repo == TEST_REPO
        assert issue.github_synced_at is not None
        assert issue.github_sync_error is None

    async def test_searches_before_create(self, store, github, worker):
        """The marker search runs before any create."""
        await seed_issue(store, githubSyncStatus="creating")

        await worker.sync("i1")

        methods = [name for name, _ in github.calls]
        assert methods.index("search_issues") < methods.index("create_issue")
        assert github.calls_to("search_issues") == [
            (f'repo:{TEST_REPO} is:issue in:body "Orchid issue id: i1"',)
        ]

    async def test_labels_exist_before_create(self, store, github, worker):
        """Target labels are created in the repository first."""
        await seed_issue(store, githubSyncStatus="creating", severity="low")

        await worker.sync("i1")

        assert set(github.labels) == {"status:todo", "severity:low"}
        assert github.issues[1].labels == ["status:todo", "severity:low"]

    async def test_severity_from_body_section(self, store, github, worker):
        """Without an explicit severity the body section is used, then stripped."""
        await seed_issue(
            store,
            githubSyncStatus="creating",
            body="Crashes on save\n\n## Severity\nhigh",
        )

        await worker.sync("i1")

        [(_, body, labels)] = github.calls_to("create_issue")
        assert "severity:high" in labels
        assert "## Severity" not in body
        assert body.startswith("Crashes on save\n\n---\n")


class TestIssueFound:
    """Tests for the found path."""

    async def test_links_existing_marker_issue(self, store, github, worker):
        """An existing GitHub issue carrying the marker is reused."""
        await seed_issue(store, githubSyncStatus="creating", severity="high")
        existing = github.add_issue("Bug", "desc\n\n---\nOrchid issue id: i1", ["good-first-issue"])

        result = await worker.sync("i1")

        assert result.action == "found"
        assert result.github_number == existing.number
        assert github.calls_to("create_issue") == []
        assert existing.labels == ["good-first-issue", "status:todo", "severity:high"]

        issue = await get_issue(store, "i1")
        assert issue.github_issue_number == existing.number
        assert issue.github_sync_status is GithubSyncStatus.SYNCED

    async def test_other_issue_markers_ignored(self, store, github, worker):
        """Only this issue's marker matches."""
        await seed_issue(store, githubSyncStatus="creating")
        github.add_issue("Other", "---\nOrchid issue id: i2")

        result = await worker.sync("i1")

        assert result.action == "created"


class TestIdempotentCreation:
    """Tests for crash/retry convergence."""

    async def test_crash_after_create_converges(self, store, github, worker):
        """Losing the local link after a create never creates a second issue."""
        await seed_issue(store, githubSyncStatus="creating")
        first = await worker.sync("i1")

        # Simulate the write-back never landing
        await store.patch(
            ISSUES,
            "i1",
            {"githubSyncStatus": "creating"},
            ["githubIssueUrl", "githubIssueNumber", "githubSyncedAt"],
        )
        second = await worker.sync("i1")

        assert len(github.calls_to("create_issue")) == 1
        assert second.action == "found"
        assert second.github_number == first.github_number
        assert github.calls_to("set_issue_labels") == [(first.github_number, ["status:todo"])]

        issue = await get_issue(store, "i1")
        assert issue.github_issue_number == first.github_number

    async def test_already_linked_skips(self, store, github, worker):
        """A linked issue causes no GitHub calls."""
        await seed_linked_issue(store)

        result = await worker.sync("i1")

        assert result.action == "skipped"
        assert github.calls == []

    async def test_missing_issue_skips(self, github, worker):
        result = await worker.sync("nope")

        assert result.action == "skipped"
        assert github.calls == []


class TestConcurrentEdits:
    """Tests for the field-level link merge."""

    async def test_title_edit_during_sync_survives(self, store):
        """A title change made while GitHub is called is not reverted."""

        class EditingGitHub(FakeGitHubClient):
            async def create_issue(self, title, body, labels):
                await update_issue(store, "i1", title="Crash on save")
                return await super().create_issue(title, body, labels)

        await seed_issue(store, githubSyncStatus="creating")

        result = await IssueSyncWorker(store, EditingGitHub()).sync("i1")

        assert result.success
        issue = await get_issue(store, "i1")
        assert issue.title == "Crash on save"
        assert issue.github_issue_number == result.github_number
        assert issue.github_sync_status is GithubSyncStatus.SYNCED

    async def test_status_edit_during_sync_survives(self, store):
        """A status change made while GitHub is called is kept."""

        class EditingGitHub(FakeGitHubClient):
            async def search_issues(self, query):
                await update_issue(store, "i1", status="done")
                return await super().search_issues(query)

        await seed_issue(store, githubSyncStatus="creating")

        await IssueSyncWorker(store, EditingGitHub()).sync("i1")

        issue = await get_issue(store, "i1")
        assert issue.status.value == "done"
        assert issue.is_linked

    async def test_severity_cleared_during_sync_stays_cleared(self, store):
        """A field deleted while GitHub is called is not restored, nor pushed as a label."""

        class EditingGitHub(FakeGitHubClient):
            async def create_issue(self, title, body, labels):
                await update_issue(store, "i1", severity=None)
                return await super().create_issue(title, body, labels)

        github = EditingGitHub()
        await seed_issue(store, githubSyncStatus="creating", severity="high")

        await IssueSyncWorker(store, github).sync("i1")

        material = await store.get(ISSUES, "i1")
        assert "severity" not in material
        issue = await get_issue(store, "i1")
        assert issue.severity is None
        assert issue.is_linked

        result = await LabelSyncWorker(store, github).sync("i1")

        assert result.labels == ["status:todo"]
        assert github.issues[issue.github_issue_number].labels == ["status:todo"]


class TestIssueFailure:
    """Tests for failure recording."""

    async def test_create_failure_recorded(self, store, github, worker):
        """A GitHub error moves the issue to error with the message."""
        await seed_issue(store, githubSyncStatus="creating")
        github.fail("create_issue", GithubApiError(422, "Validation Failed"))

        result = await worker.sync("i1")

        assert not result.success
        assert isinstance(result.error, GithubApiError)

        issue = await get_issue(store, "i1")
        assert issue.github_sync_status is GithubSyncStatus.ERROR
        assert issue.github_sync_error == "GitHub API error 422: Validation Failed"
        assert issue.github_repo == TEST_REPO
        assert not issue.is_linked

    async def test_error_message_truncated(self, store, github, worker):
        """Stored errors are clipped."""
        await seed_issue(store, githubSyncStatus="creating")
        github.fail("search_issues", GithubApiError(500, "x" * 5000))

        await worker.sync("i1")

        issue = await get_issue(store, "i1")
        assert len(issue.github_sync_error) == MAX_ERROR_LENGTH

    async def test_failure_keeps_local_fields(self, store, github, worker):
        """The error delta touches only sync fields."""
        await seed_issue(store, githubSyncStatus="creating", title="Keep me")
        github.fail("search_issues", GithubApiError(None, "timed out"))

        await worker.sync("i1")

        issue = await get_issue(store, "i1")
        assert issue.title == "Keep me"
        assert issue.body == "desc"

    async def test_malformed_document_recorded(self, store, github, worker):
        """A document that does not parse ends in error instead of raising."""
        await store.insert(
            ISSUES, "i1", make_issue_document(status="bogus", githubSyncStatus="creating")
        )

        result = await worker.sync("i1")

        assert not result.success
        assert github.calls == []
        material = await store.get(ISSUES, "i1")
        assert material["githubSyncStatus"] == "error"
        assert "status" in material["githubSyncError"]
