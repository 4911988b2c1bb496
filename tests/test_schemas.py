"""Tests for the Issue/Reply schemas and their enums."""

import pytest

from orchid_sync.schemas import (
    Author,
    GithubSyncStatus,
    InvalidSyncTransition,
    Issue,
    IssueStatus,
    Reply,
    ReplyType,
    Severity,
)
from tests.factories import make_issue_document, make_linked_issue_document, make_reply_document


class TestSeverityParse:
    """Tests for Severity.parse."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("high", Severity.HIGH),
            ("HIGH", Severity.HIGH),
            ("  Critical ", Severity.CRITICAL),
            ("low", Severity.LOW),
        ],
    )
    def test_known_values(self, raw, expected):
        """Severity names match case-insensitively."""
        assert Severity.parse(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "urgent", "high!"])
    def test_unknown_values(self, raw):
        """Anything else yields None."""
        assert Severity.parse(raw) is None


class TestGithubSyncStatus:
    """Tests for the githubSyncStatus state machine."""

    @pytest.mark.parametrize(
        ("current", "allowed"),
        [
            (None, True),
            (GithubSyncStatus.PENDING, True),
            (GithubSyncStatus.ERROR, True),
            (GithubSyncStatus.CREATING, False),
            (GithubSyncStatus.SYNCED, False),
        ],
    )
    def test_can_begin_sync(self, current, allowed):
        """Only unset, pending and error entities may be marked creating."""
        assert GithubSyncStatus.can_begin_sync(current) is allowed

    def test_creating_resolves_to_synced_or_error(self):
        """A running sync ends in synced or error."""
        assert GithubSyncStatus.CREATING.can_transition_to(GithubSyncStatus.SYNCED)
        assert GithubSyncStatus.CREATING.can_transition_to(GithubSyncStatus.ERROR)
        assert not GithubSyncStatus.CREATING.can_transition_to(GithubSyncStatus.PENDING)

    def test_synced_is_terminal(self):
        """Nothing leaves synced."""
        for target in GithubSyncStatus:
            assert not GithubSyncStatus.SYNCED.can_transition_to(target)

    def test_transition_from_unset_treated_as_pending(self):
        """An unset status behaves as pending."""
        result = GithubSyncStatus.transition(None, GithubSyncStatus.CREATING)
        assert result is GithubSyncStatus.CREATING

    def test_illegal_transition_raises(self):
        """Skipping creating is rejected."""
        with pytest.raises(InvalidSyncTransition, match="pending to synced"):
            GithubSyncStatus.transition(GithubSyncStatus.PENDING, GithubSyncStatus.SYNCED)

    def test_invalid_transition_is_value_error(self):
        """InvalidSyncTransition can be caught as ValueError."""
        assert issubclass(InvalidSyncTransition, ValueError)


class TestIssue:
    """Tests for the Issue schema."""

    def test_from_document_camel_case(self):
        """Stored camelCase fields map to snake_case attributes."""
        issue = Issue.from_document(make_issue_document(severity="high"))

        assert issue.id == "i1"
        assert issue.status is IssueStatus.TODO
        assert issue.severity is Severity.HIGH
        assert issue.created_by.name == "Ada"
        assert issue.github_sync_status is None
        assert not issue.is_linked

    def test_linked_issue(self):
        """githubIssueUrl marks the issue as linked."""
        issue = Issue.from_document(make_linked_issue_document(number=7))

        assert issue.is_linked
        assert issue.github_issue_number == 7
        assert issue.github_sync_status is GithubSyncStatus.SYNCED

    def test_crdt_numbers_coerced_to_int(self):
        """Whole-number floats from the CRDT map validate as ints."""
        document = make_issue_document()
        document["createdAt"] = float(document["createdAt"])
        document["githubIssueNumber"] = 42.0

        issue = Issue.from_document(document)

        assert issue.github_issue_number == 42
        assert isinstance(issue.created_at, int)

    def test_unknown_fields_ignored(self):
        """Fields written by other clients do not break parsing."""
        issue = Issue.from_document(make_issue_document(timestamp=123, pinned=True))
        assert issue.title == "Bug"

    def test_to_document_omits_unset(self):
        """to_document uses aliases and drops None fields."""
        issue = Issue(
            id="i2",
            title="T",
            created_at=1,
            updated_at=1,
            created_by=Author(name="Ada", color="#000"),
        )
        document = issue.to_document()

        assert document["createdBy"] == {"name": "Ada", "color": "#000"}
        assert document["status"] == "backlog"
        assert "severity" not in document
        assert "githubIssueUrl" not in document


class TestReply:
    """Tests for the Reply schema."""

    def test_from_document(self):
        """Replies parse with their parent id and author."""
        reply = Reply.from_document(make_reply_document())

        assert reply.issue_id == "i1"
        assert reply.type is ReplyType.REPLY
        assert reply.author.name == "Grace"
        assert not reply.is_linked

    def test_linked_by_comment_id(self):
        """A comment id marks the reply as linked."""
        reply = Reply.from_document(make_reply_document(githubCommentId=1001))
        assert reply.is_linked
