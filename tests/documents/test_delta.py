"""Tests for the CRDT delta builder."""

from pycrdt import Doc, Map

from orchid_sync.documents import build_delta, initial_document, merge_updates, read_fields
from orchid_sync.documents.delta import FIELDS_KEY


def _external_edit(state: bytes, **fields) -> bytes:
    """Simulate another client editing its own replica of ``state``."""
    doc = Doc()
    remote = doc.get(FIELDS_KEY, type=Map)
    doc.apply_update(state)
    before = doc.get_state()
    with doc.transaction():
        for key, value in fields.items():
            remote[key] = value
    return doc.get_update(before)


class TestBuildDelta:
    """Tests for build_delta."""

    def test_sets_fields_on_empty_base(self):
        """A delta against no base creates the fields."""
        delta = build_delta(None, {"title": "A", "status": "todo"})
        assert read_fields(merge_updates(None, delta)) == {"title": "A", "status": "todo"}

    def test_delta_contains_only_changed_fields(self):
        """Applying the delta alone yields only the fields it set."""
        base = initial_document({"title": "A", "status": "todo"})

        delta = build_delta(base, {"githubIssueUrl": "https://github.com/o/r/issues/1"})

        merged = merge_updates(base, delta)
        assert read_fields(merged) == {
            "title": "A",
            "status": "todo",
            "githubIssueUrl": "https://github.com/o/r/issues/1",
        }
        assert len(delta) < len(merged)

    def test_does_not_clobber_concurrent_edit(self):
        """A worker delta keeps a concurrent title change."""
        base = initial_document({"title": "A", "status": "todo"})
        concurrent = _external_edit(base, title="B")
        store_state = merge_updates(base, concurrent)

        # Worker built its delta from the stale base
        worker_delta = build_delta(base, {"githubIssueUrl": "https://github.com/o/r/issues/1"})
        merged = read_fields(merge_updates(store_state, worker_delta))

        assert merged["title"] == "B"
        assert merged["status"] == "todo"
        assert merged["githubIssueUrl"] == "https://github.com/o/r/issues/1"

    def test_order_of_merge_does_not_matter(self):
        """Merging the two updates in either order converges."""
        base = initial_document({"title": "A"})
        concurrent = _external_edit(base, title="B")
        worker_delta = build_delta(base, {"githubSyncStatus": "synced"})

        one = read_fields(merge_updates(base, concurrent, worker_delta))
        other = read_fields(merge_updates(base, worker_delta, concurrent))

        assert one == other

    def test_delete_fields(self):
        """Deleted fields disappear from the merged state."""
        base = initial_document({"title": "A", "githubSyncError": "boom"})

        delta = build_delta(base, {"githubSyncStatus": "synced"}, ["githubSyncError"])

        assert read_fields(merge_updates(base, delta)) == {
            "title": "A",
            "githubSyncStatus": "synced",
        }

    def test_delete_absent_field_is_noop(self):
        """Deleting a missing key leaves the document unchanged."""
        base = initial_document({"title": "A"})

        delta = build_delta(base, {}, ["githubSyncError"])

        assert read_fields(merge_updates(base, delta)) == {"title": "A"}

    def test_none_values_skipped(self):
        """None assignments are ignored rather than stored."""
        delta = build_delta(None, {"title": "A", "severity": None})
        assert read_fields(merge_updates(None, delta)) == {"title": "A"}

    def test_nested_mapping(self):
        """Nested dicts round-trip through a nested map."""
        state = initial_document({"createdBy": {"name": "Ada", "color": "#f60"}})
        assert read_fields(state) == {"createdBy": {"name": "Ada", "color": "#f60"}}


class TestReadFields:
    """Tests for read_fields."""

    def test_empty_state(self):
        """No state materializes to an empty dict."""
        assert read_fields(None) == {}
        assert read_fields(b"") == {}

    def test_integers_read_back_as_int(self):
        """Numbers round-trip as ints, including inside nested maps."""
        state = initial_document(
            {
                "githubIssueNumber": 42,
                "createdAt": 1705312800000,
                "createdBy": {"name": "Ada", "seen": 3},
            }
        )

        fields = read_fields(state)

        assert fields["githubIssueNumber"] == 42
        assert type(fields["githubIssueNumber"]) is int
        assert type(fields["createdAt"]) is int
        assert type(fields["createdBy"]["seen"]) is int
        assert fields["createdBy"]["name"] == "Ada"
