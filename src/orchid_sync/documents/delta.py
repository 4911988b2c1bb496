"""CRDT delta builder.

Documents are Yjs documents whose record lives in a top-level map named
``fields``. Sync workers never write a whole document back: they load the
last known state into a scratch document, capture its state vector, apply
their field changes in one transaction, and encode only the update since
that vector. Merging such a delta into the store combines with concurrent
local edits instead of replacing them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pycrdt import Doc, Map

FIELDS_KEY = "fields"
"""Name of the top-level map holding a record's fields."""

DELTA_ORIGIN = "server"


def _load(state: bytes | None) -> tuple[Doc, Map]:
    doc = Doc()
    fields = doc.get(FIELDS_KEY, type=Map)
    if state:
        doc.apply_update(state)
    return doc, fields


def _prelim(value: Any) -> Any:
    """Convert nested dicts into CRDT maps so they merge field by field."""
    if isinstance(value, Mapping):
        return Map({key: _prelim(item) for key, item in value.items()})
    return value


def build_delta(
    base_state: bytes | None,
    set_fields: Mapping[str, Any],
    delete_fields: Iterable[str] = (),
) -> bytes:
    """Build an incremental update expressing exactly the given field changes.

    Args:
        base_state: Last known full state of the document (None if unknown)
        set_fields: Field assignments; ``None`` values are skipped
        delete_fields: Field names to remove; absent names are ignored

    Returns:
        Encoded update containing only the changes made here
    """
    doc, fields = _load(base_state)
    before = doc.get_state()

    with doc.transaction(origin=DELTA_ORIGIN):
        for key, value in set_fields.items():
            if value is None:
                continue
            fields[key] = _prelim(value)
        for key in delete_fields:
            if key in fields:
                del fields[key]

    return doc.get_update(before)


def merge_updates(state: bytes | None, *updates: bytes) -> bytes:
    """Apply updates on top of a state and return the merged full state."""
    doc, _ = _load(state)
    for update in updates:
        doc.apply_update(update)
    return doc.get_update()


def _restore_ints(value: Any) -> Any:
    """Yjs stores numbers as doubles; record numbers are all integral."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _restore_ints(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_restore_ints(item) for item in value]
    return value


def read_fields(state: bytes | None) -> dict[str, Any]:
    """Materialize the ``fields`` map of a document state as plain Python."""
    if not state:
        return {}
    _, fields = _load(state)
    return _restore_ints(fields.to_py() or {})


def initial_document(fields: Mapping[str, Any]) -> bytes:
    """Encode the first full state of a locally-created record."""
    return build_delta(None, fields)
