"""Unit tests for crud/documents.py"""

from datetime import datetime

import pytest
from sqlalchemy import update

from builders import DOC_PATH, make_row
from docvault.crud.documents import (
    DocumentFilters,
    create_document,
    delete_content,
    get_by_path,
    get_content,
    get_document_tags,
    hard_delete,
    replace_document_tags,
    upsert_content,
    upsert_document,
    validate_row,
)
from docvault.crud.models import Document
from docvault.exceptions import DocumentValidationError, NotFoundError


# --- helpers ---

def _path(n: int, alias: str = "@test") -> str:
    return f"projects/{alias}/doc-{alias[1:]}-{n:012d}.json"


def _set_created(store, path: str, created: datetime) -> None:
    with store.transaction() as s:
        s.connection().execute(update(Document.__table__).where(Document.__table__.c.path == path)
                               .values(created_at=created))


# --- validate_row ---

@pytest.mark.parametrize("fields, message", [
    ({"path": "docs/x.json"}, "invalid path"),
    ({"project_alias": "test"}, "invalid project_alias"),
    ({"size_bytes": -1}, "size_bytes"),
    ({"mtime_ns": -1}, "mtime_ns"),
])
def test_validate_row_rejects(fields, message):
    """Bad paths, aliases and negative sizes fail validation."""
    with pytest.raises(DocumentValidationError, match=message):
        validate_row(make_row(**fields))


def test_validate_row_requires_document():
    """None is rejected."""
    with pytest.raises(DocumentValidationError, match="document is required"):
        validate_row(None)


# --- create / read ---

def test_create_populates_timestamps(store):
    """create sets created_at == updated_at and no deleted_at."""
    row = store.create(make_row(size_bytes=10, has_code=True))
    assert row.created_at is not None
    assert row.created_at == row.updated_at
    assert row.deleted_at is None
    assert row.is_active and not row.is_deleted
    assert row.belongs_to_project("@test")


def test_create_rejects_invalid_row(store):
    """Invalid rows never reach the table."""
    with pytest.raises(DocumentValidationError):
        store.create(make_row(project_alias="bad"))
    assert store.get() == []


def test_get_by_path_not_found(store):
    """Returns None when the path is not in the database."""
    assert store.get_by_path(DOC_PATH) is None
    assert store.get_by_path_including_deleted(DOC_PATH) is None


def test_get_by_path_hides_archived(store):
    """Archived rows are only visible with include_deleted."""
    store.create(make_row())
    store.soft_delete(DOC_PATH)
    assert store.get_by_path(DOC_PATH) is None
    assert store.get_by_path_including_deleted(DOC_PATH).is_deleted


# --- update ---

def test_update_changes_indexed_fields(store):
    """update overwrites the indexed fields of an active row."""
    created = store.create(make_row(title="Old"))
    updated = store.update(make_row(title="New", has_links=True))
    assert updated.title == "New"
    assert updated.has_links
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at


def test_update_archived_row_is_not_found(store):
    """update only touches active rows."""
    store.create(make_row())
    store.soft_delete(DOC_PATH)
    with pytest.raises(NotFoundError):
        store.update(make_row(title="New"))


def test_update_missing_row_is_not_found(store):
    """update of an unknown path raises NotFoundError."""
    with pytest.raises(NotFoundError, match="no document found"):
        store.update(make_row())


def test_upsert_keeps_archived_state(store):
    """upsert refreshes an archived row without restoring it."""
    store.create(make_row(title="Old"))
    store.soft_delete(DOC_PATH)
    with store.transaction() as s:
        row = upsert_document(s, make_row(title="New"))
    assert row.title == "New"
    assert row.is_deleted


def test_upsert_creates_missing_row(store):
    """upsert inserts when nothing matched."""
    with store.transaction() as s:
        upsert_document(s, make_row())
    assert store.get_by_path(DOC_PATH) is not None


# --- lifecycle ---

def test_soft_delete_twice_is_not_found(store):
    """Archiving an archived row reports not found or already deleted."""
    store.create(make_row())
    store.soft_delete(DOC_PATH)
    with pytest.raises(NotFoundError, match="already deleted"):
        store.soft_delete(DOC_PATH)


def test_restore_active_row_is_not_found(store):
    """Restoring an active row reports not found or not deleted."""
    store.create(make_row())
    with pytest.raises(NotFoundError, match="not deleted"):
        store.restore(DOC_PATH)


def test_soft_delete_then_restore(store):
    """restore clears deleted_at."""
    store.create(make_row())
    store.soft_delete(DOC_PATH)
    store.restore(DOC_PATH)
    assert store.get_by_path(DOC_PATH).is_active


def test_hard_delete_removes_row_tags_and_content(store):
    """hard_delete removes every trace of the path."""
    store.create(make_row())
    with store.transaction() as s:
        replace_document_tags(s, DOC_PATH, ["a"])
        upsert_content(s, DOC_PATH, title="Doc", body="text")
    store.hard_delete(DOC_PATH)
    assert store.get_by_path_including_deleted(DOC_PATH) is None
    assert store.get_document_tags(DOC_PATH) == []
    assert store.get_content(DOC_PATH) is None


def test_hard_delete_archived_row(store):
    """Archived rows can be hard deleted."""
    store.create(make_row())
    store.soft_delete(DOC_PATH)
    store.hard_delete(DOC_PATH)
    assert store.get_by_path_including_deleted(DOC_PATH) is None


def test_hard_delete_missing_row(store):
    """Deleting nothing raises NotFoundError."""
    with pytest.raises(NotFoundError, match="document not found"):
        store.hard_delete(DOC_PATH)


def test_hard_delete_then_recreate_in_one_session(session):
    """A path removed in a session can be inserted again in the same session."""
    create_document(session, make_row())
    assert get_by_path(session, DOC_PATH) is not None
    hard_delete(session, DOC_PATH)
    create_document(session, make_row(title="Again"))
    assert get_by_path(session, DOC_PATH).title == "Again"


def test_soft_delete_by_project(store):
    """All active rows of a project are archived; others untouched."""
    store.create(make_row(_path(1)))
    store.create(make_row(_path(2)))
    store.create(make_row(_path(3, "@other"), project_alias="@other"))
    store.soft_delete(_path(2))

    assert store.soft_delete_by_project("@test") == 1
    assert store.count_by_project("@test") == 0
    assert store.count_by_project("@test", include_deleted=True) == 2
    assert store.count_by_project("@other") == 1


def test_soft_delete_by_project_invalid_alias(store):
    """The alias is validated."""
    with pytest.raises(DocumentValidationError):
        store.soft_delete_by_project("nope")


# --- get(filters) ---

def test_get_orders_newest_first(store):
    """Rows are ordered by created_at descending."""
    for n in (1, 2, 3):
        store.create(make_row(_path(n)))
    _set_created(store, _path(1), datetime(2024, 1, 3))
    _set_created(store, _path(2), datetime(2024, 1, 1))
    _set_created(store, _path(3), datetime(2024, 1, 2))
    assert [d.path for d in store.get()] == [_path(1), _path(3), _path(2)]


def test_get_breaks_ties_by_path(store):
    """Equal created_at falls back to path order."""
    for n in (2, 1):
        store.create(make_row(_path(n)))
        _set_created(store, _path(n), datetime(2024, 1, 1))
    assert [d.path for d in store.get()] == [_path(1), _path(2)]


def test_get_filters_combine(store):
    """Filters are AND-combined."""
    store.create(make_row(_path(1), title="Python tips", has_code=True))
    store.create(make_row(_path(2), title="Python news"))
    store.create(make_row(_path(3, "@other"), project_alias="@other", title="Python", has_code=True))

    docs = store.get(DocumentFilters(project_alias="@test", title_like="Python", has_code=True))
    assert [d.path for d in docs] == [_path(1)]
    assert len(store.get(DocumentFilters(title_like="tips"))) == 1
    assert len(store.get(DocumentFilters(has_images=True))) == 0


def test_get_include_deleted(store):
    """Archived rows appear only with include_deleted."""
    store.create(make_row(_path(1)))
    store.create(make_row(_path(2)))
    store.soft_delete(_path(2))
    assert len(store.get(DocumentFilters(project_alias="@test"))) == 1
    assert len(store.get(DocumentFilters(project_alias="@test", include_deleted=True))) == 2


def test_get_loads_sorted_tags(store):
    """Each result carries its tags, sorted."""
    store.create(make_row())
    with store.transaction() as s:
        replace_document_tags(s, DOC_PATH, ["zeta", "Alpha", "alpha", " mid "])
    [doc] = store.get()
    assert doc.tags == ["alpha", "mid", "zeta"]


# --- tags / content ---

def test_replace_document_tags_swaps_set(session):
    """Replacing tags drops the old set."""
    create_document(session, make_row())
    replace_document_tags(session, DOC_PATH, ["a", "b"])
    assert replace_document_tags(session, DOC_PATH, ["c"]) == ["c"]
    assert get_document_tags(session, DOC_PATH) == ["c"]


def test_upsert_content_replaces_row(session):
    """The search content row is overwritten, then removable."""
    create_document(session, make_row())
    upsert_content(session, DOC_PATH, title="t", body="one")
    upsert_content(session, DOC_PATH, title="t", body="two")
    assert get_content(session, DOC_PATH).body == "two"
    assert delete_content(session, DOC_PATH) is True
    assert delete_content(session, DOC_PATH) is False


# --- transactions ---

def test_transaction_rolls_back_on_error(store):
    """An exception inside transaction() discards every change."""
    with pytest.raises(RuntimeError):
        with store.transaction() as s:
            create_document(s, make_row())
            raise RuntimeError("abort")
    assert store.get_by_path(DOC_PATH) is None
