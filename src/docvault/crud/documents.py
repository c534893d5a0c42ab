"""Document index persistence: lifecycle (create, update, soft/hard delete, restore), filters and tags

Module-level functions take a Session, flush, and never commit; the caller controls
the transaction. DocumentStore wraps each one in its own transaction.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from sqlalchemy import delete, func, insert, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from docvault.core.utils.paths import validate_alias, validate_document_path
from docvault.crud.database import get_session
from docvault.crud.models import Document, DocumentContent, DocumentTag, utc_now
from docvault.exceptions import DocumentValidationError, NotFoundError

logger = logging.getLogger(__name__)

doc_table = Document.__table__
tag_table = DocumentTag.__table__
content_table = DocumentContent.__table__


@dataclass
class DocumentFilters:
    """AND-combined filters for get_documents. None means 'do not filter'."""
    project_alias: Optional[str] = None
    title_like: Optional[str] = None
    has_code: Optional[bool] = None
    has_images: Optional[bool] = None
    has_links: Optional[bool] = None
    include_deleted: bool = False


def validate_row(doc: Document) -> None:
    """Raise DocumentValidationError when an index row breaks path, alias or size rules."""
    if doc is None:
        raise DocumentValidationError("document is required")
    try:
        validate_document_path(doc.path)
    except ValueError as e:
        raise DocumentValidationError(f"invalid path: {e}", field="path") from e
    try:
        validate_alias(doc.project_alias)
    except DocumentValidationError as e:
        raise DocumentValidationError(f"invalid project_alias: {e}", field="project_alias") from e
    if doc.size_bytes < 0:
        raise DocumentValidationError("size_bytes must be non-negative", field="size_bytes")
    if doc.mtime_ns < 0:
        raise DocumentValidationError("mtime_ns must be non-negative", field="mtime_ns")


def _execute(session: Session, stmt) -> int:
    """Run a Core statement on the session's connection and return the affected row count."""
    return session.connection().execute(stmt).rowcount


def _indexed_values(doc: Document) -> dict:
    return {
        "project_alias": doc.project_alias,
        "title": doc.title,
        "mtime_ns": doc.mtime_ns,
        "size_bytes": doc.size_bytes,
        "has_code": doc.has_code,
        "has_images": doc.has_images,
        "has_links": doc.has_links,
        "updated_at": utc_now(),
    }


def _forget(session: Session, path: str) -> None:
    """Detach a cached Document whose row was removed behind the ORM's back."""
    obj = session.identity_map.get(session.identity_key(Document, path))
    if obj is not None:
        session.expunge(obj)


# --- reads ---

def get_by_path(session: Session, path: str, include_deleted: bool = False) -> Document | None:
    """Return the Document at path, or None. Archived rows only when include_deleted."""
    stmt = select(Document).where(Document.path == path).execution_options(populate_existing=True)
    if not include_deleted:
        stmt = stmt.where(col(Document.deleted_at).is_(None))
    return session.exec(stmt).one_or_none()


def get_documents(session: Session, filters: DocumentFilters | None = None) -> list[Document]:
    """Return matching rows, newest first (ties broken by path), with tags loaded."""
    filters = filters or DocumentFilters()
    stmt = select(Document)
    if not filters.include_deleted:
        stmt = stmt.where(col(Document.deleted_at).is_(None))
    if filters.project_alias:
        stmt = stmt.where(Document.project_alias == filters.project_alias)
    if filters.title_like:
        stmt = stmt.where(col(Document.title).contains(filters.title_like))
    for name in ("has_code", "has_images", "has_links"):
        value = getattr(filters, name)
        if value is not None:
            stmt = stmt.where(getattr(Document, name) == value)
    stmt = stmt.order_by(col(Document.created_at).desc(), col(Document.path))
    return list(session.exec(stmt.execution_options(populate_existing=True)).all())


def count_by_project(session: Session, project_alias: str, include_deleted: bool = False) -> int:
    stmt = select(func.count()).select_from(Document).where(Document.project_alias == project_alias)
    if not include_deleted:
        stmt = stmt.where(col(Document.deleted_at).is_(None))
    return session.exec(stmt).one()


def get_document_tags(session: Session, path: str) -> list[str]:
    return list(session.exec(select(DocumentTag.tag).where(DocumentTag.path == path).order_by(DocumentTag.tag)).all())


# --- mutations ---

def create_document(session: Session, doc: Document) -> Document:
    """Insert a new row with store-populated timestamps. Flushes but does not commit."""
    validate_row(doc)
    now = utc_now()
    doc.created_at = now
    doc.updated_at = now
    doc.deleted_at = None
    session.add(doc)
    session.flush()
    session.refresh(doc)
    return doc


def update_document(session: Session, doc: Document) -> Document:
    """Overwrite an active row's indexed fields. Raises NotFoundError when no active row matched."""
    validate_row(doc)
    affected = _execute(session, update(doc_table).where(
        doc_table.c.path == doc.path, doc_table.c.deleted_at.is_(None),
    ).values(**_indexed_values(doc)))
    if affected == 0:
        raise NotFoundError(f"no document found with path {doc.path}", path=doc.path)
    return get_by_path(session, doc.path)


def upsert_document(session: Session, doc: Document) -> Document:
    """Create the row, or refresh its indexed fields in place whatever its lifecycle state."""
    validate_row(doc)
    affected = _execute(session, update(doc_table).where(doc_table.c.path == doc.path).values(**_indexed_values(doc)))
    if affected == 0:
        return create_document(session, doc)
    return get_by_path(session, doc.path, include_deleted=True)


def soft_delete(session: Session, path: str) -> None:
    now = utc_now()
    affected = _execute(session, update(doc_table).where(
        doc_table.c.path == path, doc_table.c.deleted_at.is_(None),
    ).values(deleted_at=now, updated_at=now))
    if affected == 0:
        raise NotFoundError(f"document not found or already deleted: {path}", path=path)


def restore(session: Session, path: str) -> None:
    affected = _execute(session, update(doc_table).where(
        doc_table.c.path == path, doc_table.c.deleted_at.is_not(None),
    ).values(deleted_at=None, updated_at=utc_now()))
    if affected == 0:
        raise NotFoundError(f"document not found or not deleted: {path}", path=path)


def hard_delete(session: Session, path: str) -> None:
    """Remove the row, its tags and its search content, whatever the lifecycle state."""
    remove_all_document_tags(session, path)
    delete_content(session, path)
    affected = _execute(session, delete(doc_table).where(doc_table.c.path == path))
    if affected == 0:
        raise NotFoundError(f"document not found: {path}", path=path)
    _forget(session, path)


def soft_delete_by_project(session: Session, project_alias: str) -> int:
    """Archive every active row of a project; returns how many were archived."""
    validate_alias(project_alias)
    now = utc_now()
    return _execute(session, update(doc_table).where(
        doc_table.c.project_alias == project_alias, doc_table.c.deleted_at.is_(None),
    ).values(deleted_at=now, updated_at=now))


def replace_document_tags(session: Session, path: str, tags: Iterable[str]) -> list[str]:
    """Swap the tag set of a document; tags are trimmed, lower-cased and de-duplicated."""
    normalized = [t for t in dict.fromkeys(t.strip().lower() for t in tags) if t]
    remove_all_document_tags(session, path)
    if normalized:
        _execute(session, insert(tag_table).values([{"path": path, "tag": t} for t in normalized]))
    return sorted(normalized)


def remove_all_document_tags(session: Session, path: str) -> int:
    return _execute(session, delete(tag_table).where(tag_table.c.path == path))


def upsert_content(session: Session, path: str, title: str = "", headings: str = "", body: str = "",
                   code: str = "") -> None:
    delete_content(session, path)
    _execute(session, insert(content_table).values(path=path, title=title, headings=headings, body=body, code=code))


def delete_content(session: Session, path: str) -> bool:
    return _execute(session, delete(content_table).where(content_table.c.path == path)) > 0


def get_content(session: Session, path: str) -> DocumentContent | None:
    return session.exec(
        select(DocumentContent).where(DocumentContent.path == path).execution_options(populate_existing=True)
    ).one_or_none()


class DocumentStore:
    """Engine-bound facade: every call runs in its own transaction."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on any exception."""
        with get_session(self.engine) as session, session.begin():
            yield session

    def create(self, doc: Document) -> Document:
        with self.transaction() as session:
            return create_document(session, doc)

    def get_by_path(self, path: str) -> Document | None:
        with self.transaction() as session:
            return get_by_path(session, path)

    def get_by_path_including_deleted(self, path: str) -> Document | None:
        with self.transaction() as session:
            return get_by_path(session, path, include_deleted=True)

    def get(self, filters: DocumentFilters | None = None) -> list[Document]:
        with self.transaction() as session:
            return get_documents(session, filters)

    def update(self, doc: Document) -> Document:
        with self.transaction() as session:
            return update_document(session, doc)

    def soft_delete(self, path: str) -> None:
        with self.transaction() as session:
            soft_delete(session, path)

    def restore(self, path: str) -> None:
        with self.transaction() as session:
            restore(session, path)

    def hard_delete(self, path: str) -> None:
        with self.transaction() as session:
            hard_delete(session, path)

    def soft_delete_by_project(self, project_alias: str) -> int:
        with self.transaction() as session:
            count = soft_delete_by_project(session, project_alias)
        logger.info("archived %d documents in %s", count, project_alias)
        return count

    def count_by_project(self, project_alias: str, include_deleted: bool = False) -> int:
        with self.transaction() as session:
            return count_by_project(session, project_alias, include_deleted)

    def get_document_tags(self, path: str) -> list[str]:
        with self.transaction() as session:
            return get_document_tags(session, path)

    def get_content(self, path: str) -> DocumentContent | None:
        with self.transaction() as session:
            return get_content(session, path)
