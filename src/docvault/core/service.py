"""Document service: keeps vault files and the SQL index consistent and emits domain events"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from docvault.core import events
from docvault.core.models import Block, DocumentFile, DocumentMeta, utc_now
from docvault.core.ports import EventEmitter, Indexer, ProjectCache
from docvault.core.utils.paths import generate_document_path, validate_alias
from docvault.crud import documents
from docvault.crud.documents import DocumentFilters, DocumentStore
from docvault.crud.models import Document
from docvault.crud.vault import FileManager, Vault
from docvault.exceptions import DocVaultError, DocumentValidationError, IndexingError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


@dataclass
class SaveRequest:
    """Create when path is empty, otherwise overwrite the document at path."""
    project_alias: str
    title: str
    blocks: list[Union[Block, dict[str, Any]]] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    path: str = ""


@dataclass
class DocumentWithTags:
    document: Document
    file: DocumentFile
    tags: list[str]


def _require_path(path: str) -> str:
    if not path or not path.strip():
        raise DocumentValidationError("path is required", field="path")
    return path


def _require_alias(alias: str) -> str:
    alias = (alias or "").strip()
    try:
        validate_alias(alias)
    except DocumentValidationError as e:
        raise DocumentValidationError(f"invalid project_alias: {e}", field="project_alias") from e
    return alias


class DocumentService:

    def __init__(
        self,
        store: DocumentStore,
        vault: Vault,
        indexer: Indexer,
        project_cache: Optional[ProjectCache] = None,
        event_bus: Optional[EventEmitter] = None,
        ):
        self.store = store
        self.file_manager = FileManager(vault)
        self.indexer = indexer
        self.project_cache = project_cache
        self.event_bus = event_bus
        self._save_lock = threading.Lock()

    # --- events ---

    def _emit(self, name: str, payload: dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(name, payload)

    def _project_id(self, alias: str) -> str:
        """Resolve a project id through the cache, falling back to the alias itself."""
        if self.project_cache is None:
            return alias
        try:
            project = self.project_cache.get_by_alias(alias)
        except Exception as e:
            logger.warning("project lookup failed for %s: %s", alias, e)
            return alias
        return getattr(project, "id", None) or alias

    def _emit_count_changed(self, alias: str) -> None:
        if self.event_bus is None:
            return
        try:
            count = self.store.count_by_project(alias)
        except Exception as e:
            logger.warning("failed to count documents for %s: %s", alias, e)
            return
        self._emit(events.ENTRY_COUNT_CHANGED, {"projectId": self._project_id(alias), "count": count})

    # --- create / update ---

    def save(self, req: SaveRequest) -> str:
        """Write the vault file and index it; returns the document path.

        A file written for a save whose indexing fails is removed again and IndexingError raised.
        """
        with self._save_lock:
            alias = _require_alias(req.project_alias)
            title = req.title or ""
            if not title.strip():
                raise DocumentValidationError("title is required", field="title")

            is_new = not req.path
            doc_path = generate_document_path(alias, uuid.uuid4().hex[:12]) if is_new else req.path

            now = utc_now()
            doc_file = DocumentFile(
                meta=DocumentMeta(project=alias, title=title, tags=list(req.tags or []), created=now, updated=now),
                blocks=list(req.blocks or []),
            )
            if not is_new:
                existing = self.file_manager.read_file(doc_path)
                doc_file.meta.created = existing.meta.created
                doc_file.meta.aliases = list(existing.meta.aliases)

            self.file_manager.write_file(doc_path, doc_file)

            try:
                self.indexer.index_document(doc_path)
            except Exception as e:
                logger.error("failed to index %s: %s", doc_path, e)
                try:
                    self.file_manager.delete_file(doc_path)
                except DocVaultError as cleanup:
                    logger.warning("failed to remove unindexed file %s: %s", doc_path, cleanup)
                raise IndexingError(doc_path, e) from e

        payload = {"path": doc_path, "projectId": self._project_id(alias), "title": title}
        if is_new:
            self._emit(events.ENTRY_CREATED, payload)
            self._emit_count_changed(alias)
        else:
            self._emit(events.ENTRY_UPDATED, payload)
        logger.info("saved %s (project=%s, new=%s)", doc_path, alias, is_new)
        return doc_path

    # --- reads ---

    def get(self, path: str) -> DocumentWithTags:
        """Index row (active first, then archived) plus the vault file."""
        _require_path(path)
        doc = self.store.get_by_path(path) or self.store.get_by_path_including_deleted(path)
        if doc is None:
            raise NotFoundError(f"document not found: {path}", path=path)

        doc_file = self.file_manager.read_file(path)
        self._emit(events.ENTRY_ACCESSED, {
            "path": path, "projectId": self._project_id(doc.project_alias), "title": doc.title,
        })
        return DocumentWithTags(document=doc, file=doc_file, tags=list(doc_file.meta.tags))

    def list_by_project(
        self,
        project_alias: str,
        include_archived: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
        ) -> list[Document]:
        alias = _require_alias(project_alias)
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        offset = max(offset, 0)

        docs = self.store.get(DocumentFilters(project_alias=alias, include_deleted=include_archived))
        page = docs[offset:offset + limit]
        self._emit(events.ENTRY_LIST_ACCESSED, {
            "projectId": self._project_id(alias), "count": len(page), "limit": limit, "offset": offset,
        })
        return page

    # --- lifecycle ---

    def soft_delete(self, path: str) -> None:
        _require_path(path)
        doc = self.store.get_by_path(path)
        if doc is None:
            raise NotFoundError(f"document not found or already deleted: {path}", path=path)
        self.store.soft_delete(path)

        try:
            self.indexer.remove_document(path)
        except Exception as e:
            logger.warning("failed to remove %s from index: %s", path, e)

        self._emit(events.ENTRY_DELETED, {"path": path, "projectId": self._project_id(doc.project_alias)})
        self._emit_count_changed(doc.project_alias)
        logger.info("archived %s", path)

    def restore(self, path: str) -> None:
        _require_path(path)
        doc = self.store.get_by_path_including_deleted(path)
        if doc is None or doc.is_active:
            raise NotFoundError(f"document not found or not deleted: {path}", path=path)
        self.store.restore(path)

        try:
            self.indexer.reindex_document(path)
        except Exception as e:
            logger.warning("failed to reindex %s: %s", path, e)

        self._emit(events.ENTRY_RESTORED, {"path": path, "projectId": self._project_id(doc.project_alias)})
        self._emit_count_changed(doc.project_alias)
        logger.info("restored %s", path)

    def soft_delete_by_project(self, project_alias: str) -> int:
        alias = _require_alias(project_alias)
        count = self.store.soft_delete_by_project(alias)
        if count:
            self._emit_count_changed(alias)
        return count

    def hard_delete(self, path: str) -> None:
        """Remove the vault file, then the index row. Works on active and archived documents."""
        _require_path(path)
        doc = self.store.get_by_path_including_deleted(path)
        if doc is None:
            raise NotFoundError(f"document not found: {path}", path=path)

        try:
            self.file_manager.delete_file(path)
        except NotFoundError:
            logger.warning("file already missing for %s, removing index row", path)
        self.store.hard_delete(path)

        try:
            self.indexer.remove_document(path)
        except Exception as e:
            logger.warning("failed to remove %s from index: %s", path, e)

        self._emit(events.ENTRY_DELETED, {
            "path": path, "projectId": self._project_id(doc.project_alias), "hard": True,
        })
        self._emit_count_changed(doc.project_alias)
        logger.info("hard deleted %s", path)

    def hard_delete_batch(self, paths: list[str]) -> None:
        """Delete every row in one transaction, then clean up files and search entries best-effort.

        Any missing path aborts the whole batch before a single row is removed.
        """
        if not paths:
            raise DocumentValidationError("paths list cannot be empty", field="paths")
        if any(not p or not p.strip() for p in paths):
            raise DocumentValidationError("invalid empty path in batch", field="paths")

        deleted: dict[str, str] = {}
        with self.store.transaction() as session:
            for path in paths:
                doc = documents.get_by_path(session, path, include_deleted=True)
                if doc is None:
                    raise NotFoundError(f"document not found: {path}", path=path)
                deleted[path] = doc.project_alias
            for path in deleted:
                documents.hard_delete(session, path)

        for path, alias in deleted.items():
            try:
                self.file_manager.delete_file(path)
            except DocVaultError as e:
                logger.warning("failed to delete file %s in batch: %s", path, e)
            try:
                self.indexer.remove_document(path)
            except Exception as e:
                logger.warning("failed to remove %s from index in batch: %s", path, e)
            self._emit(events.ENTRY_DELETED, {"path": path, "projectId": self._project_id(alias), "hard": True})

        for alias in dict.fromkeys(deleted.values()):
            self._emit_count_changed(alias)
        logger.info("hard deleted %d documents in batch", len(deleted))

    def hard_delete_by_project(self, project_alias: str) -> int:
        alias = _require_alias(project_alias)
        docs = self.store.get(DocumentFilters(project_alias=alias, include_deleted=True))
        if not docs:
            logger.info("no documents to hard delete for %s", alias)
            return 0
        self.hard_delete_batch([d.path for d in docs])
        return len(docs)
