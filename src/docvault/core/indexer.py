"""Default Indexer: derives the index row, tag set and search content of a vault file"""

import logging
from typing import Optional

from docvault.core.parse import Parser
from docvault.core.ports import Indexer
from docvault.crud.documents import DocumentStore, delete_content, replace_document_tags, upsert_content, upsert_document
from docvault.crud.models import Document
from docvault.crud.vault import FileManager
from docvault.exceptions import DocVaultError

logger = logging.getLogger(__name__)


class SqlIndexer(Indexer):

    def __init__(self, store: DocumentStore, file_manager: FileManager, parser: Optional[Parser] = None):
        self.store = store
        self.file_manager = file_manager
        self.parser = parser or Parser()

    def index_document(self, path: str) -> None:
        """Read, stat and parse the file, then write row, tags and content in one transaction."""
        doc_file = self.file_manager.read_file(path)
        stat = self.file_manager.vault.document_path(path).stat()
        content = self.parser.parse(doc_file)

        row = Document(
            path=path,
            project_alias=doc_file.meta.project,
            title=content.title,
            mtime_ns=stat.st_mtime_ns,
            size_bytes=stat.st_size,
            has_code=content.has_code,
            has_images=content.has_images,
            has_links=content.has_links,
        )
        with self.store.transaction() as session:
            upsert_document(session, row)
            replace_document_tags(session, path, doc_file.meta.tags)
            upsert_content(
                session, path,
                title=content.fts_title,
                headings=content.fts_headings,
                body=content.fts_body,
                code=content.fts_code,
            )
        logger.debug("indexed %s (%d headings, %d body entries)", path, len(content.headings), len(content.body))

    def reindex_document(self, path: str) -> None:
        self.index_document(path)

    def remove_document(self, path: str) -> None:
        with self.store.transaction() as session:
            delete_content(session, path)

    def index_vault(self) -> int:
        """Index every document file in the vault; failures are logged and skipped."""
        count = 0
        for path in self.file_manager.list_files_recursive():
            try:
                self.index_document(path)
            except (DocVaultError, OSError) as e:
                logger.warning("skipping %s: %s", path, e)
                continue
            count += 1
        logger.info("indexed %d documents", count)
        return count
