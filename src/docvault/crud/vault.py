"""Vault file I/O: path resolution, atomic document writes, reads, deletes and listing"""

import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Callable

from docvault.core.models import DocumentFile
from docvault.core.utils.paths import (
    is_document_filename,
    normalize_document_path,
    validate_alias,
    validate_document_path,
)
from docvault.exceptions import (
    CorruptedError,
    DocumentValidationError,
    InvalidPathError,
    VaultIOError,
    VaultNotFoundError,
    VaultValidationError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)

PROJECTS_DIR = "projects"
ASSETS_DIR = "assets"


class Vault:
    """A root directory holding projects/<alias>/doc-*.json files and per-project assets."""

    def __init__(self, root: Path | str):
        root_path = Path(root).expanduser().resolve()
        if root_path == Path(root_path.anchor):
            raise ValueError("vault root cannot be filesystem root")
        self.root = root_path
        (self.root / PROJECTS_DIR).mkdir(parents=True, exist_ok=True)

    def project_path(self, project_alias: str) -> Path:
        return self.root / PROJECTS_DIR / project_alias

    def assets_path(self, project_alias: str) -> Path:
        return self.project_path(project_alias) / ASSETS_DIR

    def document_path(self, relative_path: str) -> Path:
        """Absolute path for a vault-relative document path. Raises ValueError when it does not resolve."""
        normalized = normalize_document_path(relative_path)
        validate_document_path(normalized)
        absolute = (self.root / normalized).resolve()
        if not absolute.is_relative_to(self.root):
            raise ValueError(f"path escapes vault: {relative_path}")
        return absolute

    def relative_path(self, absolute_path: Path | str) -> str:
        absolute = Path(absolute_path).resolve()
        if not absolute.is_relative_to(self.root):
            raise ValueError(f"path escapes vault: {absolute_path}")
        return absolute.relative_to(self.root).as_posix()

    def project_exists(self, project_alias: str) -> bool:
        return self.project_path(project_alias).is_dir()

    def list_projects(self) -> list[str]:
        """Sorted aliases of the project directories present in the vault."""
        projects_dir = self.root / PROJECTS_DIR
        return sorted(p.name for p in projects_dir.iterdir() if p.is_dir() and p.name.startswith('@'))


class FileManager:
    """Reader, writer and lister roles over one vault."""

    def __init__(self, vault: Vault):
        self.vault = vault

    def _resolve(self, op: str, relative_path: str) -> Path:
        try:
            return self.vault.document_path(relative_path)
        except ValueError as e:
            logger.error("failed to resolve document path %s: %s", relative_path, e)
            raise InvalidPathError(op, relative_path, e) from e

    # --- reader ---

    def read_file(self, relative_path: str) -> DocumentFile:
        """Load and validate a document. Raises VaultNotFoundError, CorruptedError or InvalidPathError."""
        abs_path = self._resolve("read", relative_path)
        try:
            data = abs_path.read_bytes()
        except FileNotFoundError as e:
            logger.warning("document file not found: %s", abs_path)
            raise VaultNotFoundError("read", relative_path) from e
        except OSError as e:
            logger.error("failed to read document file %s: %s", abs_path, e)
            raise VaultIOError("read", relative_path, e) from e

        try:
            doc = DocumentFile.from_json(data)
        except DocumentValidationError as e:
            logger.error("failed to parse document JSON %s: %s", relative_path, e)
            raise CorruptedError("read", relative_path, e) from e

        logger.debug("read %s (%d bytes, %d blocks)", relative_path, len(data), len(doc.blocks))
        return doc

    def file_exists(self, relative_path: str) -> bool:
        return self._resolve("stat", relative_path).is_file()

    # --- writer ---

    def write_file(self, relative_path: str, doc: DocumentFile) -> None:
        """Validate, serialize and atomically replace the file at relative_path."""
        try:
            doc.validate_document()
        except DocumentValidationError as e:
            raise VaultValidationError("write", relative_path, e) from e

        abs_path = self._resolve("write", relative_path)
        try:
            abs_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteFailedError("write", relative_path, f"creating directory: {e}") from e

        try:
            _write_atomic(abs_path, doc.to_json())
        except OSError as e:
            logger.error("atomic write failed for %s: %s", relative_path, e)
            raise WriteFailedError("write", relative_path, e) from e

    def update_file(self, relative_path: str, update_fn: Callable[[DocumentFile], None]) -> DocumentFile:
        """Read-modify-write; the updated timestamp is bumped after update_fn runs."""
        doc = self.read_file(relative_path)
        try:
            update_fn(doc)
        except DocumentValidationError as e:
            raise VaultValidationError("update", relative_path, f"update function failed: {e}") from e
        doc.touch()
        self.write_file(relative_path, doc)
        return doc

    def delete_file(self, relative_path: str) -> None:
        abs_path = self._resolve("delete", relative_path)
        try:
            abs_path.unlink()
        except FileNotFoundError as e:
            raise VaultNotFoundError("delete", relative_path) from e
        except OSError as e:
            raise VaultIOError("delete", relative_path, e) from e

    # --- lister ---

    def list_files(self, project_alias: str) -> list[str]:
        """Vault-relative paths of the doc-*.json files directly inside a project directory."""
        validate_alias(project_alias)
        project_dir = self.vault.project_path(project_alias)
        if not project_dir.is_dir():
            return []
        return sorted(
            posixpath.join(PROJECTS_DIR, project_alias, entry.name)
            for entry in project_dir.iterdir()
            if entry.is_file() and is_document_filename(entry.name)
        )

    def list_files_recursive(self) -> list[str]:
        paths: list[str] = []
        for project_alias in self.vault.list_projects():
            try:
                paths.extend(self.list_files(project_alias))
            except DocumentValidationError:
                logger.warning("skipping directory with invalid project alias: %s", project_alias)
        return paths


def _write_atomic(path: Path, data: bytes) -> None:
    """Write to a temp file in the target directory, fsync, then rename over path."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-doc-", suffix=".json")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
