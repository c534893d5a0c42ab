"""Project alias and vault-relative document path rules"""

import posixpath
import re

from docvault.exceptions import DocumentValidationError


ALIAS_CONTENT_RE = re.compile(r'^[a-z0-9-]+$')
DOC_FILE_PREFIX = "doc-"
DOC_FILE_SUFFIX = ".json"


def validate_alias(alias: str) -> None:
    """Raise DocumentValidationError unless alias is '@' + 2-32 chars of [a-z0-9-]."""
    if not isinstance(alias, str) or not alias.startswith('@'):
        raise DocumentValidationError("alias must start with @", field="project")
    content = alias[1:]
    if not 2 <= len(content) <= 32:
        raise DocumentValidationError(
            f"alias must be 2-32 characters (excluding @ prefix), got {len(content)}", field="project")
    if not ALIAS_CONTENT_RE.match(content):
        raise DocumentValidationError(
            "alias must contain only lowercase letters, numbers, and hyphens after @", field="project")


def normalize_document_path(doc_path: str) -> str:
    """Return a clean forward-slash relative path, or '' when nothing is left."""
    doc_path = (doc_path or "").strip()
    if not doc_path:
        return ""
    normalized = doc_path.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.lstrip("/")
    while "//" in normalized:
        normalized = normalized.replace("//", "/")
    clean = posixpath.normpath(normalized) if normalized else "."
    return "" if clean == "." else clean


def validate_document_path(doc_path: str) -> None:
    """Raise ValueError unless doc_path is a projects/<alias>/<name>.json path inside the vault."""
    if not doc_path:
        raise ValueError("path cannot be empty")
    if ".." in doc_path:
        raise ValueError(f"path contains directory traversal: {doc_path}")
    clean = normalize_document_path(doc_path)
    if not clean:
        raise ValueError("path cannot be empty")
    if not clean.startswith("projects/"):
        raise ValueError(f"path must start with 'projects/', got: {clean}")
    if not clean.endswith(DOC_FILE_SUFFIX):
        raise ValueError(f"path must end with '.json', got: {clean}")
    project = posixpath.basename(posixpath.dirname(clean))
    if project in ("", ".", "..", "projects"):
        raise ValueError(f"invalid project alias in path: {clean}")


def generate_document_path(project_alias: str, document_id: str) -> str:
    """projects/<alias>/doc-<alias-without-@>-<document_id>.json"""
    validate_alias(project_alias)
    if not document_id:
        raise DocumentValidationError("document ID cannot be empty")
    filename = f"{DOC_FILE_PREFIX}{project_alias.removeprefix('@')}-{document_id}{DOC_FILE_SUFFIX}"
    return posixpath.join("projects", project_alias, filename)


def is_document_filename(name: str) -> bool:
    return name.startswith(DOC_FILE_PREFIX) and name.endswith(DOC_FILE_SUFFIX)
