"""Exception hierarchy: error codes plus vault, store, indexing and export failures"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """Machine-readable error identifiers."""
    NOT_FOUND = 1001
    VALIDATION_FAILED = 1002
    INVALID_PATH = 1003
    CORRUPTED = 2001
    WRITE_FAILED = 2002
    READ_FAILED = 2003
    INDEXING_FAILED = 3001
    EXPORT_FAILED = 4001


class DocVaultError(Exception):
    """Base exception carrying an error code and structured details."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[dict[str, Any]] = None,
        ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class DocumentValidationError(DocVaultError):
    """A document, block tree or index row violates a domain invariant."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, ErrorCode.VALIDATION_FAILED, {"field": field} if field else None)
        self.field = field


class NotFoundError(DocVaultError):
    """The path is absent from the vault or the index."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, {"path": path} if path else None)
        self.path = path


class VaultIOError(DocVaultError):
    """A vault file operation failed; always names the operation and the path."""

    def __init__(self, op: str, path: str, cause: Any, code: ErrorCode = ErrorCode.READ_FAILED):
        # explicit base call: subclasses mix in NotFoundError / DocumentValidationError
        DocVaultError.__init__(self, f"{op} {path}: {cause}", code, {"op": op, "path": path})
        self.op = op
        self.path = path
        self.cause = cause


class VaultNotFoundError(VaultIOError, NotFoundError):
    def __init__(self, op: str, path: str, cause: Any = "document not found"):
        VaultIOError.__init__(self, op, path, cause, ErrorCode.NOT_FOUND)


class CorruptedError(VaultIOError):
    """The file exists but fails JSON decode or post-decode validation."""

    def __init__(self, op: str, path: str, cause: Any):
        super().__init__(op, path, f"document file corrupted: {cause}", ErrorCode.CORRUPTED)


class InvalidPathError(VaultIOError):
    """The path does not resolve to a document location inside the vault."""

    def __init__(self, op: str, path: str, cause: Any):
        super().__init__(op, path, f"invalid document path: {cause}", ErrorCode.INVALID_PATH)


class VaultValidationError(VaultIOError, DocumentValidationError):
    def __init__(self, op: str, path: str, cause: Any):
        VaultIOError.__init__(self, op, path, f"document validation failed: {cause}", ErrorCode.VALIDATION_FAILED)
        self.field = None


class WriteFailedError(VaultIOError):
    def __init__(self, op: str, path: str, cause: Any):
        super().__init__(op, path, f"failed to write document: {cause}", ErrorCode.WRITE_FAILED)


class IndexingError(DocVaultError):
    """The indexer could not derive or persist the index row for a vault file."""

    def __init__(self, path: str, cause: Any):
        super().__init__(f"indexing document {path}: {cause}", ErrorCode.INDEXING_FAILED, {"path": path})
        self.path = path


class ExportError(DocVaultError):
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, ErrorCode.EXPORT_FAILED, {"path": path} if path else None)
        self.path = path
