from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Protocol


class HasId(Protocol):
    id: str


class Indexer(ABC):
    """Keeps the SQL index and search content in step with vault files."""

    @abstractmethod
    def index_document(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def reindex_document(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_document(self, path: str) -> None:
        raise NotImplementedError


class ProjectCache(ABC):
    @abstractmethod
    def get_by_alias(self, alias: str) -> HasId:
        """Return the project for alias; raise NotFoundError when unknown."""
        raise NotImplementedError


class EventEmitter(ABC):
    @abstractmethod
    def emit(self, name: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class AssetStore(ABC):
    @abstractmethod
    def read_asset(self, project_alias: str, hash: str, ext: str) -> bytes:
        """Return the bytes of <hash><ext> in a project's assets directory."""
        raise NotImplementedError
