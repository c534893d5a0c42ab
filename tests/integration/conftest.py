"""Fixtures wiring a real vault, SQLite index, indexer and service together"""

import pytest

from docvault.core.events import EventBus
from docvault.core.indexer import SqlIndexer
from docvault.core.ports import Indexer
from docvault.core.service import DocumentService
from docvault.crud.database import init_db, make_engine
from docvault.crud.documents import DocumentStore
from docvault.crud.projects import StoreProjectCache
from docvault.crud.vault import FileManager, Vault


class FailingIndexer(Indexer):
    """Indexer whose every call fails."""

    def index_document(self, path: str) -> None:
        raise RuntimeError("index unavailable")

    def reindex_document(self, path: str) -> None:
        raise RuntimeError("index unavailable")

    def remove_document(self, path: str) -> None:
        raise RuntimeError("index unavailable")


@pytest.fixture(name="store")
def store_fixture():
    engine = make_engine("sqlite://")
    init_db(engine)
    return DocumentStore(engine)


@pytest.fixture(name="vault")
def vault_fixture(tmp_path):
    return Vault(tmp_path / "vault")


@pytest.fixture(name="file_manager")
def file_manager_fixture(vault):
    return FileManager(vault)


@pytest.fixture(name="indexer")
def indexer_fixture(store, file_manager):
    return SqlIndexer(store, file_manager)


@pytest.fixture(name="events")
def events_fixture():
    """Events received by the service's bus, as (name, payload) pairs."""
    return []


@pytest.fixture(name="service")
def service_fixture(store, vault, indexer, events):
    bus = EventBus()
    bus.connect(lambda name, payload: events.append((name, payload)))
    return DocumentService(store, vault, indexer, StoreProjectCache(vault), bus)


@pytest.fixture(name="failing_service")
def failing_service_fixture(store, vault):
    return DocumentService(store, vault, FailingIndexer())
