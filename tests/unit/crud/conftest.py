"""Shared fixtures for crud unit tests"""

import pytest
from sqlmodel import SQLModel

from docvault.crud.database import get_session, init_db, make_engine
from docvault.crud.documents import DocumentStore
from docvault.crud.vault import FileManager, Vault


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with get_session(engine) as s:
        yield s


@pytest.fixture(name="store")
def store_fixture(engine):
    return DocumentStore(engine)


@pytest.fixture(name="vault")
def vault_fixture(tmp_path):
    return Vault(tmp_path / "vault")


@pytest.fixture(name="file_manager")
def file_manager_fixture(vault):
    return FileManager(vault)
