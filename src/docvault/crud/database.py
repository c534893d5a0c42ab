import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# table registration
from docvault.crud import models  # noqa: F401


DEFAULT_DB_URL = "sqlite:///./docvault.db"


def make_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        # one shared connection keeps an in-memory database alive across sessions
        kwargs = {"poolclass": StaticPool} if db_url in ("sqlite://", "sqlite:///:memory:") else {}
        engine = create_engine(db_url, echo=False, connect_args={"check_same_thread": False}, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(db_url, echo=False)


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_url(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    env = os.getenv("DOCVAULT_DB_URL")
    if env:
        return env
    return DEFAULT_DB_URL


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(engine: Engine) -> Session:
    return Session(engine, expire_on_commit=False)
