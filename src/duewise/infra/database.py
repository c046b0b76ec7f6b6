"""Database infrastructure for the paid-state store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig


def _apply_sqlite_pragmas(engine, pragmas: dict[str, str]) -> None:
    """Run ``PRAGMA`` statements on every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
        finally:
            cursor.close()


def create_db_engine(config: BaseConfig):
    """Create SQLModel engine from configuration.

    SQLite databases get WAL journaling so the CLI and the cleanup timer can
    read while a write is in flight.
    """
    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if engine.dialect.name == "sqlite":
        _apply_sqlite_pragmas(engine, config.SQLITE_PRAGMAS)
    return engine


def init_database(engine) -> None:
    """Create the paid-reminder table if it does not exist."""
    # Import all models to ensure they're registered
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def create_session_factory(engine):
    """Return a context-manager factory yielding committed-or-rolled-back sessions."""

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory
