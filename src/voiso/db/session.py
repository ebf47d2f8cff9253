"""
Engine and session factory construction.

In-memory SQLite is pinned to a single shared connection (StaticPool) so
FastAPI's worker threads all see the same database.
"""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from voiso.core.config import DatabaseConfig
from voiso.db.models import Base


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or url.startswith("sqlite:///:memory:?")


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Create an Engine for config.url and create missing tables."""
    kwargs = {"echo": config.echo}
    if config.url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(config.url):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(config.url, **kwargs)

    if config.url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)
