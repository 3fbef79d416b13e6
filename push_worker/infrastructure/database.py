"""Database configuration and session management."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from push_worker.config import Settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


logger = logging.getLogger(__name__)

SessionFactory = sessionmaker[Session]


def create_database_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Return an engine for ``database_url`` tuned for worker threads."""

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # Sessions are opened from anyio worker threads.
        logger.warning(
            "Using SQLite at '%s'; SKIP LOCKED is unavailable, concurrent claims "
            "serialise on the database write lock",
            url.database,
        )
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> SessionFactory:
    """Build the session factory shared by the repositories."""

    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


def engine_from_settings(settings: Settings) -> Engine:
    return create_database_engine(settings.database_url)


def initialize_database(engine: Engine) -> None:
    """Ensure all ORM models have corresponding database tables."""

    from push_worker.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=engine, checkfirst=True)


__all__ = [
    "Base",
    "SessionFactory",
    "create_database_engine",
    "create_session_factory",
    "engine_from_settings",
    "initialize_database",
]
