"""
KeepWise Backend — Database Engine & Session Factory
=====================================================

What:  Async SQLAlchemy engine and session factory construction, plus the
       declarative Base shared by ORM models and Alembic.
How:   `build_engine()` creates an async engine with pooling appropriate to
       the driver; `build_session_factory()` wraps it in an async_sessionmaker.
Who:   Used by SqlNoteStore, which owns one engine per store instance.
When:  Engine is created when the store is built; sessions per operation.

Connection Pooling Strategy (server databases such as PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite (the default) uses SQLAlchemy's file-based pool and ignores these.
"""

from typing import Any, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from keepwise.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers models with a single metadata object, which Alembic reads for
    --autogenerate.
    """
    pass


def build_engine(database_url: str, config: Settings) -> AsyncEngine:
    """
    Create the async engine for `database_url`.

    SQLite URLs get no pool sizing arguments (the SQLite pool classes reject
    them); everything else gets the configured pool.
    """
    url = make_url(database_url)
    options: Dict[str, Any] = {
        # Echo SQL only when debugging; it is very noisy
        "echo": config.log_level == "DEBUG",
    }
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps ORM attributes readable after commit, which
    lets stores build response schemas from just-inserted rows.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
