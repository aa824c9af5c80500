"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Base: Declarative base class that all ORM models inherit from
  - create_engine(): Builds the async engine (connection pool) from Settings
  - create_session_factory(): Factory for per-request AsyncSession objects
  - get_db(): FastAPI dependency that provides a session per request

The engine and session factory are created once by create_app() and kept on
app.state, so nothing here reads configuration at import time.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  when the request succeeds and rolls back on any exception. Every use case
  touches a single user row, so one session per request is the whole
  transaction story.
"""

from pathlib import Path

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from user_service.config import Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine described by the settings.

    echo=True in debug mode logs all SQL statements. Statements carry the
    Argon2 hash, never a plaintext password.
    """
    url = make_url(settings.database_url)
    kwargs: dict = {"echo": settings.debug}

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            # An in-memory database lives inside one connection, so every
            # session has to share it.
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs["pool_size"] = settings.DB_POOL_SIZE
        kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
        kwargs["pool_pre_ping"] = True

    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False prevents lazy-load errors after commit:
    # accessing attributes on a committed object would otherwise trigger a
    # synchronous DB call, which fails in async context.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
