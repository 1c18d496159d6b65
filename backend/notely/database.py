"""
Notely Backend - Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   The engine is process-wide state created lazily on first use and
       shared by every request. Each request gets its own AsyncSession that
       rolls back on error.
Who:   Route handlers and the auth gate, through FastAPI's Depends().

Engine lifecycle:
    - Created at most once per process. Concurrent first callers (threads or
      the first burst of requests) converge on one engine behind a lock.
    - Never torn down while the process lives. A cold-started or horizontally
      scaled instance simply creates its own on first use; pooled connections
      are released when the process exits.
"""

import threading
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from notely.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic and the test suite use
    to create the schema.
    """
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None
_engine_lock = threading.Lock()


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the configured backend (SQLite ignores pool sizing)."""
    options: Dict[str, Any] = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return options


def get_engine() -> AsyncEngine:
    """
    Return the process-wide async engine, creating it on first use.

    Double-checked locking: the fast path reads the cached engine without
    taking the lock; only the first callers race for it, and the loser sees
    the winner's engine once it gets the lock.
    """
    global _engine, _session_factory
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                engine = create_async_engine(
                    settings.database_url, **_engine_options(settings.database_url)
                )
                _session_factory = async_sessionmaker(
                    engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                _engine = engine
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _session_factory is not None
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the shared factory
        2. Yields it to the route handler
        3. On success: commits anything still pending (services commit
           their own writes, so this is usually a no-op)
        4. On error: rolls back so no partial write survives
        5. Always: closes the session (returns connection to pool)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
