"""Database access — one async engine per process and a request-scoped session.

Invariants:
    - A session that raises is rolled back before the error leaves this module
    - Driver and ORM failures surface as DatabaseError (503); ApiError and other
      exceptions propagate unchanged after the rollback
    - Sessions never expire loaded rows on commit, so presenters can read
      relationships after the route commits

Design Decisions:
    - Failure translation is a lookup over _FAILURES (most specific class first)
      instead of one except block per driver error
    - SQLite URLs skip pool sizing: aiosqlite runs on a static pool in tests
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from cctv_api.core.errors import DatabaseError

logger = logging.getLogger(__name__)

_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Database unavailable", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def _translate(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, message, operation in _FAILURES:
        if isinstance(exc, exc_type):
            return DatabaseError(message, operation)
    return DatabaseError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the engine and hands out sessions for routes, scripts and probes."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options.update(pool_size=pool_size, max_overflow=max_overflow)
        self.engine = create_async_engine(database_url, **options)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                translated = _translate(exc)
                logger.error(
                    "Database failure during %s: %s", translated.operation, exc,
                    extra={"error_code": translated.code},
                )
                raise translated from exc
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """True when a trivial query round-trips; used by /health/ready."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning("Database readiness check failed: %s", exc)
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


# Created in the app lifespan (or by the seed script)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if db_manager is None:
        raise DatabaseError("Database not initialized", "connect")
    async with db_manager.session() as session:
        yield session
