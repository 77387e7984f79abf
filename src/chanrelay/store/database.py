"""Database connection and session management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from loguru import logger
from sqlalchemy import event, make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from chanrelay.core.errors import RelayConfigurationError, StoreError
from chanrelay.store.models import Base

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Manages the async engine and hands out transactional sessions.

    Every mutation the core issues is a single statement inside one
    session; uniqueness is enforced by the schema, never by a
    check-then-insert sequence alone.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        dialect = make_url(url).get_backend_name()
        if dialect not in _DIALECT_INSERTS:
            raise RelayConfigurationError(
                f"unsupported database dialect: {dialect}",
                code="unsupported_dialect",
                details={"url": url},
            )
        self._insert = _DIALECT_INSERTS[dialect]

        kwargs: dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite") and ":memory:" in url:
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_pre_ping"] = True
        self.engine: AsyncEngine = create_async_engine(url, **kwargs)
        if dialect == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    def insert(self, model: type[Base]) -> Any:
        """Dialect insert construct supporting ON CONFLICT clauses."""
        return self._insert(model)

    async def initialize(self) -> None:
        """Create all tables."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.error("Failed to initialize database {}: {}", self.url, exc)
            raise StoreError("could not initialize database", code="init_failed", original_error=exc) from exc
        logger.info("Database ready: {}", self.engine.url.render_as_string(hide_password=True))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope. Store failures surface as StoreError."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Store operation failed: {}", exc)
                raise StoreError(str(exc), code="store_failure", original_error=exc) from exc
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database engine."""
        await self.engine.dispose()
