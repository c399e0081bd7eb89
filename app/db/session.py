# app/db/session.py
"""
Database access for the application.

``Database`` owns the async engine and hands out two kinds of scopes:

* ``session()``: a plain session for read-only work.
* ``transaction()``: a session wrapped in BEGIN/COMMIT/ROLLBACK. The body's
  changes are committed when it exits normally and rolled back (with the
  original exception re-raised) when it fails. The session is always closed.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings

logger = logging.getLogger(__name__)


def _begin_immediate(engine: AsyncEngine) -> None:
    """Make SQLite take its write lock at BEGIN.

    SQLite has no row locks and ignores FOR UPDATE, so a vote transaction
    would otherwise read the current vote before any lock is held.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Async engine plus session/transaction scopes."""

    def __init__(self, url: Optional[str] = None, **engine_options: Any):
        self.url = url or settings.DATABASE_URL
        self._engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def engine(self) -> AsyncEngine:
        """The engine is created lazily so importing the app never connects."""
        if self._engine is None:
            options = {"echo": settings.DB_ECHO}
            if not self.url.startswith("sqlite"):
                options.update(
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_recycle=settings.DB_POOL_RECYCLE,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                    pool_pre_ping=True,
                )
            options.update(self._engine_options)
            self._engine = create_async_engine(self.url, **options)
            if self.url.startswith("sqlite"):
                _begin_immediate(self._engine)
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self.engine  # noqa: B018 - builds the factory
        return self._session_factory

    # ---- lifecycle ----
    async def connect(self) -> None:
        """Verify the store is reachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        self._logger.info("Database connection successful")

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._logger.info("Database pool closed")

    async def ping(self) -> bool:
        """Connectivity check for health reporting; never raises."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            self._logger.error("Database ping failed", exc_info=True)
            return False

    async def create_all(self) -> None:
        """Create every table registered on the SQLModel metadata."""
        # Registers the table models on the metadata
        import app.db.base  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def drop_all(self) -> None:
        import app.db.base  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)

    # ---- scopes ----
    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Plain session for reads. No commit is issued."""
        session = self.session_factory()
        try:
            yield session
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session scoped to a single transaction."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            self._logger.warning("Transaction rolled back", exc_info=True)
            raise
        finally:
            await session.close()


db = Database()
