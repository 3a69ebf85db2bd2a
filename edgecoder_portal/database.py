"""Engine, connection pool and transaction helpers shared by every store."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import ArgumentError, InvalidRequestError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings
from .errors import ConfigurationError
from .models import Base

logger = logging.getLogger(__name__)

SUPPORTED_DIALECTS = ("sqlite", "postgresql")


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    The write lock is taken before the first statement runs, so concurrent
    writers wait on the busy timeout instead of failing with a lock upgrade
    deadlock.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the async engine (and so the pool) used by all stores."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        url = settings.database_url
        kwargs: dict = {"future": True, "echo": settings.echo_sql}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": settings.busy_timeout_seconds,
            }
            if ":memory:" not in url:
                kwargs["pool_size"] = settings.pool_size
        else:
            kwargs["pool_size"] = settings.pool_size
            kwargs["pool_pre_ping"] = True

        try:
            self.engine = create_async_engine(url, **kwargs)
        except (ArgumentError, InvalidRequestError, ImportError) as exc:
            raise ConfigurationError(f"Cannot create engine for {url!r}: {exc}") from exc

        if self.dialect_name not in SUPPORTED_DIALECTS:
            raise ConfigurationError(f"Unsupported database dialect: {self.dialect_name}")
        if self.dialect_name == "sqlite":
            _install_sqlite_hooks(self.engine)

        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def insert(self, model):
        """Return a dialect insert construct supporting ``ON CONFLICT``."""

        if self.dialect_name == "postgresql":
            return postgresql.insert(model)
        return sqlite.insert(model)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one transaction; commit on success."""

        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Portal schema ensured on %s", self.dialect_name)

    async def drop_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
