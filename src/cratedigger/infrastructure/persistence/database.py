"""Engine and transaction scopes for the crawler's database."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cratedigger.config import Settings
from cratedigger.config.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def _engine_options(db: DatabaseSettings) -> dict[str, Any]:
    """create_async_engine() keyword arguments for the configured backend."""
    options: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
    if db.url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
        # every new connection to :memory: would see an empty database
        if ":memory:" in db.url:
            options["poolclass"] = StaticPool
    else:
        # queue pool sizing only means something for server databases
        options.update(
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
        )
    return options


def _turn_on_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine; hands out one short transaction per unit of work.

    Hey future me - crawl steps are short on purpose: load state in one scope, call the
    provider with NO transaction open, write results in the next scope. Never hold a
    session_scope() across an HTTP call, SQLite would keep the write lock for seconds.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        url = settings.database.url
        self._engine = create_async_engine(url, **_engine_options(settings.database))

        # SQLite ignores ON DELETE CASCADE unless asked per connection; label deletion
        # relies on it to take releases, tracks, matches and queue items along
        if url.startswith("sqlite"):
            event.listen(self._engine.sync_engine, "connect", _turn_on_foreign_keys)
            logger.debug("SQLite foreign keys enabled for %s", url)

        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: committed when the block exits cleanly, rolled back otherwise."""
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create missing tables (there are no migrations, the schema is additive)."""
        from cratedigger.infrastructure.persistence.models import Base

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()
