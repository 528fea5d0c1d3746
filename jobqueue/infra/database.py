import time
from typing import Any

from fastapi import Depends
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from jobqueue.config.settings import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Concurrent job tasks write through separate connections
SQLITE_PRAGMAS = {
    "journal_mode": "WAL",
    "busy_timeout": 5000,
    "foreign_keys": "ON",
}


def _apply_sqlite_pragmas(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    for name, value in SQLITE_PRAGMAS.items():
        cursor.execute(f"PRAGMA {name}={value}")
    cursor.close()


class Database:
    """Engine and session factory for the job store."""

    def __init__(self, settings: Settings):
        self.settings = settings

        if settings.is_sqlite:
            self.engine = create_async_engine(settings.database_url, echo=settings.db_echo)
            event.listen(self.engine.sync_engine, "connect", _apply_sqlite_pragmas)
        else:
            self.engine = create_async_engine(
                settings.database_url,
                echo=settings.db_echo,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_recycle=settings.db_pool_recycle,
                pool_pre_ping=True,
            )

        self.SessionLocal = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create missing tables (development and SQLite deployments)."""
        # Models must be imported so their tables are on Base.metadata
        from jobqueue.v1.jobs import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> float:
        """Round-trip a trivial query; return its latency in milliseconds."""
        started = time.perf_counter()
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return round((time.perf_counter() - started) * 1000, 2)

    async def close(self) -> None:
        await self.engine.dispose()


_database: Database | None = None


def get_database(settings: Settings = Depends(get_settings)) -> Database:
    """Return the process-wide database, created on first use."""
    global _database
    if _database is None:
        _database = Database(settings)
    return _database
