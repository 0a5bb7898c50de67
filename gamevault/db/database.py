"""
Database connection management for GameVault.

Uses SQLAlchemy 2.0 async API with asyncpg (PostgreSQL) or aiosqlite (SQLite).
The live connection can be torn down and re-established at runtime, which
the backup/restore service relies on.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator, Callable, Optional

from sqlalchemy import Column, DateTime, MetaData, String, Table, select
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from gamevault.config import Settings, DatabaseSystem, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


# Bookkeeping table for applied migrations, kept out of Base.metadata
_migrations_metadata = MetaData()
schema_migrations = Table(
    "schema_migrations",
    _migrations_metadata,
    Column("name", String(128), primary_key=True),
    Column("applied_at", DateTime, nullable=False),
)


def _create_schema(conn: Connection) -> None:
    from gamevault.db import models  # noqa: F401 - register models with Base

    Base.metadata.create_all(conn)


# Ordered; each entry runs once per database
MIGRATIONS: list[tuple[str, Callable[[Connection], None]]] = [
    ("0001_create_schema", _create_schema),
]


class DatabaseConnectionError(Exception):
    """Raised when the session factory is used while disconnected."""


class DatabaseConnection:
    """
    Owns the lifecycle of the live database connection.

    connect() / disconnect() / run_migrations() are safe to call once per
    lifecycle phase; calling connect() twice or disconnect() while already
    disconnected is a no-op.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._engine

    def _create_engine(self) -> AsyncEngine:
        url = self.settings.effective_database_url
        if self.settings.testing_in_memory_db:
            # One shared connection, otherwise every checkout sees an empty database
            return create_async_engine(
                url,
                echo=self.settings.database_echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        if self.settings.db_system.upper() == DatabaseSystem.SQLITE.value:
            Path(self.settings.volumes_sqlitedb).mkdir(parents=True, exist_ok=True)
            return create_async_engine(url, echo=self.settings.database_echo)
        return create_async_engine(
            url,
            echo=self.settings.database_echo,
            pool_size=10,
            max_overflow=20,
            pool_recycle=3600,
            pool_pre_ping=True,
        )

    async def connect(self) -> None:
        if self._engine is not None:
            return
        logger.info("Connecting Database...")
        self._engine = self._create_engine()
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        logger.info("Disconnecting Database...")
        engine = self._engine
        self._engine = None
        self._session_factory = None
        await engine.dispose()

    async def run_migrations(self) -> list[str]:
        """Apply pending migrations. Returns the names that were applied."""
        logger.info("Migrating Database...")
        async with self.engine.begin() as conn:
            return await conn.run_sync(self._apply_pending)

    @staticmethod
    def _apply_pending(conn: Connection) -> list[str]:
        _migrations_metadata.create_all(conn)
        done = set(conn.execute(select(schema_migrations.c.name)).scalars())
        applied = []
        for name, migrate in MIGRATIONS:
            if name in done:
                continue
            migrate(conn)
            conn.execute(
                schema_migrations.insert().values(name=name, applied_at=datetime.utcnow())
            )
            logger.info(f"Applied migration {name}")
            applied.append(name)
        return applied

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._session_factory()


# Process-wide connection used by the application
database = DatabaseConnection(get_settings())


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
