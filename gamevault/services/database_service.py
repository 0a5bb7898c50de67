"""
Database Service - backup and restore of the live application database.

Every operation runs as:

    check config -> check password -> lock -> disconnect -> engine
                 -> reconnect (always) -> migrate (restore only)

Only one backup/restore runs at a time. Once the database has been
disconnected the sequence always reaches reconnect, even if the calling
task is cancelled in the meantime.
"""

import asyncio
import hmac
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from gamevault.config import Settings
from gamevault.services.artifact import BackupArtifact
from gamevault.services.engines import DatabaseEngine, RestorePackage, build_engine
from gamevault.services.errors import AuthorizationError, InMemoryDatabaseError
from gamevault.services.process_runner import ProcessRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionController(Protocol):
    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    async def run_migrations(self) -> object:
        ...


def generate_backup_filename(now: Optional[datetime] = None) -> str:
    """gamevault_database_backup_<ISO-8601 UTC, ':' and '.' replaced by '-'>.db"""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    timestamp = timestamp.replace(":", "-").replace(".", "-")
    return f"gamevault_database_backup_{timestamp}.db"


class DatabaseService:
    """Backup/restore orchestrator for the live database."""

    def __init__(
        self,
        settings: Settings,
        connection: ConnectionController,
        runner: Optional[ProcessRunner] = None,
    ):
        self.settings = settings
        self.connection = connection
        self.runner = runner or ProcessRunner(default_timeout=settings.db_command_timeout)
        self._engine: Optional[DatabaseEngine] = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def engine(self) -> DatabaseEngine:
        # Configuration never changes at runtime; select once
        if self._engine is None:
            self._engine = build_engine(self.settings, self.runner)
        return self._engine

    async def backup(self, password: str) -> BackupArtifact:
        """
        Dump the live database to a temporary file and describe it for download.

        Raises:
            InMemoryDatabaseError: the server runs on an in-memory database
            AuthorizationError: password does not match the database password
            ConfigurationError: unknown database system
            ProcessExecutionError / NotFoundError: the engine failed to dump
        """
        self._check_persistent("backup")
        self._validate_database_password(password)
        engine = self.engine
        path = Path(self.settings.temp_dir) / generate_backup_filename()
        artifact = await self._while_disconnected(lambda: engine.backup_to(path))
        logger.info(f"Database backup written to {artifact.source_path} ({artifact.size_bytes} bytes)")
        return artifact

    async def restore(self, package: RestorePackage) -> None:
        """
        Replace the live database with an uploaded backup.

        Raises:
            InMemoryDatabaseError, AuthorizationError, ConfigurationError: as backup()
            RestoreError: restore failed, previous data is intact
            InternalError: restore and rollback failed, data may be inconsistent
        """
        self._check_persistent("restore")
        self._validate_database_password(package.declared_password)
        engine = self.engine
        await self._while_disconnected(lambda: engine.restore_from(package), migrate=True)

    async def _while_disconnected(
        self, operation: Callable[[], Awaitable[T]], migrate: bool = False
    ) -> T:
        async with self._lock:
            task = asyncio.ensure_future(self._run_disconnected(operation, migrate))
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.done():
                    raise
                logger.warning("Cancellation requested during a database operation, finishing first")
                try:
                    await task
                except Exception as e:
                    logger.error(f"Database operation failed after cancellation: {e}")
                raise

    async def _run_disconnected(self, operation: Callable[[], Awaitable[T]], migrate: bool) -> T:
        await self.connection.disconnect()
        try:
            result = await operation()
        finally:
            await self.connection.connect()
        if migrate:
            await self.connection.run_migrations()
        return result

    def _check_persistent(self, operation: str) -> None:
        if self.settings.testing_in_memory_db:
            raise InMemoryDatabaseError(operation)

    def _validate_database_password(self, password: str) -> None:
        expected = self.settings.db_password.encode()
        if hmac.compare_digest((password or "").encode(), expected):
            return
        raise AuthorizationError(
            "The database password provided in the X-Database-Password Header is incorrect."
        )
