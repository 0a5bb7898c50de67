"""
Engine strategies for database backup and restore.

Two interchangeable implementations of the same contract:

- PostgresEngine: pg_dump / dropdb / createdb / pg_restore (tar format)
- SqliteEngine:   plain copies of the database.sqlite file

Restore follows the same sequence on both engines:

    snapshot live data -> stage uploaded bytes -> apply
                                     | failure
                                     v
                          roll back to snapshot -> RestoreError | InternalError
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles

from gamevault.config import Settings, DatabaseSystem
from gamevault.services.artifact import BackupArtifact, build_artifact
from gamevault.services.errors import (
    BackupError,
    ConfigurationError,
    InternalError,
    NotFoundError,
    ProcessExecutionError,
    RestoreError,
)
from gamevault.services.process_runner import ProcessRunner

logger = logging.getLogger(__name__)

PRE_RESTORE_FILENAME = "gamevault_database_pre_restore.db"
RESTORE_STAGING_FILENAME = "gamevault_database_restore.db"
SQLITE_HEADER = b"SQLite format 3\x00"


@dataclass(frozen=True)
class RestorePackage:
    raw_bytes: bytes
    declared_password: str


class DatabaseEngine(Protocol):
    system: DatabaseSystem

    async def backup_to(self, path: Path) -> BackupArtifact:
        ...

    async def restore_from(self, package: RestorePackage) -> None:
        ...


class _RestoreSteps:
    """Shared restore sequencing; engines supply the individual steps."""

    name = "database"

    def __init__(self, settings: Settings):
        self.settings = settings
        temp_dir = Path(settings.temp_dir)
        self.pre_restore_path = temp_dir / PRE_RESTORE_FILENAME
        self.staging_path = temp_dir / RESTORE_STAGING_FILENAME

    async def _snapshot(self) -> bool:
        raise NotImplementedError

    async def _apply(self, source: Path) -> None:
        raise NotImplementedError

    async def _write_staging(self, data: bytes) -> None:
        self.staging_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.staging_path, "wb") as f:
            await f.write(data)

    async def restore_from(self, package: RestorePackage) -> None:
        logger.info(f"Restoring {self.name} Database...")
        snapshot_taken = await self._snapshot()
        try:
            await self._write_staging(package.raw_bytes)
            await self._apply(self.staging_path)
        except Exception as error:
            logger.error(f"Error restoring {self.name} database: {error}")
            await self._rollback(snapshot_taken, error)
            raise RestoreError(
                f"Restoring the {self.name} database failed, the previous data was kept: {error}"
            ) from error
        logger.info(f"Successfully restored {self.name} Database.")

    async def _rollback(self, snapshot_taken: bool, cause: Exception) -> None:
        if not snapshot_taken:
            logger.warning("No pre-restore snapshot was taken, nothing to roll back to.")
            return
        logger.info("Restoring pre-restore database.")
        try:
            await self._apply(self.pre_restore_path)
        except Exception as rollback_error:
            logger.critical(
                f"Error restoring pre-restore {self.name} database: {rollback_error}. "
                f"Snapshot kept at {self.pre_restore_path}, upload kept at {self.staging_path}."
            )
            raise InternalError(
                f"Restoring the {self.name} database failed ({cause}) and rolling back "
                f"to the pre-restore snapshot failed too ({rollback_error}). "
                f"Manual recovery required from {self.pre_restore_path}."
            ) from rollback_error
        logger.info("Restored pre-restore database.")


class PostgresEngine(_RestoreSteps):
    system = DatabaseSystem.POSTGRESQL
    name = "PostgreSQL"

    def __init__(self, settings: Settings, runner: ProcessRunner):
        super().__init__(settings)
        self.runner = runner

    @property
    def _env(self) -> dict[str, str]:
        return {"PGPASSWORD": self.settings.db_password}

    @property
    def _connection_args(self) -> list[str]:
        s = self.settings
        return ["-w", "-h", s.db_host, "-p", str(s.db_port), "-U", s.db_username]

    async def _dump(self, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Could not prepare the dump target '{path}': {e}") from e
        try:
            await self.runner.run(
                ["pg_dump", *self._connection_args, "-F", "t",
                 "-d", self.settings.db_database, "-f", str(path)],
                env=self._env,
            )
        except ProcessExecutionError:
            path.unlink(missing_ok=True)
            raise

    async def backup_to(self, path: Path) -> BackupArtifact:
        logger.info("Backing up PostgreSQL Database...")
        await self._dump(path)
        return build_artifact(path)

    async def _snapshot(self) -> bool:
        try:
            await self._dump(self.pre_restore_path)
        except (ProcessExecutionError, BackupError) as e:
            raise RestoreError(
                f"Could not create a pre-restore snapshot, the database was not modified: {e}"
            ) from e
        return True

    async def _apply(self, source: Path) -> None:
        database = self.settings.db_database
        await self.runner.run(
            ["dropdb", "--if-exists", *self._connection_args, database], env=self._env
        )
        await self.runner.run(["createdb", *self._connection_args, database], env=self._env)
        await self.runner.run(
            ["pg_restore", "-O", *self._connection_args, "-F", "t",
             "-d", database, str(source)],
            env=self._env,
        )


class SqliteEngine(_RestoreSteps):
    system = DatabaseSystem.SQLITE
    name = "SQLite"

    @property
    def database_path(self) -> Path:
        return self.settings.sqlite_database_path

    async def backup_to(self, path: Path) -> BackupArtifact:
        logger.info("Backing up SQLite Database...")
        if not self.database_path.is_file():
            raise NotFoundError(f"SQLite database '{self.database_path}' does not exist.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.database_path, path)
        except OSError as e:
            logger.error(f"Error backing up SQLite database to {path}: {e}")
            if path.is_file():
                path.unlink()
            raise BackupError(f"Could not write the SQLite backup to '{path}': {e}") from e
        return build_artifact(path)

    async def _snapshot(self) -> bool:
        if not self.database_path.is_file():
            return False
        logger.info("Backing up pre-restore database")
        try:
            self.pre_restore_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.database_path, self.pre_restore_path)
        except OSError as e:
            raise RestoreError(
                f"Could not create a pre-restore snapshot, the database was not modified: {e}"
            ) from e
        return True

    async def _apply(self, source: Path) -> None:
        with open(source, "rb") as f:
            header = f.read(len(SQLITE_HEADER))
        if header != SQLITE_HEADER:
            raise ValueError(f"'{source.name}' is not a SQLite database file")
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, self.database_path)


def build_engine(settings: Settings, runner: ProcessRunner) -> DatabaseEngine:
    """Select the engine strategy for the configured database system."""
    system = settings.db_system.upper()
    if system == DatabaseSystem.POSTGRESQL.value:
        return PostgresEngine(settings, runner)
    if system == DatabaseSystem.SQLITE.value:
        return SqliteEngine(settings)
    raise ConfigurationError(
        f"This server's DB_SYSTEM is set to an unknown database system: '{settings.db_system}'."
    )
