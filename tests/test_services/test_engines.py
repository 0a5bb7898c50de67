"""
Tests for the PostgreSQL and SQLite engine strategies.

SQLite runs against real files in tmp_path; PostgreSQL runs against
MockProcessRunner, which records the commands that would have been executed.
"""

import sqlite3
from pathlib import Path

import pytest

from gamevault.services.engines import (
    PRE_RESTORE_FILENAME,
    RESTORE_STAGING_FILENAME,
    PostgresEngine,
    RestorePackage,
    SqliteEngine,
    build_engine,
)
from gamevault.services.errors import (
    BackupError,
    ConfigurationError,
    InternalError,
    NotFoundError,
    ProcessExecutionError,
    RestoreError,
)
from gamevault.services.process_runner import ProcessRunner
from tests.conftest import make_settings
from tests.mocks.mock_process_runner import MockProcessRunner


def _make_sqlite_db(path: Path, rows: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS games (title TEXT)")
        conn.execute("DELETE FROM games")
        conn.executemany("INSERT INTO games (title) VALUES (?)", [(r,) for r in rows])
    conn.close()


def _read_titles(path: Path) -> list[str]:
    conn = sqlite3.connect(path)
    try:
        return [r[0] for r in conn.execute("SELECT title FROM games ORDER BY title")]
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Engine selection
# ---------------------------------------------------------------------------


class TestBuildEngine:
    def test_postgres(self, tmp_path):
        engine = build_engine(make_settings(tmp_path, db_system="POSTGRESQL"), ProcessRunner())
        assert isinstance(engine, PostgresEngine)

    def test_sqlite_case_insensitive(self, tmp_path):
        engine = build_engine(make_settings(tmp_path, db_system="sqlite"), ProcessRunner())
        assert isinstance(engine, SqliteEngine)

    def test_unknown_system(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_engine(make_settings(tmp_path, db_system="MARIADB"), ProcessRunner())
        assert "unknown database system" in str(exc_info.value)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_engine(tmp_path):
    return SqliteEngine(make_settings(tmp_path))


class TestSqliteBackup:
    async def test_backup_copies_live_file(self, sqlite_engine, tmp_path):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom", "Quake"])
        target = tmp_path / "tmp" / "backup.db"

        artifact = await sqlite_engine.backup_to(target)

        assert target.read_bytes() == sqlite_engine.database_path.read_bytes()
        assert artifact.size_bytes == target.stat().st_size
        assert _read_titles(target) == ["Doom", "Quake"]

    async def test_backup_without_database_raises(self, sqlite_engine, tmp_path):
        with pytest.raises(NotFoundError):
            await sqlite_engine.backup_to(tmp_path / "tmp" / "backup.db")
        assert not (tmp_path / "tmp" / "backup.db").exists()

    async def test_unwritable_target_is_backup_error(self, sqlite_engine, tmp_path):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom"])
        (tmp_path / "tmp").write_bytes(b"not a directory")

        with pytest.raises(BackupError) as exc_info:
            await sqlite_engine.backup_to(tmp_path / "tmp" / "backup.db")

        assert exc_info.value.code == "BACKUP_FAILED"


class TestSqliteRestore:
    async def test_restore_replaces_live_file(self, sqlite_engine, tmp_path):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom"])
        upload = tmp_path / "upload.sqlite"
        _make_sqlite_db(upload, ["Half-Life", "Portal"])

        await sqlite_engine.restore_from(RestorePackage(upload.read_bytes(), "pw"))

        assert _read_titles(sqlite_engine.database_path) == ["Half-Life", "Portal"]
        assert _read_titles(sqlite_engine.pre_restore_path) == ["Doom"]
        assert sqlite_engine.staging_path.read_bytes() == upload.read_bytes()

    async def test_restore_on_fresh_install(self, sqlite_engine, tmp_path):
        upload = tmp_path / "upload.sqlite"
        _make_sqlite_db(upload, ["Portal"])

        await sqlite_engine.restore_from(RestorePackage(upload.read_bytes(), "pw"))

        assert _read_titles(sqlite_engine.database_path) == ["Portal"]
        assert not sqlite_engine.pre_restore_path.exists()

    async def test_invalid_upload_keeps_live_data(self, sqlite_engine):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom"])
        before = sqlite_engine.database_path.read_bytes()

        with pytest.raises(RestoreError):
            await sqlite_engine.restore_from(RestorePackage(b"definitely not sqlite", "pw"))

        assert sqlite_engine.database_path.read_bytes() == before

    async def test_failed_apply_rolls_back_to_snapshot(self, sqlite_engine, tmp_path, monkeypatch):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom", "Quake"])
        before = sqlite_engine.database_path.read_bytes()
        upload = tmp_path / "upload.sqlite"
        _make_sqlite_db(upload, ["Portal"])

        original_apply = SqliteEngine._apply
        calls = []

        async def corrupting_apply(self, source):
            calls.append(source)
            if len(calls) == 1:
                self.database_path.write_bytes(b"half-written garbage")
                raise OSError("disk full")
            await original_apply(self, source)

        monkeypatch.setattr(SqliteEngine, "_apply", corrupting_apply)

        with pytest.raises(RestoreError) as exc_info:
            await sqlite_engine.restore_from(RestorePackage(upload.read_bytes(), "pw"))

        assert "disk full" in str(exc_info.value)
        assert calls == [sqlite_engine.staging_path, sqlite_engine.pre_restore_path]
        assert sqlite_engine.database_path.read_bytes() == before
        assert _read_titles(sqlite_engine.database_path) == ["Doom", "Quake"]

    async def test_failed_rollback_is_fatal_and_keeps_files(self, sqlite_engine, monkeypatch):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom"])

        async def broken_apply(self, source):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(SqliteEngine, "_apply", broken_apply)

        with pytest.raises(InternalError) as exc_info:
            await sqlite_engine.restore_from(RestorePackage(b"SQLite format 3\x00...", "pw"))

        assert not isinstance(exc_info.value, RestoreError)
        assert sqlite_engine.pre_restore_path.exists()
        assert sqlite_engine.staging_path.exists()

    async def test_stale_snapshot_is_not_used_on_fresh_install(self, sqlite_engine, tmp_path):
        sqlite_engine.pre_restore_path.parent.mkdir(parents=True, exist_ok=True)
        _make_sqlite_db(sqlite_engine.pre_restore_path, ["Stale"])

        with pytest.raises(RestoreError):
            await sqlite_engine.restore_from(RestorePackage(b"garbage", "pw"))

        assert not sqlite_engine.database_path.exists()

    async def test_snapshot_failure_is_restore_error(self, sqlite_engine, tmp_path):
        _make_sqlite_db(sqlite_engine.database_path, ["Doom"])
        before = sqlite_engine.database_path.read_bytes()
        (tmp_path / "tmp").write_bytes(b"not a directory")

        with pytest.raises(RestoreError) as exc_info:
            await sqlite_engine.restore_from(RestorePackage(before, "pw"))

        assert "pre-restore snapshot" in str(exc_info.value)
        assert sqlite_engine.database_path.read_bytes() == before


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


def _postgres(tmp_path, runner):
    settings = make_settings(
        tmp_path,
        db_system="POSTGRESQL",
        db_host="db.internal",
        db_port=5433,
        db_username="gv",
        db_password="pg-secret",
        db_database="gamevault",
    )
    return PostgresEngine(settings, runner)


class TestPostgresBackup:
    async def test_backup_runs_pg_dump(self, tmp_path):
        runner = MockProcessRunner()
        engine = _postgres(tmp_path, runner)
        target = tmp_path / "tmp" / "backup.db"

        artifact = await engine.backup_to(target)

        assert runner.calls == [(
            ("pg_dump", "-w", "-h", "db.internal", "-p", "5433", "-U", "gv",
             "-F", "t", "-d", "gamevault", "-f", str(target)),
            {"PGPASSWORD": "pg-secret"},
        )]
        assert artifact.size_bytes == target.stat().st_size > 0

    async def test_password_never_in_arguments(self, tmp_path):
        runner = MockProcessRunner()
        await _postgres(tmp_path, runner).backup_to(tmp_path / "tmp" / "backup.db")
        args, _ = runner.calls[0]
        assert "pg-secret" not in args

    async def test_failed_dump_removes_partial_file(self, tmp_path):
        target = tmp_path / "tmp" / "backup.db"

        def fail_after_partial_write(args):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"partial")
            return True

        engine = _postgres(tmp_path, MockProcessRunner(fail_when=fail_after_partial_write))

        with pytest.raises(ProcessExecutionError):
            await engine.backup_to(target)
        assert not target.exists()

    async def test_unwritable_temp_dir_is_backup_error(self, tmp_path):
        runner = MockProcessRunner()
        (tmp_path / "tmp").write_bytes(b"not a directory")

        with pytest.raises(BackupError):
            await _postgres(tmp_path, runner).backup_to(tmp_path / "tmp" / "backup.db")
        assert runner.calls == []

    async def test_unwritable_temp_dir_aborts_restore(self, tmp_path):
        runner = MockProcessRunner()
        (tmp_path / "tmp").write_bytes(b"not a directory")

        with pytest.raises(RestoreError):
            await _postgres(tmp_path, runner).restore_from(RestorePackage(b"tar", "pg-secret"))
        assert runner.calls == []


class TestPostgresRestore:
    async def test_restore_sequence(self, tmp_path):
        runner = MockProcessRunner()
        engine = _postgres(tmp_path, runner)

        await engine.restore_from(RestorePackage(b"uploaded tar", "pg-secret"))

        assert runner.programs == ["pg_dump", "dropdb", "createdb", "pg_restore"]
        snapshot_args = runner.calls[0][0]
        assert snapshot_args[-1] == str(tmp_path / "tmp" / PRE_RESTORE_FILENAME)
        assert runner.calls[1][0] == (
            "dropdb", "--if-exists", "-w", "-h", "db.internal", "-p", "5433", "-U", "gv", "gamevault"
        )
        restore_args = runner.calls[3][0]
        assert "-O" in restore_args
        assert restore_args[-1] == str(tmp_path / "tmp" / RESTORE_STAGING_FILENAME)
        assert (tmp_path / "tmp" / RESTORE_STAGING_FILENAME).read_bytes() == b"uploaded tar"
        assert all(env == {"PGPASSWORD": "pg-secret"} for _, env in runner.calls)

    async def test_failed_restore_rolls_back(self, tmp_path):
        staging = str(tmp_path / "tmp" / RESTORE_STAGING_FILENAME)
        runner = MockProcessRunner(
            fail_when=lambda args: args[0] == "pg_restore" and args[-1] == staging
        )
        engine = _postgres(tmp_path, runner)

        with pytest.raises(RestoreError):
            await engine.restore_from(RestorePackage(b"broken tar", "pg-secret"))

        assert runner.programs == [
            "pg_dump", "dropdb", "createdb", "pg_restore",
            "dropdb", "createdb", "pg_restore",
        ]
        assert runner.calls[-1][0][-1] == str(tmp_path / "tmp" / PRE_RESTORE_FILENAME)

    async def test_failed_rollback_is_internal_error(self, tmp_path):
        runner = MockProcessRunner(fail_when=lambda args: args[0] == "pg_restore")
        engine = _postgres(tmp_path, runner)

        with pytest.raises(InternalError) as exc_info:
            await engine.restore_from(RestorePackage(b"broken tar", "pg-secret"))

        assert exc_info.value.code == "INTERNAL_ERROR"
        assert (tmp_path / "tmp" / PRE_RESTORE_FILENAME).exists()
        assert (tmp_path / "tmp" / RESTORE_STAGING_FILENAME).exists()

    async def test_failed_snapshot_leaves_database_untouched(self, tmp_path):
        runner = MockProcessRunner(fail_when=lambda args: args[0] == "pg_dump")
        engine = _postgres(tmp_path, runner)

        with pytest.raises(RestoreError):
            await engine.restore_from(RestorePackage(b"tar", "pg-secret"))

        assert runner.programs == ["pg_dump"]

    async def test_failed_dropdb_still_rolls_back(self, tmp_path):
        drops = []

        def fail_first_drop(args):
            if args[0] != "dropdb":
                return False
            drops.append(args)
            return len(drops) == 1

        runner = MockProcessRunner(fail_when=fail_first_drop)
        engine = _postgres(tmp_path, runner)

        with pytest.raises(RestoreError):
            await engine.restore_from(RestorePackage(b"tar", "pg-secret"))

        assert runner.programs == ["pg_dump", "dropdb", "dropdb", "createdb", "pg_restore"]
