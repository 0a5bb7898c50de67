"""
Root test configuration.

Sets up:
- SQLite database files in a per-test temporary directory
- A DatabaseConnection connected and migrated per test
- AsyncClient for FastAPI testing
- Lifespan is skipped in tests (no admin bootstrap)
"""
import os
import tempfile

# Set env vars before any app imports
_scratch = tempfile.mkdtemp(prefix="gamevault-tests-")
os.environ["DB_SYSTEM"] = "SQLITE"
os.environ["DB_PASSWORD"] = "test-db-password"
os.environ["VOLUMES_SQLITEDB"] = os.path.join(_scratch, "sqlite")
os.environ["VOLUMES_IMAGES"] = os.path.join(_scratch, "images")
os.environ["TEMP_DIR"] = os.path.join(_scratch, "tmp")
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["AUTH_SECRET"] = "test-secret"

import pytest
import pytest_asyncio

from contextlib import asynccontextmanager

from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gamevault.api.v1.database import get_database_service
from gamevault.api.v1.router import api_router
from gamevault.config import Settings, get_settings
from gamevault.db.database import DatabaseConnection, get_db
from gamevault.services.database_service import DatabaseService

DB_PASSWORD = "test-db-password"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        db_system="SQLITE",
        db_password=DB_PASSWORD,
        volumes_sqlitedb=str(tmp_path / "sqlite"),
        volumes_images=str(tmp_path / "images"),
        temp_dir=str(tmp_path / "tmp"),
        password_hash_rounds=4,
        auth_secret="test-secret",
    )
    values.update(overrides)
    return Settings(**values)


def _create_test_app() -> FastAPI:
    """Create a FastAPI app for testing WITHOUT lifespan (no admin bootstrap)."""

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        # No-op lifespan for tests - the connection is managed by fixtures
        yield

    app = FastAPI(title="GameVault Backend", version="1.0.0", lifespan=test_lifespan)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    app.include_router(api_router, prefix="/api/v1")
    return app


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture()
async def connection(settings: Settings):
    """A live, migrated SQLite connection in tmp_path."""
    conn = DatabaseConnection(settings)
    await conn.connect()
    await conn.run_migrations()
    try:
        yield conn
    finally:
        await conn.disconnect()


@pytest_asyncio.fixture()
async def db_session(connection: DatabaseConnection):
    session = connection.session()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture()
def database_service(settings: Settings, connection: DatabaseConnection) -> DatabaseService:
    return DatabaseService(settings, connection)


@pytest_asyncio.fixture()
async def app(settings: Settings, connection: DatabaseConnection, database_service: DatabaseService):
    """Create a test FastAPI app bound to the per-test connection."""
    application = _create_test_app()

    async def override_get_db():
        async with connection.session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_database_service] = lambda: database_service
    return application


@pytest_asyncio.fixture()
async def client(app):
    """Provide an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
