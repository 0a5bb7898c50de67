"""
GameVault Backend API

User accounts and database backup/restore for a self-hosted GameVault
server.

Usage:
    uvicorn gamevault.main:app --reload

API Docs:
    http://localhost:8080/docs
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gamevault.config import get_settings
from gamevault.api.v1.router import api_router
from gamevault.db.database import database
from gamevault.services.user_service import UserService

logger = logging.getLogger("gamevault")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _bootstrap_admin():
    """Apply SERVER_ADMIN_USERNAME; failures are logged, never fatal."""
    settings = get_settings()
    try:
        async with database.session() as session:
            await UserService(session, settings).set_admin()
            await session.commit()
    except Exception as e:
        logger.error(f"An error occurred while configuring the server admin: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    await database.connect()
    await database.run_migrations()
    await _bootstrap_admin()

    yield

    await database.disconnect()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GameVault Backend",
        description="GameVault server - user accounts and database backup/restore",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Length"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}:\n{traceback.format_exc()}")
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # Routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "database_connected": database.is_connected}

    @app.get("/")
    async def root():
        return {
            "name": "GameVault Backend",
            "version": "1.0.0",
            "docs": "/docs",
            "endpoints": {
                "auth": "/api/v1/auth",
                "users": "/api/v1/users",
                "database": "/api/v1/database",
            },
        }

    return app


app = create_app()
