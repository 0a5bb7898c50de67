"""
Database API - backup and restore of the live database.

Both endpoints are protected by the database password, sent in the
X-Database-Password header.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, File, Header, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from gamevault.api.v1.errors import handle_service_error
from gamevault.config import get_settings
from gamevault.db.database import database
from gamevault.services.database_service import DatabaseService
from gamevault.services.engines import RestorePackage
from gamevault.services.errors import GamevaultError, InternalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/database", tags=["database"])


@lru_cache()
def get_database_service() -> DatabaseService:
    """Process-wide orchestrator, so the operation lock is shared by all requests."""
    return DatabaseService(get_settings(), database)


class RestoreResponse(BaseModel):
    success: bool
    message: str


@router.post("/backup")
async def backup_database(
    x_database_password: str = Header(..., alias="X-Database-Password"),
    service: DatabaseService = Depends(get_database_service),
):
    """Create a backup of the database and download it."""
    try:
        artifact = await service.backup(x_database_password)
    except GamevaultError as e:
        raise handle_service_error(e)

    # The artifact is a one-off download; drop it once the response is sent
    return StreamingResponse(
        artifact.iter_bytes(),
        media_type=artifact.mime_type,
        headers=artifact.headers,
        background=BackgroundTask(artifact.source_path.unlink, missing_ok=True),
    )


@router.post("/restore", response_model=RestoreResponse)
async def restore_database(
    file: UploadFile = File(..., description="Database backup file to restore"),
    x_database_password: str = Header(..., alias="X-Database-Password"),
    service: DatabaseService = Depends(get_database_service),
):
    """Restore the database from an uploaded backup file."""
    content = await file.read()
    package = RestorePackage(raw_bytes=content, declared_password=x_database_password)
    try:
        await service.restore(package)
    except InternalError as e:
        logger.critical(f"Database restore left the server in a degraded state: {e}")
        raise handle_service_error(e)
    except GamevaultError as e:
        raise handle_service_error(e)

    return RestoreResponse(success=True, message="Database restored successfully.")
