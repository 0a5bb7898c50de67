"""Translate service errors into HTTP errors."""
from fastapi import HTTPException

from gamevault.services.errors import (
    AuthorizationError,
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    InMemoryDatabaseError,
    InternalError,
    NotFoundError,
    RestoreError,
)


def handle_service_error(error: Exception) -> HTTPException:
    """Convert service errors to HTTP exceptions."""
    if isinstance(error, AuthorizationError):
        return HTTPException(status_code=401, detail=str(error))
    if isinstance(error, ForbiddenError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, BadRequestError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, InMemoryDatabaseError):
        return HTTPException(status_code=406, detail=str(error))
    if isinstance(error, RestoreError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, InternalError):
        return HTTPException(
            status_code=500,
            detail=f"FATAL: {error} The database may be in an inconsistent state.",
        )
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=500, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
