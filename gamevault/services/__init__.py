"""
Service layer for GameVault.

This module provides business logic for:
- Database backup and restore
- User accounts
- Image storage
"""

from gamevault.services.errors import (
    GamevaultError,
    ConfigurationError,
    InMemoryDatabaseError,
    AuthorizationError,
    ForbiddenError,
    AlreadyExistsError,
    BadRequestError,
    NotFoundError,
    ProcessExecutionError,
    BackupError,
    RestoreError,
    InternalError,
)
from gamevault.services.database_service import DatabaseService
from gamevault.services.engines import RestorePackage
from gamevault.services.user_service import UserService
from gamevault.services.image_service import ImageService

__all__ = [
    "DatabaseService",
    "RestorePackage",
    "UserService",
    "ImageService",
    "GamevaultError",
    "ConfigurationError",
    "InMemoryDatabaseError",
    "AuthorizationError",
    "ForbiddenError",
    "AlreadyExistsError",
    "BadRequestError",
    "NotFoundError",
    "ProcessExecutionError",
    "BackupError",
    "RestoreError",
    "InternalError",
]
