"""
Database layer for GameVault.

This module provides:
- Database connection lifecycle (connect/disconnect/migrate)
- SQLAlchemy ORM models
"""

from gamevault.db.database import (
    Base,
    DatabaseConnection,
    database,
    get_db,
)
from gamevault.db.models import (
    ImageDB,
    UserDB,
)

__all__ = [
    # Database
    "Base",
    "DatabaseConnection",
    "database",
    "get_db",
    # Models
    "ImageDB",
    "UserDB",
]
