"""
Repository layer for GameVault.

This module provides data access abstractions for:
- Users
- Images
"""

from gamevault.repositories.user_repo import UserRepository
from gamevault.repositories.image_repo import ImageRepository

__all__ = [
    "UserRepository",
    "ImageRepository",
]
