"""User records, independent of persistence and API shape."""
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional


class Role(IntEnum):
    GUEST = 0
    USER = 1
    EDITOR = 2
    ADMIN = 3


@dataclass
class Image:
    id: int
    path: str
    source: Optional[str] = None
    media_type: Optional[str] = None
    uploader_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class User:
    id: Optional[int]
    username: str
    password: Optional[str] = None  # bcrypt hash; None when not loaded
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    activated: bool = False
    role: Role = Role.USER
    profile_picture: Optional[Image] = None
    background_image: Optional[Image] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
