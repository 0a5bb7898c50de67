"""
SQLAlchemy ORM models for GameVault.

Tables:
- images: Stored images (profile pictures, background art)
- gamevault_users: User accounts (soft-deletable)
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gamevault.db.database import Base


class ImageDB(Base):
    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)  # original URL
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    media_type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    uploader_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # gamevault_users.id
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class UserDB(Base):
    """
    User accounts.

    The password column holds a bcrypt hash and is never exposed through the
    API schemas.
    """
    __tablename__ = "gamevault_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    activated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    role: Mapped[int] = mapped_column(Integer, default=1, nullable=False)  # see models.user.Role
    profile_picture_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=True
    )
    background_image_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    profile_picture: Mapped[Optional[ImageDB]] = relationship(
        ImageDB, foreign_keys=[profile_picture_id], lazy="selectin"
    )
    background_image: Mapped[Optional[ImageDB]] = relationship(
        ImageDB, foreign_keys=[background_image_id], lazy="selectin"
    )
