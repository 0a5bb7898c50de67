"""
User Repository - Data access layer for user accounts.

Maps between the ``gamevault_users`` table (UserDB) and the plain ``User``
record used by the service layer.
"""

from typing import Optional, List
from datetime import datetime

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.db.models import UserDB, ImageDB
from gamevault.models.user import Image, Role, User


def image_to_record(row: Optional[ImageDB]) -> Optional[Image]:
    if row is None or row.deleted_at is not None:
        return None
    return Image(
        id=row.id,
        path=row.path,
        source=row.source,
        media_type=row.media_type,
        uploader_id=row.uploader_id,
        created_at=row.created_at,
    )


def user_to_record(row: UserDB) -> User:
    return User(
        id=row.id,
        username=row.username,
        password=row.password,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        activated=row.activated,
        role=Role(row.role),
        profile_picture=image_to_record(row.profile_picture),
        background_image=image_to_record(row.background_image),
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


class UserRepository:
    """Repository for User CRUD operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, user_id: int, include_deleted: bool = False) -> Optional[UserDB]:
        stmt = select(UserDB).where(UserDB.id == user_id)
        if not include_deleted:
            stmt = stmt.where(UserDB.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int, include_deleted: bool = False) -> Optional[User]:
        row = await self._get_row(user_id, include_deleted)
        return user_to_record(row) if row else None

    async def get_by_username(
        self, username: str, include_deleted: bool = False
    ) -> Optional[User]:
        """Case-insensitive lookup by username."""
        stmt = select(UserDB).where(func.lower(UserDB.username) == username.lower())
        if not include_deleted:
            stmt = stmt.where(UserDB.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return user_to_record(row) if row else None

    async def find_conflict(
        self, username: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[User]:
        """Find any user (deleted ones included) holding the username or email."""
        conditions = []
        if username:
            conditions.append(func.lower(UserDB.username) == username.lower())
        if email:
            conditions.append(func.lower(UserDB.email) == email.lower())
        if not conditions:
            return None
        result = await self.session.execute(select(UserDB).where(or_(*conditions)).limit(1))
        row = result.scalar_one_or_none()
        return user_to_record(row) if row else None

    async def list_all(
        self,
        include_deleted: bool = False,
        include_deactivated: bool = False,
    ) -> List[User]:
        stmt = select(UserDB).order_by(UserDB.id.asc())
        if not include_deleted:
            stmt = stmt.where(UserDB.deleted_at.is_(None))
        if not include_deactivated:
            stmt = stmt.where(UserDB.activated.is_(True))
        result = await self.session.execute(stmt)
        return [user_to_record(row) for row in result.scalars().all()]

    async def save(self, user: User) -> User:
        """Insert a new user (id None) or write all fields of an existing one."""
        now = datetime.utcnow()
        if user.id is None:
            row = UserDB(created_at=now)
            self.session.add(row)
        else:
            row = await self._get_row(user.id, include_deleted=True)
            if row is None:
                raise LookupError(f"User {user.id} does not exist")

        row.username = user.username
        if user.password is not None:
            row.password = user.password
        row.email = user.email
        row.first_name = user.first_name
        row.last_name = user.last_name
        row.activated = user.activated
        row.role = int(user.role)
        row.profile_picture_id = user.profile_picture.id if user.profile_picture else None
        row.background_image_id = user.background_image.id if user.background_image else None
        row.deleted_at = user.deleted_at
        row.updated_at = now

        await self.session.flush()
        result = await self.session.execute(
            select(UserDB).where(UserDB.id == row.id).execution_options(populate_existing=True)
        )
        return user_to_record(result.scalar_one())
