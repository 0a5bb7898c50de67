"""
Image Repository - Data access layer for stored images.
"""

from typing import Optional
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.db.models import ImageDB
from gamevault.models.user import Image
from gamevault.repositories.user_repo import image_to_record


class ImageRepository:
    """Repository for Image records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, image_id: int) -> Optional[Image]:
        result = await self.session.execute(
            select(ImageDB).where(ImageDB.id == image_id, ImageDB.deleted_at.is_(None))
        )
        return image_to_record(result.scalar_one_or_none())

    async def create(
        self,
        path: str,
        source: Optional[str] = None,
        media_type: Optional[str] = None,
        uploader_id: Optional[int] = None,
    ) -> Image:
        image = ImageDB(
            path=path,
            source=source,
            media_type=media_type,
            uploader_id=uploader_id,
            created_at=datetime.utcnow(),
            deleted_at=None,
        )
        self.session.add(image)
        await self.session.flush()
        return image_to_record(image)
