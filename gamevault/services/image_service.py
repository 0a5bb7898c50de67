"""
Image Service - resolves stored images and downloads new ones by URL.

Only storage is handled here; images are kept byte-for-byte as downloaded.
"""

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from gamevault.config import Settings
from gamevault.models.user import Image
from gamevault.repositories.image_repo import ImageRepository
from gamevault.repositories.user_repo import UserRepository
from gamevault.services.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30  # seconds


class ImageService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.images = ImageRepository(session)
        self.users = UserRepository(session)
        self._http_client = http_client

    async def find_by_id_or_fail(self, image_id: int) -> Image:
        image = await self.images.get_by_id(image_id)
        if image is None:
            raise NotFoundError(f"Image with id {image_id} was not found.")
        return image

    async def download_by_url(self, url: str, uploader_username: Optional[str] = None) -> Image:
        """Download an image and store it under the images volume."""
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT) as client:
                    response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Image download from {url} failed: {e}")
            raise BadRequestError(f"Image could not be downloaded from {url}: {e}") from e

        media_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if not media_type.startswith("image/"):
            raise BadRequestError(f"URL {url} does not point to an image ({media_type or 'unknown type'}).")

        extension = mimetypes.guess_extension(media_type) or ""
        images_dir = Path(self.settings.volumes_images)
        images_dir.mkdir(parents=True, exist_ok=True)
        path = images_dir / f"{uuid.uuid4()}{extension}"
        async with aiofiles.open(path, "wb") as f:
            await f.write(response.content)

        uploader_id = None
        if uploader_username:
            uploader = await self.users.get_by_username(uploader_username)
            uploader_id = uploader.id if uploader else None

        image = await self.images.create(
            path=str(path), source=url, media_type=media_type, uploader_id=uploader_id
        )
        logger.info(f"Downloaded image {image.id} from {url}")
        return image
