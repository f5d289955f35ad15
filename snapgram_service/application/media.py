"""
Image upload and removal for posts, communities and profiles
"""
from datetime import datetime
from io import BytesIO
from typing import Iterable, List, Optional
import hashlib
import logging

from fastapi import HTTPException, UploadFile, status
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..domain.models import ImageRef
from ..infrastructure.storage import StorageError, StorageManager
from .errors import InvalidInputError

logger = logging.getLogger(__name__)


def generate_unique_filename(original_filename: Optional[str], owner_id: str, image_format: str) -> str:
    """Generate a unique object key for storage"""
    timestamp = datetime.utcnow().isoformat()
    hash_input = f"{owner_id}_{original_filename}_{timestamp}"
    file_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:16]
    return f"{settings.MEDIA_FOLDER}/{owner_id}/{file_hash}.{image_format.lower()}"


class ImageService:
    """Validate uploads and move them in and out of object storage"""

    def __init__(self, storage: StorageManager):
        self.storage = storage

    def _validate(self, content_type: Optional[str], data: bytes) -> str:
        """
        Check type, size and that the payload really is an image

        Returns:
            Pillow format name of the image
        """
        expected_format = settings.ALLOWED_IMAGE_TYPES.get(content_type or "")
        if expected_format is None:
            raise InvalidInputError("Unsupported file format.")

        if len(data) > settings.MAX_IMAGE_SIZE_BYTES:
            raise InvalidInputError(
                f"File size exceeds maximum allowed size of {settings.MAX_IMAGE_SIZE_BYTES} bytes."
            )

        try:
            with Image.open(BytesIO(data)) as img:
                img.verify()
                image_format = img.format
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise InvalidInputError("Unsupported file format.")

        if image_format != expected_format:
            raise InvalidInputError("Unsupported file format.")

        return image_format

    async def upload(self, file: UploadFile, owner_id: str) -> ImageRef:
        """Upload one image and return its storage reference"""
        data = await file.read()
        image_format = self._validate(file.content_type, data)

        key = generate_unique_filename(file.filename, owner_id, image_format)
        try:
            await run_in_threadpool(
                self.storage.upload_file,
                BytesIO(data),
                key,
                file.content_type,
                {"owner_id": owner_id},
            )
        except StorageError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to upload file to storage"
            )

        return ImageRef(public_id=key, secure_url=self.storage.get_url(key))

    async def upload_many(self, files: Iterable[UploadFile], owner_id: str) -> List[ImageRef]:
        """Upload images in order, removing the ones already stored if one fails"""
        uploaded: List[ImageRef] = []
        try:
            for file in files:
                uploaded.append(await self.upload(file, owner_id))
        except HTTPException:
            await self.delete_many(image.public_id for image in uploaded)
            raise
        return uploaded

    async def delete(self, public_id: str) -> bool:
        """Delete one stored image, failures are logged and reported as False"""
        deleted = await run_in_threadpool(self.storage.delete_file, public_id)
        if not deleted:
            logger.warning(f"Image {public_id} could not be deleted from storage")
        return deleted

    async def delete_many(self, public_ids: Iterable[str]) -> int:
        """Delete stored images, returns how many were removed"""
        removed = 0
        for public_id in public_ids:
            if await self.delete(public_id):
                removed += 1
        return removed
