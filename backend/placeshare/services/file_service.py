"""
PlaceShare Backend — Image Blob Storage
=========================================

What:  Validates, stores and removes uploaded place images.
How:   Validates extension and size, writes the bytes under STORAGE_ROOT with
       a UUID filename, and returns the path relative to STORAGE_ROOT. That
       relative path is what a Place records as `image`.
Who:   The create route stores uploads; PlaceService removes them after a
       delete commits, or after a create fails.

Upload checks:
    1. Extension:  png, jpg, jpeg only
    2. Size:       1 byte up to MAX_FILE_SIZE
    3. Filename:   UUID, no user input reaches the file system path

Removal contract:
    remove() is best-effort from the caller's point of view. A missing file
    is not an error; any other OSError is raised so the caller can log it.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from placeshare.config import settings
from placeshare.exceptions import StoreUnavailableError, ValidationError

logger = logging.getLogger(__name__)

# Extension → canonical stored extension
ALLOWED_EXTENSIONS = {
    ".png": ".png",
    ".jpg": ".jpg",
    ".jpeg": ".jpeg",
}


class BlobStore(ABC):
    """Opaque storage for uploaded images, keyed by relative path."""

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete the blob at `path`. Missing blobs are ignored."""
        ...


class FileService(BlobStore):
    """
    Local-disk BlobStore for place images.

    Directory Structure:
        uploads/images/
        ├── 0b7c1d0e-....png
        └── 9f2e44aa-....jpg
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension for `filename`.

        Raises:
            ValidationError if the extension is not an allowed image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ALLOWED_EXTENSIONS[ext]

    def validate_size(self, size: int) -> None:
        """
        Rejects empty uploads and uploads over MAX_FILE_SIZE.

        Raises:
            ValidationError with a human-readable limit.
        """
        if size == 0:
            raise ValidationError(message="Uploaded image is empty.", field="image")
        if size > settings.max_file_size:
            max_kb = settings.max_file_size / 1000
            raise ValidationError(
                message=f"Image is too large ({size / 1000:.0f}KB). Maximum is {max_kb:.0f}KB.",
                field="image",
                context={"max_size": settings.max_file_size, "actual_size": size},
            )

    def resolve(self, path: str) -> Path:
        """
        Absolute location of a stored blob.

        Raises:
            ValidationError if `path` escapes the storage root.
        """
        full_path = (self.storage_root / path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write `content` under a new UUID filename.

        Returns:
            Path relative to the storage root.

        Raises:
            StoreUnavailableError if the write fails.
        """
        relative_path = f"{uuid.uuid4()}{extension}"
        absolute_path = self.storage_root / relative_path

        try:
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise StoreUnavailableError(
                message="Failed to save uploaded image. Please try again.",
                context={"os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def validate_and_store(self, filename: str, content: bytes) -> str:
        """
        Validate an upload and store it.

        Cheap checks run first; nothing touches the disk until both pass.

        Returns:
            Relative path to record on the Place.
        """
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        return await self.store_file(content, ext)

    async def remove(self, path: str) -> None:
        full_path = self.resolve(path)
        try:
            await aiofiles.os.remove(full_path)
            logger.info("Removed image: %s", path)
        except FileNotFoundError:
            logger.debug("Image already gone: %s", path)


file_service = FileService()
