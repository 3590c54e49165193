"""
Image service for listing image uploads, reference planning, and cleanup.
Validates uploads, stores blobs concurrently, and works out which stored blobs a
listing no longer references.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi import UploadFile

from app.config import Settings, get_settings
from app.models.listing import Listing
from app.utils.exceptions import ValidationError, ResourceLimitExceededError, UpstreamServiceError
from app.utils.file_utils import BlobStore, FileValidator, StorageError

logger = logging.getLogger(__name__)


@dataclass
class PendingImage:
    """A validated upload that has not been stored yet."""
    filename: str
    content_type: str
    data: bytes


@dataclass
class StoredImage:
    """A blob in the object store and its public URL."""
    key: str
    url: str


@dataclass
class ImageSet:
    """A listing's complete, ordered image set."""
    primary: Optional[StoredImage] = None
    secondary: List[StoredImage] = field(default_factory=list)

    @classmethod
    def from_listing(cls, listing: Listing) -> "ImageSet":
        primary = None
        if listing.image_url and listing.image_key:
            primary = StoredImage(listing.image_key, listing.image_url)
        secondary = [
            StoredImage(key, url)
            for key, url in zip(listing.image_keys or [], listing.images or [])
        ]
        return cls(primary=primary, secondary=secondary)

    def all(self) -> List[StoredImage]:
        return ([self.primary] if self.primary else []) + list(self.secondary)

    def keys(self) -> List[str]:
        return [image.key for image in self.all()]

    def as_columns(self) -> dict:
        """Column values for the listing row."""
        return {
            "image_url": self.primary.url if self.primary else None,
            "image_key": self.primary.key if self.primary else None,
            "images": [image.url for image in self.secondary],
            "image_keys": [image.key for image in self.secondary],
        }


@dataclass
class ImagePlan:
    """New image set for a listing plus the stored keys it leaves behind."""
    images: ImageSet
    orphaned_keys: List[str] = field(default_factory=list)


class ImageService:
    """Service for managing listing image blobs."""

    def __init__(self, blob_store: BlobStore, app_settings: Optional[Settings] = None):
        self.settings = app_settings or get_settings()
        self.blob_store = blob_store
        self.validator = FileValidator(
            allowed_types=self.settings.allowed_image_types,
            allowed_extensions=self.settings.allowed_image_extensions,
            max_file_size=self.settings.max_file_size,
        )
        self.max_images = self.settings.max_images_per_request

    async def read_uploads(self, files: Sequence[UploadFile]) -> List[PendingImage]:
        """
        Validate uploaded files and read them into memory.

        Every file is checked before anything is stored.

        Raises:
            ResourceLimitExceededError: If more files than allowed were sent
            ValidationError / UnsupportedFileTypeError / FileSizeExceededError
        """
        files = [f for f in files if f is not None and f.filename]
        if len(files) > self.max_images:
            raise ResourceLimitExceededError("Images per request", self.max_images)

        pending = []
        for upload in files:
            self.validator.validate_file_extension(upload.filename)
            content_type = self.validator.validate_mime_type(upload.content_type)

            await upload.seek(0)
            data = await upload.read()
            self.validator.validate_file_size(upload.filename, len(data))

            pending.append(PendingImage(upload.filename, content_type, data))

        return pending

    def generate_key(self, filename: str) -> str:
        """Timestamp plus random suffix plus the original extension."""
        extension = Path(filename).suffix.lower()
        return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:13]}{extension}"

    async def _store(self, image: PendingImage) -> StoredImage:
        key = self.generate_key(image.filename)
        await self.blob_store.put(key, image.data, image.content_type)
        return StoredImage(key=key, url=self.blob_store.public_url(key))

    async def upload_batch(self, pending: Sequence[PendingImage]) -> List[StoredImage]:
        """
        Store all images concurrently, preserving input order.

        If any upload fails the ones that succeeded are removed again and the
        whole batch fails.

        Raises:
            UpstreamServiceError: If any upload fails
        """
        if not pending:
            return []

        results = await asyncio.gather(
            *[self._store(image) for image in pending],
            return_exceptions=True
        )

        stored = [r for r in results if isinstance(r, StoredImage)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {len(pending)} image uploads failed: {failures[0]}")
            await self.discard([image.key for image in stored])
            raise UpstreamServiceError("Failed to upload images", diagnostic=str(failures[0]))

        logger.debug(f"Uploaded {len(stored)} images")
        return stored

    def plan_create(self, uploaded: Sequence[StoredImage]) -> ImagePlan:
        """First upload becomes the primary image, the rest follow in order."""
        uploaded = list(uploaded)
        if not uploaded:
            return ImagePlan(images=ImageSet())
        return ImagePlan(images=ImageSet(primary=uploaded[0], secondary=uploaded[1:]))

    def plan_update(
        self,
        current: ImageSet,
        uploaded: Sequence[StoredImage],
        keep_urls: Optional[Sequence[str]] = None
    ) -> ImagePlan:
        """
        Work out a listing's new image set.

        Args:
            current: The listing's stored image set
            uploaded: Images stored for this request, in upload order
            keep_urls: Current image URLs the client wants to keep as secondary
                images; None keeps the current secondary images

        Returns:
            ImagePlan whose orphaned keys are the stored blobs no longer referenced

        Raises:
            ValidationError: If a kept URL is not one of the listing's images
        """
        known = {image.url: image for image in current.all()}

        if keep_urls is None:
            kept = list(current.secondary)
        else:
            kept = []
            seen = set()
            for url in keep_urls:
                if url not in known:
                    raise ValidationError(
                        "existing_images may only reference the listing's current images",
                        field_errors=[{"field": "existing_images", "message": f"Unknown image: {url}"}]
                    )
                if url not in seen:
                    seen.add(url)
                    kept.append(known[url])

        uploaded = list(uploaded)
        if uploaded:
            primary = uploaded[0]
            secondary = kept + uploaded[1:]
        else:
            primary = current.primary
            secondary = kept

        # The primary may not also be listed as a secondary image
        if primary is not None:
            secondary = [image for image in secondary if image.key != primary.key]

        new_set = ImageSet(primary=primary, secondary=secondary)
        retained = set(new_set.keys())
        orphaned = [key for key in current.keys() if key not in retained]
        return ImagePlan(images=new_set, orphaned_keys=orphaned)

    async def discard(self, keys: Sequence[str]) -> bool:
        """
        Best-effort removal of blobs that nothing references any more.

        Returns:
            True if the store removed everything, False if it failed (logged)
        """
        keys = [key for key in keys if key]
        if not keys:
            return True

        try:
            await self.blob_store.remove(keys)
            logger.debug(f"Removed {len(keys)} image blobs")
            return True
        except StorageError as e:
            logger.warning(f"Failed to remove image blobs {keys}: {e}")
            return False
