"""
File upload utilities for listing images.
Provides the upload allow-list validator and the object store used for image blobs.
"""

import errno
from pathlib import Path
from typing import Iterable, List, Optional, Protocol
import aiofiles
import aiofiles.os

from app.config import get_settings
from app.utils.exceptions import (
    ValidationError,
    UnsupportedFileTypeError,
    FileSizeExceededError,
)

settings = get_settings()


class FileValidator:
    """Allow-list checks for uploaded listing images."""

    def __init__(
        self,
        allowed_types: Optional[Iterable[str]] = None,
        allowed_extensions: Optional[Iterable[str]] = None,
        max_file_size: Optional[int] = None
    ):
        self.allowed_types = [t.lower() for t in (allowed_types or settings.allowed_image_types)]
        self.allowed_extensions = [e.lower() for e in (allowed_extensions or settings.allowed_image_extensions)]
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_file_extension(self, filename: Optional[str]) -> str:
        """
        Validate file extension.

        Args:
            filename: Name of the file

        Returns:
            Lowercase file extension

        Raises:
            ValidationError: If the filename is missing
            UnsupportedFileTypeError: If extension is not allowed
        """
        if not filename:
            raise ValidationError("Filename is required")

        extension = Path(filename).suffix.lower()
        if extension not in self.allowed_extensions:
            raise UnsupportedFileTypeError(extension or filename, self.allowed_extensions)

        return extension

    def validate_mime_type(self, mime_type: Optional[str]) -> str:
        """
        Validate the declared content type.

        Raises:
            UnsupportedFileTypeError: If the content type is not allowed
        """
        normalized = (mime_type or "").split(";")[0].strip().lower()
        if normalized not in self.allowed_types:
            raise UnsupportedFileTypeError(normalized or "unknown", self.allowed_types)
        return normalized

    def validate_file_size(self, filename: str, file_size: int) -> int:
        """
        Validate file size.

        Raises:
            ValidationError: If the file is empty
            FileSizeExceededError: If file size exceeds limit
        """
        if file_size <= 0:
            raise ValidationError(f"File '{filename}' is empty")

        if file_size > self.max_file_size:
            raise FileSizeExceededError(filename, file_size, self.max_file_size)

        return file_size


class StorageError(Exception):
    """Raised when the object store rejects or fails an operation."""


class BlobStore(Protocol):
    """Object store capability: put, public URL, and bulk remove by key."""

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def public_url(self, key: str) -> str:
        ...

    async def remove(self, keys: List[str]) -> None:
        ...


class LocalBlobStore:
    """
    Object store backed by a local directory, served by the app as static files.

    Keys are flat file names; existing keys are never overwritten and removing
    a missing key is not an error.
    """

    def __init__(self, base_dir: Optional[Path] = None, base_url: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = (base_url or settings.media_base_url).rstrip("/")

    def _path_for(self, key: str) -> Path:
        if not key or Path(key).name != key or key in (".", ".."):
            raise StorageError(f"Invalid object key: {key!r}")
        return self.base_dir / key

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """
        Store a blob under a new key.

        Raises:
            StorageError: If the key already exists or the write fails
        """
        file_path = self._path_for(key)
        try:
            async with aiofiles.open(file_path, "xb") as f:
                await f.write(data)
        except FileExistsError:
            raise StorageError(f"Object already exists: {key}")
        except OSError as e:
            raise StorageError(f"Failed to store object {key}: {e}")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def remove(self, keys: List[str]) -> None:
        """
        Remove blobs by key.

        Raises:
            StorageError: If any existing blob could not be removed
        """
        failures = []
        for key in keys:
            try:
                await aiofiles.os.remove(self._path_for(key))
            except StorageError as e:
                failures.append(str(e))
            except OSError as e:
                if e.errno != errno.ENOENT:
                    failures.append(f"{key}: {e}")

        if failures:
            raise StorageError(f"Failed to remove objects: {'; '.join(failures)}")

    def exists(self, key: str) -> bool:
        return self._path_for(key).exists()
