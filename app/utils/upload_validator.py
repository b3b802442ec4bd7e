"""
Upload validation for gallery images.
Cheap checks only: nothing is decoded and nothing is written.
"""
from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from app.config import settings
from app.errors import FileUploadError

logger = logging.getLogger(__name__)


@dataclass
class FileUpload:
    """Raw upload handed over by the HTTP layer."""
    data: bytes
    filename: str
    mime_type: str
    size: int = 0

    @property
    def byte_length(self) -> int:
        return max(len(self.data or b""), self.size or 0)

    @property
    def extension(self) -> Optional[str]:
        if not self.filename or "." not in self.filename:
            return None
        return self.filename.rsplit(".", 1)[1].lower() or None


def validate_upload(
    upload: Optional[FileUpload],
    max_size: Optional[int] = None,
    allowed_extensions: Optional[Iterable[str]] = None,
    allowed_mime_types: Optional[Iterable[str]] = None,
) -> None:
    """
    Validate a candidate upload before any expensive work.

    Checks run in order: non-empty buffer, size limit, filename extension,
    declared MIME type.

    Raises:
        FileUploadError: With a human-readable reason for the first failed check
    """
    max_size = settings.MAX_UPLOAD_SIZE if max_size is None else max_size
    extensions = [e.lower() for e in (allowed_extensions or settings.ALLOWED_EXTENSIONS)]
    mime_types = [m.lower() for m in (allowed_mime_types or settings.ALLOWED_MIME_TYPES)]

    if upload is None or not upload.data:
        raise FileUploadError("No file provided")

    if upload.byte_length > max_size:
        raise FileUploadError(
            f"File size exceeds maximum limit of {max_size / 1024 / 1024:g}MB"
        )

    if upload.extension not in extensions:
        raise FileUploadError(
            f"Invalid file format. Allowed formats: {', '.join(extensions)}"
        )

    if (upload.mime_type or "").lower() not in mime_types:
        raise FileUploadError(
            f"Invalid file type. Allowed types: {', '.join(mime_types)}"
        )

    logger.debug(f"Upload passed validation: {upload.filename} ({upload.byte_length:,} bytes)")
