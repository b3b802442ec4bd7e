"""
Artifact storage for gallery uploads.
Writes originals and variants to object storage under collision-free paths
and removes them again on compensation or deletion.
"""
import abc
import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional

from app.config import settings
from app.errors import FileUploadError
from app.utils.image_converter import ImageArtifact, ProcessedImage

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


class StorageBackend(abc.ABC):
    """Object storage capability used by ArtifactStore."""

    @abc.abstractmethod
    async def put(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at path and return the public URL."""

    @abc.abstractmethod
    async def remove(self, paths: List[str]) -> None:
        """Remove the objects stored at paths."""

    @abc.abstractmethod
    def path_from_url(self, url: str) -> Optional[str]:
        """Map a public URL back to its storage path, or None if it is not ours."""


@dataclass
class StoredArtifact:
    path: str
    url: str
    width: int
    height: int
    size: int
    format: str


@dataclass
class UploadedArtifacts:
    original: StoredArtifact
    variants: Dict[str, StoredArtifact] = field(default_factory=dict)

    @property
    def paths(self) -> List[str]:
        return [self.original.path] + [v.path for v in self.variants.values()]


def sanitize_base_name(filename: str) -> str:
    """
    Filename stem with everything except ASCII letters and digits removed.
    'Elegant Dining-Room.jpg' -> 'ElegantDiningRoom'
    """
    stem = PurePath(filename or "").stem
    return _NON_ALPHANUMERIC.sub("", stem) or "image"


def original_path(timestamp_ms: int, base_name: str, fmt: str) -> str:
    return f"originals/{timestamp_ms}-{base_name}.{fmt}"


def variant_path(timestamp_ms: int, base_name: str, variant_type: str, fmt: str) -> str:
    return f"variants/{timestamp_ms}-{base_name}-{variant_type}.{fmt}"


class ArtifactStore:
    """
    Uploads an ingestion's artifacts through a StorageBackend.

    The original must succeed; variants are uploaded concurrently and a failed
    variant is dropped from the result instead of failing the upload.
    """

    def __init__(
        self,
        backend: StorageBackend,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.backend = backend
        self.timeout = settings.STORAGE_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.STORAGE_MAX_RETRIES if max_retries is None else max_retries
        self.backoff = settings.STORAGE_RETRY_BACKOFF_SECONDS if backoff is None else backoff

    async def _put(self, path: str, artifact: ImageArtifact) -> str:
        """
        Put with a deadline per attempt and exponential backoff between attempts.
        Paths are deterministic so a repeated put overwrites the same object.
        """
        attempts = max(1, self.max_retries)
        for attempt in range(attempts):
            try:
                return await asyncio.wait_for(
                    self.backend.put(path, artifact.data, artifact.content_type),
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.warning(
                    f"Storage put failed for {path} (attempt {attempt + 1}/{attempts}): "
                    f"{type(e).__name__}: {str(e)}"
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self.backoff * (2 ** attempt))
                    continue
                raise

    async def _upload_variant(self, path: str, variant_type: str, artifact: ImageArtifact) -> StoredArtifact:
        url = await self._put(path, artifact)
        logger.info(f"Uploaded variant {variant_type}: {path}")
        return StoredArtifact(
            path=path,
            url=url,
            width=artifact.width,
            height=artifact.height,
            size=artifact.size,
            format=artifact.format,
        )

    async def upload(
        self,
        processed: ProcessedImage,
        filename: str,
        timestamp_ms: Optional[int] = None,
    ) -> UploadedArtifacts:
        """
        Upload the original and every variant.

        Raises:
            FileUploadError: If the original could not be stored
        """
        timestamp_ms = timestamp_ms or int(time.time() * 1000)
        base_name = sanitize_base_name(filename)
        original = processed.original

        path = original_path(timestamp_ms, base_name, original.format)
        logger.info(f"Uploading original {filename} to {path} ({original.size:,} bytes)")
        try:
            url = await self._put(path, original)
        except Exception as e:
            logger.error(f"Original upload failed for {filename}: {str(e)}")
            raise FileUploadError(
                f"Failed to upload original image: {str(e)}", status_code=500
            ) from e

        result = UploadedArtifacts(
            original=StoredArtifact(
                path=path,
                url=url,
                width=original.width,
                height=original.height,
                size=original.size,
                format=original.format,
            )
        )

        variant_types = list(processed.variants)
        outcomes = await asyncio.gather(
            *[
                self._upload_variant(
                    variant_path(timestamp_ms, base_name, variant_type, artifact.format),
                    variant_type,
                    artifact,
                )
                for variant_type, artifact in processed.variants.items()
            ],
            return_exceptions=True,
        )

        for variant_type, outcome in zip(variant_types, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Variant upload error for {variant_type}, omitting it: {str(outcome)}")
                continue
            result.variants[variant_type] = outcome

        logger.info(
            f"Storage upload completed for {filename}: original stored, "
            f"{len(result.variants)}/{len(variant_types)} variants stored"
        )
        return result

    async def delete(self, paths: Iterable[Optional[str]]) -> None:
        """
        Best-effort batch removal.
        Never raises; calling it again with the same paths is harmless.
        """
        unique: List[str] = []
        for path in paths:
            if path and path not in unique:
                unique.append(path)
        if not unique:
            return

        try:
            await asyncio.wait_for(self.backend.remove(unique), timeout=self.timeout)
            logger.info(f"Removed {len(unique)} storage object(s)")
        except Exception as e:
            logger.error(f"Storage cleanup failed for {unique}: {str(e)}", exc_info=True)

    def paths_for(self, urls: Iterable[Optional[str]]) -> List[str]:
        """Storage paths for the URLs that belong to this store."""
        paths = []
        for url in urls:
            if not url:
                continue
            path = self.backend.path_from_url(url)
            if path:
                paths.append(path)
            else:
                logger.warning(f"Could not resolve storage path from URL: {url}")
        return paths
