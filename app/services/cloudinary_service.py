"""
Cloudinary storage backend for gallery artifacts.
Stores originals and variants verbatim and serves them from Cloudinary's CDN.
"""
import cloudinary
import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from app.config import settings
from app.services.storage import StorageBackend
import logging
import asyncio
import re
from typing import Optional, List

logger = logging.getLogger(__name__)

# Configure Cloudinary with credentials from settings
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True  # Always use HTTPS for secure URLs
)

# Artifacts are stored as raw resources so the bytes are kept exactly as
# written (undecodable originals included) and no server-side transformation
# is applied.
RESOURCE_TYPE = "raw"

# Cloudinary's delete_resources accepts at most 100 public ids per call
DELETE_BATCH_SIZE = 100


def extract_public_id_from_url(cloudinary_url: str) -> str:
    """
    Extract Cloudinary public_id from URL.

    Cloudinary delivery URLs look like:
    https://res.cloudinary.com/{cloud_name}/raw/upload/v{version}/{public_id}
    https://res.cloudinary.com/{cloud_name}/image/upload/{public_id}.{format}

    Raw public ids keep their extension, image public ids do not.

    Raises:
        ValueError: If URL format is invalid
    """
    pattern = r'/(image|raw)/upload(?:/v\d+)?/(.+)$'
    match = re.search(pattern, cloudinary_url)

    if not match:
        raise ValueError(f"Invalid Cloudinary URL format: {cloudinary_url}")

    resource_type, public_id = match.group(1), match.group(2)
    if resource_type == "image":
        # "gallery/image.jpg" -> "gallery/image"
        parts = public_id.split('/')
        if '.' in parts[-1]:
            parts[-1] = parts[-1].rsplit('.', 1)[0]
        public_id = '/'.join(parts)
    return public_id


class CloudinaryStorage(StorageBackend):
    """
    StorageBackend writing to a Cloudinary folder.
    The storage path becomes the public id under the configured folder.
    """

    def __init__(self, folder: Optional[str] = None, max_retries: int = 3):
        self.folder = (folder if folder is not None else settings.CLOUDINARY_FOLDER).strip("/")
        self.max_retries = max_retries

    def public_id_for(self, path: str) -> str:
        return f"{self.folder}/{path}" if self.folder else path

    def path_from_url(self, url: str) -> Optional[str]:
        try:
            public_id = extract_public_id_from_url(url)
        except ValueError as e:
            logger.warning(f"Failed to extract public_id from URL: {str(e)}")
            return None

        prefix = f"{self.folder}/" if self.folder else ""
        if not public_id.startswith(prefix):
            return None
        return public_id[len(prefix):]

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes to Cloudinary.

        Returns:
            str: Secure HTTPS URL of the stored object

        Raises:
            CloudinaryError: If Cloudinary rejects the upload
        """
        public_id = self.public_id_for(path)
        result = await asyncio.to_thread(
            cloudinary.uploader.upload,
            data,
            public_id=public_id,
            resource_type=RESOURCE_TYPE,
            overwrite=True,
            invalidate=True,
        )
        logger.info(f"Successfully uploaded to Cloudinary: {result['public_id']} ({content_type})")
        return result["secure_url"]

    async def remove(self, paths: List[str]) -> None:
        """
        Delete objects from Cloudinary with retry logic.

        Raises:
            CloudinaryError: If deletion fails after all retries
        """
        public_ids = [self.public_id_for(p) for p in paths]
        for start in range(0, len(public_ids), DELETE_BATCH_SIZE):
            batch = public_ids[start:start + DELETE_BATCH_SIZE]
            await self._delete_batch(batch)

    async def _delete_batch(self, public_ids: List[str]) -> None:
        for attempt in range(self.max_retries):
            try:
                result = await asyncio.to_thread(
                    cloudinary.api.delete_resources,
                    public_ids,
                    resource_type=RESOURCE_TYPE,
                    invalidate=True,  # Invalidate CDN cache
                )
                deleted = result.get("deleted", {})
                unexpected = {
                    pid: status for pid, status in deleted.items()
                    if status not in ("deleted", "not_found")
                }
                if unexpected:
                    logger.warning(f"Unexpected Cloudinary delete result: {unexpected}")
                else:
                    logger.info(f"Successfully deleted from Cloudinary: {public_ids}")
                return

            except CloudinaryError as e:
                logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")

                # Retry with exponential backoff for transient failures
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                    continue

                logger.error(f"Cloudinary delete failed after {self.max_retries} attempts: {str(e)}")
                raise


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    if not settings.CLOUDINARY_CLOUD_NAME:
        logger.warning("CLOUDINARY_CLOUD_NAME not configured")
        return False
    if not settings.CLOUDINARY_API_KEY:
        logger.warning("CLOUDINARY_API_KEY not configured")
        return False
    if not settings.CLOUDINARY_API_SECRET:
        logger.warning("CLOUDINARY_API_SECRET not configured")
        return False

    logger.info("Cloudinary configuration validated successfully")
    return True
