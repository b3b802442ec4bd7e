"""
Gallery image service.
Runs the ingestion pipeline (validate, transcode, store, persist) and the
CRUD operations layered on the same entities.
"""
import asyncio
import enum
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.errors import DatabaseError, FileUploadError, NotFoundError, ValidationError
from app.models import GalleryImage, VARIANT_TYPES
from app.repositories.gallery_repository import GalleryRepository, UPDATABLE_FIELDS
from app.schemas import GalleryImageMetadata
from app.services.storage import ArtifactStore, UploadedArtifacts
from app.utils.image_converter import process_image
from app.utils.upload_validator import FileUpload, validate_upload

logger = logging.getLogger(__name__)

# Updatable columns that are NOT NULL; an explicit null is a client error
REQUIRED_FIELDS = ("title", "display_order", "is_featured", "is_active")


class IngestionState(str, enum.Enum):
    VALIDATING = "VALIDATING"
    TRANSCODING = "TRANSCODING"
    UPLOADING = "UPLOADING"
    PERSISTING_IMAGE = "PERSISTING_IMAGE"
    COMPENSATING = "COMPENSATING"
    PERSISTING_VARIANTS = "PERSISTING_VARIANTS"
    DONE = "DONE"


class GalleryService:
    """
    Orchestrates gallery image ingestion and management.

    Storage and database are separate systems without a shared transaction:
    artifacts are uploaded first, rows are written second, and a failed image
    insert deletes the uploaded artifacts again.
    """

    def __init__(self, repository: GalleryRepository, store: ArtifactStore):
        self.repository = repository
        self.store = store

    def _transition(self, ingestion_id: str, state: IngestionState) -> None:
        logger.info(f"Ingestion {ingestion_id}: {state.value}")

    async def upload_image(
        self,
        file: FileUpload,
        metadata: GalleryImageMetadata,
        actor_id: str,
    ) -> Tuple[GalleryImage, bool]:
        """
        Ingest one uploaded image.

        Returns:
            Tuple of the persisted image (with variants) and a degraded flag,
            true when fewer than every variant type ended up persisted

        Raises:
            FileUploadError: Invalid file, original storage failure, or image row failure
            ValidationError: Invalid metadata
        """
        ingestion_id = uuid.uuid4().hex[:12]

        self._transition(ingestion_id, IngestionState.VALIDATING)
        validate_upload(file)
        if not metadata.title or not metadata.title.strip():
            raise ValidationError("Title is required")

        self._transition(ingestion_id, IngestionState.TRANSCODING)
        processed = await process_image(file.data, file.filename, file.mime_type)

        self._transition(ingestion_id, IngestionState.UPLOADING)
        uploaded = await self.store.upload(processed, file.filename)

        self._transition(ingestion_id, IngestionState.PERSISTING_IMAGE)
        try:
            image = await self.repository.insert_image({
                "title": metadata.title,
                "description": metadata.description,
                "alt_text": metadata.alt_text or metadata.title,
                "category": metadata.category,
                "tags": list(metadata.tags or []),
                "display_order": metadata.display_order,
                "is_featured": metadata.is_featured,
                "is_active": metadata.is_active,
                "original_url": uploaded.original.url,
                "width": uploaded.original.width,
                "height": uploaded.original.height,
                "file_size": uploaded.original.size,
                "mime_type": f"image/{uploaded.original.format}",
                "uploaded_by": actor_id,
            })
        except Exception as e:
            self._transition(ingestion_id, IngestionState.COMPENSATING)
            await self.store.delete(uploaded.paths)
            raise FileUploadError("Failed to create gallery image record", status_code=500) from e

        self._transition(ingestion_id, IngestionState.PERSISTING_VARIANTS)
        await self._persist_variants(image.id, uploaded)

        self._transition(ingestion_id, IngestionState.DONE)
        stored = await self.get_image(image.id)
        degraded = len(stored.image_variants) < len(VARIANT_TYPES)
        if degraded:
            logger.warning(
                f"Ingestion {ingestion_id}: image {stored.id} persisted with "
                f"{len(stored.image_variants)}/{len(VARIANT_TYPES)} variants"
            )
        logger.info(f"Gallery image uploaded successfully: {stored.id} '{stored.title}' by {actor_id}")
        return stored, degraded

    async def _persist_variants(self, image_id: str, uploaded: UploadedArtifacts) -> None:
        """Variant rows are secondary: a failure here leaves the image without them."""
        rows = [
            {
                "variant_type": variant_type,
                "url": artifact.url,
                "width": artifact.width,
                "height": artifact.height,
                "file_size": artifact.size,
                "format": artifact.format,
            }
            for variant_type, artifact in uploaded.variants.items()
        ]
        try:
            count = await self.repository.insert_variants(image_id, rows)
            logger.info(f"Image variants created for {image_id}: {count}")
        except DatabaseError as e:
            logger.error(
                f"Error creating image variants for {image_id}, continuing without them: {str(e)}"
            )

    async def list_images(
        self,
        is_active: Optional[bool] = None,
        is_featured: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[GalleryImage], int]:
        images, total = await self.repository.list(
            is_active=is_active, is_featured=is_featured, limit=limit, offset=offset
        )
        logger.info(f"Gallery images fetched: {len(images)} of {total}")
        return images, total

    async def get_featured(self, limit: int = 10) -> List[GalleryImage]:
        images, _ = await self.repository.list(is_active=True, is_featured=True, limit=limit)
        return images

    async def get_image(self, image_id: str) -> GalleryImage:
        image = await self.repository.get(image_id)
        if image is None:
            raise NotFoundError(f"Gallery image with ID {image_id} not found")
        return image

    async def update_image(self, image_id: str, fields: Dict[str, Any], actor_id: Optional[str] = None) -> GalleryImage:
        """
        Partially update image metadata. Variants are untouched.

        Raises:
            ValidationError: No updatable fields supplied, or null for a required field
            NotFoundError: Unknown image id
        """
        values = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not values:
            raise ValidationError("No valid fields to update")
        if "tags" in values and values["tags"] is None:
            values["tags"] = []
        for name in REQUIRED_FIELDS:
            if name in values and values[name] is None:
                raise ValidationError(f"{name} must not be null")

        if not await self.repository.update(image_id, values):
            raise NotFoundError(f"Gallery image with ID {image_id} not found")

        logger.info(f"Gallery image updated: {image_id} fields={sorted(values)} by {actor_id}")
        return await self.get_image(image_id)

    async def delete_image(self, image_id: str, actor_id: Optional[str] = None) -> None:
        """
        Delete the row (variants cascade), then remove its storage objects.
        Storage failures are logged only; the objects are left orphaned.
        """
        image = await self.repository.delete(image_id)
        if image is None:
            raise NotFoundError(f"Gallery image with ID {image_id} not found")

        urls = [image.original_url] + [v.url for v in image.image_variants]
        await self.store.delete(self.store.paths_for(urls))
        logger.info(f"Gallery image deleted: {image_id} by {actor_id}")

    async def reorder(self, orders: Sequence[Dict[str, Any]]) -> None:
        """
        Apply display_order updates concurrently, one independent update per row.
        A failure does not roll back the others.

        Raises:
            DatabaseError: If any row update failed
        """
        results = await asyncio.gather(
            *[
                self.repository.set_display_order(item["id"], int(item["display_order"]))
                for item in orders
            ],
            return_exceptions=True,
        )

        failures = []
        for item, result in zip(orders, results):
            if isinstance(result, BaseException):
                failures.append(item["id"])
                logger.error(f"Reorder failed for image {item['id']}: {str(result)}")
            elif result is False:
                logger.warning(f"Reorder skipped unknown image {item['id']}")

        if failures:
            raise DatabaseError(f"Failed to reorder gallery images: {failures}")
        logger.info(f"Gallery images reordered: {len(orders)}")
