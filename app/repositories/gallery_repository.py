"""
Persistence for gallery images and their variants.
Every operation runs in its own session and commits on its own, so callers
decide how operations are sequenced and what happens when one fails.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.database import AsyncSessionLocal
from app.errors import DatabaseError
from app.models import GalleryImage, ImageVariant

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "alt_text",
    "category",
    "tags",
    "display_order",
    "is_featured",
    "is_active",
)


class GalleryRepository:
    """SQLAlchemy-backed store for GalleryImage and ImageVariant rows."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def insert_image(self, fields: Dict[str, Any]) -> GalleryImage:
        """
        Insert one gallery image row.

        Raises:
            DatabaseError: If the insert fails
        """
        async with self.session_factory() as session:
            try:
                image = GalleryImage(**fields)
                session.add(image)
                await session.commit()
                await session.refresh(image)
                return image
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Gallery image insert failed: {str(e)}")
                raise DatabaseError("Failed to create gallery image record") from e

    async def insert_variants(self, gallery_image_id: str, variants: Sequence[Dict[str, Any]]) -> int:
        """
        Insert all variant rows for an image in one unit of work.

        Raises:
            DatabaseError: If the bulk insert fails (no rows are kept)
        """
        if not variants:
            return 0

        async with self.session_factory() as session:
            try:
                session.add_all([
                    ImageVariant(gallery_image_id=gallery_image_id, **variant)
                    for variant in variants
                ])
                await session.commit()
                return len(variants)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Image variant insert failed for {gallery_image_id}: {str(e)}")
                raise DatabaseError("Failed to create image variant records") from e

    async def get(self, image_id: str) -> Optional[GalleryImage]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(GalleryImage)
                    .options(selectinload(GalleryImage.image_variants))
                    .where(GalleryImage.id == image_id)
                )
                return result.scalar_one_or_none()
            except SQLAlchemyError as e:
                logger.error(f"Gallery image fetch failed for {image_id}: {str(e)}")
                raise DatabaseError("Failed to fetch gallery image") from e

    async def list(
        self,
        is_active: Optional[bool] = None,
        is_featured: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[GalleryImage], int]:
        """
        Images ordered by display_order ascending, newest first within a position.

        Returns:
            Tuple of the requested page and the total count matching the filters
        """
        filters = []
        if is_active is not None:
            filters.append(GalleryImage.is_active == is_active)
        if is_featured is not None:
            filters.append(GalleryImage.is_featured == is_featured)

        query = (
            select(GalleryImage)
            .options(selectinload(GalleryImage.image_variants))
            .where(*filters)
            .order_by(GalleryImage.display_order.asc(), GalleryImage.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            try:
                images = (await session.execute(query)).scalars().all()
                total = (await session.execute(
                    select(func.count(GalleryImage.id)).where(*filters)
                )).scalar() or 0
                return list(images), total
            except SQLAlchemyError as e:
                logger.error(f"Gallery image listing failed: {str(e)}")
                raise DatabaseError("Failed to fetch gallery images") from e

    async def update(self, image_id: str, fields: Dict[str, Any]) -> bool:
        """
        Apply a partial update. Returns False if the image does not exist.
        """
        values = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        async with self.session_factory() as session:
            try:
                image = await session.get(GalleryImage, image_id)
                if image is None:
                    return False
                for key, value in values.items():
                    setattr(image, key, value)
                await session.commit()
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Gallery image update failed for {image_id}: {str(e)}")
                raise DatabaseError("Failed to update gallery image") from e

    async def set_display_order(self, image_id: str, display_order: int) -> bool:
        """Update one image's display_order. Returns False if no row matched."""
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    update(GalleryImage)
                    .where(GalleryImage.id == image_id)
                    .values(display_order=display_order)
                )
                await session.commit()
                return result.rowcount > 0
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"display_order update failed for {image_id}: {str(e)}")
                raise DatabaseError("Failed to reorder gallery image") from e

    async def delete(self, image_id: str) -> Optional[GalleryImage]:
        """
        Delete an image and its variant rows.

        Returns:
            The deleted image (with variants loaded) or None if it did not exist
        """
        async with self.session_factory() as session:
            try:
                image = await self._get_for_delete(session, image_id)
                if image is None:
                    return None
                await session.delete(image)
                await session.commit()
                return image
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Gallery image delete failed for {image_id}: {str(e)}")
                raise DatabaseError("Failed to delete gallery image") from e

    @staticmethod
    async def _get_for_delete(session: AsyncSession, image_id: str) -> Optional[GalleryImage]:
        result = await session.execute(
            select(GalleryImage)
            .options(selectinload(GalleryImage.image_variants))
            .where(GalleryImage.id == image_id)
        )
        return result.scalar_one_or_none()

    async def count_variants(self, gallery_image_id: Optional[str] = None) -> int:
        """Variant rows in total, or for one image."""
        query = select(func.count(ImageVariant.id))
        if gallery_image_id is not None:
            query = query.where(ImageVariant.gallery_image_id == gallery_image_id)
        async with self.session_factory() as session:
            try:
                return (await session.execute(query)).scalar() or 0
            except SQLAlchemyError as e:
                logger.error(f"Image variant count failed: {str(e)}")
                raise DatabaseError("Failed to count image variants") from e
