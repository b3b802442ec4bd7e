"""
Gallery routes for public gallery image retrieval.
Provides endpoints for fetching gallery images to display in the frontend.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
import logging

from app.dependencies import get_gallery_service
from app.errors import AppError
from app.schemas import (
    GalleryImageEnvelope,
    GalleryImageListEnvelope,
    GalleryImageResponse,
    GalleryImagesPageResponse,
    PaginationMetadata,
)
from app.services.gallery_service import GalleryService

logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter(prefix="/gallery")


@router.get("/images", response_model=GalleryImagesPageResponse)
async def get_gallery_images(
    is_active: Optional[bool] = None,
    is_featured: Optional[bool] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Get paginated gallery images with their variants.

    Images are ordered by display_order ascending, newest first within the
    same position.

    Raises:
        HTTPException: 500 if database query fails
    """
    try:
        images, total = await service.list_images(
            is_active=is_active,
            is_featured=is_featured,
            limit=limit,
            offset=offset,
        )

        return GalleryImagesPageResponse(
            message="Gallery images retrieved successfully",
            data=[GalleryImageResponse.model_validate(img) for img in images],
            pagination=PaginationMetadata(
                total=total,
                limit=limit,
                offset=offset,
                has_more=total > offset + limit,
            ),
        )

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to retrieve gallery images: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Failed to retrieve gallery images",
                "detail": str(e)
            }
        )


@router.get("/featured", response_model=GalleryImageListEnvelope)
async def get_featured_images(
    limit: int = Query(10, ge=1, le=100),
    service: GalleryService = Depends(get_gallery_service),
):
    """Get active, featured gallery images."""
    images = await service.get_featured(limit=limit)
    return GalleryImageListEnvelope(
        message="Featured gallery images retrieved successfully",
        data=[GalleryImageResponse.model_validate(img) for img in images],
    )


@router.get("/images/{image_id}", response_model=GalleryImageEnvelope)
async def get_gallery_image(
    image_id: str,
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Get a single gallery image with its variants.

    Raises:
        NotFoundError: 404 if the image does not exist
    """
    image = await service.get_image(image_id)
    return GalleryImageEnvelope(
        message="Gallery image retrieved successfully",
        data=GalleryImageResponse.model_validate(image),
    )
