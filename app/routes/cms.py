"""
CMS API routes for gallery management.
All endpoints require a valid admin JWT; the token subject is recorded as the actor.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import logging

from app.dependencies import get_gallery_service
from app.errors import AppError, ValidationError
from app.schemas import (
    GalleryImageEnvelope,
    GalleryImageMetadata,
    GalleryImageResponse,
    GalleryImageUpdate,
    ImageReorderRequest,
    MessageResponse,
    UploadedGalleryImageEnvelope,
    UploadedGalleryImageResponse,
)
from app.services.gallery_service import GalleryService
from app.utils.jwt_auth import actor_id_from_token, verify_cms_token
from app.utils.rate_limit import RATE_LIMITS, limiter
from app.utils.upload_validator import FileUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cms", tags=["CMS"])


def _form_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _form_tags(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def _first_error_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value").removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


@router.post(
    "/gallery/images",
    response_model=UploadedGalleryImageEnvelope,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMITS["upload"])
async def upload_gallery_image(
    request: Request,
    image: UploadFile = File(..., description="Image file (jpeg, png, webp, avif)"),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    alt_text: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma separated tags"),
    display_order: int = Form(0),
    is_featured: Optional[str] = Form(None),
    is_active: Optional[str] = Form(None),
    token: dict = Depends(verify_cms_token),
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Upload a gallery image.

    The original is stored verbatim alongside thumbnail, medium, large and WebP
    variants. A response with fewer variants than expected is still a success;
    its degraded flag is set.

    Raises:
        HTTPException: 400 for invalid files or metadata, 500 if storage or database fail
    """
    actor_id = actor_id_from_token(token)

    try:
        metadata = GalleryImageMetadata(
            title=title,
            description=description,
            alt_text=alt_text,
            category=category,
            tags=_form_tags(tags),
            display_order=display_order,
            is_featured=_form_bool(is_featured, True),
            is_active=_form_bool(is_active, True),
        )
    except PydanticValidationError as e:
        raise ValidationError(_first_error_message(e))

    try:
        data = await image.read()
        logger.info(
            f"Upload received from {actor_id}: {image.filename} "
            f"({image.content_type}, {len(data):,} bytes)"
        )

        created, degraded = await service.upload_image(
            FileUpload(
                data=data,
                filename=image.filename or "",
                mime_type=image.content_type or "",
                size=image.size or len(data),
            ),
            metadata,
            actor_id,
        )

        payload = UploadedGalleryImageResponse.model_validate(created)
        payload.degraded = degraded
        return UploadedGalleryImageEnvelope(
            message="Gallery image uploaded successfully",
            data=payload,
        )

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error uploading gallery image: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to upload gallery image", "detail": str(e)}
        )


@router.put("/gallery/reorder", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["reorder"])
async def reorder_gallery_images(
    request: Request,
    reorder_request: ImageReorderRequest,
    token: dict = Depends(verify_cms_token),
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Reorder gallery images.

    Each {id, display_order} pair is applied independently; unknown ids are
    skipped. A failure part-way leaves the order partially applied.
    """
    orders = [item.model_dump() for item in reorder_request.imageOrders]
    await service.reorder(orders)

    logger.info(f"Gallery images reordered by {actor_id_from_token(token)}: {len(orders)}")
    return MessageResponse(message="Gallery images reordered successfully")


@router.put("/gallery/images/{image_id}", response_model=GalleryImageEnvelope)
async def update_gallery_image(
    image_id: str,
    image_update: GalleryImageUpdate,
    token: dict = Depends(verify_cms_token),
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Update metadata of an existing gallery image.
    Only fields present in the body are changed; variants are untouched.

    Raises:
        ValidationError: 400 if no fields were supplied
        NotFoundError: 404 if the image does not exist
    """
    fields = image_update.model_dump(exclude_unset=True)
    image = await service.update_image(image_id, fields, actor_id_from_token(token))
    return GalleryImageEnvelope(
        message="Gallery image updated successfully",
        data=GalleryImageResponse.model_validate(image),
    )


@router.delete("/gallery/images/{image_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["delete"])
async def delete_gallery_image(
    request: Request,
    image_id: str,
    token: dict = Depends(verify_cms_token),
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Delete a gallery image, its variant rows and its storage objects.
    Storage cleanup is best-effort; the database delete does not depend on it.

    Raises:
        NotFoundError: 404 if the image does not exist
    """
    await service.delete_image(image_id, actor_id_from_token(token))
    return MessageResponse(message="Gallery image deleted successfully")
