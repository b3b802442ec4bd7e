"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal


class ImageVariantResponse(BaseModel):
    """Derived rendition nested inside a gallery image response."""
    id: str
    variant_type: Literal["thumbnail", "medium", "large", "webp"]
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    format: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GalleryImageResponse(BaseModel):
    """
    Response schema for gallery image data.
    Used by the public and CMS gallery endpoints.
    """
    id: str
    title: str
    description: Optional[str] = None
    alt_text: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    original_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    display_order: int
    is_featured: bool
    is_active: bool
    uploaded_by: Optional[str] = None
    image_variants: List[ImageVariantResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,  # Enable conversion from SQLAlchemy models
        json_encoders={
            datetime: lambda v: v.isoformat()  # Format dates as ISO 8601 strings
        }
    )


class UploadedGalleryImageResponse(GalleryImageResponse):
    """
    Gallery image returned from an upload.
    degraded is true when fewer than the four standard variants were persisted.
    """
    degraded: bool = False


class PaginationMetadata(BaseModel):
    """
    Pagination metadata for offset-based pagination.
    """
    total: int
    limit: int
    offset: int
    has_more: bool


class GalleryImagesPageResponse(BaseModel):
    """
    Paginated response for gallery images.
    """
    success: bool = True
    message: str
    data: List[GalleryImageResponse]
    pagination: PaginationMetadata


class GalleryImageEnvelope(BaseModel):
    success: bool = True
    message: str
    data: GalleryImageResponse


class UploadedGalleryImageEnvelope(BaseModel):
    success: bool = True
    message: str
    data: UploadedGalleryImageResponse


class GalleryImageListEnvelope(BaseModel):
    success: bool = True
    message: str
    data: List[GalleryImageResponse]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class GalleryImageMetadata(BaseModel):
    """
    Descriptive fields supplied alongside an uploaded image.
    alt_text falls back to the title when omitted.
    """
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    alt_text: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=50)
    tags: List[str] = Field(default_factory=list, max_length=10)
    display_order: int = Field(0, ge=0)
    is_featured: bool = True
    is_active: bool = True

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        v = v.strip() if v else ""
        if not v:
            raise ValueError('Title is required')
        return v

    @field_validator('description', 'alt_text', 'category')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        tags = [t.strip() for t in v if t and t.strip()]
        for tag in tags:
            if len(tag) > 30:
                raise ValueError('Tags must not exceed 30 characters')
        return tags


class GalleryImageUpdate(BaseModel):
    """
    Request schema for partial updates of gallery image metadata.
    Only fields present in the request body are applied.
    """
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    alt_text: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = Field(None, max_length=10)
    display_order: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Title must not be empty')
        return v


class ImageOrder(BaseModel):
    id: str
    display_order: int = Field(..., ge=0)


class ImageReorderRequest(BaseModel):
    """
    Request schema for reordering gallery images.
    Used by PUT /api/cms/gallery/reorder endpoint.
    """
    imageOrders: List[ImageOrder] = Field(..., min_length=1, max_length=100)

    @field_validator('imageOrders')
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Duplicate image IDs are not allowed')
        return v
