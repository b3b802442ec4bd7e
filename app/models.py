"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
import uuid

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


VARIANT_TYPES = ("thumbnail", "medium", "large", "webp")


def _new_id() -> str:
    return str(uuid.uuid4())


class GalleryImage(Base):
    """
    Gallery image model.
    Stores the original upload's storage URL and its descriptive metadata.
    A row only exists once its original has been stored.
    """
    __tablename__ = "gallery_images"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    alt_text = Column(String(200), nullable=True)
    category = Column(String(50), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    original_url = Column(String, nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(50), nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    uploaded_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    image_variants = relationship(
        "ImageVariant",
        back_populates="gallery_image",
        cascade="all, delete-orphan",
        order_by="ImageVariant.variant_type",
    )


class ImageVariant(Base):
    """
    Derived rendition of a gallery image (thumbnail, medium, large, webp).
    Owned by exactly one GalleryImage and removed with it.
    """
    __tablename__ = "image_variants"
    __table_args__ = (
        CheckConstraint(
            "variant_type IN ('thumbnail', 'medium', 'large', 'webp')",
            name="ck_image_variants_variant_type",
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    gallery_image_id = Column(
        String(36),
        ForeignKey("gallery_images.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_type = Column(String(20), nullable=False)
    url = Column(String, nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    file_size = Column(Integer, nullable=True)
    format = Column(String(10), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    gallery_image = relationship("GalleryImage", back_populates="image_variants")
