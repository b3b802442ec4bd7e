"""
FastAPI dependencies wiring the gallery service to its collaborators.
Tests override get_gallery_service through app.dependency_overrides.
"""
from functools import lru_cache

from app.repositories.gallery_repository import GalleryRepository
from app.services.cloudinary_service import CloudinaryStorage
from app.services.gallery_service import GalleryService
from app.services.storage import ArtifactStore


@lru_cache
def get_gallery_service() -> GalleryService:
    """Process-wide service; it holds no per-request state."""
    return GalleryService(
        repository=GalleryRepository(),
        store=ArtifactStore(CloudinaryStorage()),
    )
