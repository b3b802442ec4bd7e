"""
Shared fixtures for the gallery test suite.

Database tests run real SQLAlchemy against a temporary SQLite file; object
storage is replaced with an in-memory StorageBackend that can be told to fail.
"""
import io
from typing import Callable, Dict, List, Optional

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import create_tables
from app.repositories.gallery_repository import GalleryRepository
from app.services.gallery_service import GalleryService
from app.services.storage import ArtifactStore, StorageBackend
from app.utils.upload_validator import FileUpload

STORAGE_BASE_URL = "https://storage.test/gallery-images/"


class FakeStorage(StorageBackend):
    """In-memory object storage recording every call."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.put_calls: List[str] = []
        self.remove_calls: List[List[str]] = []
        self.fail_put: Optional[Callable[[str], bool]] = None
        self.fail_remove = False

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        self.put_calls.append(path)
        if self.fail_put and self.fail_put(path):
            raise ConnectionError(f"simulated storage outage for {path}")
        self.objects[path] = data
        return STORAGE_BASE_URL + path

    async def remove(self, paths: List[str]) -> None:
        self.remove_calls.append(list(paths))
        if self.fail_remove:
            raise ConnectionError("simulated storage delete failure")
        for path in paths:
            self.objects.pop(path, None)

    def path_from_url(self, url: str) -> Optional[str]:
        if not url.startswith(STORAGE_BASE_URL):
            return None
        return url[len(STORAGE_BASE_URL):]

    @property
    def removed_paths(self) -> List[str]:
        return [p for call in self.remove_calls for p in call]


def make_image_bytes(width: int = 1200, height: int = 900, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    color = (180, 90, 40, 255)[:len(mode)] if mode in ("RGB", "RGBA") else 128
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(
    data: Optional[bytes] = None,
    filename: str = "Elegant Dining-Room.jpg",
    mime_type: str = "image/jpeg",
) -> FileUpload:
    data = make_image_bytes() if data is None else data
    return FileUpload(data=data, filename=filename, mime_type=mime_type, size=len(data))


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}")
    await create_tables(bind=engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def repository(session_factory) -> GalleryRepository:
    return GalleryRepository(session_factory)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def store(storage) -> ArtifactStore:
    return ArtifactStore(storage, timeout=5, max_retries=1, backoff=0)


@pytest.fixture
def service(repository, store) -> GalleryService:
    return GalleryService(repository, store)
