import asyncio

import pytest

from app.errors import FileUploadError
from app.services.storage import (
    ArtifactStore,
    original_path,
    sanitize_base_name,
    variant_path,
)
from app.utils.image_converter import generate_variants
from conftest import STORAGE_BASE_URL, FakeStorage, make_image_bytes


@pytest.mark.parametrize("filename,expected", [
    ("Elegant Dining-Room.jpg", "ElegantDiningRoom"),
    ("chef's_special (2).png", "chefsspecial2"),
    ("terrace.final.webp", "terracefinal"),
    ("---.jpg", "image"),
    ("", "image"),
])
def test_sanitize_base_name(filename, expected):
    assert sanitize_base_name(filename) == expected


def test_path_conventions():
    assert original_path(1700000000123, "Dining", "jpeg") == "originals/1700000000123-Dining.jpeg"
    assert variant_path(1700000000123, "Dining", "webp", "webp") == "variants/1700000000123-Dining-webp.webp"


async def test_upload_stores_original_and_all_variants(store, storage):
    processed = generate_variants(make_image_bytes(1200, 900))

    uploaded = await store.upload(processed, "Dining Room.jpg", timestamp_ms=42)

    assert uploaded.original.path == "originals/42-DiningRoom.jpeg"
    assert uploaded.original.url == STORAGE_BASE_URL + "originals/42-DiningRoom.jpeg"
    assert storage.objects[uploaded.original.path] == processed.original.data
    assert set(uploaded.variants) == {"thumbnail", "medium", "large", "webp"}
    assert uploaded.variants["large"].path == "variants/42-DiningRoom-large.jpeg"
    assert uploaded.variants["webp"].path == "variants/42-DiningRoom-webp.webp"
    assert len(uploaded.paths) == 5
    # original goes first
    assert storage.put_calls[0] == uploaded.original.path


async def test_original_failure_aborts_before_variants(store, storage):
    storage.fail_put = lambda path: path.startswith("originals/")
    processed = generate_variants(make_image_bytes(800, 600))

    with pytest.raises(FileUploadError) as exc_info:
        await store.upload(processed, "dish.jpg")

    assert exc_info.value.status_code == 500
    assert len(storage.put_calls) == 1
    assert storage.objects == {}


async def test_single_variant_failure_is_omitted(store, storage):
    storage.fail_put = lambda path: path.endswith("-medium.jpeg")
    processed = generate_variants(make_image_bytes(1200, 900))

    uploaded = await store.upload(processed, "dish.jpg")

    assert set(uploaded.variants) == {"thumbnail", "large", "webp"}
    assert uploaded.original.url


async def test_put_is_retried_with_same_path():
    storage = FakeStorage()
    attempts = []

    def fail_first(path):
        attempts.append(path)
        return len(attempts) == 1

    storage.fail_put = fail_first
    store = ArtifactStore(storage, timeout=5, max_retries=3, backoff=0)
    processed = generate_variants(b"not an image", "x.jpg", "image/jpeg")

    uploaded = await store.upload(processed, "x.jpg", timestamp_ms=7)

    assert storage.put_calls == ["originals/7-x.jpeg", "originals/7-x.jpeg"]
    assert uploaded.original.path in storage.objects


async def test_delete_deduplicates_and_skips_empty(store, storage):
    await store.delete(["a.jpeg", None, "", "a.jpeg", "b.webp"])

    assert storage.remove_calls == [["a.jpeg", "b.webp"]]


async def test_delete_with_nothing_to_remove_makes_no_call(store, storage):
    await store.delete([])

    assert storage.remove_calls == []


async def test_delete_swallows_backend_failure(store, storage):
    storage.fail_remove = True

    await store.delete(["originals/1-a.jpeg"])
    await store.delete(["originals/1-a.jpeg"])

    assert len(storage.remove_calls) == 2


def test_paths_for_ignores_foreign_urls(store):
    paths = store.paths_for([
        STORAGE_BASE_URL + "originals/1-a.jpeg",
        "https://elsewhere.example/x.jpg",
        None,
    ])

    assert paths == ["originals/1-a.jpeg"]


async def test_variant_put_past_deadline_is_left_out_of_uploaded_paths():
    class SlowLargeStorage(FakeStorage):
        async def put(self, path, data, content_type):
            if path.endswith("-large.jpeg"):
                await asyncio.sleep(1)
            return await super().put(path, data, content_type)

    storage = SlowLargeStorage()
    store = ArtifactStore(storage, timeout=0.05, max_retries=1, backoff=0)
    processed = generate_variants(make_image_bytes(1200, 900))

    uploaded = await store.upload(processed, "dish.jpg", timestamp_ms=9)

    assert "large" not in uploaded.variants
    assert "variants/9-dish-large.jpeg" not in uploaded.paths
    assert len(uploaded.paths) == 4
