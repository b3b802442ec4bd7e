import asyncio
import io
import time

import pytest
from PIL import Image

from app.utils import image_converter
from app.utils.image_converter import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    generate_variants,
    process_image,
)
from conftest import make_image_bytes

BOXES = {"medium": (800, 600), "large": (1920, 1080), "webp": (1920, 1080)}


def _decoded_size(data: bytes):
    with Image.open(io.BytesIO(data)) as img:
        return img.size, img.format


@pytest.mark.parametrize("width,height", [(4000, 3000), (2400, 1000), (1000, 2400), (640, 480), (900, 500)])
def test_fit_variants_stay_within_box_and_source(width, height):
    result = generate_variants(make_image_bytes(width, height))

    assert not result.degraded
    assert (result.original.width, result.original.height) == (width, height)
    for name, (box_w, box_h) in BOXES.items():
        variant = result.variants[name]
        assert variant.width <= min(width, box_w)
        assert variant.height <= min(height, box_h)
        assert (variant.width, variant.height) == (min(width, box_w), min(height, box_h))

        (actual_w, actual_h), _ = _decoded_size(variant.data)
        assert actual_w <= min(width, box_w)
        assert actual_h <= min(height, box_h)


def test_small_source_is_not_upscaled():
    result = generate_variants(make_image_bytes(320, 200))

    (w, h), _ = _decoded_size(result.variants["large"].data)
    assert (w, h) == (320, 200)
    assert (result.variants["large"].width, result.variants["large"].height) == (320, 200)


def test_thumbnail_is_cropped_square():
    result = generate_variants(make_image_bytes(1600, 900))

    thumb = result.variants["thumbnail"]
    assert (thumb.width, thumb.height) == (300, 300)
    assert _decoded_size(thumb.data) == ((300, 300), "JPEG")


def test_variant_formats():
    result = generate_variants(make_image_bytes(1200, 900))

    assert list(result.variants) == ["thumbnail", "medium", "large", "webp"]
    assert _decoded_size(result.variants["webp"].data)[1] == "WEBP"
    assert _decoded_size(result.variants["medium"].data)[1] == "JPEG"
    assert result.variants["webp"].format == "webp"
    assert result.variants["large"].size == len(result.variants["large"].data)


def test_original_bytes_kept_verbatim():
    data = make_image_bytes(1000, 800, fmt="PNG")
    result = generate_variants(data)

    assert result.original.data == data
    assert result.original.format == "png"


def test_transparent_png_is_flattened_for_jpeg():
    result = generate_variants(make_image_bytes(600, 600, fmt="PNG", mode="RGBA"))

    assert len(result.variants) == 4
    assert _decoded_size(result.variants["medium"].data)[1] == "JPEG"


def test_undecodable_bytes_degrade_to_original_only():
    data = b"definitely not an image" * 20
    result = generate_variants(data, "broken.png", "image/png")

    assert result.degraded
    assert result.variants == {}
    assert result.original.data == data
    assert (result.original.width, result.original.height) == (DEFAULT_WIDTH, DEFAULT_HEIGHT)
    assert result.original.format == "png"


def test_truncated_image_degrades():
    data = make_image_bytes(800, 600)[:200]
    result = generate_variants(data, "cut.jpg", "image/jpeg")

    assert result.degraded
    assert result.variants == {}


def test_failure_midway_keeps_completed_variants(monkeypatch):
    real_render = image_converter._render_variant

    def flaky_render(image, spec):
        if spec.name == "large":
            raise RuntimeError("encoder crashed")
        return real_render(image, spec)

    monkeypatch.setattr(image_converter, "_render_variant", flaky_render)

    result = generate_variants(make_image_bytes(1200, 900))

    assert not result.degraded
    assert list(result.variants) == ["thumbnail", "medium"]


async def test_process_image_runs_generation():
    result = await process_image(make_image_bytes(900, 700), "dish.jpg", "image/jpeg")

    assert len(result.variants) == 4


async def test_process_image_timeout_degrades(monkeypatch):
    def slow_generate(data, filename=None, mime_type=None):
        time.sleep(0.5)
        return generate_variants(data, filename, mime_type)

    monkeypatch.setattr(image_converter, "generate_variants", slow_generate)

    data = make_image_bytes(400, 300)
    result = await process_image(data, "slow.jpg", "image/jpeg", timeout=0.05)

    assert result.degraded
    assert result.variants == {}
    assert result.original.data == data
