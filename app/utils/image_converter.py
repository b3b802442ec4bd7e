"""
Image variant generation for gallery uploads.
Derives thumbnail, medium, large and WebP renditions from the original bytes with Pillow.

Decoding problems never raise: an undecodable upload yields a degraded result
(original only, placeholder dimensions) and a failure midway through the
variants keeps whatever was already produced.
"""
import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from PIL import Image, ImageOps

from app.config import settings

logger = logging.getLogger(__name__)

# Placeholder dimensions recorded for originals that could not be decoded
DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600
DEFAULT_FORMAT = "jpeg"

# Pillow format names -> file extension / MIME subtype used for storage
_FORMAT_NAMES = {
    "JPEG": "jpeg",
    "MPO": "jpeg",
    "PNG": "png",
    "WEBP": "webp",
    "AVIF": "avif",
}


@dataclass(frozen=True)
class VariantSpec:
    """Size and encoding contract for one variant type."""
    name: str
    size: Tuple[int, int]
    format: str
    quality: int
    crop: bool = False


VARIANT_SPECS = (
    VariantSpec("thumbnail", (300, 300), "jpeg", 80, crop=True),
    VariantSpec("medium", (800, 600), "jpeg", 85),
    VariantSpec("large", (1920, 1080), "jpeg", 90),
    VariantSpec("webp", (1920, 1080), "webp", 85),
)


@dataclass
class ImageArtifact:
    """Encoded bytes plus the facts recorded about them."""
    data: bytes
    width: int
    height: int
    format: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_type(self) -> str:
        return f"image/{self.format}"


@dataclass
class ProcessedImage:
    """
    Result of variant generation.
    variants may be incomplete (partial success) or empty (degraded).
    """
    original: ImageArtifact
    variants: Dict[str, ImageArtifact] = field(default_factory=dict)
    degraded: bool = False


def _format_from_mime(mime_type: Optional[str]) -> str:
    if mime_type and "/" in mime_type:
        subtype = mime_type.split("/", 1)[1].lower()
        if subtype == "jpg":
            return "jpeg"
        if subtype:
            return subtype
    return DEFAULT_FORMAT


def degraded_result(data: bytes, mime_type: Optional[str] = None) -> ProcessedImage:
    """Original-only result with placeholder dimensions."""
    return ProcessedImage(
        original=ImageArtifact(
            data=data,
            width=DEFAULT_WIDTH,
            height=DEFAULT_HEIGHT,
            format=_format_from_mime(mime_type),
        ),
        variants={},
        degraded=True,
    )


def _prepare_mode(image: Image.Image, target_format: str) -> Image.Image:
    """
    Convert image mode for the target encoder.
    JPEG has no alpha channel so transparency is flattened onto white;
    WebP keeps it.
    """
    if image.mode == "P":
        image = image.convert("RGBA")

    if target_format == "webp":
        if image.mode in ("RGBA", "RGB"):
            return image
        if image.mode == "LA":
            return image.convert("RGBA")
        return image.convert("RGB")

    if image.mode in ("RGBA", "LA"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if image.mode != "RGB":
        # CMYK, grayscale, 16-bit modes
        return image.convert("RGB")
    return image


def _render_variant(image: Image.Image, spec: VariantSpec) -> bytes:
    """Resize and encode one variant."""
    if spec.crop:
        resized = ImageOps.fit(
            image, spec.size, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
        )
    else:
        resized = image.copy()
        # thumbnail() preserves aspect ratio and never enlarges
        resized.thumbnail(spec.size, Image.Resampling.LANCZOS)

    resized = _prepare_mode(resized, spec.format)

    buffer = io.BytesIO()
    if spec.format == "webp":
        resized.save(buffer, format="WEBP", quality=spec.quality, method=6)
    else:
        resized.save(buffer, format="JPEG", quality=spec.quality, optimize=True)
    return buffer.getvalue()


def _reported_size(spec: VariantSpec, width: int, height: int) -> Tuple[int, int]:
    if spec.crop:
        return spec.size
    box_width, box_height = spec.size
    return min(width, box_width), min(height, box_height)


def generate_variants(
    data: bytes,
    filename: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> ProcessedImage:
    """
    Decode the original and derive every variant in VARIANT_SPECS.

    Args:
        data: Original upload bytes (already validated)
        filename: Original filename, for logging
        mime_type: Declared MIME type, used for the degraded original's format

    Returns:
        ProcessedImage: Original descriptor and the variants that were produced
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        source_format = _FORMAT_NAMES.get(image.format or "", _format_from_mime(mime_type))
        image = ImageOps.exif_transpose(image)
        width, height = image.size
        if width < 1 or height < 1:
            raise ValueError(f"Invalid image dimensions {width}x{height}")
    except Exception as e:
        logger.warning(
            f"Cannot decode {filename or 'upload'}, storing original without variants: {str(e)}"
        )
        return degraded_result(data, mime_type)

    logger.info(f"Decoded {filename or 'upload'}: {width}x{height} {source_format}")

    original = ImageArtifact(data=data, width=width, height=height, format=source_format)
    variants: Dict[str, ImageArtifact] = {}

    for spec in VARIANT_SPECS:
        try:
            encoded = _render_variant(image, spec)
        except Exception as e:
            logger.error(
                f"Variant '{spec.name}' failed for {filename or 'upload'}, "
                f"keeping {len(variants)} completed variant(s): {str(e)}",
                exc_info=True,
            )
            break

        variant_width, variant_height = _reported_size(spec, width, height)
        variants[spec.name] = ImageArtifact(
            data=encoded,
            width=variant_width,
            height=variant_height,
            format=spec.format,
        )
        logger.debug(f"Variant '{spec.name}' encoded: {len(encoded):,} bytes")

    logger.info(
        f"Generated {len(variants)}/{len(VARIANT_SPECS)} variants for {filename or 'upload'}"
    )
    return ProcessedImage(original=original, variants=variants)


async def process_image(
    data: bytes,
    filename: Optional[str] = None,
    mime_type: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ProcessedImage:
    """
    Run variant generation on a worker thread with a deadline.
    A timeout degrades to the original-only result.
    """
    timeout = settings.TRANSCODE_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(generate_variants, data, filename, mime_type),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error(
            f"Variant generation for {filename or 'upload'} exceeded {timeout}s, "
            f"storing original without variants"
        )
        return degraded_result(data, mime_type)
