"""Image preparation for the analysis job.

The analysis model receives the photo inline as a data URI. prepare_image()
turns whatever the caller has into that form:

- load_image_bytes(): bytes, file path, data URI, plain base64 or http(s) URL
- validate_image_format(): JPEG, PNG or WebP, detected from magic bytes
- validate_image_size(): MAX_IMAGE_SIZE_MB limit
- compress_image(): Pillow re-encode for images above COMPRESS_IMG_THRESHOLD_KB
- to_data_uri(): base64 data URI with the detected MIME type
"""

import base64
import binascii
import os
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

import aiohttp
import filetype
from PIL import Image

from src.utils.config import config
from src.utils.errors import safe_execute_async, safe_execute_sync
from src.utils.logger import logger

ImageSource = Union[bytes, str, Path]

ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "webp")


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Re-encode an image as progressive JPEG, resized to max_width.

    Images below COMPRESS_IMG_THRESHOLD_KB are returned untouched, as are
    images Pillow cannot open (a warning is logged).

    Args:
        image_bytes: Raw image bytes to compress
        max_width: Maximum image width in pixels

    Returns:
        Compressed image bytes, or the original bytes.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(
            f"Image size {size_kb:.1f}KB below compression threshold "
            f"({config.COMPRESS_IMG_THRESHOLD_KB}KB), skipping compression"
        )
        return image_bytes

    def _compress() -> bytes:
        img = Image.open(BytesIO(image_bytes))

        # JPEG has no alpha channel; flatten onto white
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed = output.getvalue()
        logger.debug(f"Image compressed: {size_kb:.1f}KB → {len(compressed) / 1024:.1f}KB")
        return compressed

    return safe_execute_sync(_compress, "Image compression", log_level="warning", default_return=image_bytes)


def _decode_base64(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


async def _fetch_url(url: str) -> bytes:
    async with aiohttp.ClientSession() as session:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT_SECONDS)) as response:
            response.raise_for_status()
            return await response.read()


async def load_image_bytes(source: ImageSource) -> Optional[bytes]:
    """Get raw image bytes from any supported source.

    Args:
        source: Raw bytes, a filesystem path, a data URI, an http(s) URL or a
            plain base64 string.

    Returns:
        Image bytes, or None if the source could not be read (logged).
    """
    if isinstance(source, bytes):
        return source

    if isinstance(source, Path):
        return safe_execute_sync(source.read_bytes, f"Read image file {source}", default_return=None)

    if source.startswith("data:"):
        return safe_execute_sync(
            lambda: _decode_base64(source.split(",", 1)[1]),
            "Decode data URI",
            default_return=None,
        )

    if source.startswith(("http://", "https://")):
        return await safe_execute_async(_fetch_url(source), f"Fetch image from URL: {source}", default_return=None)

    # base64 payloads can be longer than any valid filename
    if len(source) < 4096 and os.path.isfile(source):
        return safe_execute_sync(Path(source).read_bytes, f"Read image file {source}", default_return=None)

    return safe_execute_sync(lambda: _decode_base64(source), "Decode base64 image string", default_return=None)


def validate_image_format(image_bytes: bytes) -> bool:
    """True for JPEG, PNG or WebP, judged by magic bytes rather than extension."""
    kind = filetype.guess(image_bytes)
    if kind is None or kind.extension not in ALLOWED_EXTENSIONS:
        logger.warning(f"Invalid image format: {kind.extension if kind else 'unknown'}. Only JPEG, PNG and WebP supported.")
        return False
    return True


def validate_image_size(image_bytes: bytes) -> bool:
    """True if the image fits within MAX_IMAGE_SIZE_MB."""
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > config.MAX_IMAGE_SIZE_MB:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {config.MAX_IMAGE_SIZE_MB}MB")
        return False
    return True


def to_data_uri(image_bytes: bytes) -> str:
    kind = filetype.guess(image_bytes)
    mime_type = kind.mime if kind else "application/octet-stream"
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


async def prepare_image(source: ImageSource) -> str:
    """Load, validate and optionally compress an image; return it as a data URI.

    Raises:
        ValueError: With a user-presentable reason when the image is unusable.
    """
    image_bytes = await load_image_bytes(source)
    if not image_bytes:
        raise ValueError("Could not read image from the provided source")

    if not validate_image_format(image_bytes):
        raise ValueError("Invalid image format. Only JPEG, PNG and WebP are supported.")

    if not validate_image_size(image_bytes):
        raise ValueError(f"Image too large. Maximum size is {config.MAX_IMAGE_SIZE_MB}MB")

    if config.COMPRESS_IMG:
        image_bytes = compress_image(image_bytes)

    return to_data_uri(image_bytes)
