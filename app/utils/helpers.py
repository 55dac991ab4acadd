# app/utils/helpers.py

import logging
import math
from typing import Dict, List, Optional, Protocol, Sequence

from app.core.errors import ImageConversionError, ImageTooLargeError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ImageUpload(Protocol):
    """What the services need from an uploaded image (FastAPI's UploadFile satisfies it)."""
    filename: Optional[str]
    content_type: Optional[str]
    size: Optional[int]

    async def read(self, size: int = -1) -> bytes: ...


# --- Pagination Helpers ---

def calculate_total_pages(total_items: int, limit: int) -> int:
    """
    Calculates the total number of pages required.

    Args:
        total_items: The total number of items.
        limit: The number of items per page.

    Returns:
        The total number of pages (0 when there are no items).

    Raises:
        ValueError: If limit is not a positive integer or total_items is negative.
    """
    if not isinstance(limit, int) or limit < 1:
        raise ValueError("Page limit must be a positive integer.")
    if total_items < 0:
        raise ValueError("Total items cannot be negative.")
    return math.ceil(total_items / limit)


# --- Image Helpers ---

async def convert_image_to_bytes(image: ImageUpload, max_size_bytes: Optional[int] = None) -> bytes:
    """
    Reads an uploaded image fully into memory.

    Raises:
        ImageTooLargeError: If more than max_size_bytes were read.
        ImageConversionError: If the file cannot be read or is empty.
    """
    try:
        data = await image.read()
    except (OSError, ValueError) as e:
        raise ImageConversionError(f"Failed to read image '{image.filename}': {e}") from e
    if not data:
        raise ImageConversionError(f"Image '{image.filename}' is empty")
    # The declared size is optional in multipart uploads
    if max_size_bytes is not None and len(data) > max_size_bytes:
        raise ImageTooLargeError(f"Image '{image.filename}' exceeds the maximum size of {max_size_bytes} bytes")
    return data


def validate_images(
    images: Sequence[ImageUpload],
    max_count: int,
    max_size_bytes: int,
    allowed_content_types: Sequence[str],
) -> List[Dict[str, str]]:
    """
    Checks image count, declared size and content type.

    Returns:
        A list of {"field", "message"} errors; empty when all images are acceptable.
    """
    errors: List[Dict[str, str]] = []
    if len(images) > max_count:
        errors.append({"field": "images", "message": f"A movie accepts at most {max_count} images"})

    for index, image in enumerate(images):
        field = f"images[{index}]"
        content_type = (image.content_type or "").lower()
        if content_type not in allowed_content_types:
            errors.append({
                "field": field,
                "message": f"Unsupported image type '{content_type or 'unknown'}'. Allowed: {', '.join(allowed_content_types)}",
            })
        if image.size is not None and image.size > max_size_bytes:
            errors.append({"field": field, "message": f"Image exceeds the maximum size of {max_size_bytes} bytes"})
    return errors


def image_extension(content_type: Optional[str]) -> str:
    return CONTENT_TYPE_EXTENSIONS.get((content_type or "").lower(), "jpg")
