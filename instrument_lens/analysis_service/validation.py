"""
Request validation for the /analyze endpoint.
"""

from typing import Any, Dict, List, Optional

from instrument_lens.analysis_service.errors import ValidationError

# Keys a client may use for the image reference, in lookup order.
# The bundled web client sends `dataUrl`.
CONTENT_KEYS = ("content", "dataUrl", "data_url")

EXPECTED_SHAPE = 'Request must include an "images" array of objects with { content, filename }'


class ImageInput:
    """One uploaded image: an opaque reference (data URL, URL or base64) plus a display name."""

    __slots__ = ("content", "filename")

    def __init__(self, content: str, filename: Optional[str] = None):
        self.content = content
        self.filename = filename

    def __repr__(self) -> str:
        # Never echo the image data itself
        return f"ImageInput(filename={self.filename!r}, size={len(self.content)})"


def _resolve_content(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item or None
    if isinstance(item, dict):
        for key in CONTENT_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def parse_images(body: Optional[Dict[str, Any]]) -> List[ImageInput]:
    """
    Validate a raw request body and return its images in order.

    Args:
        body (dict): Decoded JSON body, or None if the body was not JSON.

    Returns:
        list[ImageInput]: One entry per image, filenames defaulted to "image-<n>".

    Raises:
        ValidationError: `images` is missing, empty, not a list, or an element
            carries no image reference.
    """
    images = body.get("images") if isinstance(body, dict) else None
    if not isinstance(images, list) or not images:
        raise ValidationError(EXPECTED_SHAPE)

    parsed: List[ImageInput] = []
    for index, item in enumerate(images, start=1):
        content = _resolve_content(item)
        if content is None:
            raise ValidationError(f"{EXPECTED_SHAPE} (entry {index} has no image content)")

        filename = item.get("filename") if isinstance(item, dict) else None
        if not isinstance(filename, str) or not filename.strip():
            filename = f"image-{index}"
        parsed.append(ImageInput(content, filename))

    return parsed
