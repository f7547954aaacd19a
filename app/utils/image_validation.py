"""Encoded image parsing and size validation."""

import base64
import binascii
import re
from typing import List, Tuple

from app.utils.exceptions import ImageProcessingError

DEFAULT_MIME_TYPE = "image/jpeg"

ALLOWED_IMAGE_MIME = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/heif",
}

_DATA_URL = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)
_BASE64 = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def split_data_url(image: str) -> Tuple[str, str]:
    """
    Split an encoded image into (mime_type, base64_payload).

    Accepts ``data:<mime>;base64,<payload>`` URLs or bare base64. For bare
    payloads the MIME type is sniffed from the leading bytes.
    """
    match = _DATA_URL.match(image)
    if match:
        return match.group(1).lower(), match.group(2)
    return sniff_mime_type(image), image


def sniff_mime_type(payload: str) -> str:
    """Detect MIME type from the magic bytes of a base64 payload."""
    try:
        # 16 base64 chars decode to the first 12 bytes
        head = base64.b64decode(payload[:16], validate=False)
    except (binascii.Error, ValueError):
        return DEFAULT_MIME_TYPE

    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    elif head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    elif head.startswith(b"RIFF") and b"WEBP" in head[:12]:
        return "image/webp"
    elif head.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return DEFAULT_MIME_TYPE


def decoded_size(image: str) -> int:
    """Size in bytes of the decoded payload, computed without decoding."""
    match = _DATA_URL.match(image)
    payload = (match.group(2) if match else image).strip()
    padding = 0
    if payload.endswith("=="):
        padding = 2
    elif payload.endswith("="):
        padding = 1
    return max(0, (len(payload) * 3) // 4 - padding)


def is_valid_encoded_image(image: str) -> bool:
    """Check that a string looks like an image data URL or base64 payload."""
    if not image:
        return False
    if image.startswith("data:"):
        match = _DATA_URL.match(image)
        return bool(match) and match.group(1).lower() in ALLOWED_IMAGE_MIME
    # Only the first 100 chars are checked
    return bool(_BASE64.match(image[:100]))


def _mb(size: float) -> str:
    return f"{size / (1024 * 1024):.2f}"


def validate_image_groups(
    image_groups: List[List[str]],
    max_image_bytes: int,
    max_total_bytes: int,
) -> None:
    """
    Validate every image of every group for format and individual/total size.

    Raises:
        ImageProcessingError: On the first offending image or if the total is too large.
    """
    total = 0
    for group_idx, group in enumerate(image_groups):
        for img_idx, image in enumerate(group):
            label = f"Image {img_idx + 1} in group {group_idx + 1}"
            if not is_valid_encoded_image(image):
                raise ImageProcessingError(f"{label} is not a valid base64 image")

            size = decoded_size(image)
            if size > max_image_bytes:
                raise ImageProcessingError(
                    f"{label} is too large ({_mb(size)}MB). "
                    f"Maximum size per image is {max_image_bytes // (1024 * 1024)}MB."
                )
            total += size

    if total > max_total_bytes:
        raise ImageProcessingError(
            f"Total image size ({_mb(total)}MB) exceeds limit of "
            f"{max_total_bytes // (1024 * 1024)}MB. Please reduce the number or size of images."
        )


def validate_images(images: List[str], max_image_bytes: int, max_total_bytes: int) -> None:
    """Validate a flat list of images (one implicit group)."""
    validate_image_groups([images], max_image_bytes, max_total_bytes)
