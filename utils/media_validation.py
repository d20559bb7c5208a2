"""Validation helpers for images attached to chat turns."""

import base64
import binascii

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/bmp",
}

MAX_IMAGE_BYTES = 20 * 1024 * 1024


def validate_image_mime(mime_type: str) -> str:
    """Return the normalized MIME type or raise ValueError if unsupported."""
    # Strip any MIME parameters (e.g. 'image/png;charset=binary') and normalize
    mime = (mime_type or "").lower().split(";", 1)[0].strip()
    if mime not in ALLOWED_IMAGE_TYPES:
        raise ValueError(f"Unsupported image type: '{mime_type}'")
    return "image/jpeg" if mime == "image/jpg" else mime


def decode_base64_image(data: str) -> bytes:
    """Decode a base64 image payload, accepting data URLs as well."""
    text = (data or "").strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data must be base64-encoded.") from exc
    if not raw:
        raise ValueError("Image data is empty.")
    if len(raw) > MAX_IMAGE_BYTES:
        raise ValueError("Image is too large.")
    return raw
