"""Transport encoding for video bytes (base64)."""

from __future__ import annotations

import base64
import binascii

from .errors import EncodingFailed
from .models.media import MediaSource


def encode_media(source: MediaSource) -> str:
    """Return the base64 text form of *source*'s bytes.

    Raises:
        EncodingFailed: If the bytes are unreadable or encode to nothing.
    """
    try:
        encoded = base64.b64encode(bytes(source.data)).decode("ascii")
    except (TypeError, ValueError) as exc:
        raise EncodingFailed(f"Failed to encode {source.filename}: {exc}") from exc
    if not encoded:
        raise EncodingFailed(f"Failed to extract base64 data from {source.filename or 'file'}")
    return encoded


def decode_media(text: str) -> bytes:
    """Inverse of :func:`encode_media`. Accepts a bare payload or a ``data:`` URL.

    Raises:
        EncodingFailed: If *text* is not valid base64.
    """
    payload = text.split(",", 1)[1] if text.startswith("data:") else text
    try:
        return base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingFailed(f"Invalid base64 payload: {exc}") from exc
