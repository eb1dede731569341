"""Detect image formats from their leading bytes.

Clients send images as untyped base64 strings, so the extension and media
type stored in S3 come from the payload itself and never from a file name
or a declared content type.
"""

from __future__ import annotations

import base64
import binascii
from typing import NamedTuple


class ImageFormat(NamedTuple):
    extension: str
    media_type: str


JPEG = ImageFormat("jpg", "image/jpeg")
PNG = ImageFormat("png", "image/png")
GIF = ImageFormat("gif", "image/gif")
WEBP = ImageFormat("webp", "image/webp")

# (offset, magic) pairs; every pair must match
SIGNATURES = [
    (JPEG, [(0, b"\xff\xd8\xff")]),
    (PNG, [(0, b"\x89PNG\r\n\x1a\n")]),
    (GIF, [(0, b"GIF87a")]),
    (GIF, [(0, b"GIF89a")]),
    (WEBP, [(0, b"RIFF"), (8, b"WEBP")]),
]

HEADER_BYTES = 12
# 16 base64 chars decode to the 12 bytes needed for the RIFF/WEBP check
HEADER_CHARS = 16


def strip_data_uri(text: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix and surrounding whitespace."""
    text = text.strip()
    if text[:5].lower() == "data:":
        _, sep, rest = text.partition(",")
        if sep:
            return rest.strip()
    return text


def leading_bytes(payload: bytes | str) -> bytes:
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload[:HEADER_BYTES])
    text = strip_data_uri(payload)
    chunk = "".join(text[: HEADER_CHARS * 2].split())[:HEADER_CHARS]
    chunk = chunk[: len(chunk) - len(chunk) % 4]
    try:
        return base64.b64decode(chunk, validate=True)
    except (binascii.Error, ValueError):
        return b""


def classify(payload: bytes | str | None) -> ImageFormat | None:
    """Return the format of ``payload`` or ``None`` when it is not recognized.

    ``payload`` is either raw bytes or base64 text, optionally wrapped in a
    data URI. Only the first bytes are inspected.
    """
    if not payload or not isinstance(payload, (bytes, bytearray, str)):
        return None
    head = leading_bytes(payload)
    for image_format, parts in SIGNATURES:
        if all(head[offset : offset + len(magic)] == magic for offset, magic in parts):
            return image_format
    return None
