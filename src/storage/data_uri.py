# src/storage/data_uri.py — v1
"""Helpers for ``data:<mime>;base64,<payload>`` URIs."""

from __future__ import annotations

import base64
import binascii
import re

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*?);base64,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "application/json": "json",
    "text/plain": "txt",
}


def is_data_uri(value: str | None) -> bool:
    return bool(value) and value.startswith("data:")  # type: ignore[union-attr]


def encode_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """Decode a base64 data URI into (bytes, mime type).

    Raises:
        ValueError: Not a base64 data URI or the payload is corrupt.
    """
    match = _DATA_URI.match(uri.strip())
    if match is None:
        raise ValueError("not a base64 data URI")
    mime = match.group("mime") or "application/octet-stream"
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e
    return data, mime


def extension_for(mime_type: str) -> str:
    """File extension for a mime type ("bin" when unknown)."""
    return _EXTENSIONS.get(mime_type.lower(), "bin")
