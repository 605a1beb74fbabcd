# src/storage/gcs_paths.py — v1
"""Conversions between public Cloud Storage URLs and ``gs://`` URIs."""

from __future__ import annotations

_PUBLIC_PREFIXES = (
    "https://storage.googleapis.com/",
    "https://storage.cloud.google.com/",
)
PUBLIC_BASE = "https://storage.googleapis.com/"


def to_gcs_uri(url: str) -> str:
    """Convert a public bucket URL into ``gs://bucket/path``.

    Raises:
        ValueError: Empty input or an URL outside Cloud Storage.
    """
    if not url:
        raise ValueError("URL is required for conversion")
    if url.startswith("gs://"):
        return url
    for prefix in _PUBLIC_PREFIXES:
        if url.startswith(prefix):
            return "gs://" + url[len(prefix):].split("?", 1)[0]
    raise ValueError(
        f"Invalid GCS URL: {url}. Expected gs:// or https://storage.googleapis.com/"
    )


def gcs_to_https(uri: str) -> str:
    """Public https URL for a ``gs://`` URI; other URLs pass through."""
    if uri.startswith("gs://"):
        return PUBLIC_BASE + uri[len("gs://"):]
    return uri


def public_url(bucket: str, key: str) -> str:
    return f"{PUBLIC_BASE}{bucket}/{key.lstrip('/')}"
