# src/adaptors/reference_images.py — v1
"""Fetch reference images for image generation.

A reference that cannot be fetched is logged and skipped; callers always
get whatever subset succeeded.
"""

from __future__ import annotations

import logging

import httpx

from labgen.adaptors.models import ReferenceImage
from labgen.storage.data_uri import decode_data_uri, is_data_uri

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


async def fetch_reference_image(client: httpx.AsyncClient, url: str) -> ReferenceImage:
    """Fetch one image (http(s) or data URI).

    Raises:
        httpx.HTTPError: Transport failure or non-2xx status.
        httpx.InvalidURL: The URL cannot be parsed.
        ValueError: The payload is empty or the data URI is malformed.
    """
    if is_data_uri(url):
        data, media_type = decode_data_uri(url)
    else:
        response = await client.get(url)
        response.raise_for_status()
        data = response.content
        media_type = response.headers.get("content-type", "image/png").split(";")[0].strip()

    if not data:
        raise ValueError("empty image payload")
    return ReferenceImage(data=data, media_type=media_type or "image/png", source_url=url)


async def fetch_reference_images(
    urls: list[str],
    client: httpx.AsyncClient | None = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> list[ReferenceImage]:
    """Fetch all references, in order, skipping failures."""
    if not urls:
        return []

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s), follow_redirects=True
        )

    images: list[ReferenceImage] = []
    try:
        for url in urls:
            try:
                images.append(await fetch_reference_image(client, url))
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                logger.warning("Skipping reference image %s: %s", url[:120], e)
    finally:
        if owns_client:
            await client.aclose()

    logger.debug("Fetched %d/%d reference images", len(images), len(urls))
    return images
