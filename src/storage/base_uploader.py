# src/storage/base_uploader.py — v1
"""Abstract artifact uploader: turns bytes (or an inline data URI) into a
durable URL."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from labgen.core.errors import StorageError
from labgen.storage.data_uri import decode_data_uri, extension_for

logger = logging.getLogger(__name__)


class BaseArtifactUploader(ABC):
    """Unified interface for artifact storage backends."""

    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store ``content`` under ``path`` and return its durable URL.

        Raises:
            StorageError: The backend rejected the write.
        """

    async def upload_data_uri(self, data_uri: str, stem: str) -> str:
        """Decode a data URI and upload it as ``<stem>.<ext>``.

        Raises:
            StorageError: Malformed data URI or backend failure.
        """
        try:
            data, mime_type = decode_data_uri(data_uri)
        except ValueError as e:
            raise StorageError(f"Cannot upload inline artifact {stem}: {e}") from e
        if not data:
            raise StorageError(f"Cannot upload inline artifact {stem}: empty payload")

        path = f"{stem}.{extension_for(mime_type)}"
        url = await self.upload(path, data, mime_type)
        logger.debug("Uploaded inline artifact %s (%d bytes) -> %s", path, len(data), url)
        return url
