# src/storage/local_uploader.py — v1
"""Local filesystem artifact uploader (default backend)."""

from __future__ import annotations

from pathlib import Path

from labgen.core.errors import StorageError
from labgen.storage.base_uploader import BaseArtifactUploader


class LocalArtifactUploader(BaseArtifactUploader):
    """Write artifacts below a root directory.

    URLs are ``<public_base_url>/<path>`` when a base URL is configured
    (e.g. a static file server in front of the root), else ``file://`` URIs.
    """

    def __init__(self, root: Path | str, public_base_url: str = "") -> None:
        self._root = Path(root).expanduser()
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root.resolve()):
            raise StorageError(f"Artifact path escapes the storage root: {path}")
        return target

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Local write failed for {path}: {e}") from e

        if self._public_base_url:
            return f"{self._public_base_url}/{path.lstrip('/')}"
        return target.as_uri()
