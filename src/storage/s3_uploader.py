# src/storage/s3_uploader.py — v1
"""S3-compatible artifact uploader (ARTIFACT_UPLOADER=s3).

Supports AWS S3, MinIO, and other S3-compatible storage.
Requires 'boto3' package: pip install boto3.
"""

from __future__ import annotations

import asyncio
import logging

from labgen.core.errors import StorageError
from labgen.storage.base_uploader import BaseArtifactUploader

logger = logging.getLogger(__name__)


class S3ArtifactUploader(BaseArtifactUploader):
    """Upload artifacts to S3-compatible object storage."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "labgen/",
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize S3 uploader.

        Args:
            bucket: S3 bucket name.
            prefix: Key prefix for all objects (e.g. "labgen/").
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
        """
        import boto3

        kwargs: dict = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._region = region
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

    def _full_key(self, path: str) -> str:
        """Build the full S3 key from a relative path."""
        return f"{self._prefix}{path.lstrip('/')}"

    def _url(self, key: str) -> str:
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self._bucket}/{key}"
        if self._region:
            return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"
        return f"https://{self._bucket}.s3.amazonaws.com/{key}"

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        key = self._full_key(path)
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except Exception as e:
            raise StorageError(f"S3 upload failed for s3://{self._bucket}/{key}: {e}") from e
        logger.debug("S3 upload: s3://%s/%s (%d bytes)", self._bucket, key, len(content))
        return self._url(key)
