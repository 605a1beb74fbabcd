# src/storage/gcs_uploader.py — v1
"""Google Cloud Storage artifact uploader (ARTIFACT_UPLOADER=gcs).

Objects are written under a key prefix and addressed through their public
``https://storage.googleapis.com`` URL, which the Veo adaptor can convert
back to ``gs://`` for image-to-video input.
"""

from __future__ import annotations

import asyncio
import logging

from labgen.core.errors import StorageError
from labgen.storage.base_uploader import BaseArtifactUploader
from labgen.storage.gcs_paths import public_url

logger = logging.getLogger(__name__)


class GcsArtifactUploader(BaseArtifactUploader):
    """Upload artifacts to a Cloud Storage bucket."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "labgen/",
        project_id: str | None = None,
        service_account_key: str | None = None,
    ) -> None:
        from google.cloud import storage

        if service_account_key:
            client = storage.Client.from_service_account_json(
                service_account_key, project=project_id
            )
        else:
            client = storage.Client(project=project_id)

        self._bucket_name = bucket
        self._bucket = client.bucket(bucket)
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        key = f"{self._prefix}{path.lstrip('/')}"
        blob = self._bucket.blob(key)
        try:
            await asyncio.to_thread(
                blob.upload_from_string, content, content_type=content_type
            )
        except Exception as e:
            raise StorageError(f"GCS upload failed for gs://{self._bucket_name}/{key}: {e}") from e
        logger.debug("GCS upload: gs://%s/%s (%d bytes)", self._bucket_name, key, len(content))
        return public_url(self._bucket_name, key)
