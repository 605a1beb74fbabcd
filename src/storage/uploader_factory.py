# src/storage/uploader_factory.py — v1
"""Factory: instantiate the artifact uploader from configuration."""

from __future__ import annotations

from labgen.config.settings import Settings
from labgen.storage.base_uploader import BaseArtifactUploader
from labgen.storage.local_uploader import LocalArtifactUploader


def create_uploader(settings: Settings) -> BaseArtifactUploader:
    """Create the artifact uploader selected by ARTIFACT_UPLOADER.

    Args:
        settings: Application settings.

    Returns:
        BaseArtifactUploader instance.

    Raises:
        ValueError: If the uploader type is not supported or misconfigured.
    """
    if settings.artifact_uploader == "local":
        return LocalArtifactUploader(
            settings.artifact_local_root,
            public_base_url=settings.artifact_public_base_url,
        )

    if settings.artifact_uploader == "s3":
        from labgen.storage.s3_uploader import S3ArtifactUploader

        if not settings.artifact_s3_bucket:
            raise ValueError("ARTIFACT_S3_BUCKET must be set when ARTIFACT_UPLOADER=s3")
        return S3ArtifactUploader(
            bucket=settings.artifact_s3_bucket,
            prefix=settings.artifact_s3_prefix,
            region=settings.artifact_s3_region or None,
            endpoint_url=settings.artifact_s3_endpoint_url or None,
        )

    if settings.artifact_uploader == "gcs":
        from labgen.storage.gcs_uploader import GcsArtifactUploader

        if not settings.effective_gcs_bucket:
            raise ValueError("ARTIFACT_GCS_BUCKET must be set when ARTIFACT_UPLOADER=gcs")
        return GcsArtifactUploader(
            bucket=settings.effective_gcs_bucket,
            prefix=settings.artifact_gcs_prefix,
            project_id=settings.gcp_project_id or None,
            service_account_key=settings.veo_service_account_key or None,
        )

    raise ValueError(f"Unsupported artifact uploader: {settings.artifact_uploader!r}")
