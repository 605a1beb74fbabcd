# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: default adaptor
selection, vendor credentials, async job budgets, pipeline defaults,
artifact/result storage backends and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Adaptor defaults ===
    default_ai_adaptor: str = "gemini"
    default_ai_model: str = "gemini-2.0-flash"

    # Per-capability defaults (empty = use the generic default above)
    default_text_adaptor: str = ""
    default_text_model: str = ""
    default_image_adaptor: str = ""
    default_image_model: str = ""
    default_video_adaptor: str = ""
    default_video_model: str = ""

    # === Vendor credentials ===
    gemini_api_key: str = ""
    openai_api_key: str = ""
    openai_org_id: str = ""
    anthropic_api_key: str = ""

    # Vertex AI (Veo) + Cloud Storage
    gcp_project_id: str = ""
    gcp_location: str = "us-central1"
    gcs_bucket_name: str = ""
    veo_service_account_key: str = ""

    # === Async jobs ===
    video_poll_interval_s: float = 15.0
    video_max_wait_s: float = 3600.0
    sora_poll_interval_s: float = 10.0

    # === Pipeline ===
    pipeline_item_count: int = 6
    pipeline_text_temperature: float = 0.8
    pipeline_text_max_tokens: int = 4000
    pipeline_image_size: str = "1024x1024"
    pipeline_image_quality: Literal["standard", "hd"] = "hd"
    reference_image_timeout_s: float = 30.0

    # === Artifact storage ===
    artifact_uploader: Literal["local", "s3", "gcs"] = "local"
    artifact_local_root: Path = Path("~/.labgen/artifacts")
    artifact_public_base_url: str = ""
    artifact_s3_bucket: str = ""
    artifact_s3_prefix: str = "labgen/"
    artifact_s3_region: str = ""
    artifact_s3_endpoint_url: str = ""
    artifact_gcs_bucket: str = ""
    artifact_gcs_prefix: str = "labgen/"

    # === Result store / prompt store ===
    result_store: Literal["json"] = "json"
    result_store_root: Path = Path("~/.labgen/results")
    prompt_store_root: Path = Path("~/.labgen/prompts")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("pipeline_text_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 2.0:
            raise ValueError("pipeline_text_temperature must be within [0, 2]")
        return v

    @field_validator("video_poll_interval_s", "sora_poll_interval_s")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("poll intervals must be > 0")
        return v

    @field_validator("pipeline_item_count")
    @classmethod
    def validate_item_count(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("pipeline_item_count must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.video_max_wait_s < self.video_poll_interval_s:
            errors.append("VIDEO_MAX_WAIT_S must be >= VIDEO_POLL_INTERVAL_S")

        if self.artifact_uploader == "s3" and not self.artifact_s3_bucket:
            errors.append("ARTIFACT_UPLOADER=s3 requires ARTIFACT_S3_BUCKET")

        if (
            self.artifact_uploader == "gcs"
            and not self.artifact_gcs_bucket
            and not self.gcs_bucket_name
        ):
            errors.append(
                "ARTIFACT_UPLOADER=gcs requires ARTIFACT_GCS_BUCKET or GCS_BUCKET_NAME"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def default_for(self, capability: str) -> tuple[str, str]:
        """Return the (adaptor_id, model_id) default for a capability.

        Capability-specific settings win over the generic default; a
        capability adaptor without a model keeps the generic model only when
        the adaptor is the generic one too.
        """
        prefix = {
            "textGeneration": "default_text",
            "imageGeneration": "default_image",
            "videoGeneration": "default_video",
        }.get(capability)
        if prefix is None:
            return self.default_ai_adaptor, self.default_ai_model

        adaptor = getattr(self, f"{prefix}_adaptor") or self.default_ai_adaptor
        model = getattr(self, f"{prefix}_model")
        if not model and adaptor == self.default_ai_adaptor:
            model = self.default_ai_model
        return adaptor, model

    @property
    def effective_gcs_bucket(self) -> str:
        """Bucket used for GCS artifact uploads."""
        return self.artifact_gcs_bucket or self.gcs_bucket_name


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
