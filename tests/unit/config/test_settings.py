# tests/unit/config/test_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from labgen.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_adaptor(self):
        s = Settings(_env_file=None)
        assert s.default_ai_adaptor == "gemini"
        assert s.default_ai_model == "gemini-2.0-flash"

    def test_default_jobs(self):
        s = Settings(_env_file=None)
        assert s.video_poll_interval_s == 15.0
        assert s.video_max_wait_s == 3600.0

    def test_default_pipeline(self):
        s = Settings(_env_file=None)
        assert s.pipeline_item_count == 6
        assert s.pipeline_text_temperature == 0.8
        assert s.pipeline_image_quality == "hd"

    def test_default_storage(self):
        s = Settings(_env_file=None)
        assert s.artifact_uploader == "local"
        assert s.result_store == "json"
        assert isinstance(s.artifact_local_root, Path)

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_format == "json"
        assert s.log_file is None


class TestSettingsValidation:
    def test_max_wait_below_interval(self):
        with pytest.raises(ConfigurationError, match="VIDEO_MAX_WAIT_S"):
            Settings(_env_file=None, video_poll_interval_s=30, video_max_wait_s=10)

    def test_s3_without_bucket(self):
        with pytest.raises(ConfigurationError, match="ARTIFACT_S3_BUCKET"):
            Settings(_env_file=None, artifact_uploader="s3")

    def test_gcs_without_bucket(self):
        with pytest.raises(ConfigurationError, match="GCS"):
            Settings(_env_file=None, artifact_uploader="gcs")

    def test_gcs_with_shared_bucket(self):
        s = Settings(_env_file=None, artifact_uploader="gcs", gcs_bucket_name="veo-out")
        assert s.effective_gcs_bucket == "veo-out"

    def test_artifact_bucket_wins(self):
        s = Settings(
            _env_file=None,
            artifact_uploader="gcs",
            gcs_bucket_name="veo-out",
            artifact_gcs_bucket="assets",
        )
        assert s.effective_gcs_bucket == "assets"

    def test_multiple_errors_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(
                _env_file=None,
                artifact_uploader="s3",
                video_poll_interval_s=30,
                video_max_wait_s=10,
            )
        assert "; " in str(exc_info.value)

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pipeline_text_temperature=2.5)

    def test_poll_interval_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, sora_poll_interval_s=0)

    def test_item_count_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pipeline_item_count=0)

    def test_invalid_uploader(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, artifact_uploader="ftp")


class TestDefaultFor:
    def test_generic_default(self):
        s = Settings(_env_file=None)
        assert s.default_for("textGeneration") == ("gemini", "gemini-2.0-flash")

    def test_capability_adaptor_without_model(self):
        s = Settings(_env_file=None, default_image_adaptor="openai")
        assert s.default_for("imageGeneration") == ("openai", "")

    def test_capability_model_only(self):
        s = Settings(_env_file=None, default_video_model="veo-3.1-generate-preview")
        assert s.default_for("videoGeneration") == ("gemini", "veo-3.1-generate-preview")

    def test_capability_adaptor_and_model(self):
        s = Settings(
            _env_file=None, default_text_adaptor="anthropic", default_text_model="claude-3-5-haiku-20241022"
        )
        assert s.default_for("textGeneration") == ("anthropic", "claude-3-5-haiku-20241022")

    def test_unknown_capability(self):
        s = Settings(_env_file=None)
        assert s.default_for("audioGeneration") == ("gemini", "gemini-2.0-flash")


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, pipeline_item_count=3)
        assert s.pipeline_item_count == 3

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_AI_ADAPTOR", "openai")
        monkeypatch.setenv("VIDEO_POLL_INTERVAL_S", "5")
        s = Settings(_env_file=None)
        assert s.default_ai_adaptor == "openai"
        assert s.video_poll_interval_s == 5.0
