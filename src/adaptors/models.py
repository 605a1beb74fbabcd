# src/adaptors/models.py — v1
"""Option and result models for the generation capability interface."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TextOptions(BaseModel):
    """Options for generate_text()."""

    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    json_output: bool = False


class ImageOptions(BaseModel):
    """Options for generate_image()."""

    size: str = "1024x1024"
    quality: Literal["standard", "hd"] = "standard"
    style: str | None = None
    aspect_ratio: str | None = None
    reference_image_urls: list[str] = Field(default_factory=list)


class VideoOptions(BaseModel):
    """Options for generate_video()."""

    image_uri: str | None = None
    duration_seconds: int = 6
    aspect_ratio: Literal["16:9", "9:16"] = "16:9"
    resolution: Literal["720p", "1080p"] = "720p"
    storage_uri: str | None = None
    negative_prompt: str | None = None
    generate_audio: bool = False


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def of(cls, input_tokens: int | None, output_tokens: int | None) -> TokenUsage:
        """Build usage from possibly-missing provider counters."""
        i = input_tokens or 0
        o = output_tokens or 0
        return cls(input_tokens=i, output_tokens=o, total_tokens=i + o)


class TextResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    adaptor_id: str
    model_id: str
    latency_ms: int = 0


class ImageResult(BaseModel):
    """``format`` is "url" for hosted images and "data-url" for inline ones."""

    model_config = ConfigDict(protected_namespaces=())

    image_url: str
    format: Literal["url", "data-url"]
    adaptor_id: str
    model_id: str
    revised_prompt: str | None = None
    reference_images_used: int = 0


class VideoResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    video_url: str
    duration_seconds: int
    resolution: str
    aspect_ratio: str = "16:9"
    adaptor_id: str
    model_id: str
    operation_handle: str | None = None


class HealthStatus(BaseModel):
    """health_check() outcome; never raised, always returned."""

    model_config = ConfigDict(protected_namespaces=())

    adaptor_id: str
    model_id: str
    status: Literal["ok", "error"]
    latency_ms: int | None = None
    error: str | None = None


class ReferenceImage(BaseModel):
    """Fetched reference image ready for inline submission."""

    data: bytes
    media_type: str = "image/png"
    source_url: str = ""
