# src/adaptors/openai_adaptor.py — v1
"""OpenAI adaptor: chat completions, DALL-E / gpt-image images and Sora video.

Images are requested as base64 and returned as data URIs so the pipeline
can move them to durable storage (hosted DALL-E URLs expire). Sora jobs
are polled through videos.retrieve and the finished MP4 is downloaded
and returned inline.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.models import (
    ImageOptions,
    ImageResult,
    TextOptions,
    TextResult,
    TokenUsage,
    VideoOptions,
    VideoResult,
)
from labgen.core.errors import ProviderError
from labgen.core.models import ModelInfo
from labgen.jobs.models import ProbeResult
from labgen.storage.data_uri import encode_data_uri, extension_for

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "dall-e-3"
EDIT_IMAGE_MODEL = "gpt-image-1"
DEFAULT_VIDEO_MODEL = "sora-2"
SORA_DURATIONS = (4, 8, 12)
SORA_POLL_INTERVAL_S = 10.0

_SORA_SIZES = {
    ("16:9", "720p"): "1280x720",
    ("9:16", "720p"): "720x1280",
    ("16:9", "1080p"): "1792x1024",
    ("9:16", "1080p"): "1024x1792",
}


def _sora_seconds(duration: int) -> int:
    """Nearest duration Sora accepts."""
    return min(SORA_DURATIONS, key=lambda allowed: (abs(allowed - duration), allowed))


class OpenAIAdaptor(BaseGenerationAdaptor):
    """OpenAI GPT / DALL-E / Sora adaptor."""

    adaptor_id = "openai"
    display_name = "OpenAI"
    capabilities = ("textGeneration", "imageGeneration", "videoGeneration")
    default_model = "gpt-4o"
    models = (
        ModelInfo(
            id="gpt-4o",
            name="GPT-4o",
            description="Multimodal flagship model",
            capabilities=("textGeneration",),
            context_window=128_000,
            max_output_tokens=16_384,
            input_cost_per_1m=2.50,
            output_cost_per_1m=10.0,
        ),
        ModelInfo(
            id="gpt-4o-mini",
            name="GPT-4o mini",
            description="Small, fast and cheap",
            capabilities=("textGeneration",),
            context_window=128_000,
            max_output_tokens=16_384,
            input_cost_per_1m=0.15,
            output_cost_per_1m=0.60,
        ),
        ModelInfo(
            id="gpt-4",
            name="GPT-4",
            capabilities=("textGeneration",),
            context_window=8192,
            max_output_tokens=4096,
            input_cost_per_1m=30.0,
            output_cost_per_1m=60.0,
            is_deprecated=True,
        ),
        ModelInfo(
            id=DEFAULT_IMAGE_MODEL,
            name="DALL-E 3",
            description="Text-to-image generation",
            capabilities=("imageGeneration",),
        ),
        ModelInfo(
            id=EDIT_IMAGE_MODEL,
            name="GPT Image 1",
            description="Image generation and editing with reference images",
            capabilities=("imageGeneration",),
            input_cost_per_1m=5.0,
            output_cost_per_1m=40.0,
        ),
        ModelInfo(
            id=DEFAULT_VIDEO_MODEL,
            name="Sora 2",
            description="Text/image-to-video generation",
            capabilities=("videoGeneration",),
        ),
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(
                api_key=self.api_key,
                organization=self.credential("organization") or None,
            )
        return self.__client

    # --- Text ---

    async def generate_text(
        self, prompt: str, options: TextOptions | None = None
    ) -> TextResult:
        options = options or TextOptions()
        messages: list[dict[str, Any]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": messages,
            "temperature": self._temperature(options),
            "max_tokens": self._max_tokens(options),
        }
        if options.json_output:
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        try:
            resp = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            raise self._provider_error("text generation", e) from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = resp.usage
        return TextResult(
            text=resp.choices[0].message.content or "",
            usage=TokenUsage.of(
                usage.prompt_tokens if usage else 0,
                usage.completion_tokens if usage else 0,
            ),
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
            latency_ms=latency,
        )

    # --- Image ---

    async def generate_image(
        self, prompt: str, options: ImageOptions | None = None
    ) -> ImageResult:
        options = options or ImageOptions()
        references = await self._fetch_references(options.reference_image_urls)

        try:
            if references:
                model_id = EDIT_IMAGE_MODEL
                files = [
                    (f"reference_{i}.{extension_for(ref.media_type)}", ref.data, ref.media_type)
                    for i, ref in enumerate(references)
                ]
                resp = await self._client.images.edit(
                    model=model_id, image=files, prompt=prompt, size=options.size
                )
            else:
                model_id = self._model_for("imageGeneration", "image_model", DEFAULT_IMAGE_MODEL)
                kwargs: dict[str, Any] = {
                    "model": model_id,
                    "prompt": prompt,
                    "n": 1,
                    "size": options.size,
                }
                if model_id.startswith("dall-e"):
                    kwargs["quality"] = options.quality
                    kwargs["response_format"] = "b64_json"
                    if options.style:
                        kwargs["style"] = options.style
                resp = await self._client.images.generate(**kwargs)
        except Exception as e:
            raise self._provider_error("image generation", e) from e

        image = resp.data[0] if resp.data else None
        if image is None:
            raise ProviderError(self.adaptor_id, "image generation", "response contained no image")

        if image.b64_json:
            url, fmt = f"data:image/png;base64,{image.b64_json}", "data-url"
        elif image.url:
            url, fmt = image.url, "url"
        else:
            raise ProviderError(self.adaptor_id, "image generation", "image has neither data nor URL")

        return ImageResult(
            image_url=url,
            format=fmt,
            adaptor_id=self.adaptor_id,
            model_id=model_id,
            revised_prompt=getattr(image, "revised_prompt", None),
            reference_images_used=len(references),
        )

    # --- Video ---

    async def generate_video(
        self, prompt: str, options: VideoOptions | None = None
    ) -> VideoResult:
        options = options or VideoOptions()
        model_id = self._model_for("videoGeneration", "video_model", DEFAULT_VIDEO_MODEL)
        seconds = _sora_seconds(options.duration_seconds)
        size = _SORA_SIZES[(options.aspect_ratio, options.resolution)]

        try:
            video = await self._client.videos.create(
                model=model_id, prompt=prompt, seconds=str(seconds), size=size
            )
        except Exception as e:
            raise self._provider_error("video submission", e) from e

        async def probe(handle: str) -> ProbeResult:
            status = await self._client.videos.retrieve(handle)
            if status.status == "completed":
                return ProbeResult(done=True, payload=status)
            if status.status == "failed":
                error = getattr(status, "error", None)
                message = getattr(error, "message", None) or "video generation failed"
                return ProbeResult(done=True, error=message)
            return ProbeResult(done=False)

        await self._poller(probe, "poll_interval_s", SORA_POLL_INTERVAL_S).wait(video.id)

        try:
            content = await self._client.videos.download_content(video.id)
            data = content.content
        except Exception as e:
            raise self._provider_error("video download", e) from e

        return VideoResult(
            video_url=encode_data_uri(data, "video/mp4"),
            duration_seconds=seconds,
            resolution=options.resolution,
            aspect_ratio=options.aspect_ratio,
            adaptor_id=self.adaptor_id,
            model_id=model_id,
            operation_handle=video.id,
        )

    # --- Health ---

    async def _ping(self) -> None:
        await self._client.models.retrieve(self.model_id)
