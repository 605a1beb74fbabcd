# src/adaptors/gemini_adaptor.py — v1
"""Google Gemini adaptor: text and images via google-generativeai, video via
Vertex AI Veo long-running predictions.

Veo jobs are submitted with ``:predictLongRunning`` and probed with
``:fetchPredictOperation``; both use a service-account access token
obtained through google-auth.
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import time
from collections.abc import Mapping
from typing import Any

import httpx

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
from labgen.storage.data_uri import encode_data_uri
from labgen.storage.gcs_paths import gcs_to_https, to_gcs_uri

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_VIDEO_MODEL = "veo-3.1-generate-preview"
VEO_DURATIONS = (4, 6, 8)
VEO_DEFAULT_DURATION = 6
VEO_POLL_INTERVAL_S = 15.0

_CLOUD_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def extract_video_url(result: Mapping[str, Any] | None) -> str | None:
    """Find the generated video location in a Veo operation response.

    ``gs://`` URIs are returned as public https URLs; inline base64 videos
    come back as data URIs.
    """
    if not result:
        return None

    videos = result.get("videos") or []
    samples = result.get("generatedSamples") or []
    predictions = result.get("predictions") or []

    candidates: list[Any] = []
    if videos:
        candidates += [videos[0].get("gcsUri"), videos[0].get("uri")]
    if samples:
        candidates.append((samples[0].get("video") or {}).get("uri"))
    if predictions:
        candidates += [predictions[0].get("videoUri"), predictions[0].get("gcsUri")]

    for candidate in candidates:
        if candidate:
            return gcs_to_https(str(candidate))

    if videos and videos[0].get("bytesBase64Encoded"):
        mime = videos[0].get("mimeType") or "video/mp4"
        return f"data:{mime};base64,{videos[0]['bytesBase64Encoded']}"
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:500]}"
    message = (body.get("error") or {}).get("message") if isinstance(body, dict) else None
    return f"HTTP {response.status_code}: {message or json.dumps(body)[:500]}"


class GeminiAdaptor(BaseGenerationAdaptor):
    """Google Gemini / Veo adaptor."""

    adaptor_id = "gemini"
    display_name = "Google Gemini"
    capabilities = ("textGeneration", "imageGeneration", "videoGeneration")
    default_model = "gemini-2.0-flash"
    models = (
        ModelInfo(
            id="gemini-2.0-flash",
            name="Gemini 2.0 Flash",
            description="Fast general-purpose text generation",
            capabilities=("textGeneration",),
            context_window=1_048_576,
            max_output_tokens=8192,
            input_cost_per_1m=0.10,
            output_cost_per_1m=0.40,
        ),
        ModelInfo(
            id="gemini-2.0-flash-exp",
            name="Gemini 2.0 Flash (Experimental)",
            capabilities=("textGeneration",),
            context_window=1_000_000,
            max_output_tokens=8192,
            is_deprecated=True,
        ),
        ModelInfo(
            id="gemini-2.5-pro",
            name="Gemini 2.5 Pro",
            description="Advanced reasoning and long-form generation",
            capabilities=("textGeneration",),
            context_window=1_048_576,
            max_output_tokens=65_536,
            input_cost_per_1m=1.25,
            output_cost_per_1m=10.0,
        ),
        ModelInfo(
            id=DEFAULT_IMAGE_MODEL,
            name="Gemini 2.5 Flash Image",
            description="Image generation and editing with reference images",
            capabilities=("imageGeneration", "textGeneration"),
            context_window=32_768,
            max_output_tokens=8192,
            input_cost_per_1m=0.30,
            output_cost_per_1m=30.0,
        ),
        ModelInfo(
            id=DEFAULT_VIDEO_MODEL,
            name="Veo 3.1 (Preview)",
            description="Image-to-video generation with audio",
            capabilities=("videoGeneration",),
        ),
        ModelInfo(
            id="veo-2.0-generate-001",
            name="Veo 2.0",
            capabilities=("videoGeneration",),
            is_deprecated=True,
        ),
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._gcp_credentials: Any = None

    def _genai(self):
        """Configure and return the google.generativeai module."""
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        return genai

    # --- Text ---

    async def generate_text(
        self, prompt: str, options: TextOptions | None = None
    ) -> TextResult:
        options = options or TextOptions()
        gen_config: dict[str, Any] = {
            "temperature": self._temperature(options),
            "max_output_tokens": self._max_tokens(options),
        }
        if options.json_output:
            gen_config["response_mime_type"] = "application/json"

        t0 = time.monotonic()
        try:
            genai = self._genai()
            model = genai.GenerativeModel(
                self.model_id, system_instruction=options.system_prompt or None
            )
            resp = await model.generate_content_async(prompt, generation_config=gen_config)
            text = resp.text or ""
        except Exception as e:
            raise self._provider_error("text generation", e) from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return TextResult(
            text=text,
            usage=TokenUsage.of(
                getattr(usage, "prompt_token_count", 0) if usage else 0,
                getattr(usage, "candidates_token_count", 0) if usage else 0,
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
        model_id = self._model_for("imageGeneration", "image_model", DEFAULT_IMAGE_MODEL)
        references = await self._fetch_references(options.reference_image_urls)

        contents: list[Any] = [
            {"mime_type": ref.media_type, "data": ref.data} for ref in references
        ]
        text = prompt
        if options.aspect_ratio:
            text += f"\n\nAspect ratio: {options.aspect_ratio}."
        contents.append(text)

        try:
            genai = self._genai()
            model = genai.GenerativeModel(model_id)
            resp = await model.generate_content_async(contents)
        except Exception as e:
            raise self._provider_error("image generation", e) from e

        for candidate in getattr(resp, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and getattr(inline, "data", None):
                    return ImageResult(
                        image_url=encode_data_uri(inline.data, inline.mime_type or "image/png"),
                        format="data-url",
                        adaptor_id=self.adaptor_id,
                        model_id=model_id,
                        reference_images_used=len(references),
                    )

        raise ProviderError(self.adaptor_id, "image generation", "response contained no image")

    # --- Video ---

    async def generate_video(
        self, prompt: str, options: VideoOptions | None = None
    ) -> VideoResult:
        options = options or VideoOptions()
        project_id = self.credential("gcp_project_id")
        location = self.credential("gcp_location", "us-central1")
        bucket = self.credential("gcs_bucket")
        if not project_id:
            raise ProviderError(self.adaptor_id, "video submission", "GCP project id is not configured")

        model_id = self._model_for("videoGeneration", "video_model", DEFAULT_VIDEO_MODEL)
        try:
            payload = self._veo_payload(prompt, options, bucket)
        except ValueError as e:
            raise self._provider_error("video submission", e) from e
        parameters = payload["parameters"]
        base_url = (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project_id}"
            f"/locations/{location}/publishers/google/models/{model_id}"
        )

        async with self._http() as client:
            try:
                token = await self._access_token()
                response = await client.post(
                    f"{base_url}:predictLongRunning",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except Exception as e:
                raise self._provider_error("video submission", e) from e
            if response.is_error:
                raise ProviderError(self.adaptor_id, "video submission", _error_message(response))

            operation_name = response.json().get("name")
            if not operation_name:
                raise ProviderError(
                    self.adaptor_id, "video submission", "response carried no operation name"
                )

            async def probe(handle: str) -> ProbeResult:
                probe_token = await self._access_token()
                r = await client.post(
                    f"{base_url}:fetchPredictOperation",
                    json={"operationName": handle},
                    headers={"Authorization": f"Bearer {probe_token}"},
                )
                if r.is_error:
                    raise ProviderError(self.adaptor_id, "video status probe", _error_message(r))
                data = r.json()
                if not data.get("done"):
                    return ProbeResult(done=False)
                if data.get("error"):
                    error = data["error"]
                    return ProbeResult(done=True, error=error.get("message") or json.dumps(error))
                return ProbeResult(done=True, payload=data.get("response") or data.get("result") or {})

            result = await self._poller(probe, "poll_interval_s", VEO_POLL_INTERVAL_S).wait(
                operation_name
            )

        video_url = extract_video_url(result)
        if not video_url:
            raise ProviderError(self.adaptor_id, "video generation", "no video URL in operation result")

        return VideoResult(
            video_url=video_url,
            duration_seconds=parameters["durationSeconds"],
            resolution=parameters["resolution"],
            aspect_ratio=parameters["aspectRatio"],
            adaptor_id=self.adaptor_id,
            model_id=model_id,
            operation_handle=operation_name,
        )

    def _veo_payload(self, prompt: str, options: VideoOptions, bucket: str) -> dict[str, Any]:
        duration = options.duration_seconds
        if duration not in VEO_DURATIONS:
            logger.warning(
                "Veo does not support %ss videos; using %ss", duration, VEO_DEFAULT_DURATION
            )
            duration = VEO_DEFAULT_DURATION

        resolution = options.resolution
        if resolution == "1080p" and options.aspect_ratio != "16:9":
            logger.warning("1080p requires 16:9; falling back to 720p")
            resolution = "720p"

        instance: dict[str, Any] = {"prompt": prompt}
        if options.image_uri:
            gcs_uri = to_gcs_uri(options.image_uri)
            mime_type = mimetypes.guess_type(gcs_uri)[0] or "image/jpeg"
            instance["image"] = {"gcsUri": gcs_uri, "mimeType": mime_type}

        parameters: dict[str, Any] = {
            "durationSeconds": duration,
            "aspectRatio": options.aspect_ratio,
            "resolution": resolution,
            "enhancePrompt": True,
            "generateAudio": options.generate_audio,
            "sampleCount": 1,
        }
        storage_uri = options.storage_uri or (f"gs://{bucket}/videos/" if bucket else None)
        if storage_uri:
            parameters["storageUri"] = storage_uri
        if options.negative_prompt:
            parameters["negativePrompt"] = options.negative_prompt

        return {"instances": [instance], "parameters": parameters}

    async def _access_token(self) -> str:
        """Bearer token for Vertex AI, refreshed when expired."""
        import google.auth
        import google.auth.transport.requests
        from google.oauth2 import service_account

        if self._gcp_credentials is None:
            key_path = self.credential("service_account_key")
            if key_path:
                self._gcp_credentials = service_account.Credentials.from_service_account_file(
                    key_path, scopes=[_CLOUD_SCOPE]
                )
            else:
                self._gcp_credentials, _ = google.auth.default(scopes=[_CLOUD_SCOPE])

        creds = self._gcp_credentials
        if not creds.valid:
            await asyncio.to_thread(creds.refresh, google.auth.transport.requests.Request())
        return creds.token

    # --- Health ---

    async def _ping(self) -> None:
        model_id = self._model_for("textGeneration", "health_model", self.default_model)
        genai = self._genai()
        model = genai.GenerativeModel(model_id)
        await model.generate_content_async("ping", generation_config={"max_output_tokens": 5})
