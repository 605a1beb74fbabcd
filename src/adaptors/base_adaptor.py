# src/adaptors/base_adaptor.py — v1
"""Abstract generation adaptor: the capability interface every vendor
binding implements.

Concrete adaptors declare their id, capabilities, default model and a
static model catalog as class attributes; the registry reads those without
instantiating. Construction never touches the network: SDK clients are
created lazily on first use.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, ClassVar

import httpx

from labgen.adaptors.models import (
    HealthStatus,
    ImageOptions,
    ImageResult,
    ReferenceImage,
    TextOptions,
    TextResult,
    VideoOptions,
    VideoResult,
)
from labgen.adaptors.reference_images import DEFAULT_TIMEOUT_S, fetch_reference_images
from labgen.core.errors import (
    ConfigValidationError,
    ProviderError,
    UnsupportedCapability,
)
from labgen.core.models import AdaptorDescriptor, Capability, ModelInfo
from labgen.jobs.poller import AsyncJobPoller, Clock, Probe

logger = logging.getLogger(__name__)

# Pricing tier for models missing from a catalog.
DEFAULT_TIER = ModelInfo(id="default", name="Default tier")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096


class BaseGenerationAdaptor(ABC):
    """Unified interface over text, image and video generation vendors."""

    adaptor_id: ClassVar[str]
    display_name: ClassVar[str]
    capabilities: ClassVar[tuple[Capability, ...]] = ("textGeneration",)
    default_model: ClassVar[str]
    models: ClassVar[tuple[ModelInfo, ...]] = ()
    max_temperature: ClassVar[float] = 2.0

    def __init__(
        self,
        model_id: str | None = None,
        credentials: Mapping[str, Any] | None = None,
        config: Mapping[str, Any] | None = None,
        *,
        clock: Clock | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model_id = model_id or self.default_model
        self.config: dict[str, Any] = dict(config or {})
        self._credentials: dict[str, Any] = dict(credentials or {})
        self._clock = clock
        self._http_client = http_client

    # --- Capability interface ---

    @abstractmethod
    async def generate_text(
        self, prompt: str, options: TextOptions | None = None
    ) -> TextResult:
        """Generate text.

        Raises:
            ProviderError: The provider call failed.
        """

    async def generate_image(
        self, prompt: str, options: ImageOptions | None = None
    ) -> ImageResult:
        """Generate one image. Reference images that fail to fetch are skipped.

        Raises:
            ProviderError: The provider call failed.
            UnsupportedCapability: The adaptor has no image support.
        """
        raise UnsupportedCapability(self.adaptor_id, "image generation")

    async def generate_video(
        self, prompt: str, options: VideoOptions | None = None
    ) -> VideoResult:
        """Generate one video, polling the provider job to completion.

        Raises:
            ProviderError: Submission failed.
            JobFailed: The provider reported a terminal error.
            JobTimedOut: The job exceeded its wait budget.
            UnsupportedCapability: The adaptor has no video support.
        """
        raise UnsupportedCapability(self.adaptor_id, "video generation")

    @abstractmethod
    async def _ping(self) -> None:
        """Minimal provider call used by health_check()."""

    # --- Validation ---

    def validate_config(self, config: Mapping[str, Any] | None = None) -> None:
        """Structural and range checks; no network.

        Raises:
            ConfigValidationError: On the first invalid value found.
        """
        config = self.config if config is None else config

        if not self.api_key:
            raise ConfigValidationError(f"{self.display_name} API key is required")

        temperature = config.get("temperature")
        if temperature is not None:
            if not isinstance(temperature, (int, float)) or isinstance(temperature, bool):
                raise ConfigValidationError("temperature must be a number")
            if not 0 <= temperature <= self.max_temperature:
                raise ConfigValidationError(
                    f"temperature must be between 0 and {self.max_temperature:g}"
                )

        max_tokens = config.get("max_tokens")
        if max_tokens is not None:
            if not isinstance(max_tokens, int) or isinstance(max_tokens, bool) or max_tokens < 1:
                raise ConfigValidationError("max_tokens must be a positive integer")
            info = self.model_info(self.model_id)
            if info is not None and info.max_output_tokens and max_tokens > info.max_output_tokens:
                raise ConfigValidationError(
                    f"max_tokens {max_tokens} exceeds {self.model_id} "
                    f"limit of {info.max_output_tokens}"
                )

    # --- Operations ---

    async def health_check(self) -> HealthStatus:
        """Probe the provider; returns status + latency, never raises."""
        t0 = time.monotonic()
        try:
            await self._ping()
        except Exception as e:
            logger.warning("%s health check failed: %s", self.adaptor_id, e)
            return HealthStatus(
                adaptor_id=self.adaptor_id,
                model_id=self.model_id,
                status="error",
                latency_ms=int((time.monotonic() - t0) * 1000),
                error=str(e),
            )
        return HealthStatus(
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
            status="ok",
            latency_ms=int((time.monotonic() - t0) * 1000),
        )

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost for the current model (0.0 when unpriced)."""
        info = self.model_info(self.model_id) or DEFAULT_TIER
        return (
            input_tokens * info.input_cost_per_1m / 1_000_000
            + output_tokens * info.output_cost_per_1m / 1_000_000
        )

    # --- Catalog ---

    @classmethod
    def list_models(cls) -> list[ModelInfo]:
        return list(cls.models)

    @classmethod
    def model_info(cls, model_id: str) -> ModelInfo | None:
        for info in cls.models:
            if info.id == model_id:
                return info
        return None

    @classmethod
    def descriptor(cls) -> AdaptorDescriptor:
        return AdaptorDescriptor(
            adaptor_id=cls.adaptor_id,
            display_name=cls.display_name,
            capabilities=cls.capabilities,
            default_model=cls.default_model,
            models=cls.models,
        )

    @classmethod
    def supports(cls, capability: Capability) -> bool:
        return capability in cls.capabilities

    # --- Helpers for subclasses ---

    @property
    def api_key(self) -> str:
        return str(self._credentials.get("api_key") or "")

    def credential(self, key: str, default: str = "") -> str:
        return str(self._credentials.get(key) or default)

    def _temperature(self, options: TextOptions) -> float:
        if options.temperature is not None:
            return options.temperature
        return float(self.config.get("temperature", DEFAULT_TEMPERATURE))

    def _max_tokens(self, options: TextOptions) -> int:
        if options.max_tokens is not None:
            return options.max_tokens
        return int(self.config.get("max_tokens", DEFAULT_MAX_TOKENS))

    def _model_for(self, capability: Capability, config_key: str, fallback: str) -> str:
        """Model serving a capability: explicit config, then the instance
        model when the catalog says it can, then the vendor default."""
        configured = self.config.get(config_key)
        if configured:
            return str(configured)
        info = self.model_info(self.model_id)
        if info is not None and info.supports(capability):
            return self.model_id
        return fallback

    async def _fetch_references(self, urls: list[str]) -> list[ReferenceImage]:
        timeout_s = float(self.config.get("reference_image_timeout_s", DEFAULT_TIMEOUT_S))
        return await fetch_reference_images(urls, client=self._http_client, timeout_s=timeout_s)

    @asynccontextmanager
    async def _http(self, timeout_s: float = 60.0) -> AsyncIterator[httpx.AsyncClient]:
        """Injected HTTP client, or a short-lived one owned by this call."""
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s), follow_redirects=True
        ) as client:
            yield client

    def _poller(self, probe: Probe, interval_key: str, default_interval_s: float) -> AsyncJobPoller:
        return AsyncJobPoller(
            probe,
            adaptor_id=self.adaptor_id,
            poll_interval_s=float(self.config.get(interval_key, default_interval_s)),
            max_wait_s=float(self.config.get("max_wait_s", 3600.0)),
            clock=self._clock,
        )

    def _provider_error(self, operation: str, error: Exception) -> ProviderError:
        """Wrap a vendor/transport exception raised during ``operation``."""
        return ProviderError(self.adaptor_id, operation, str(error) or type(error).__name__)
