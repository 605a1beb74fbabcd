# src/adaptors/anthropic_adaptor.py — v1
"""Anthropic Claude adaptor (text only).

Image and video generation fall through to the base class and raise
UnsupportedCapability. Claude accepts temperatures in [0, 1].
"""

from __future__ import annotations

import logging
import time
from typing import Any

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.models import TextOptions, TextResult, TokenUsage
from labgen.core.models import ModelInfo

logger = logging.getLogger(__name__)


class AnthropicAdaptor(BaseGenerationAdaptor):
    """Adapter for Anthropic Claude models."""

    adaptor_id = "anthropic"
    display_name = "Anthropic Claude"
    capabilities = ("textGeneration",)
    default_model = "claude-sonnet-4-20250514"
    max_temperature = 1.0
    models = (
        ModelInfo(
            id="claude-sonnet-4-20250514",
            name="Claude Sonnet 4",
            description="Balanced intelligence and speed",
            context_window=200_000,
            max_output_tokens=64_000,
            input_cost_per_1m=3.0,
            output_cost_per_1m=15.0,
        ),
        ModelInfo(
            id="claude-opus-4-20250514",
            name="Claude Opus 4",
            description="Most capable model for complex tasks",
            context_window=200_000,
            max_output_tokens=32_000,
            input_cost_per_1m=15.0,
            output_cost_per_1m=75.0,
        ),
        ModelInfo(
            id="claude-haiku-4-5-20251001",
            name="Claude Haiku 4.5",
            description="Fastest model for lightweight tasks",
            context_window=200_000,
            max_output_tokens=64_000,
            input_cost_per_1m=1.0,
            output_cost_per_1m=5.0,
        ),
        ModelInfo(
            id="claude-3-5-sonnet-20241022",
            name="Claude 3.5 Sonnet",
            context_window=200_000,
            max_output_tokens=8192,
            input_cost_per_1m=3.0,
            output_cost_per_1m=15.0,
            is_deprecated=True,
        ),
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self.__client

    async def generate_text(
        self, prompt: str, options: TextOptions | None = None
    ) -> TextResult:
        """Text completion via the Messages API."""
        options = options or TextOptions()
        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": self._max_tokens(options),
            "temperature": min(self._temperature(options), self.max_temperature),
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.system_prompt:
            kwargs["system"] = options.system_prompt

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as e:
            raise self._provider_error("text generation", e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        return TextResult(
            text=self._extract_text(response),
            usage=TokenUsage.of(response.usage.input_tokens, response.usage.output_tokens),
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
            latency_ms=latency_ms,
        )

    async def _ping(self) -> None:
        await self._client.messages.create(
            model=self.model_id,
            max_tokens=10,
            messages=[{"role": "user", "content": "ping"}],
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate text blocks of a Messages API response."""
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
