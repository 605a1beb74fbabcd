# tests/unit/adaptors/test_unit_anthropic_adaptor.py — v1
"""Tests for adaptors/anthropic_adaptor.py."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import pytest

from labgen.adaptors.anthropic_adaptor import AnthropicAdaptor
from labgen.adaptors.models import TextOptions
from labgen.core.errors import ConfigValidationError, ProviderError, UnsupportedCapability


@pytest.fixture
def client():
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Hello, "),
            SimpleNamespace(type="thinking", thinking="..."),
            SimpleNamespace(type="text", text="world"),
        ],
        usage=SimpleNamespace(input_tokens=8, output_tokens=4),
    ))
    return client


@pytest.fixture
def adaptor(client):
    with patch.object(AnthropicAdaptor, "_client", new_callable=PropertyMock, return_value=client):
        yield AnthropicAdaptor(None, {"api_key": "k"})


class TestAnthropicAdaptor:
    @pytest.mark.asyncio
    async def test_text_blocks_joined(self, adaptor, client):
        result = await adaptor.generate_text("Hi", TextOptions(system_prompt="Sys", max_tokens=100))
        assert result.text == "Hello, world"
        assert result.usage.total_tokens == 12
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Sys"
        assert kwargs["max_tokens"] == 100
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_temperature_clamped(self, adaptor, client):
        await adaptor.generate_text("Hi", TextOptions(temperature=1.6))
        assert client.messages.create.call_args.kwargs["temperature"] == 1.0
        assert "system" not in client.messages.create.call_args.kwargs

    def test_config_rejects_high_temperature(self, adaptor):
        with pytest.raises(ConfigValidationError, match="between 0 and 1"):
            adaptor.validate_config({"temperature": 1.2})

    @pytest.mark.asyncio
    async def test_error_wrapped(self, adaptor, client):
        client.messages.create.side_effect = ConnectionError("overloaded")
        with pytest.raises(ProviderError, match="anthropic text generation failed: overloaded"):
            await adaptor.generate_text("Hi")

    @pytest.mark.asyncio
    async def test_text_only(self, adaptor):
        assert not AnthropicAdaptor.supports("imageGeneration")
        with pytest.raises(UnsupportedCapability):
            await adaptor.generate_image("x")
        with pytest.raises(UnsupportedCapability):
            await adaptor.generate_video("x")

    @pytest.mark.asyncio
    async def test_health(self, adaptor, client):
        status = await adaptor.health_check()
        assert status.status == "ok"
        assert client.messages.create.call_args.kwargs["max_tokens"] == 10
