# src/adaptors/builtin.py — v1
"""Closed set of adaptor variants shipped with the package.

Adding a vendor means adding its class to BUILTIN_ADAPTORS.
"""

from __future__ import annotations

from labgen.adaptors.anthropic_adaptor import AnthropicAdaptor
from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.gemini_adaptor import GeminiAdaptor
from labgen.adaptors.openai_adaptor import OpenAIAdaptor
from labgen.adaptors.registry import AdaptorRegistry

BUILTIN_ADAPTORS: tuple[type[BaseGenerationAdaptor], ...] = (
    GeminiAdaptor,
    OpenAIAdaptor,
    AnthropicAdaptor,
)


def register_builtin_adaptors(registry: AdaptorRegistry) -> AdaptorRegistry:
    """Register every built-in adaptor; returns the registry for chaining."""
    for adaptor_cls in BUILTIN_ADAPTORS:
        registry.register(adaptor_cls.adaptor_id, adaptor_cls)
    return registry


def create_default_registry() -> AdaptorRegistry:
    """Fresh registry holding the built-in adaptors."""
    return register_builtin_adaptors(AdaptorRegistry())
