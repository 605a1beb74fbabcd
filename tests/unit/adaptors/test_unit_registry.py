# tests/unit/adaptors/test_unit_registry.py — v1
"""Tests for adaptors/registry.py and adaptors/builtin.py."""

from __future__ import annotations

import pytest

from labgen.adaptors.builtin import BUILTIN_ADAPTORS, create_default_registry
from labgen.adaptors.registry import AdaptorRegistry
from labgen.core.errors import (
    AdaptorInitFailure,
    AdaptorNotRegistered,
    DuplicateAdaptor,
    ModelNotFound,
)


class TestRegister:
    def test_register_and_lookup(self, scripted_adaptor_cls):
        reg = AdaptorRegistry()
        reg.register("scripted", scripted_adaptor_cls)
        assert reg.has_adaptor("scripted")
        assert reg.get_class("scripted") is scripted_adaptor_cls
        assert reg.adaptor_ids == ["scripted"]

    def test_duplicate_rejected(self, registry, scripted_adaptor_cls):
        with pytest.raises(DuplicateAdaptor, match="scripted"):
            registry.register("scripted", scripted_adaptor_cls)
        assert registry.adaptor_ids == ["scripted"]

    def test_two_ids_instantiate_independently(self, scripted_adaptor_cls):
        class OtherAdaptor(scripted_adaptor_cls):
            adaptor_id = "other"
            display_name = "Other"

        reg = AdaptorRegistry()
        reg.register("scripted", scripted_adaptor_cls)
        reg.register("other", OtherAdaptor)

        first = reg.instantiate("scripted", None, {"api_key": "k1"})
        second = reg.instantiate("other", None, {"api_key": "k2"})
        assert reg.adaptor_ids == ["scripted", "other"]
        assert type(first) is scripted_adaptor_cls
        assert type(second) is OtherAdaptor
        assert first is not second
        assert (first.api_key, second.api_key) == ("k1", "k2")

    def test_non_adaptor_rejected(self):
        reg = AdaptorRegistry()
        with pytest.raises(TypeError):
            reg.register("dict", dict)  # type: ignore[arg-type]
        assert not reg.has_adaptor("dict")

    def test_unknown(self, registry):
        with pytest.raises(AdaptorNotRegistered):
            registry.get_class("nope")


class TestInstantiate:
    def test_default_model(self, registry):
        adaptor = registry.instantiate("scripted", None, {"api_key": "k"})
        assert adaptor.model_id == "scripted-1"

    def test_passes_config_and_kwargs(self, registry, script):
        adaptor = registry.instantiate(
            "scripted", "scripted-1", {"api_key": "k"}, {"temperature": 0.2}, script=script
        )
        assert adaptor.config == {"temperature": 0.2}
        assert adaptor.script is script

    def test_unknown_id(self, registry):
        with pytest.raises(AdaptorNotRegistered) as exc_info:
            registry.instantiate("nope", "m")
        assert isinstance(exc_info.value, AdaptorInitFailure)
        assert exc_info.value.model_id == "m"

    def test_missing_key_wrapped(self, registry):
        with pytest.raises(AdaptorInitFailure, match="API key is required"):
            registry.instantiate("scripted", None, {})

    def test_invalid_config_wrapped(self, registry):
        with pytest.raises(AdaptorInitFailure) as exc_info:
            registry.instantiate("scripted", None, {"api_key": "k"}, {"max_tokens": 10_000})
        assert "exceeds" in exc_info.value.reason

    def test_unknown_model_still_instantiates(self, registry):
        adaptor = registry.instantiate("scripted", "scripted-preview", {"api_key": "k"})
        assert adaptor.model_id == "scripted-preview"


class TestCatalog:
    def test_model_info(self, registry):
        assert registry.model_info("scripted", "scripted-1").max_output_tokens == 8192

    def test_model_not_found(self, registry):
        with pytest.raises(ModelNotFound):
            registry.model_info("scripted", "gpt-9")

    def test_descriptors(self, registry):
        (descriptor,) = registry.descriptors()
        assert descriptor.adaptor_id == "scripted"
        assert descriptor.default_model == "scripted-1"


class TestBuiltin:
    def test_default_registry(self):
        reg = create_default_registry()
        assert reg.adaptor_ids == ["gemini", "openai", "anthropic"]
        assert len(BUILTIN_ADAPTORS) == 3

    def test_fresh_each_time(self):
        assert create_default_registry() is not create_default_registry()

    def test_default_models_in_catalog(self):
        for cls in BUILTIN_ADAPTORS:
            assert cls.model_info(cls.default_model) is not None, cls.adaptor_id
