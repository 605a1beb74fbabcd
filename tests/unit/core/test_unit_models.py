# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — templates, catalog entries, artifacts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from labgen.core.models import (
    AdaptorDescriptor,
    GeneratedArtifact,
    ModelInfo,
    PromptTemplate,
    ResolvedPrompt,
)


class TestPromptTemplate:
    def test_camel_case_fields(self):
        t = PromptTemplate.model_validate({
            "id": "t1",
            "stage": "stage_2_themes",
            "capability": "imageGeneration",
            "systemPrompt": "sys",
            "userPrompt": "user {{x}}",
            "outputFormat": "image",
            "isActive": False,
            "variables": [{"name": "x", "required": False}],
        })
        assert t.system_prompt == "sys"
        assert t.output_format == "image"
        assert t.is_active is False
        assert t.variable_spec("x").required is False
        assert t.variable_spec("y") is None

    def test_model_config_alias(self):
        t = PromptTemplate.model_validate({
            "id": "t1",
            "userPrompt": "u",
            "modelConfig": {"adaptorId": "openai", "modelId": "gpt-4o"},
        })
        assert t.default_model.adaptor_id == "openai"
        assert t.default_model.model_id == "gpt-4o"

    def test_snake_case_fields(self):
        t = PromptTemplate(id="t1", user_prompt="u", default_model={"adaptor_id": "gemini"})
        assert t.default_model.model_id == ""

    def test_requires_body(self):
        with pytest.raises(ValidationError, match="no prompt body"):
            PromptTemplate(id="t1", system_prompt="  ", user_prompt="")

    def test_frozen(self):
        t = PromptTemplate(id="t1", user_prompt="u")
        with pytest.raises(ValidationError):
            t.user_prompt = "other"

    def test_invalid_capability(self):
        with pytest.raises(ValidationError):
            PromptTemplate(id="t1", user_prompt="u", capability="audioGeneration")


class TestResolvedPrompt:
    def test_full_prompt_joins(self):
        p = ResolvedPrompt(template_id="t", system_prompt="S", user_prompt="U")
        assert p.full_prompt == "S\n\nU"

    def test_full_prompt_single_part(self):
        assert ResolvedPrompt(template_id="t", system_prompt="", user_prompt="U").full_prompt == "U"
        assert ResolvedPrompt(template_id="t", system_prompt="S", user_prompt="").full_prompt == "S"


class TestModelInfo:
    def test_supports(self):
        info = ModelInfo(id="m", name="M", capabilities=("textGeneration", "imageGeneration"))
        assert info.supports("imageGeneration")
        assert not info.supports("videoGeneration")

    def test_defaults(self):
        info = ModelInfo(id="m", name="M")
        assert info.capabilities == ("textGeneration",)
        assert info.input_cost_per_1m == 0.0
        assert info.is_deprecated is False

    def test_descriptor(self):
        d = AdaptorDescriptor(
            adaptor_id="x",
            display_name="X",
            capabilities=("textGeneration",),
            default_model="m",
            models=(ModelInfo(id="m", name="M"),),
        )
        assert d.models[0].id == "m"


class TestGeneratedArtifact:
    def test_inline(self):
        a = GeneratedArtifact(url="data:image/png;base64,AAAA", adaptor_id="gemini", model_id="m", format="image")
        assert a.is_inline
        assert a.generated_at.tzinfo is not None

    def test_durable(self):
        a = GeneratedArtifact(url="https://cdn.test/a.png", adaptor_id="openai", model_id="m", format="image")
        assert not a.is_inline
