# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Prompt templates, model catalogs and generated artifacts. Pipeline-run and
job models live next to the code that owns their lifecycle
(pipeline/models.py, jobs/models.py).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Capability = Literal["textGeneration", "imageGeneration", "videoGeneration"]
OutputFormat = Literal["text", "json", "image", "video"]
VariableType = Literal["string", "number", "array", "boolean", "object"]

CAPABILITIES: tuple[Capability, ...] = (
    "textGeneration",
    "imageGeneration",
    "videoGeneration",
)

# Stored templates come from JSON written by other services (camelCase).
_TEMPLATE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    protected_namespaces=(),
    frozen=True,
)


# === PROMPT TEMPLATES ===


class VariableSpec(BaseModel):
    """Declared template variable."""

    model_config = _TEMPLATE_CONFIG

    name: str
    required: bool = True
    type: VariableType = "string"
    description: str = ""


class ModelConfig(BaseModel):
    """Adaptor + model pair, used as a per-template default or an override."""

    model_config = _TEMPLATE_CONFIG

    adaptor_id: str
    model_id: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class PromptTemplate(BaseModel):
    """A named, versioned prompt for one stage and capability.

    Immutable once loaded. Placeholders use ``{{name}}`` syntax in either
    body; every referenced name must be supplied at resolution time unless
    declared optional in ``variables``.
    """

    model_config = _TEMPLATE_CONFIG

    id: str
    stage: str = ""
    capability: Capability = "textGeneration"
    name: str = ""
    system_prompt: str = ""
    user_prompt: str = ""
    variables: tuple[VariableSpec, ...] = ()
    output_format: OutputFormat = "text"
    default_model: ModelConfig | None = Field(
        default=None,
        validation_alias=AliasChoices("default_model", "defaultModel", "modelConfig"),
    )
    version: int = 1
    is_active: bool = True

    @model_validator(mode="after")
    def _require_body(self) -> PromptTemplate:
        if not self.system_prompt.strip() and not self.user_prompt.strip():
            raise ValueError(f"template '{self.id}' has no prompt body")
        return self

    def variable_spec(self, name: str) -> VariableSpec | None:
        """Return the declared spec for a variable, if any."""
        for spec in self.variables:
            if spec.name == name:
                return spec
        return None


class ResolvedPrompt(BaseModel):
    """Prompt strings after placeholder substitution."""

    template_id: str
    system_prompt: str
    user_prompt: str
    output_format: OutputFormat = "text"

    @property
    def full_prompt(self) -> str:
        """System and user prompt joined for single-string provider inputs."""
        if self.system_prompt and self.user_prompt:
            return f"{self.system_prompt}\n\n{self.user_prompt}"
        return self.system_prompt or self.user_prompt


# === ADAPTOR CATALOG ===


class ModelInfo(BaseModel):
    """Static catalog entry for one provider model."""

    model_config = ConfigDict(protected_namespaces=(), frozen=True)

    id: str
    name: str
    description: str = ""
    capabilities: tuple[Capability, ...] = ("textGeneration",)
    context_window: int = 0
    max_output_tokens: int = 0
    input_cost_per_1m: float = 0.0
    output_cost_per_1m: float = 0.0
    is_deprecated: bool = False

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


class AdaptorDescriptor(BaseModel):
    """Registry-facing description of one adaptor variant."""

    model_config = ConfigDict(protected_namespaces=(), frozen=True)

    adaptor_id: str
    display_name: str
    capabilities: tuple[Capability, ...]
    default_model: str
    models: tuple[ModelInfo, ...] = ()


# === ARTIFACTS ===


class GeneratedArtifact(BaseModel):
    """A generated asset URL plus provenance."""

    model_config = ConfigDict(protected_namespaces=())

    url: str
    adaptor_id: str
    model_id: str
    format: Literal["image", "video", "text"]
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mime_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_inline(self) -> bool:
        """True while the URL still carries the payload as a data URI."""
        return self.url.startswith("data:")
