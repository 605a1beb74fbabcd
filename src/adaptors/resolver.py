# src/adaptors/resolver.py — v1
"""Adaptor resolution for a (project, stage, capability) request.

Resolution order:
  1. Prompt-level override (template default model or caller override)
  2. Project stage config: stage_configs[stage][capability]
  3. Project defaults: default_adaptor + default_model
  4. Settings: capability default, then the generic default

Credentials come from the project when it supplies them for the adaptor,
otherwise from Settings. They are passed per call and never cached.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.models import HealthStatus
from labgen.adaptors.registry import AdaptorRegistry
from labgen.config.settings import Settings
from labgen.core.errors import AdaptorInitFailure
from labgen.core.models import AdaptorDescriptor, Capability, ModelConfig

logger = logging.getLogger(__name__)

ResolutionSource = Literal["prompt", "stage", "project", "global"]

_PROJECT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Video adaptors whose job poll interval has its own setting
_VIDEO_POLL_SETTINGS = {"openai": "sora_poll_interval_s"}


class StageCapabilityConfig(BaseModel):
    """Adaptor choice for one capability of one stage."""

    model_config = _PROJECT_CONFIG

    adaptor: str
    model: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class ProjectAIConfig(BaseModel):
    """Per-project adaptor configuration, as stored by the project service."""

    model_config = _PROJECT_CONFIG

    stage_configs: dict[str, dict[str, StageCapabilityConfig]] = Field(default_factory=dict)
    default_adaptor: str = ""
    default_model: str = ""
    adaptor_credentials: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ProjectConfigSource(ABC):
    """Read access to per-project adaptor configuration."""

    @abstractmethod
    async def get_project_config(self, project_id: str) -> ProjectAIConfig | None:
        """Return the project's config, or None when it has none."""


class StaticProjectConfigSource(ProjectConfigSource):
    """Dict-backed config source (CLI, tests, single-tenant deployments)."""

    def __init__(self, configs: Mapping[str, ProjectAIConfig | dict[str, Any]] | None = None) -> None:
        self._configs: dict[str, ProjectAIConfig] = {
            project_id: (
                cfg if isinstance(cfg, ProjectAIConfig) else ProjectAIConfig.model_validate(cfg)
            )
            for project_id, cfg in (configs or {}).items()
        }

    async def get_project_config(self, project_id: str) -> ProjectAIConfig | None:
        return self._configs.get(project_id)


@dataclass(frozen=True)
class AdaptorAssignment:
    """Adaptor/model chosen for a request, before instantiation."""

    adaptor_id: str
    model_id: str
    source: ResolutionSource
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.adaptor_id}:{self.model_id}"


@dataclass(frozen=True)
class ResolvedAdaptor:
    """Ready-to-use adaptor plus how it was chosen."""

    adaptor_id: str
    model_id: str
    adaptor: BaseGenerationAdaptor
    config: dict[str, Any]
    source: ResolutionSource


@dataclass(frozen=True)
class AdaptorAvailability:
    """One row of list_available()."""

    descriptor: AdaptorDescriptor
    configured: bool
    health: HealthStatus | None = None
    error: str | None = None


def global_credentials(adaptor_id: str, settings: Settings) -> dict[str, Any]:
    """Credentials for an adaptor taken from Settings."""
    if adaptor_id == "gemini":
        return {
            "api_key": settings.gemini_api_key,
            "gcp_project_id": settings.gcp_project_id,
            "gcp_location": settings.gcp_location,
            "gcs_bucket": settings.gcs_bucket_name,
            "service_account_key": settings.veo_service_account_key,
        }
    if adaptor_id == "openai":
        return {
            "api_key": settings.openai_api_key,
            "organization": settings.openai_org_id,
        }
    if adaptor_id == "anthropic":
        return {"api_key": settings.anthropic_api_key}
    return {}


class AdaptorResolver:
    """Resolve and instantiate adaptors through the registry."""

    def __init__(
        self,
        registry: AdaptorRegistry,
        settings: Settings | None = None,
        config_source: ProjectConfigSource | None = None,
        **adaptor_kwargs: Any,
    ) -> None:
        self._registry = registry
        self._settings = settings or Settings()
        self._config_source = config_source
        self._adaptor_kwargs = adaptor_kwargs

    async def _project_config(self, project_id: str | None) -> ProjectAIConfig | None:
        if not project_id or self._config_source is None:
            return None
        try:
            return await self._config_source.get_project_config(project_id)
        except Exception as e:
            logger.warning("Failed to load project config for %s: %s", project_id, e)
            return None

    def _default_model(self, adaptor_id: str) -> str:
        if self._registry.has_adaptor(adaptor_id):
            return self._registry.get_class(adaptor_id).default_model
        return ""

    async def assign(
        self,
        project_id: str | None,
        stage: str,
        capability: Capability,
        override: ModelConfig | None = None,
    ) -> tuple[AdaptorAssignment, ProjectAIConfig | None]:
        """Pick adaptor + model without instantiating."""
        project = await self._project_config(project_id)

        if override is not None and override.adaptor_id:
            return AdaptorAssignment(
                adaptor_id=override.adaptor_id,
                model_id=override.model_id or self._default_model(override.adaptor_id),
                source="prompt",
                config=dict(override.config),
            ), project

        if project is not None:
            stage_cfg = project.stage_configs.get(stage, {}).get(capability)
            if stage_cfg is not None and stage_cfg.adaptor:
                return AdaptorAssignment(
                    adaptor_id=stage_cfg.adaptor,
                    model_id=stage_cfg.model or self._default_model(stage_cfg.adaptor),
                    source="stage",
                    config=dict(stage_cfg.config),
                ), project
            if project.default_adaptor:
                return AdaptorAssignment(
                    adaptor_id=project.default_adaptor,
                    model_id=project.default_model or self._default_model(project.default_adaptor),
                    source="project",
                ), project

        adaptor_id, model_id = self._settings.default_for(capability)
        return AdaptorAssignment(
            adaptor_id=adaptor_id,
            model_id=model_id or self._default_model(adaptor_id),
            source="global",
        ), project

    def _credentials(self, adaptor_id: str, project: ProjectAIConfig | None) -> dict[str, Any]:
        if project is not None and project.adaptor_credentials.get(adaptor_id):
            return dict(project.adaptor_credentials[adaptor_id])
        return global_credentials(adaptor_id, self._settings)

    def _config(
        self, adaptor_id: str, capability: Capability, assigned: dict[str, Any]
    ) -> dict[str, Any]:
        config: dict[str, Any] = {
            "reference_image_timeout_s": self._settings.reference_image_timeout_s,
        }
        if capability == "videoGeneration":
            config["poll_interval_s"] = getattr(
                self._settings, _VIDEO_POLL_SETTINGS.get(adaptor_id, "video_poll_interval_s")
            )
            config["max_wait_s"] = self._settings.video_max_wait_s
        config.update(assigned)
        return config

    async def resolve(
        self,
        project_id: str | None,
        stage: str,
        capability: Capability,
        override: ModelConfig | None = None,
    ) -> ResolvedAdaptor:
        """Resolve and instantiate the adaptor serving a request.

        Raises:
            AdaptorInitFailure: Unknown adaptor, missing credentials or
                invalid config.
        """
        assignment, project = await self.assign(project_id, stage, capability, override)
        adaptor_cls = self._registry.get_class(assignment.adaptor_id)
        if not adaptor_cls.supports(capability):
            raise AdaptorInitFailure(
                assignment.adaptor_id,
                assignment.model_id,
                f"adaptor does not support {capability}",
            )

        config = self._config(assignment.adaptor_id, capability, assignment.config)
        adaptor = self._registry.instantiate(
            assignment.adaptor_id,
            assignment.model_id,
            self._credentials(assignment.adaptor_id, project),
            config,
            **self._adaptor_kwargs,
        )
        logger.info(
            "Resolved %s/%s -> %s (source: %s)",
            stage, capability, assignment.key, assignment.source,
        )
        return ResolvedAdaptor(
            adaptor_id=assignment.adaptor_id,
            model_id=adaptor.model_id,
            adaptor=adaptor,
            config=config,
            source=assignment.source,
        )

    async def list_available(self, check_health: bool = False) -> list[AdaptorAvailability]:
        """Describe every registered adaptor, optionally probing health.

        Adaptors that cannot be instantiated (usually missing credentials)
        are reported with ``configured=False`` instead of raising.
        """
        rows: list[AdaptorAvailability] = []
        for descriptor in self._registry.descriptors():
            try:
                adaptor = self._registry.instantiate(
                    descriptor.adaptor_id,
                    descriptor.default_model,
                    global_credentials(descriptor.adaptor_id, self._settings),
                    **self._adaptor_kwargs,
                )
            except AdaptorInitFailure as e:
                rows.append(AdaptorAvailability(descriptor, configured=False, error=e.reason))
                continue

            health = await adaptor.health_check() if check_health else None
            rows.append(AdaptorAvailability(descriptor, configured=True, health=health))
        return rows
