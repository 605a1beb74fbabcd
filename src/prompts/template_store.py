# src/prompts/template_store.py — v1
"""Prompt template stores: lookup by stage and capability.

Project-level templates override global ones. Only active templates are
considered; among several matches the highest version wins.

File layout for JsonPromptStore::

    <root>/<stage>.json                         global templates
    <root>/projects/<project_id>/<stage>.json   project overrides

Each file holds ``{"prompts": [<template>, ...]}``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from labgen.core.errors import TemplateNotFound
from labgen.core.models import Capability, PromptTemplate
from labgen.storage.result_store import is_safe_segment

logger = logging.getLogger(__name__)


def _pick(templates: Iterable[PromptTemplate], capability: Capability) -> PromptTemplate | None:
    matches = [t for t in templates if t.is_active and t.capability == capability]
    if not matches:
        return None
    return max(matches, key=lambda t: t.version)


class BasePromptStore(ABC):
    """Read interface over stored prompt templates."""

    @abstractmethod
    async def load_templates(
        self, stage: str, project_id: str | None = None
    ) -> list[PromptTemplate]:
        """Return templates stored for a stage at exactly one scope.

        ``project_id=None`` means the global scope.
        """

    async def get_stage_templates(
        self, stage: str, project_id: str | None = None
    ) -> list[PromptTemplate]:
        """Active templates for a stage; project ones listed first."""
        templates: list[PromptTemplate] = []
        if project_id:
            templates.extend(await self.load_templates(stage, project_id))
        templates.extend(await self.load_templates(stage, None))
        return [t for t in templates if t.is_active]

    async def get_by_capability(
        self,
        stage: str,
        capability: Capability,
        project_id: str | None = None,
    ) -> PromptTemplate:
        """Resolve the template a stage uses for a capability.

        Raises:
            TemplateNotFound: Neither the project nor the global scope has an
                active template for the pair.
        """
        if project_id:
            template = _pick(await self.load_templates(stage, project_id), capability)
            if template is not None:
                logger.debug(
                    "Using project template %s for %s/%s", template.id, stage, capability
                )
                return template

        template = _pick(await self.load_templates(stage, None), capability)
        if template is None:
            raise TemplateNotFound(stage, capability, project_id)
        return template


class InMemoryPromptStore(BasePromptStore):
    """Dict-backed store, seeded programmatically."""

    def __init__(self) -> None:
        self._templates: dict[tuple[str, str | None], list[PromptTemplate]] = {}

    def add(self, template: PromptTemplate | dict[str, Any], project_id: str | None = None) -> PromptTemplate:
        """Add a template (model or raw dict) to a scope."""
        if isinstance(template, dict):
            template = PromptTemplate.model_validate(template)
        if not template.stage:
            raise ValueError(f"template '{template.id}' has no stage")
        self._templates.setdefault((template.stage, project_id), []).append(template)
        return template

    async def load_templates(
        self, stage: str, project_id: str | None = None
    ) -> list[PromptTemplate]:
        return list(self._templates.get((stage, project_id), []))


class JsonPromptStore(BasePromptStore):
    """File-backed store; each file is parsed once and cached."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._cache: dict[Path, list[PromptTemplate]] = {}

    def _path(self, stage: str, project_id: str | None) -> Path:
        segments = [stage, project_id] if project_id else [stage]
        if not all(is_safe_segment(s) for s in segments):
            raise ValueError(f"Invalid prompt store path: stage={stage!r}, project={project_id!r}")
        if project_id:
            return self._root / "projects" / project_id / f"{stage}.json"
        return self._root / f"{stage}.json"

    async def load_templates(
        self, stage: str, project_id: str | None = None
    ) -> list[PromptTemplate]:
        path = self._path(stage, project_id)
        if path in self._cache:
            return list(self._cache[path])
        if not path.exists():
            return []

        raw = json.loads(path.read_text(encoding="utf-8"))
        entries = raw.get("prompts", []) if isinstance(raw, dict) else raw
        templates: list[PromptTemplate] = []
        for entry in entries:
            entry.setdefault("stage", stage)
            templates.append(PromptTemplate.model_validate(entry))

        logger.debug("Loaded %d templates from %s", len(templates), path)
        self._cache[path] = templates
        return list(templates)

    def invalidate(self) -> None:
        """Drop cached files (after templates were edited on disk)."""
        self._cache.clear()
