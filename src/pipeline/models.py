# src/pipeline/models.py — v1
"""Request and run models for the streaming pipeline.

A PipelineRun is created at pipeline start, appended to as each item
completes, then frozen by finalize(). Each run owns its items; nothing here
is shared between concurrent runs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from labgen.adaptors.models import ImageOptions, VideoOptions
from labgen.core.models import GeneratedArtifact, ModelConfig
from labgen.storage.result_store import nest
from labgen.tracking.models import UsageSummary

RunStatus = Literal["running", "completed", "failed"]


class BatchRequest(BaseModel):
    """One orchestration request over a batch of items."""

    model_config = ConfigDict(protected_namespaces=())

    stage: str
    project_id: str | None = None
    target_key: str
    context: dict[str, Any] = Field(default_factory=dict)
    item_count: int | None = Field(default=None, ge=1)
    reference_image_urls: list[str] = Field(default_factory=list)

    # Overrides of the template default model (prompt-level source)
    text_model: ModelConfig | None = None
    asset_model: ModelConfig | None = None

    # Overrides of the asset call options
    image_options: ImageOptions | None = None
    video_options: VideoOptions | None = None


class ItemResult(BaseModel):
    """Outcome of one batch item: an artifact or an error, never both."""

    index: int
    item_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    artifact: GeneratedArtifact | None = None
    error: str | None = None
    error_kind: str | None = None

    @model_validator(mode="after")
    def _artifact_xor_error(self) -> ItemResult:
        if self.artifact is not None and self.error is not None:
            raise ValueError(f"item {self.item_id} has both an artifact and an error")
        if self.artifact is None and self.error is None:
            raise ValueError(f"item {self.item_id} has neither an artifact nor an error")
        return self

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None


class PipelineRun(BaseModel):
    """State of one orchestration invocation."""

    model_config = ConfigDict(protected_namespaces=())

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    stage: str
    project_id: str | None = None
    status: RunStatus = "running"
    progress: int = 0
    items: list[ItemResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    text_adaptor_id: str | None = None
    text_model_id: str | None = None
    asset_adaptor_id: str | None = None
    asset_model_id: str | None = None
    usage: UsageSummary | None = None

    _finalized: bool = PrivateAttr(default=False)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.succeeded)

    @property
    def error_count(self) -> int:
        return sum(1 for item in self.items if item.error is not None)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError(f"Pipeline run {self.run_id} is already finalized")

    def append_item(self, item: ItemResult) -> None:
        self._check_open()
        self.items.append(item)

    def advance(self, progress: int) -> int:
        """Move progress forward; it never decreases and stays within 0-100."""
        self._check_open()
        self.progress = max(self.progress, min(100, max(0, progress)))
        return self.progress

    def finalize(self, status: RunStatus, usage: UsageSummary | None = None) -> None:
        """Freeze the run with its terminal status."""
        self._check_open()
        self.status = status
        self.usage = usage
        self.completed_at = datetime.now(timezone.utc)
        if status == "completed":
            self.progress = 100
        self._finalized = True

    def to_document(self, target_field: str) -> dict[str, Any]:
        """Persisted shape: the run nested under ``target_field``."""
        now = datetime.now(timezone.utc)
        body = {
            "run_id": self.run_id,
            "stage": self.stage,
            "items": [item.model_dump(mode="json") for item in self.items],
            "count": len(self.items),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "text_model": f"{self.text_adaptor_id}:{self.text_model_id}",
            "asset_model": f"{self.asset_adaptor_id}:{self.asset_model_id}",
            "usage": self.usage.model_dump(mode="json") if self.usage else None,
            "started_at": self.started_at.isoformat(),
            "generated_at": now.isoformat(),
        }
        document = nest(target_field, body)
        document["updated_at"] = now.isoformat()
        return document
