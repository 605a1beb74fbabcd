# src/tracking/models.py — v1
"""Usage tracking models: one record per adaptor call, one summary per run."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from labgen.core.models import Capability


class GenerationCallRecord(BaseModel):
    """Individual adaptor call log entry."""

    model_config = ConfigDict(protected_namespaces=())

    call_id: str
    timestamp: datetime
    stage: str
    item_id: str | None = None
    adaptor_id: str
    model_id: str
    capability: Capability
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int = 0
    status: Literal["success", "failed"]
    error_kind: str | None = None
    estimated_cost_usd: float = 0.0


class AdaptorUsage(BaseModel):
    """Per-adaptor aggregate within a run."""

    adaptor_id: str
    calls: int = 0
    failures: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0


class UsageSummary(BaseModel):
    """Consolidated usage of one pipeline run."""

    total_calls: int = 0
    failed_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_latency_ms: int = 0
    estimated_cost_usd: float = 0.0
    by_adaptor: dict[str, AdaptorUsage] = Field(default_factory=dict)
