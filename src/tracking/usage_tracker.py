# src/tracking/usage_tracker.py — v1
"""Per-run collection of adaptor call records.

Each pipeline run owns its tracker; nothing here is shared across runs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.models import TokenUsage
from labgen.core.models import Capability
from labgen.tracking.models import AdaptorUsage, GenerationCallRecord, UsageSummary


class UsageTracker:
    """Accumulates GenerationCallRecords for one run."""

    def __init__(self, stage: str) -> None:
        self._stage = stage
        self._records: list[GenerationCallRecord] = []

    @property
    def records(self) -> list[GenerationCallRecord]:
        return list(self._records)

    def record(
        self,
        adaptor: BaseGenerationAdaptor,
        capability: Capability,
        *,
        usage: TokenUsage | None = None,
        latency_ms: int = 0,
        item_id: str | None = None,
        error: Exception | None = None,
    ) -> GenerationCallRecord:
        """Append a record; cost comes from the adaptor's pricing table."""
        usage = usage or TokenUsage()
        rec = GenerationCallRecord(
            call_id=uuid.uuid4().hex[:12],
            timestamp=datetime.now(timezone.utc),
            stage=self._stage,
            item_id=item_id,
            adaptor_id=adaptor.adaptor_id,
            model_id=adaptor.model_id,
            capability=capability,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens,
            latency_ms=latency_ms,
            status="failed" if error is not None else "success",
            error_kind=type(error).__name__ if error is not None else None,
            estimated_cost_usd=adaptor.estimate_cost(usage.input_tokens, usage.output_tokens),
        )
        self._records.append(rec)
        return rec

    def summary(self) -> UsageSummary:
        """Aggregate all records collected so far."""
        by_adaptor: dict[str, AdaptorUsage] = {}
        for rec in self._records:
            agg = by_adaptor.setdefault(rec.adaptor_id, AdaptorUsage(adaptor_id=rec.adaptor_id))
            agg.calls += 1
            agg.failures += rec.status == "failed"
            agg.total_tokens += rec.total_tokens
            agg.estimated_cost_usd += rec.estimated_cost_usd

        return UsageSummary(
            total_calls=len(self._records),
            failed_calls=sum(1 for r in self._records if r.status == "failed"),
            total_input_tokens=sum(r.input_tokens for r in self._records),
            total_output_tokens=sum(r.output_tokens for r in self._records),
            total_tokens=sum(r.total_tokens for r in self._records),
            total_latency_ms=sum(r.latency_ms for r in self._records),
            estimated_cost_usd=sum(r.estimated_cost_usd for r in self._records),
            by_adaptor=by_adaptor,
        )
