# tests/unit/tracking/test_usage_tracker.py — v1
"""Tests for tracking/usage_tracker.py — per-run call records and summary."""

from __future__ import annotations

import pytest

from labgen.adaptors.models import TokenUsage
from labgen.core.errors import ProviderError
from labgen.tracking.usage_tracker import UsageTracker


@pytest.fixture
def adaptor(scripted_adaptor_cls):
    return scripted_adaptor_cls(credentials={"api_key": "k"})


class TestRecord:
    def test_success_record(self, adaptor):
        tracker = UsageTracker("stage_2_themes")
        rec = tracker.record(
            adaptor, "textGeneration", usage=TokenUsage.of(1000, 2000), latency_ms=40
        )
        assert rec.status == "success"
        assert rec.stage == "stage_2_themes"
        assert rec.adaptor_id == "scripted"
        assert rec.model_id == "scripted-1"
        assert rec.total_tokens == 3000
        # 1000 * 1.0/1M + 2000 * 2.0/1M
        assert rec.estimated_cost_usd == pytest.approx(0.005)
        assert len(rec.call_id) == 12

    def test_failed_record(self, adaptor):
        tracker = UsageTracker("s")
        rec = tracker.record(
            adaptor,
            "imageGeneration",
            item_id="theme_1",
            error=ProviderError("scripted", "image generation", "quota"),
        )
        assert rec.status == "failed"
        assert rec.error_kind == "ProviderError"
        assert rec.item_id == "theme_1"
        assert rec.total_tokens == 0
        assert rec.estimated_cost_usd == 0.0

    def test_records_are_copied(self, adaptor):
        tracker = UsageTracker("s")
        tracker.record(adaptor, "textGeneration")
        tracker.records.clear()
        assert len(tracker.records) == 1


class TestSummary:
    def test_empty(self):
        summary = UsageTracker("s").summary()
        assert summary.total_calls == 0
        assert summary.estimated_cost_usd == 0.0
        assert summary.by_adaptor == {}

    def test_aggregates(self, adaptor):
        tracker = UsageTracker("s")
        tracker.record(adaptor, "textGeneration", usage=TokenUsage.of(100, 400), latency_ms=10)
        tracker.record(adaptor, "imageGeneration", latency_ms=30)
        tracker.record(adaptor, "imageGeneration", error=RuntimeError("x"))

        summary = tracker.summary()
        assert summary.total_calls == 3
        assert summary.failed_calls == 1
        assert summary.total_input_tokens == 100
        assert summary.total_output_tokens == 400
        assert summary.total_tokens == 500
        assert summary.total_latency_ms == 40
        assert summary.by_adaptor["scripted"].calls == 3
        assert summary.by_adaptor["scripted"].failures == 1
        assert summary.estimated_cost_usd == pytest.approx(0.0009)
