# tests/unit/logging/test_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from labgen.logging.context import (
    clear_context,
    clear_item_context,
    get_context,
    set_item_context,
    set_run_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.item_id is None
        assert ctx.adaptor is None

    def test_set_run_context(self):
        set_run_context("run1", "proj1", "stage_2_themes")
        ctx = get_context()
        assert ctx.run_id == "run1"
        assert ctx.project_id == "proj1"
        assert ctx.stage == "stage_2_themes"

    def test_item_context_cleared_separately(self):
        set_run_context("run1", "proj1", "s")
        set_item_context("theme_1", "gemini")
        assert get_context().item_id == "theme_1"
        clear_item_context()
        ctx = get_context()
        assert ctx.item_id is None
        assert ctx.adaptor is None
        assert ctx.run_id == "run1"

    def test_as_dict_filters_none(self):
        set_run_context("run1", None, "s")
        assert get_context().as_dict() == {"run_id": "run1", "stage": "s"}

    @pytest.mark.asyncio
    async def test_tasks_do_not_share_context(self):
        async def run(run_id: str) -> str | None:
            set_run_context(run_id, None, "s")
            await asyncio.sleep(0)
            return get_context().run_id

        results = await asyncio.gather(
            asyncio.create_task(run("a")), asyncio.create_task(run("b"))
        )
        assert results == ["a", "b"]
        assert get_context().run_id is None
