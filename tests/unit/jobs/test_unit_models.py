# tests/unit/jobs/test_unit_models.py — v1
"""Tests for jobs/models.py — GenerationJob state machine."""

from __future__ import annotations

import pytest

from labgen.core.errors import JobStateError
from labgen.jobs.models import GenerationJob


def _job() -> GenerationJob:
    return GenerationJob(operation_handle="op-1", submitted_at=100.0, poll_interval_s=5, max_wait_s=60)


class TestGenerationJob:
    def test_initial_state(self):
        job = _job()
        assert job.status == "submitted"
        assert not job.is_terminal
        assert job.deadline == 160.0

    def test_happy_path(self):
        job = _job()
        job.transition("polling")
        job.transition("completed", at=130.0, result={"videos": []})
        assert job.is_terminal
        assert job.finished_at == 130.0
        assert job.result == {"videos": []}

    def test_failure_records_error(self):
        job = _job()
        job.transition("polling")
        job.transition("failed", at=110.0, error="quota")
        assert job.last_error == "quota"

    @pytest.mark.parametrize("terminal", ["completed", "failed", "timed_out"])
    def test_terminal_is_final(self, terminal):
        job = _job()
        job.transition("polling")
        job.transition(terminal)
        for target in ("polling", "completed", "failed", "timed_out", "submitted"):
            with pytest.raises(JobStateError, match="illegal transition"):
                job.transition(target)

    def test_cannot_skip_polling(self):
        with pytest.raises(JobStateError):
            _job().transition("completed")
