# src/jobs/models.py — v1
"""GenerationJob state machine for long-running provider jobs.

    submitted -> polling -> completed | failed | timed_out

``polling`` is the only looping state. A job reaches exactly one terminal
state; any transition out of a terminal state raises JobStateError.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from labgen.core.errors import JobStateError

JobStatus = Literal["submitted", "polling", "completed", "failed", "timed_out"]

TERMINAL_STATES: frozenset[str] = frozenset({"completed", "failed", "timed_out"})

_ALLOWED: dict[str, frozenset[str]] = {
    "submitted": frozenset({"polling"}),
    "polling": frozenset({"completed", "failed", "timed_out"}),
}


class ProbeResult(BaseModel):
    """Outcome of one status probe.

    ``done=False`` means still in progress. ``done=True`` with ``error``
    set is a provider-reported failure; otherwise ``payload`` is the result.
    """

    done: bool
    error: str | None = None
    payload: Any = None


class GenerationJob(BaseModel):
    """One asynchronous provider request, owned by a single poller."""

    operation_handle: str
    submitted_at: float
    poll_interval_s: float
    max_wait_s: float
    status: JobStatus = "submitted"
    last_error: str | None = None
    result: Any = None
    poll_count: int = 0
    finished_at: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def deadline(self) -> float:
        return self.submitted_at + self.max_wait_s

    def transition(
        self,
        new_status: JobStatus,
        *,
        at: float | None = None,
        error: str | None = None,
        result: Any = None,
    ) -> None:
        """Move to ``new_status``, enforcing the state machine."""
        allowed = _ALLOWED.get(self.status, frozenset())
        if new_status not in allowed:
            raise JobStateError(
                f"Job {self.operation_handle}: illegal transition "
                f"{self.status} -> {new_status}"
            )
        self.status = new_status
        if error is not None:
            self.last_error = error
        if result is not None:
            self.result = result
        if new_status in TERMINAL_STATES:
            self.finished_at = at
