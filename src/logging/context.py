# src/logging/context.py — v1
"""Contextual logging support — attach run_id, project_id, stage, item_id
and adaptor to log records.

Each pipeline run executes in its own task, so the context variables set
here never leak between concurrent runs.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per pipeline run.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_project_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_item_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "item_id", default=None
)
_adaptor: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "adaptor", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    project_id: str | None = None
    stage: str | None = None
    item_id: str | None = None
    adaptor: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        project_id=_project_id.get(),
        stage=_stage.get(),
        item_id=_item_id.get(),
        adaptor=_adaptor.get(),
    )


def set_run_context(run_id: str, project_id: str | None, stage: str) -> None:
    """Set run-level context (called once per pipeline run)."""
    _run_id.set(run_id)
    _project_id.set(project_id)
    _stage.set(stage)


def set_item_context(item_id: str, adaptor: str | None = None) -> None:
    """Set item-level context (called per batch item)."""
    _item_id.set(item_id)
    _adaptor.set(adaptor)


def clear_item_context() -> None:
    """Drop item-level fields, keeping the run-level ones."""
    _item_id.set(None)
    _adaptor.set(None)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _project_id.set(None)
    _stage.set(None)
    _item_id.set(None)
    _adaptor.set(None)
