# src/pipeline/events.py — v1
"""Typed progress events and the channel that carries them.

The orchestrator publishes events to an EventChannel; transports (SSE, a
CLI printer, tests) consume it as an async iterator. Events carry a
per-run sequence number and a progress percentage that never decreases
within one run.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _BaseEvent(BaseModel):
    run_id: str
    sequence: int
    progress: int = Field(ge=0, le=100)


class StartEvent(_BaseEvent):
    type: Literal["start"] = "start"
    stage: str
    project_id: str | None = None
    item_count: int


class ItemEvent(_BaseEvent):
    """An item was parsed and accepted; sent before its asset is generated."""

    type: Literal["item"] = "item"
    index: int
    item_id: str
    item: dict[str, Any]


class AssetEvent(_BaseEvent):
    """An item's asset finished; ``url`` or ``error`` is set."""

    type: Literal["asset"] = "asset"
    index: int
    item_id: str
    url: str | None = None
    error: str | None = None
    error_kind: str | None = None


class ProgressEvent(_BaseEvent):
    type: Literal["progress"] = "progress"
    phase: str
    message: str


class CompleteEvent(_BaseEvent):
    type: Literal["complete"] = "complete"
    total: int
    success_count: int
    error_count: int


class ErrorEvent(_BaseEvent):
    """Fatal run error. Sent at most once, always last."""

    type: Literal["error"] = "error"
    message: str
    error_kind: str
    index: int | None = None


PipelineEvent = Annotated[
    Union[StartEvent, ItemEvent, AssetEvent, ProgressEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[PipelineEvent] = TypeAdapter(PipelineEvent)


def parse_event(data: dict[str, Any] | str) -> PipelineEvent:
    """Decode an event from a dict or its JSON form."""
    if isinstance(data, str):
        return _EVENT_ADAPTER.validate_json(data)
    return _EVENT_ADAPTER.validate_python(data)


def to_sse(event: PipelineEvent) -> str:
    """Render one Server-Sent Events frame."""
    return f"event: {event.type}\ndata: {event.model_dump_json()}\n\n"


_CLOSED = object()


class EventChannel:
    """Single-consumer async queue of pipeline events."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: PipelineEvent) -> None:
        if self._closed:
            raise RuntimeError("EventChannel is closed")
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Signal end of stream. Idempotent."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[PipelineEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[PipelineEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
