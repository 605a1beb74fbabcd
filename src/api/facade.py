# src/api/facade.py — v1
"""Public API facade — wiring and single entry points for batch generation.

Usage:
    from labgen.api.facade import generate_batch
    run = await generate_batch(BatchRequest(stage="stage_2_themes", ...))

    async for frame in stream_batch_sse(request, orchestrator):
        await response.write(frame)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from labgen.adaptors.builtin import create_default_registry
from labgen.adaptors.resolver import AdaptorResolver
from labgen.config.settings import Settings
from labgen.core.errors import GenerationError
from labgen.pipeline.events import to_sse
from labgen.pipeline.models import BatchRequest, PipelineRun
from labgen.pipeline.orchestrator import StreamingPipelineOrchestrator
from labgen.prompts.template_store import JsonPromptStore
from labgen.storage.result_store import create_result_store
from labgen.storage.uploader_factory import create_uploader

if TYPE_CHECKING:
    from labgen.adaptors.registry import AdaptorRegistry
    from labgen.adaptors.resolver import ProjectConfigSource
    from labgen.prompts.template_store import BasePromptStore

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings | None = None,
    registry: AdaptorRegistry | None = None,
    config_source: ProjectConfigSource | None = None,
    prompt_store: BasePromptStore | None = None,
) -> StreamingPipelineOrchestrator:
    """Assemble an orchestrator from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        registry: Adaptor registry. A fresh one with the built-in adaptors
            if None.
        config_source: Per-project adaptor configuration. None = settings
            defaults only.
        prompt_store: Template store. JSON files under PROMPT_STORE_ROOT
            if None.

    Raises:
        ValueError: Unsupported or misconfigured storage backend.
    """
    settings = settings or Settings()
    registry = registry or create_default_registry()
    return StreamingPipelineOrchestrator(
        prompt_store=prompt_store or JsonPromptStore(settings.prompt_store_root),
        resolver=AdaptorResolver(registry, settings, config_source),
        uploader=create_uploader(settings),
        result_store=create_result_store(settings),
        settings=settings,
    )


async def generate_batch(
    request: BatchRequest,
    settings: Settings | None = None,
    registry: AdaptorRegistry | None = None,
    config_source: ProjectConfigSource | None = None,
    orchestrator: StreamingPipelineOrchestrator | None = None,
) -> PipelineRun:
    """Run one batch to completion and return the finalized run.

    Raises:
        GenerationError: The run failed as a whole (no partial data persisted).
    """
    orchestrator = orchestrator or build_orchestrator(settings, registry, config_source)
    logger.info(
        "Starting batch: stage=%s, project=%s, target=%s",
        request.stage, request.project_id, request.target_key,
    )
    run = await orchestrator.run(request)
    logger.info(
        "Batch complete: run_id=%s, ok=%d, failed=%d",
        run.run_id, run.success_count, run.error_count,
    )
    return run


async def stream_batch_sse(
    request: BatchRequest,
    orchestrator: StreamingPipelineOrchestrator,
) -> AsyncIterator[str]:
    """Yield Server-Sent Events frames for one run.

    A fatal GenerationError has already reached the client as an ``error``
    frame when the stream ends, so it ends the stream normally. Any other
    exception propagates after its frame.
    """
    try:
        async for event in orchestrator.stream(request):
            yield to_sse(event)
    except GenerationError as e:
        logger.info("SSE stream for %s ended with error event: %s", request.stage, e)
