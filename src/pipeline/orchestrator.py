# src/pipeline/orchestrator.py — v1
"""Streaming pipeline orchestrator.

Drives one item-producing stage end to end:
  1. Pre-flight: load both templates, resolve the text prompt, check the
     asset template against context + item fields, resolve both adaptors
  2. One text call whose output is parsed as a JSON array of items
  3. Per item, in order: emit the item, generate its asset, upload inline
     payloads, emit the asset (or the item's error)
  4. Persist the whole run as one merge-style write, emit completion

Errors raised by one item stay on that item. Errors in pre-flight, the
text call, parsing or persistence abort the run: one error event is
emitted, nothing is persisted and the error is re-raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Mapping
from typing import Any

from labgen.adaptors.models import ImageOptions, TextOptions, VideoOptions
from labgen.adaptors.resolver import AdaptorResolver, ResolvedAdaptor
from labgen.config.settings import Settings
from labgen.core.errors import MalformedOutput, MissingVariable
from labgen.core.models import GeneratedArtifact, PromptTemplate
from labgen.logging.context import (
    clear_context,
    clear_item_context,
    set_item_context,
    set_run_context,
)
from labgen.pipeline.events import (
    AssetEvent,
    CompleteEvent,
    ErrorEvent,
    EventChannel,
    ItemEvent,
    PipelineEvent,
    ProgressEvent,
    StartEvent,
)
from labgen.pipeline.models import BatchRequest, ItemResult, PipelineRun
from labgen.pipeline.stages import StageDefinition, get_stage_definition
from labgen.prompts.parsing import parse_json_array
from labgen.prompts.resolver import missing_variables, resolve_prompt
from labgen.prompts.template_store import BasePromptStore
from labgen.storage.base_uploader import BaseArtifactUploader
from labgen.storage.result_store import BaseResultStore
from labgen.tracking.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

# Progress layout
PROGRESS_PREFLIGHT = 5
PROGRESS_TEXT = 10
PROGRESS_PARSED = 40
PROGRESS_ITEMS_SPAN = 55
PROGRESS_SAVING = 95


def item_progress(index: int, total: int) -> int:
    """Progress after ``index`` of ``total`` items are done (0-based)."""
    return PROGRESS_PARSED + round(index / total * PROGRESS_ITEMS_SPAN)


class _RunEmitter:
    """Stamps sequence numbers and clamped progress onto a run's events."""

    def __init__(self, run: PipelineRun, channel: EventChannel | None) -> None:
        self._run = run
        self._channel = channel
        self._sequence = 0

    def emit(self, event_cls: type[PipelineEvent], progress: int | None = None, **fields: Any) -> None:
        if progress is not None and not self._run.is_finalized:
            self._run.advance(progress)
        self._sequence += 1
        event = event_cls(
            run_id=self._run.run_id,
            sequence=self._sequence,
            progress=self._run.progress,
            **fields,
        )
        if self._channel is not None:
            self._channel.publish(event)

    def close(self) -> None:
        if self._channel is not None:
            self._channel.close()


class StreamingPipelineOrchestrator:
    """Run item-producing stages and stream their progress.

    Args:
        prompt_store: Template lookup by stage and capability.
        resolver: Adaptor resolution for (project, stage, capability).
        uploader: Durable storage for inline artifacts.
        result_store: Document store receiving the finished run.
        settings: Pipeline defaults (item count, text temperature, ...).
    """

    def __init__(
        self,
        prompt_store: BasePromptStore,
        resolver: AdaptorResolver,
        uploader: BaseArtifactUploader,
        result_store: BaseResultStore,
        settings: Settings | None = None,
    ) -> None:
        self._prompt_store = prompt_store
        self._resolver = resolver
        self._uploader = uploader
        self._result_store = result_store
        self._settings = settings or Settings()

    async def stream(self, request: BatchRequest) -> AsyncIterator[PipelineEvent]:
        """Run the pipeline in a task and yield its events as they happen.

        Re-raises the run's fatal error after its error event was yielded.
        """
        channel = EventChannel()
        task = asyncio.create_task(self.run(request, channel))
        try:
            async for event in channel:
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    async def run(self, request: BatchRequest, channel: EventChannel | None = None) -> PipelineRun:
        """Execute one pipeline run.

        Returns:
            The finalized PipelineRun (items, counts, usage).

        Raises:
            KeyError: Unknown stage.
            GenerationError: Any fatal error (pre-flight, text call,
                parsing, persistence). An ``error`` event was emitted first.
        """
        run = PipelineRun(stage=request.stage, project_id=request.project_id)
        emitter = _RunEmitter(run, channel)
        tracker = UsageTracker(request.stage)
        set_run_context(run.run_id, request.project_id, request.stage)
        t0 = time.monotonic()

        try:
            await self._execute(request, run, emitter, tracker)
        except Exception as e:
            logger.error("Pipeline run %s failed: %s", run.run_id, e)
            if not run.is_finalized:
                run.finalize("failed", tracker.summary())
            emitter.emit(ErrorEvent, message=str(e), error_kind=type(e).__name__)
            raise
        finally:
            emitter.close()
            clear_context()

        logger.info(
            "Pipeline run %s complete: %d ok, %d failed in %.1fs",
            run.run_id, run.success_count, run.error_count, time.monotonic() - t0,
        )
        return run

    async def _execute(
        self,
        request: BatchRequest,
        run: PipelineRun,
        emitter: _RunEmitter,
        tracker: UsageTracker,
    ) -> None:
        definition = get_stage_definition(request.stage)
        item_count = request.item_count or self._settings.pipeline_item_count
        emitter.emit(
            StartEvent,
            0,
            stage=request.stage,
            project_id=request.project_id,
            item_count=item_count,
        )

        # --- Pre-flight ---
        text_template = await self._prompt_store.get_by_capability(
            request.stage, "textGeneration", request.project_id
        )
        asset_template = await self._prompt_store.get_by_capability(
            request.stage, definition.item_capability, request.project_id
        )
        text_vars = dict(request.context)
        text_vars.setdefault("itemCount", item_count)
        text_prompt = resolve_prompt(text_template, text_vars)
        self._check_asset_template(asset_template, request.context, definition)

        text = await self._resolver.resolve(
            request.project_id,
            request.stage,
            "textGeneration",
            request.text_model or text_template.default_model,
        )
        asset = await self._resolver.resolve(
            request.project_id,
            request.stage,
            definition.item_capability,
            request.asset_model or asset_template.default_model,
        )
        run.text_adaptor_id, run.text_model_id = text.adaptor_id, text.model_id
        run.asset_adaptor_id, run.asset_model_id = asset.adaptor_id, asset.model_id
        emitter.emit(ProgressEvent, PROGRESS_PREFLIGHT, phase="init", message="Pre-flight complete")

        # --- Text ---
        emitter.emit(ProgressEvent, PROGRESS_TEXT, phase="text", message="Generating items...")
        # a template with only a system prompt sends it once, as the user message
        if text_prompt.user_prompt:
            user_prompt, system_prompt = text_prompt.user_prompt, text_prompt.system_prompt
        else:
            user_prompt, system_prompt = text_prompt.system_prompt, ""
        options = TextOptions(
            system_prompt=system_prompt or None,
            temperature=self._settings.pipeline_text_temperature,
            max_tokens=self._settings.pipeline_text_max_tokens,
        )
        try:
            result = await text.adaptor.generate_text(user_prompt, options)
        except Exception as e:
            tracker.record(text.adaptor, "textGeneration", error=e)
            raise
        tracker.record(
            text.adaptor, "textGeneration", usage=result.usage, latency_ms=result.latency_ms
        )

        items = self._accept_items(parse_json_array(result.text), definition, item_count)
        if not items:
            raise MalformedOutput(
                f"No valid items in {request.stage} output", result.text[:200]
            )
        emitter.emit(
            ProgressEvent,
            PROGRESS_PARSED,
            phase="text-complete",
            message=f"Parsed {len(items)} items",
        )

        # --- Assets ---
        total = len(items)
        for i, payload in enumerate(items):
            index = i + 1
            item_id = f"{definition.item_id_prefix}_{run.run_id[:8]}_{index}"
            emitter.emit(
                ItemEvent,
                item_progress(i, total),
                index=index,
                item_id=item_id,
                item=payload,
            )
            item = await self._process_item(
                request, definition, asset_template, asset, tracker, index, item_id, payload
            )
            run.append_item(item)
            emitter.emit(
                AssetEvent,
                item_progress(i + 1, total),
                index=index,
                item_id=item_id,
                url=item.artifact.url if item.artifact else None,
                error=item.error,
                error_kind=item.error_kind,
            )

        # --- Persist ---
        emitter.emit(ProgressEvent, PROGRESS_SAVING, phase="saving", message="Saving results...")
        run.usage = tracker.summary()
        await self._result_store.upsert(
            request.target_key, run.to_document(definition.target_field)
        )
        run.finalize("completed", run.usage)
        emitter.emit(
            CompleteEvent,
            100,
            total=len(run.items),
            success_count=run.success_count,
            error_count=run.error_count,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_asset_template(
        template: PromptTemplate,
        context: Mapping[str, Any],
        definition: StageDefinition,
    ) -> None:
        """Fail before any network call if the asset prompt cannot resolve."""
        available = [k for k, v in context.items() if v is not None]
        available.extend(definition.item_fields)
        missing = missing_variables(template, available)
        if missing:
            raise MissingVariable(missing[0], template.id)

    @staticmethod
    def _accept_items(
        raw: list[Any], definition: StageDefinition, limit: int
    ) -> list[dict[str, Any]]:
        """Keep well-formed items, in order, up to ``limit``."""
        items: list[dict[str, Any]] = []
        for position, candidate in enumerate(raw):
            if len(items) >= limit:
                break
            if not definition.accepts(candidate):
                logger.debug("Dropping malformed item at position %d", position)
                continue
            items.append(dict(candidate))
        return items

    async def _process_item(
        self,
        request: BatchRequest,
        definition: StageDefinition,
        template: PromptTemplate,
        asset: ResolvedAdaptor,
        tracker: UsageTracker,
        index: int,
        item_id: str,
        payload: dict[str, Any],
    ) -> ItemResult:
        """Generate one item's asset; any failure becomes the item's error."""
        set_item_context(item_id, asset.adaptor_id)
        try:
            artifact = await self._generate_asset(
                request, definition, template, asset, tracker, item_id, payload
            )
        except Exception as e:
            logger.warning(
                "Item %s (%d) failed on %s: %s: %s",
                item_id, index, asset.adaptor_id, type(e).__name__, e,
            )
            return ItemResult(
                index=index,
                item_id=item_id,
                payload=payload,
                error=str(e) or type(e).__name__,
                error_kind=type(e).__name__,
            )
        finally:
            clear_item_context()
        return ItemResult(index=index, item_id=item_id, payload=payload, artifact=artifact)

    async def _generate_asset(
        self,
        request: BatchRequest,
        definition: StageDefinition,
        template: PromptTemplate,
        asset: ResolvedAdaptor,
        tracker: UsageTracker,
        item_id: str,
        payload: dict[str, Any],
    ) -> GeneratedArtifact:
        prompt = resolve_prompt(template, {**request.context, **payload}).full_prompt
        capability = definition.item_capability
        t0 = time.monotonic()

        try:
            if capability == "videoGeneration":
                video_options = (request.video_options or VideoOptions()).model_copy()
                if definition.image_field and payload.get(definition.image_field):
                    video_options.image_uri = str(payload[definition.image_field])
                video = await asset.adaptor.generate_video(prompt, video_options)
                url, fmt = video.video_url, "video"
                metadata: dict[str, Any] = {
                    "duration_seconds": video.duration_seconds,
                    "resolution": video.resolution,
                    "operation_handle": video.operation_handle,
                }
            else:
                image_options = request.image_options or ImageOptions(
                    size=self._settings.pipeline_image_size,
                    quality=self._settings.pipeline_image_quality,
                    reference_image_urls=list(request.reference_image_urls),
                )
                image = await asset.adaptor.generate_image(prompt, image_options)
                url, fmt = image.image_url, "image"
                metadata = {
                    "revised_prompt": image.revised_prompt,
                    "reference_images_used": image.reference_images_used,
                }
        except Exception as e:
            tracker.record(asset.adaptor, capability, item_id=item_id, error=e)
            raise
        tracker.record(
            asset.adaptor,
            capability,
            latency_ms=int((time.monotonic() - t0) * 1000),
            item_id=item_id,
        )

        artifact = GeneratedArtifact(
            url=url,
            adaptor_id=asset.adaptor_id,
            model_id=asset.model_id,
            format=fmt,
            metadata={k: v for k, v in metadata.items() if v is not None},
        )
        if artifact.is_inline:
            artifact = await self._upload_inline(artifact, request, item_id)
        return artifact

    async def _upload_inline(
        self, artifact: GeneratedArtifact, request: BatchRequest, item_id: str
    ) -> GeneratedArtifact:
        """Swap a data-URI artifact for a durable URL."""
        mime_type = artifact.url[len("data:"):].split(";", 1)[0] or None
        stem = f"{request.project_id or 'shared'}/{request.stage}/{item_id}"
        durable_url = await self._uploader.upload_data_uri(artifact.url, stem)
        logger.info("Uploaded inline %s for %s", artifact.format, item_id)
        return artifact.model_copy(
            update={
                "url": durable_url,
                "mime_type": mime_type,
                "metadata": {**artifact.metadata, "uploaded": True},
            }
        )
