# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a fresh adaptor registry per test, a scripted adaptor whose
responses and failures are set by the test, an in-memory prompt store
seeded with the GameLab theme stage, a fake clock for the job poller and
file-backed stores under tmp_path. No network access.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from labgen.adaptors.base_adaptor import BaseGenerationAdaptor
from labgen.adaptors.models import (
    ImageOptions,
    ImageResult,
    TextOptions,
    TextResult,
    TokenUsage,
    VideoOptions,
    VideoResult,
)
from labgen.adaptors.registry import AdaptorRegistry
from labgen.adaptors.resolver import AdaptorResolver, StaticProjectConfigSource
from labgen.config.settings import Settings
from labgen.core.errors import ProviderError
from labgen.core.models import CAPABILITIES, ModelInfo
from labgen.pipeline.orchestrator import StreamingPipelineOrchestrator
from labgen.prompts.template_store import InMemoryPromptStore
from labgen.storage.local_uploader import LocalArtifactUploader
from labgen.storage.result_store import JsonResultStore

PROJECT_ID = "proj_1"

SAMPLE_THEMES = [
    {"title": "Ice Storm", "description": "Frozen arena under lightning", "tags": ["cold", "epic"]},
    {"title": "Rivalry Night", "description": "Two crests colliding", "tags": ["rivalry"]},
    {"title": "Neon Rink", "description": "Synthwave glow on the ice", "tags": ["retro"]},
    {"title": "Final Push", "description": "Last minute of the third period", "tags": []},
    {"title": "Hometown Roar", "description": "Fans painting the stands", "tags": ["fans"]},
]


# === FIXTURES: Fake time ===


class FakeClock:
    """Clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# === FIXTURES: Scripted adaptor ===


@dataclass
class Script:
    """Responses and failures for ScriptedAdaptor, shared by all instances."""

    text: str = field(default_factory=lambda: json.dumps(SAMPLE_THEMES))
    text_error: Exception | None = None
    fail_assets: set[int] = field(default_factory=set)  # 1-based asset call numbers
    inline_assets: bool = False
    asset_prompts: list[str] = field(default_factory=list)
    text_prompts: list[str] = field(default_factory=list)
    text_options: list[TextOptions] = field(default_factory=list)
    image_options: list[ImageOptions] = field(default_factory=list)
    video_options: list[VideoOptions] = field(default_factory=list)


class ScriptedAdaptor(BaseGenerationAdaptor):
    """Adaptor supporting every capability, driven by a Script."""

    adaptor_id = "scripted"
    display_name = "Scripted"
    capabilities = CAPABILITIES
    default_model = "scripted-1"
    models = (
        ModelInfo(
            id="scripted-1",
            name="Scripted 1",
            capabilities=CAPABILITIES,
            max_output_tokens=8192,
            input_cost_per_1m=1.0,
            output_cost_per_1m=2.0,
        ),
    )

    def __init__(self, model_id=None, credentials=None, config=None, *, script=None, **kwargs):
        super().__init__(model_id, credentials, config, **kwargs)
        self.script = script if script is not None else Script()

    async def generate_text(self, prompt: str, options: TextOptions | None = None) -> TextResult:
        self.script.text_prompts.append(prompt)
        self.script.text_options.append(options or TextOptions())
        if self.script.text_error is not None:
            raise self.script.text_error
        return TextResult(
            text=self.script.text,
            usage=TokenUsage.of(100, 400),
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
            latency_ms=12,
        )

    def _next_asset(self, prompt: str) -> int:
        self.script.asset_prompts.append(prompt)
        n = len(self.script.asset_prompts)
        if n in self.script.fail_assets:
            raise ProviderError(self.adaptor_id, "asset generation", f"boom on call {n}")
        return n

    async def generate_image(self, prompt: str, options: ImageOptions | None = None) -> ImageResult:
        self.script.image_options.append(options or ImageOptions())
        n = self._next_asset(prompt)
        if self.script.inline_assets:
            return ImageResult(
                image_url="data:image/png;base64,iVBORw0KGgo=",
                format="data-url",
                adaptor_id=self.adaptor_id,
                model_id=self.model_id,
            )
        return ImageResult(
            image_url=f"https://cdn.test/image_{n}.png",
            format="url",
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
        )

    async def generate_video(self, prompt: str, options: VideoOptions | None = None) -> VideoResult:
        options = options or VideoOptions()
        self.script.video_options.append(options)
        n = self._next_asset(prompt)
        return VideoResult(
            video_url=f"https://cdn.test/video_{n}.mp4",
            duration_seconds=options.duration_seconds,
            resolution=options.resolution,
            adaptor_id=self.adaptor_id,
            model_id=self.model_id,
            operation_handle=f"op-{n}",
        )

    async def _ping(self) -> None:
        return None


@pytest.fixture
def script() -> Script:
    return Script()


@pytest.fixture
def registry() -> AdaptorRegistry:
    """Fresh registry per test holding only the scripted adaptor."""
    reg = AdaptorRegistry()
    reg.register(ScriptedAdaptor.adaptor_id, ScriptedAdaptor)
    return reg


@pytest.fixture
def config_source() -> StaticProjectConfigSource:
    return StaticProjectConfigSource(
        {
            PROJECT_ID: {
                "defaultAdaptor": "scripted",
                "adaptorCredentials": {"scripted": {"api_key": "test-key"}},
            }
        }
    )


# === FIXTURES: Settings + stores ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        artifact_local_root=tmp_path / "artifacts",
        result_store_root=tmp_path / "results",
        prompt_store_root=tmp_path / "prompts",
    )


THEME_TEXT_TEMPLATE: dict[str, Any] = {
    "id": "themes-text",
    "stage": "stage_2_themes",
    "capability": "textGeneration",
    "systemPrompt": "You are a sports broadcast creative director.",
    "userPrompt": (
        "Create {{itemCount}} themes for {{homeTeam}} vs {{awayTeam}} ({{sportType}}). "
        "Context: {{contextPills}}. Return a JSON array."
    ),
    "variables": [{"name": "contextPills", "required": False}],
    "outputFormat": "json",
}

THEME_IMAGE_TEMPLATE: dict[str, Any] = {
    "id": "themes-image",
    "stage": "stage_2_themes",
    "capability": "imageGeneration",
    "userPrompt": "{{sportType}} poster: {{title}}. {{description}}. Tags: {{tags}}",
    "variables": [{"name": "tags", "required": False}],
    "outputFormat": "image",
}

SCENE_TEXT_TEMPLATE: dict[str, Any] = {
    "id": "scenes-text",
    "stage": "stage_6_scene_videos",
    "capability": "textGeneration",
    "userPrompt": "Write {{itemCount}} scenes for the story '{{storyTitle}}'.",
    "outputFormat": "json",
}

SCENE_VIDEO_TEMPLATE: dict[str, Any] = {
    "id": "scenes-video",
    "stage": "stage_6_scene_videos",
    "capability": "videoGeneration",
    "userPrompt": "{{title}}: {{description}}",
    "outputFormat": "video",
}


@pytest.fixture
def prompt_store() -> InMemoryPromptStore:
    store = InMemoryPromptStore()
    for template in (
        THEME_TEXT_TEMPLATE,
        THEME_IMAGE_TEMPLATE,
        SCENE_TEXT_TEMPLATE,
        SCENE_VIDEO_TEMPLATE,
    ):
        store.add(template)
    return store


@pytest.fixture
def resolver(registry, settings, config_source, script) -> AdaptorResolver:
    return AdaptorResolver(registry, settings, config_source, script=script)


@pytest.fixture
def uploader(tmp_path: Path) -> LocalArtifactUploader:
    return LocalArtifactUploader(tmp_path / "artifacts", public_base_url="https://files.test")


@pytest.fixture
def result_store(tmp_path: Path) -> JsonResultStore:
    return JsonResultStore(tmp_path / "results")


@pytest.fixture
def orchestrator(prompt_store, resolver, uploader, result_store, settings) -> StreamingPipelineOrchestrator:
    return StreamingPipelineOrchestrator(prompt_store, resolver, uploader, result_store, settings)


@pytest.fixture
def scripted_adaptor_cls() -> type[ScriptedAdaptor]:
    return ScriptedAdaptor


@pytest.fixture
def sample_themes() -> list[dict[str, Any]]:
    return [dict(t) for t in SAMPLE_THEMES]
