# src/pipeline/stages.py — v1
"""Built-in stage definitions.

A stage generates a JSON array of items with one text call, then one asset
(image or video) per item. The definition names the item fields every item
must carry, where the run is stored on the project document, and how item
ids are prefixed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from labgen.core.models import Capability


class StageDefinition(BaseModel):
    """Static description of one item-producing stage."""

    model_config = ConfigDict(frozen=True)

    stage: str
    item_capability: Capability
    required_item_fields: tuple[str, ...] = ("title", "description")
    optional_item_fields: tuple[str, ...] = ()
    target_field: str
    item_id_prefix: str = "item"
    # Item field carrying a source image for image-to-video
    image_field: str | None = None
    description: str = ""

    @property
    def item_fields(self) -> tuple[str, ...]:
        return self.required_item_fields + self.optional_item_fields

    def accepts(self, item: Any) -> bool:
        """True when every required field is a non-blank string."""
        if not isinstance(item, Mapping):
            return False
        return all(
            isinstance(item.get(name), str) and item[name].strip()
            for name in self.required_item_fields
        )


BUILTIN_STAGES: dict[str, StageDefinition] = {
    d.stage: d
    for d in (
        StageDefinition(
            stage="stage_2_themes",
            item_capability="imageGeneration",
            optional_item_fields=("tags",),
            target_field="conceptGallery.aiGeneratedThemes",
            item_id_prefix="theme",
            description="GameLab concept themes, one image per theme",
        ),
        StageDefinition(
            stage="stage_2_themes_flairlab",
            item_capability="imageGeneration",
            optional_item_fields=("tags", "colorPalette"),
            target_field="conceptGallery.aiGeneratedThemes",
            item_id_prefix="theme",
            description="FlairLab concept themes, one image per theme",
        ),
        StageDefinition(
            stage="stage_6_scene_videos",
            item_capability="videoGeneration",
            optional_item_fields=("cameraMovement", "mood", "imageUrl"),
            target_field="videoGeneration.sceneVideos",
            item_id_prefix="scene",
            image_field="imageUrl",
            description="StoryLab scenes, one video per scene",
        ),
    )
}


def get_stage_definition(stage: str) -> StageDefinition:
    """Return the built-in definition for a stage.

    Raises:
        KeyError: Unknown stage.
    """
    try:
        return BUILTIN_STAGES[stage]
    except KeyError:
        raise KeyError(
            f"Unknown stage '{stage}'. Available: {', '.join(sorted(BUILTIN_STAGES))}"
        ) from None
