# src/storage/result_store.py — v1
"""Result stores: merge-style upsert of finished pipeline runs.

The document store proper is an external collaborator; BaseResultStore is
the narrow write contract the orchestrator depends on. JsonResultStore
keeps one JSON file per document key, which is enough for the CLI, local
development and tests.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from labgen.config.settings import Settings
from labgen.core.errors import StorageError

logger = logging.getLogger(__name__)

_SAFE_SEGMENT = re.compile(r"[\w.-]+")


def is_safe_segment(part: str) -> bool:
    """True for a single path segment that cannot leave its parent directory."""
    return bool(_SAFE_SEGMENT.fullmatch(part)) and part not in (".", "..")


def deep_merge(base: dict[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``update`` into a copy of ``base``.

    Nested mappings merge key by key; any other value replaces the old one.
    """
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = dict(value) if isinstance(value, Mapping) else value
    return merged


def nest(field_path: str, value: Any) -> dict[str, Any]:
    """Build ``{"a": {"b": value}}`` from ``"a.b"``."""
    doc: Any = value
    for part in reversed([p for p in field_path.split(".") if p]):
        doc = {part: doc}
    if not isinstance(doc, dict):
        raise ValueError("field_path must name at least one field")
    return doc


class BaseResultStore(ABC):
    """Write contract for persisting pipeline results."""

    @abstractmethod
    async def upsert(self, key: str, data: Mapping[str, Any]) -> None:
        """Merge ``data`` into the document at ``key`` (created if absent).

        Raises:
            StorageError: The write failed.
        """

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the document at ``key``, or None."""


class JsonResultStore(BaseResultStore):
    """One JSON file per key; keys like ``collection/doc_id`` map to paths."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()

    def _path(self, key: str) -> Path:
        parts = [p for p in key.split("/") if p]
        if not parts or not all(is_safe_segment(p) for p in parts):
            raise StorageError(f"Invalid result key: {key!r}")
        return self._root.joinpath(*parts[:-1], f"{parts[-1]}.json")

    async def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    async def upsert(self, key: str, data: Mapping[str, Any]) -> None:
        path = self._path(key)
        try:
            current = await self.get(key) or {}
            merged = deep_merge(current, data)
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(merged, fh, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to persist result {key}: {e}") from e
        logger.debug("Upserted result document %s", key)


def create_result_store(settings: Settings) -> BaseResultStore:
    """Create the result store selected by RESULT_STORE.

    Raises:
        ValueError: If the store type is not supported.
    """
    if settings.result_store == "json":
        return JsonResultStore(settings.result_store_root)
    raise ValueError(f"Unsupported result store: {settings.result_store!r}")
