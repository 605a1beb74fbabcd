# src/prompts/prefill.py — v1
"""Flatten a previous step's structured output into template variables.

Used to pre-fill a downstream stage from an upstream stage's JSON. Prefill
is best effort: unparseable input yields an empty mapping.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from typing import Any

from labgen.core.errors import MalformedOutput
from labgen.prompts.parsing import parse_json_output

logger = logging.getLogger(__name__)


def _scalar_to_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _decode(previous_output: Any) -> Any:
    if not isinstance(previous_output, str):
        return previous_output
    try:
        return parse_json_output(previous_output)
    except MalformedOutput:
        logger.debug("Prefill source is not valid JSON; skipping")
        return None


def extract_prefill_variables(
    previous_output: Any,
    item_index: int = 0,
    fallback: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Flatten scalar fields of a prior JSON output into a variable map.

    Objects are walked breadth first. Every scalar is stored under its
    dotted path (``scene.title``); its bare key (``title``) is stored too
    unless a shallower level already provided it. Arrays are skipped.

    Args:
        previous_output: JSON text (fences allowed) or a decoded value.
        item_index: Element to use when the output is a list (falls back
            to the first element when out of range).
        fallback: Values filling keys that are missing or empty afterwards.

    Returns:
        Mapping of variable name to string value; empty if the input was
        not a JSON object (or list of objects).
    """
    data = _decode(previous_output)
    if isinstance(data, list):
        if not data:
            data = None
        elif 0 <= item_index < len(data):
            data = data[item_index]
        else:
            data = data[0]

    result: dict[str, str] = {}
    if isinstance(data, dict):
        queue: deque[tuple[str, dict[str, Any]]] = deque([("", data)])
        while queue:
            prefix, obj = queue.popleft()
            for key, value in obj.items():
                path = f"{prefix}.{key}" if prefix else str(key)
                if isinstance(value, dict):
                    queue.append((path, value))
                    continue
                text = _scalar_to_str(value)
                if text is None:
                    continue
                result[path] = text
                result.setdefault(str(key), text)

    if fallback:
        for key, value in fallback.items():
            text = _scalar_to_str(value)
            if text is not None and not result.get(key):
                result[key] = text

    return result
