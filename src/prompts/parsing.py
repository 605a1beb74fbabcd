# src/prompts/parsing.py — v1
"""Markdown code-fence stripping and JSON extraction for model output."""

from __future__ import annotations

import json
import re
from typing import Any

from labgen.core.errors import MalformedOutput

_LEADING_FENCE = re.compile(r"^```(?:json|javascript|js)?\s*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```\s*$")
_ARRAY_SLICE = re.compile(r"\[[\s\S]*\]")

_EXCERPT_CHARS = 200


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```` ``` ```` / ```` ```json ```` fence, if any."""
    if not text:
        return ""
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return cleaned.strip()


def parse_json_output(text: str) -> Any:
    """Decode JSON from model output after stripping fences.

    Raises:
        MalformedOutput: The text is not valid JSON.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedOutput(
            f"Output is not valid JSON: {e.msg}", cleaned[:_EXCERPT_CHARS]
        ) from e


def parse_json_array(text: str) -> list[Any]:
    """Extract a JSON array from model output.

    Accepts a bare or fenced array, an array embedded in surrounding prose
    (outermost ``[...]`` slice), or an object whose only list-valued field
    holds the items.

    Raises:
        MalformedOutput: No array could be recovered.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _ARRAY_SLICE.search(cleaned)
        if match is None:
            raise MalformedOutput(
                "Output contains no JSON array", cleaned[:_EXCERPT_CHARS]
            ) from None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise MalformedOutput(
                f"Embedded JSON array is invalid: {e.msg}", cleaned[:_EXCERPT_CHARS]
            ) from e

    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        lists = [v for v in data.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]

    raise MalformedOutput(
        f"Expected a JSON array, got {type(data).__name__}", cleaned[:_EXCERPT_CHARS]
    )
