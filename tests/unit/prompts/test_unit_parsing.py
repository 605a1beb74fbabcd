# tests/unit/prompts/test_unit_parsing.py — v1
"""Tests for prompts/parsing.py — code-fence stripping and JSON extraction."""

from __future__ import annotations

import json

import pytest

from labgen.core.errors import MalformedOutput
from labgen.prompts.parsing import parse_json_array, parse_json_output, strip_code_fences

ITEMS = [{"title": "A", "description": "a"}, {"title": "B", "description": "b"}]


class TestStripCodeFences:
    @pytest.mark.parametrize("lang", ["", "json", "JSON", "javascript", "js"])
    def test_fence_variants(self, lang):
        assert strip_code_fences(f"```{lang}\n[1, 2]\n```") == "[1, 2]"

    def test_no_fence(self):
        assert strip_code_fences("  [1]  ") == "[1]"

    def test_empty(self):
        assert strip_code_fences("") == ""

    def test_inner_backticks_kept(self):
        assert strip_code_fences('```json\n{"code": "`x`"}\n```') == '{"code": "`x`"}'


class TestParseJsonArray:
    def test_fenced_equals_bare(self):
        bare = json.dumps(ITEMS)
        fenced = f"```json\n{bare}\n```"
        assert parse_json_array(fenced) == parse_json_array(bare) == ITEMS

    def test_surrounding_prose(self):
        text = f"Here are your themes:\n{json.dumps(ITEMS)}\nEnjoy!"
        assert parse_json_array(text) == ITEMS

    def test_wrapped_in_object(self):
        assert parse_json_array(json.dumps({"themes": ITEMS})) == ITEMS

    def test_object_with_two_lists(self):
        with pytest.raises(MalformedOutput, match="Expected a JSON array"):
            parse_json_array(json.dumps({"a": [], "b": []}))

    def test_no_array(self):
        with pytest.raises(MalformedOutput, match="no JSON array") as exc_info:
            parse_json_array("I cannot do that.")
        assert exc_info.value.raw_excerpt == "I cannot do that."

    def test_broken_embedded_array(self):
        with pytest.raises(MalformedOutput, match="invalid"):
            parse_json_array("prefix [1, 2,, ] suffix")

    def test_scalar(self):
        with pytest.raises(MalformedOutput):
            parse_json_array("42")


class TestParseJsonOutput:
    def test_object(self):
        assert parse_json_output('```json\n{"a": 1}\n```') == {"a": 1}

    def test_invalid(self):
        with pytest.raises(MalformedOutput, match="not valid JSON"):
            parse_json_output("{oops")
