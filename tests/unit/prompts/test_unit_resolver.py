# tests/unit/prompts/test_unit_resolver.py — v1
"""Tests for prompts/resolver.py — placeholder extraction and substitution."""

from __future__ import annotations

import pytest

from labgen.core.errors import MissingVariable
from labgen.core.models import PromptTemplate
from labgen.prompts.resolver import (
    extract_variables,
    missing_variables,
    required_variables,
    resolve_prompt,
    stringify,
    substitute,
    template_variables,
)


def _template(system: str = "", user: str = "", variables=()) -> PromptTemplate:
    return PromptTemplate(id="t1", system_prompt=system, user_prompt=user, variables=variables)


class TestExtractVariables:
    def test_duplicates_collapse_in_first_seen_order(self):
        assert extract_variables("{{x}} and {{y}} then {{x}} and {{x}}") == ["x", "y"]

    def test_across_texts(self):
        assert extract_variables("{{b}} {{a}}", "{{c}} {{b}}") == ["b", "a", "c"]

    def test_ignores_non_word_placeholders(self):
        assert extract_variables("{{ spaced }} {{with-dash}} {{ok_1}}") == ["ok_1"]

    def test_empty(self):
        assert extract_variables("", None) == []

    def test_template_variables(self):
        t = _template("System {{role}}", "User {{topic}} {{role}}")
        assert template_variables(t) == ["role", "topic"]


class TestStringify:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (None, ""),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (3.0, "3"),
            (2.5, "2.5"),
            (["a", "b", 3], "a, b, 3"),
            (("x",), "x"),
            ({"b": 1, "a": 2}, '{"a": 2, "b": 1}'),
        ],
    )
    def test_values(self, value, expected):
        assert stringify(value) == expected


class TestSubstitute:
    def test_replaces_known(self):
        assert substitute("Hi {{name}}, {{name}}!", {"name": "Ana"}) == "Hi Ana, Ana!"

    def test_leaves_unknown(self):
        assert substitute("{{a}} {{b}}", {"a": "1"}) == "1 {{b}}"

    def test_empty_text(self):
        assert substitute("", {"a": "1"}) == ""


class TestResolvePrompt:
    def test_resolves_both_bodies(self):
        t = _template("You write for {{audience}}.", "Topic: {{topic}}")
        p = resolve_prompt(t, {"audience": "fans", "topic": "hockey"})
        assert p.system_prompt == "You write for fans."
        assert p.user_prompt == "Topic: hockey"
        assert p.template_id == "t1"

    def test_idempotent(self):
        t = _template("{{a}} {{b}}", "{{c}} {{a}}")
        v = {"a": ["x", "y"], "b": 2.0, "c": True}
        first = resolve_prompt(t, v)
        second = resolve_prompt(t, v)
        assert first == second
        assert first.system_prompt == "x, y 2"
        assert first.user_prompt == "true x, y"

    def test_missing_required_raises(self):
        t = _template(user="Hello {{x}}", variables=[{"name": "x", "required": True}])
        with pytest.raises(MissingVariable) as exc_info:
            resolve_prompt(t, {})
        assert exc_info.value.variable == "x"
        assert exc_info.value.template_id == "t1"

    def test_missing_optional_becomes_empty(self):
        t = _template(user="Hello {{x}}!", variables=[{"name": "x", "required": False}])
        assert resolve_prompt(t, {}).user_prompt == "Hello !"

    def test_undeclared_placeholder_is_required(self):
        with pytest.raises(MissingVariable, match="'y'"):
            resolve_prompt(_template(user="{{y}}"), {})

    def test_none_counts_as_absent(self):
        with pytest.raises(MissingVariable):
            resolve_prompt(_template(user="{{y}}"), {"y": None})

    def test_declared_required_unreferenced(self):
        t = _template(user="static", variables=[{"name": "projectId"}])
        with pytest.raises(MissingVariable, match="projectId"):
            resolve_prompt(t, {})

    def test_extra_variables_ignored(self):
        p = resolve_prompt(_template(user="{{a}}"), {"a": "1", "unused": "2"})
        assert p.user_prompt == "1"

    def test_output_format_carried(self):
        t = PromptTemplate(id="t", user_prompt="x", output_format="json")
        assert resolve_prompt(t, {}).output_format == "json"


class TestRequiredVariables:
    def test_required_and_missing(self):
        t = _template(
            "{{a}} {{b}}",
            "{{c}}",
            variables=[{"name": "b", "required": False}, {"name": "d"}],
        )
        assert required_variables(t) == ["a", "c", "d"]
        assert missing_variables(t, ["a", "b"]) == ["c", "d"]
        assert missing_variables(t, ["a", "c", "d"]) == []
