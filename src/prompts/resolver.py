# src/prompts/resolver.py — v1
"""Placeholder extraction and substitution for prompt templates.

Pure functions: no I/O, no state. Resolving the same template with the
same variables always yields byte-identical prompt strings.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

from labgen.core.errors import MissingVariable
from labgen.core.models import PromptTemplate, ResolvedPrompt

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def extract_variables(*texts: str) -> list[str]:
    """Return placeholder names across texts, deduplicated, first-seen order.

    >>> extract_variables("{{x}} {{y}} {{x}}", "{{x}}")
    ['x', 'y']
    """
    seen: dict[str, None] = {}
    for text in texts:
        for match in PLACEHOLDER_PATTERN.finditer(text or ""):
            seen.setdefault(match.group(1), None)
    return list(seen)


def template_variables(template: PromptTemplate) -> list[str]:
    """Placeholders referenced by a template's system and user prompts."""
    return extract_variables(template.system_prompt, template.user_prompt)


def stringify(value: Any) -> str:
    """Convert a variable value to its prompt form.

    Lists and tuples are joined with ``", "``, integral floats lose their
    trailing ``.0``, booleans render lowercase, mappings render as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


def substitute(text: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` present in ``values``; leave others intact."""
    if not text:
        return ""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return values[name] if name in values else match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def required_variables(template: PromptTemplate) -> list[str]:
    """Names that must be supplied for the template to resolve.

    Referenced placeholders without a declaration count as required, as do
    declared variables flagged required even if no body references them.
    """
    required: list[str] = []
    for name in template_variables(template):
        spec = template.variable_spec(name)
        if spec is None or spec.required:
            required.append(name)
    for spec in template.variables:
        if spec.required and spec.name not in required:
            required.append(spec.name)
    return required


def missing_variables(template: PromptTemplate, available: Iterable[str]) -> list[str]:
    """Required names not covered by ``available`` (pre-flight check)."""
    provided = set(available)
    return [name for name in required_variables(template) if name not in provided]


def resolve_prompt(
    template: PromptTemplate, variables: Mapping[str, Any]
) -> ResolvedPrompt:
    """Fill a template's placeholders.

    Args:
        template: Template to resolve.
        variables: Variable values; ``None`` counts as absent.

    Returns:
        ResolvedPrompt with substituted system and user prompts.

    Raises:
        MissingVariable: A required variable is absent.
    """
    values: dict[str, str] = {}
    for name in template_variables(template):
        value = variables.get(name)
        if value is not None:
            values[name] = stringify(value)
            continue
        spec = template.variable_spec(name)
        if spec is not None and not spec.required:
            values[name] = ""
            continue
        raise MissingVariable(name, template.id)

    for spec in template.variables:
        if spec.required and variables.get(spec.name) is None:
            raise MissingVariable(spec.name, template.id)

    return ResolvedPrompt(
        template_id=template.id,
        system_prompt=substitute(template.system_prompt, values),
        user_prompt=substitute(template.user_prompt, values),
        output_format=template.output_format,
    )
