"""Prompt rendering on top of LangChain `PromptTemplate` (f-string format)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import lru_cache
from string import Formatter
from typing import Any

from langchain_core.prompts import PromptTemplate

from assistant_kit.errors import TemplateBindingError


@lru_cache(maxsize=256)
def compile_template(template: str) -> PromptTemplate:
    """Compile and validate a template.

    Placeholders are plain names. Attribute access, indexing, format specs
    and positional fields are rejected so that templates stay data.
    """

    try:
        fields = [
            (field_name, format_spec, conversion)
            for _, field_name, format_spec, conversion in Formatter().parse(template)
            if field_name is not None
        ]
        for field_name, format_spec, conversion in fields:
            if not field_name.isidentifier():
                raise TemplateBindingError(
                    f"Placeholder '{{{field_name}}}' is not allowed; use a plain name."
                )
            if format_spec or conversion:
                raise TemplateBindingError(
                    f"Placeholder '{{{field_name}}}' cannot carry a format expression."
                )
        return PromptTemplate.from_template(template, template_format="f-string")
    except ValueError as exc:
        raise TemplateBindingError(f"Invalid template: {exc}") from exc


def template_variables(template: str) -> list[str]:
    """Return placeholder names in order of first appearance."""

    compile_template(template)
    ordered: list[str] = []
    for _, field_name, _, _ in Formatter().parse(template):
        if field_name and field_name not in ordered:
            ordered.append(field_name)
    return ordered


def bind_arguments(
    parameters: Sequence[str],
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Bind positional and named call arguments to declared parameter names."""

    kwargs = dict(kwargs or {})
    if len(args) > len(parameters):
        raise TemplateBindingError(
            f"Expected at most {len(parameters)} positional arguments, got {len(args)}",
            unexpected=[f"#{i}" for i in range(len(parameters), len(args))],
        )

    bound = dict(zip(parameters, args))
    duplicated = sorted(set(bound) & set(kwargs))
    if duplicated:
        raise TemplateBindingError(
            f"Arguments given both positionally and by name: {', '.join(duplicated)}",
            unexpected=duplicated,
        )
    bound.update(kwargs)
    return bound


def render(template: str, args: Mapping[str, Any]) -> str:
    """Render `template` with `args`, requiring an exact placeholder match."""

    prompt = compile_template(template)
    expected = set(prompt.input_variables)
    supplied = set(args)

    missing = expected - supplied
    unexpected = supplied - expected
    if missing or unexpected:
        parts = []
        if missing:
            parts.append(f"missing: {', '.join(sorted(missing))}")
        if unexpected:
            parts.append(f"unexpected: {', '.join(sorted(unexpected))}")
        raise TemplateBindingError(
            "Template arguments do not match placeholders (" + "; ".join(parts) + ")",
            missing=list(missing),
            unexpected=list(unexpected),
        )

    return prompt.format(**args)
