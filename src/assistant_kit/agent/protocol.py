"""Textual tool-call protocol between the model and the dispatch loop.

Version 1: the model requests a tool by answering with a line

    TOOL_CALL v1: {"name": "<tool>", "arguments": {...}}

The JSON object may continue over the following lines. Any response
without such a line is a final answer.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from assistant_kit.agent.registry import ToolSpec
from assistant_kit.errors import ToolArgumentError

PROTOCOL_VERSION = "v1"
TOOL_CALL_MARKER = "TOOL_CALL"

_TOOL_CALL_LINE = re.compile(
    rf"^[ \t>`]*{TOOL_CALL_MARKER}\s+(?P<version>v\d+)\s*:\s*(?P<payload>.*)",
    re.MULTILINE | re.DOTALL,
)
_NAME_HINT = re.compile(r'"name"\s*:\s*"(?P<name>[^"]+)"')


class ToolInvocationRequest(BaseModel):
    """A tool call requested by the model."""

    name: str = Field(min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)


def format_tool_call(request: ToolInvocationRequest) -> str:
    return f"{TOOL_CALL_MARKER} {PROTOCOL_VERSION}: {request.model_dump_json()}"


def parse_tool_call(text: str) -> ToolInvocationRequest | None:
    """Return the requested tool call, or None for a final answer.

    A marker line with an unsupported version or a malformed payload raises
    `ToolArgumentError`.
    """

    match = _TOOL_CALL_LINE.search(text)
    if match is None:
        return None

    payload = match.group("payload")
    hint = _NAME_HINT.search(payload)
    tool_name = hint.group("name") if hint else "<unparsed>"

    if match.group("version") != PROTOCOL_VERSION:
        raise ToolArgumentError(
            tool_name, f"unsupported tool-call protocol {match.group('version')}"
        )

    start, end = payload.find("{"), payload.rfind("}")
    if start == -1 or end <= start:
        raise ToolArgumentError(tool_name, "tool call payload is not a JSON object")
    try:
        return ToolInvocationRequest.model_validate_json(payload[start : end + 1])
    except ValidationError as exc:
        raise ToolArgumentError(
            tool_name,
            "malformed tool call payload",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc


def tool_instructions(specs: Sequence[ToolSpec]) -> str:
    """System instructions advertising `specs` and the call convention."""

    catalog = json.dumps([spec.describe() for spec in specs], indent=2, ensure_ascii=False)
    return "\n".join(
        [
            "You can use the tools listed below.",
            "To call a tool, answer with exactly one line and nothing else:",
            f'{TOOL_CALL_MARKER} {PROTOCOL_VERSION}: {{"name": "<tool name>", '
            '"arguments": {"<parameter>": <value>}}',
            "The tool result will be sent back to you. When you have the final answer, "
            f"reply normally without a {TOOL_CALL_MARKER} line.",
            "Tools:",
            catalog,
        ]
    )
