"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

import json
from collections.abc import Callable
from time import perf_counter
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from assistant_kit.errors import ToolArgumentError, UnknownToolError
from assistant_kit.types import ToolTrace


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1, pattern=r"^[A-Za-z_][\w\-]*$")
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[BaseModel], Any]
    tags: list[str] = Field(default_factory=list)

    def invoke(self, payload: dict[str, Any]) -> str:
        try:
            data = self.args_schema.model_validate(payload)
        except ValidationError as exc:
            raise ToolArgumentError(
                self.name,
                f"{exc.error_count()} validation error(s)",
                errors=exc.errors(include_url=False, include_context=False),
            ) from exc
        return _stringify(self.handler(data))

    def describe(self) -> dict[str, Any]:
        schema = self.args_schema.model_json_schema()
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": schema.get("properties", {}),
                "required": schema.get("required", []),
            },
        }

    @classmethod
    def from_function(
        cls,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> "ToolSpec":
        """Build a spec whose argument schema is inferred from `func`'s signature."""

        structured = StructuredTool.from_function(
            func=func, name=name, description=description
        )
        args_schema = structured.args_schema
        if not isinstance(args_schema, type) or not issubclass(args_schema, BaseModel):
            raise TypeError(f"Cannot infer a pydantic schema for tool {structured.name}")

        def _handler(data: BaseModel) -> Any:
            return func(**{key: getattr(data, key) for key in type(data).model_fields})

        return cls(
            name=structured.name,
            description=structured.description,
            args_schema=args_schema,
            handler=_handler,
        )


class ToolRegistry:
    """Stores tool specs; names are unique within one registry."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def register_function(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> ToolSpec:
        spec = ToolSpec.from_function(func, name=name, description=description)
        self.register(spec)
        return spec

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    def resolve(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name, list(self._tools))
        return spec

    def execute(self, name: str, payload: dict[str, Any]) -> str:
        output, _ = self.execute_traced(name, payload)
        return output

    def execute_traced(self, name: str, payload: dict[str, Any]) -> tuple[str, ToolTrace]:
        """Run a tool and return its output with the trace handed to the observer."""
        spec = self.resolve(name)
        start = perf_counter()
        output = spec.invoke(payload)
        trace = ToolTrace(
            name=spec.name,
            input_payload=payload,
            output_preview=output[:320],
            latency_ms=(perf_counter() - start) * 1000.0,
        )
        if self._observer is not None:
            self._observer(trace)
        return output, trace

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


def _stringify(output: Any) -> str:
    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        return output.model_dump_json()
    try:
        return json.dumps(output, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(output)
