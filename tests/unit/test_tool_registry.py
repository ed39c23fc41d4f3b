import pytest
from pydantic import BaseModel, Field

from assistant_kit.agent.registry import ToolRegistry, ToolSpec
from assistant_kit.agent.tools import register_builtin_tools
from assistant_kit.errors import ToolArgumentError, UnknownToolError


class EchoInput(BaseModel):
    value: int = Field(ge=1)


def _echo_spec() -> ToolSpec:
    def _handler(data: EchoInput) -> str:
        return str(data.value)

    return ToolSpec(
        name="echo",
        description="echo positive int",
        args_schema=EchoInput,
        handler=_handler,
    )


def test_tool_registry_validation() -> None:
    registry = ToolRegistry()
    registry.register(_echo_spec())

    assert registry.execute("echo", {"value": 3}) == "3"

    with pytest.raises(ToolArgumentError) as exc_info:
        registry.execute("echo", {"value": 0})
    assert exc_info.value.tool_name == "echo"
    assert exc_info.value.errors[0]["loc"] == ("value",)


def test_duplicate_tool_registration_rejected() -> None:
    registry = ToolRegistry()
    spec = _echo_spec()

    registry.register(spec)
    with pytest.raises(ValueError):
        registry.register(spec)


def test_unknown_tool_lists_available_names() -> None:
    registry = ToolRegistry()
    registry.register(_echo_spec())

    with pytest.raises(UnknownToolError) as exc_info:
        registry.execute("missing", {})
    assert exc_info.value.available == ["echo"]


def test_register_function_infers_schema_from_signature() -> None:
    registry = ToolRegistry()

    def multiply(a: int, b: int) -> int:
        """Multiply two integers."""
        return a * b

    spec = registry.register_function(multiply)

    assert spec.name == "multiply"
    assert "Multiply two integers." in spec.description
    assert spec.describe()["parameters"]["required"] == ["a", "b"]
    assert registry.execute("multiply", {"a": 6, "b": 7}) == "42"


def test_builtin_tools() -> None:
    registry = ToolRegistry()
    register_builtin_tools(registry)

    assert [spec.name for spec in registry.specs()] == ["string_length", "add", "sqrt"]
    assert registry.execute("string_length", {"text": "hello world"}) == "11"
    assert registry.execute("add", {"a": 2, "b": 3}) == "5"
    assert registry.execute("sqrt", {"x": 2}) == "1.41421"
    with pytest.raises(ToolArgumentError):
        registry.execute("sqrt", {"x": -1})
