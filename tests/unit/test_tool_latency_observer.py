from pydantic import BaseModel

from assistant_kit.agent.registry import ToolRegistry, ToolSpec


class EchoInput(BaseModel):
    text: str


def test_tool_observer_captures_latency_and_payload() -> None:
    registry = ToolRegistry()

    def _handler(data: EchoInput) -> str:
        return data.text.upper()

    registry.register(
        ToolSpec(
            name="echo",
            description="uppercase",
            args_schema=EchoInput,
            handler=_handler,
        )
    )

    observed = []
    registry.set_observer(observed.append)
    result, trace = registry.execute_traced("echo", {"text": "hello"})
    registry.set_observer(None)
    registry.execute("echo", {"text": "unobserved"})

    assert result == "HELLO"
    assert observed == [trace]
    assert trace.name == "echo"
    assert trace.input_payload == {"text": "hello"}
    assert trace.output_preview == "HELLO"
    assert trace.latency_ms >= 0.0
