from pydantic import BaseModel

from expense_agent.agent.registry import ToolRegistry, ToolSpec
from expense_agent.errors import ToolExecutionError


class EchoInput(BaseModel):
    text: str


def _registry(handler) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        ToolSpec(
            name="echo",
            description="uppercase",
            args_schema=EchoInput,
            handler=handler,
        )
    )
    return registry


def test_successful_execution_records_latency() -> None:
    registry = _registry(lambda data: data.text.upper())

    result = registry.execute("echo", {"text": "hello"})

    assert result.ok
    assert result.output == "HELLO"
    assert result.latency_ms >= 0.0


def test_handler_failure_is_reported_as_service_error() -> None:
    def _handler(data: EchoInput) -> str:
        raise ToolExecutionError("Echo is unavailable right now.")

    registry = _registry(_handler)

    result = registry.execute("echo", {"text": "hello"})

    assert not result.ok
    assert result.error == "service"
    assert result.output == "Echo is unavailable right now."
