import pytest
from pydantic import BaseModel, Field

from expense_agent.agent.registry import ToolRegistry, ToolSpec


class EchoInput(BaseModel):
    value: int = Field(ge=1)


def _registry(calls: list[int]) -> ToolRegistry:
    registry = ToolRegistry()

    def _handler(data: EchoInput) -> str:
        calls.append(data.value)
        return str(data.value)

    registry.register(
        ToolSpec(
            name="echo",
            description="echo positive int",
            args_schema=EchoInput,
            handler=_handler,
        )
    )
    return registry


def test_valid_arguments_reach_handler() -> None:
    calls: list[int] = []
    result = _registry(calls).execute("echo", {"value": 3})

    assert result.ok
    assert result.output == "3"
    assert calls == [3]


def test_invalid_arguments_return_validation_result_without_running_handler() -> None:
    calls: list[int] = []
    result = _registry(calls).execute("echo", {"value": 0})

    assert not result.ok
    assert result.error == "validation"
    assert result.output.startswith("VALIDATION_ERROR")
    assert "value" in result.output
    assert calls == []


def test_unknown_tool_is_reported_in_band() -> None:
    calls: list[int] = []
    result = _registry(calls).execute("delete_everything", {})

    assert result.error == "unknown_tool"
    assert "echo" in result.output
    assert calls == []


def test_duplicate_tool_registration_rejected() -> None:
    registry = _registry([])

    with pytest.raises(ValueError):
        registry.register(registry.specs()[0])


def test_langchain_export_keeps_names_and_dispatches() -> None:
    calls: list[int] = []
    tools = _registry(calls).as_langchain_tools()

    assert [tool.name for tool in tools] == ["echo"]
    assert tools[0].invoke({"value": 5}) == "5"
    assert calls == [5]
