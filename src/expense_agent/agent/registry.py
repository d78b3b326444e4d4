"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from time import perf_counter
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, ValidationError

from expense_agent.errors import ToolExecutionError

logger = logging.getLogger(__name__)


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[BaseModel], str]

    def invoke(self, payload: dict[str, Any]) -> str:
        data = self.args_schema.model_validate(payload)
        return self.handler(data)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one dispatch, fed back to the agent verbatim.

    `error` is `None` on success. `"validation"` and `"unknown_tool"` mean no
    handler ran; `"service"` means the handler ran but a backing service
    failed, so nothing may be reported to the user as done.
    """

    name: str
    output: str
    error: str | None = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolRegistry:
    """Stores tool specs and exports LangChain-compatible tool objects."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def names(self) -> list[str]:
        return list(self._tools)

    def execute(self, name: str, payload: dict[str, Any]) -> ToolResult:
        spec = self._tools.get(name)
        if spec is None:
            logger.warning("Agent requested unknown tool %r", name)
            return ToolResult(
                name=name,
                output=f"UNKNOWN_TOOL: {name}. Available tools: {', '.join(self._tools)}",
                error="unknown_tool",
            )
        return self._execute_spec(spec, payload)

    def as_langchain_tools(self) -> list[StructuredTool]:
        tools: list[StructuredTool] = []
        for spec in self._tools.values():
            tools.append(
                StructuredTool.from_function(
                    name=spec.name,
                    description=spec.description,
                    args_schema=spec.args_schema,
                    func=self._build_function(spec),
                )
            )
        return tools

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def _build_function(self, spec: ToolSpec) -> Callable[..., str]:
        def _callable(**kwargs: Any) -> str:
            return self._execute_spec(spec, kwargs).output

        return _callable

    def _execute_spec(self, spec: ToolSpec, payload: dict[str, Any]) -> ToolResult:
        error: str | None = None
        start = perf_counter()
        try:
            output = spec.invoke(payload)
        except ValidationError as exc:
            output = (
                f"VALIDATION_ERROR: invalid arguments for {spec.name}: "
                + _describe_errors(exc)
            )
            error = "validation"
        except ToolExecutionError as exc:
            output = str(exc)
            error = "service"
        latency_ms = (perf_counter() - start) * 1000.0
        result = ToolResult(name=spec.name, output=output, error=error, latency_ms=latency_ms)
        logger.info(
            "Tool %s finished in %.1f ms (ok=%s)", spec.name, latency_ms, result.ok
        )
        return result


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
