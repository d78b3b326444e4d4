"""Deterministic orchestration of one agent turn around a decision oracle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from expense_agent.agent.oracle import (
    SYSTEM_PROMPT,
    AgentContext,
    DecisionOracle,
    DirectAnswer,
    ToolCall,
    ToolStep,
)
from expense_agent.agent.registry import ToolRegistry
from expense_agent.config import AgentConfig
from expense_agent.errors import AgentIterationLimitError
from expense_agent.types import ChatTurn, ToolTrace

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AgentTurnResult:
    answer: str
    tool_traces: list[ToolTrace] = field(default_factory=list)
    iterations: int = 0


class ExpenseAgentPlanner:
    """Runs the decide / execute-tool loop for a single user message.

    Each iteration asks the oracle for a decision. A `ToolCall` is dispatched
    through the registry and its result, successful or not, is appended to
    the context for the next decision. A `DirectAnswer` ends the turn. The
    planner never touches chat history; callers own it.
    """

    def __init__(
        self,
        *,
        oracle: DecisionOracle,
        tool_registry: ToolRegistry,
        config: AgentConfig | None = None,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.oracle = oracle
        self.tool_registry = tool_registry
        self.config = config or AgentConfig()
        self.system_prompt = system_prompt

    def invoke(
        self,
        message: str,
        *,
        chat_history: list[ChatTurn] | None = None,
    ) -> AgentTurnResult:
        """Run one full agent turn.

        Raises:
            ServiceError: when the oracle fails.
            AgentIterationLimitError: when no answer is produced within
                `max_iterations` decisions.
        """

        history = list(chat_history or [])
        steps: list[ToolStep] = []

        for iteration in range(1, self.config.max_iterations + 1):
            decision = self.oracle.decide(
                AgentContext(
                    system_prompt=self.system_prompt,
                    message=message,
                    history=history,
                    steps=list(steps),
                )
            )

            if isinstance(decision, DirectAnswer):
                return AgentTurnResult(
                    answer=decision.text,
                    tool_traces=[_trace(step) for step in steps],
                    iterations=iteration,
                )
            if isinstance(decision, ToolCall):
                logger.info("Agent calls %s (step %d)", decision.name, iteration)
                result = self.tool_registry.execute(decision.name, decision.arguments)
                steps.append(ToolStep(call=decision, result=result))
                continue
            raise TypeError(f"Unsupported agent decision: {decision!r}")

        raise AgentIterationLimitError(
            f"No answer after {self.config.max_iterations} decisions "
            f"({len(steps)} tool call(s))"
        )


def _trace(step: ToolStep) -> ToolTrace:
    return ToolTrace(
        name=step.call.name,
        input_payload=step.call.arguments,
        output_preview=step.result.output[:320],
        latency_ms=step.result.latency_ms,
    )
