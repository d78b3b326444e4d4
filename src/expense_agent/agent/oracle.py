"""Decision boundary between the orchestrator and the chat model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from expense_agent.agent.registry import ToolResult
from expense_agent.errors import ServiceError
from expense_agent.types import ChatTurn, Role

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a friendly and helpful AI assistant for corporate expenses. Your goal is to make handling expenses as easy as possible.

If a user asks what you can do, introduce yourself and clearly explain your three main functions:

1. Answering Questions: answer questions about the corporate expense policy. You MUST use the `policy_search` tool for this.
2. Submitting Claims: submit a new expense claim. You MUST use the `submit_claim` tool after collecting the email, description, and amount.
3. Checking Past Claims: list all past claims for a user. You MUST use the `get_user_claims` tool and ask for their email address.

Critical rules:
- NEVER confirm that a claim has been submitted unless the `submit_claim` tool has been called and returned a success message.
- If a user provides all the details for a claim in a single message, you MUST call the `submit_claim` tool with those details. Do not just reply that it is done without using the tool.
- Do not answer policy questions from memory. Always use the `policy_search` tool.
- If a tool reports a validation error, ask the user to correct the offending detail.
""".strip()


@dataclass(frozen=True, slots=True)
class DirectAnswer:
    text: str


@dataclass(frozen=True, slots=True)
class ToolCall:
    name: str
    arguments: dict[str, Any]
    call_id: str


AgentDecision = DirectAnswer | ToolCall


@dataclass(frozen=True, slots=True)
class ToolStep:
    """A completed tool call and the result fed back to the model."""

    call: ToolCall
    result: ToolResult


@dataclass(slots=True)
class AgentContext:
    """Everything the oracle sees when deciding the next step of a turn."""

    system_prompt: str
    message: str
    history: list[ChatTurn] = field(default_factory=list)
    steps: list[ToolStep] = field(default_factory=list)


class DecisionOracle(Protocol):
    """Chooses between answering and calling a tool."""

    def decide(self, context: AgentContext) -> AgentDecision:
        """Return the next decision for the given context."""


class LangChainDecisionOracle:
    """Tool-calling chat model wrapped as a `DecisionOracle`.

    The model is bound to the registry's LangChain tools. The oracle never
    runs a tool itself: it only translates the model's first tool call (or its
    text) into an `AgentDecision`. Parallel tool calls are disabled so each
    decision carries at most one call.
    """

    def __init__(
        self,
        llm: Any,
        tools: list[Any],
        *,
        parallel_tool_calls: bool | None = False,
    ) -> None:
        bind_kwargs: dict[str, Any] = {}
        if parallel_tool_calls is not None:
            bind_kwargs["parallel_tool_calls"] = parallel_tool_calls
        self._model = llm.bind_tools(tools, **bind_kwargs)

    def decide(self, context: AgentContext) -> AgentDecision:
        messages = build_messages(context)
        try:
            response = self._model.invoke(messages)
        except Exception as exc:
            raise ServiceError(f"Chat model request failed: {exc}") from exc

        tool_calls = list(getattr(response, "tool_calls", None) or [])
        if tool_calls:
            call = tool_calls[0]
            if len(tool_calls) > 1:
                logger.warning("Model returned %d tool calls; using the first", len(tool_calls))
            return ToolCall(
                name=str(call["name"]),
                arguments=dict(call.get("args") or {}),
                call_id=str(call.get("id") or f"call-{len(context.steps)}"),
            )

        # Calls whose arguments were not valid JSON still go through dispatch,
        # which reports a validation error back to the model.
        invalid_calls = list(getattr(response, "invalid_tool_calls", None) or [])
        if invalid_calls:
            call = invalid_calls[0]
            return ToolCall(
                name=str(call.get("name") or "unknown"),
                arguments={},
                call_id=str(call.get("id") or f"call-{len(context.steps)}"),
            )

        return DirectAnswer(text=_message_text(response))


def build_messages(context: AgentContext) -> list[BaseMessage]:
    """Replay system prompt, history, the new message and tool steps."""

    messages: list[BaseMessage] = [SystemMessage(content=context.system_prompt)]
    for turn in context.history:
        if turn.role is Role.USER:
            messages.append(HumanMessage(content=turn.content))
        else:
            messages.append(AIMessage(content=turn.content))
    messages.append(HumanMessage(content=context.message))

    for step in context.steps:
        messages.append(
            AIMessage(
                content="",
                tool_calls=[
                    {
                        "name": step.call.name,
                        "args": step.call.arguments,
                        "id": step.call.call_id,
                        "type": "tool_call",
                    }
                ],
            )
        )
        messages.append(
            ToolMessage(
                content=step.result.output,
                tool_call_id=step.call.call_id,
                name=step.call.name,
            )
        )
    return messages


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                if "text" in item:
                    parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return " ".join(parts).strip()
    return str(content).strip()
