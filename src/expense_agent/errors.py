"""Error taxonomy shared by ingestion, tools and the HTTP layer."""

from __future__ import annotations


class ExpenseAgentError(Exception):
    """Base class for all package errors."""


class ConfigurationError(ExpenseAgentError):
    """A required setting or secret is missing; fatal at startup."""


class DocumentLoadError(ExpenseAgentError, OSError):
    """The source document exists but could not be read."""


class ServiceError(ExpenseAgentError):
    """An external service (embeddings, LLM, vector store, database) failed."""


class AgentIterationLimitError(ServiceError):
    """The agent kept requesting tools past the per-turn decision budget."""


class ToolExecutionError(ExpenseAgentError):
    """A tool handler could not complete; the message is safe to show the agent."""
