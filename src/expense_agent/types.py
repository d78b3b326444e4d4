"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ClaimStatus(str, Enum):
    SUBMITTED = "Submitted"


@dataclass(frozen=True, slots=True)
class ChatTurn:
    """One message of a conversation."""

    role: Role
    content: str


@dataclass(slots=True)
class ParsedDocument:
    """A parsed source document before chunking."""

    doc_id: str
    text: str
    metadata: dict[str, Any]


@dataclass(slots=True)
class DocumentChunk:
    """A slice of a source document.

    `start` is the character offset of the slice in the source text and
    `overlap` the number of leading characters it shares with the previous
    chunk.
    """

    chunk_id: str
    doc_id: str
    text: str
    start: int
    overlap: int
    metadata: dict[str, Any]


@dataclass(slots=True)
class ScoredChunk:
    """A search hit with its similarity score."""

    chunk: DocumentChunk
    score: float
    rank: int = 0


@dataclass(frozen=True, slots=True)
class ExpenseClaim:
    id: int
    email: str
    description: str
    amount: Decimal
    status: str
    created_at: datetime


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
