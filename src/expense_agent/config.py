"""Configuration models for the expense assistant."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from expense_agent.errors import ConfigurationError

DEFAULT_POLICY_DOCUMENT = "expenses-policy.docx"
DEFAULT_INDEX_NAME = "documents"


class ChunkingConfig(BaseModel):
    """Configures boundary-aware character chunking."""

    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "ChunkingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self


class RetrievalConfig(BaseModel):
    """Configures policy retrieval."""

    top_k: int = Field(default=4, ge=1, le=20)


class AgentConfig(BaseModel):
    """Configures the agent decision loop."""

    max_iterations: int = Field(default=6, ge=1)


class Settings(BaseModel):
    """Process settings resolved from the environment."""

    openai_api_key: str = Field(min_length=1)
    openai_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    policy_document_path: Path = Path(DEFAULT_POLICY_DOCUMENT)
    vector_index_dir: Path = Path("data/vector_index")
    vector_index_name: str = DEFAULT_INDEX_NAME
    claims_db_path: Path = Path("data/claims.db")
    public_dir: Path = Path("public")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (a `.env` file is honoured).

        Raises:
            ConfigurationError: if `OPENAI_API_KEY` is not set or
                `LLM_TEMPERATURE` is not a number.
        """

        load_dotenv()
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Expected OPENAI_API_KEY")

        raw_temperature = os.getenv("LLM_TEMPERATURE", "0.3")
        try:
            temperature = float(raw_temperature)
        except ValueError as exc:
            raise ConfigurationError(
                f"LLM_TEMPERATURE must be a number, got {raw_temperature!r}"
            ) from exc

        return cls(
            openai_api_key=api_key,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            embedding_model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            temperature=temperature,
            policy_document_path=Path(
                os.getenv("POLICY_DOCUMENT_PATH", DEFAULT_POLICY_DOCUMENT)
            ),
            vector_index_dir=Path(os.getenv("VECTOR_INDEX_DIR", "data/vector_index")),
            vector_index_name=os.getenv("VECTOR_INDEX_NAME", DEFAULT_INDEX_NAME),
            claims_db_path=Path(os.getenv("CLAIMS_DB_PATH", "data/claims.db")),
            public_dir=Path(os.getenv("PUBLIC_DIR", "public")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
