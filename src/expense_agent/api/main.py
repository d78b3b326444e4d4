"""FastAPI entrypoint exposing the `/chat` endpoint."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator

from expense_agent.agent.oracle import LangChainDecisionOracle
from expense_agent.agent.planner import ExpenseAgentPlanner
from expense_agent.agent.registry import ToolRegistry
from expense_agent.agent.session import SessionStore
from expense_agent.agent.tools import ExpenseToolbox, register_expense_tools
from expense_agent.claims.store import SqliteClaimsStore
from expense_agent.config import AgentConfig, RetrievalConfig, Settings
from expense_agent.ingest.embedder import OpenAIEmbedder
from expense_agent.obs.logs import configure_logging
from expense_agent.retrieval.retriever import PolicyRetriever
from expense_agent.retrieval.vector_store import FaissVectorStoreAdapter
from expense_agent.types import ChatTurn, Role

logger = logging.getLogger(__name__)

MESSAGE_REQUIRED = "Message is required"
AGENT_FAILED = "Failed to get a response from the agent."


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    session_id: str | None = Field(default=None, alias="sessionId")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError(MESSAGE_REQUIRED)
        return value


class ChatService:
    """Threads a message through the planner within its session."""

    def __init__(self, planner: ExpenseAgentPlanner, sessions: SessionStore | None = None) -> None:
        self.planner = planner
        self.sessions = sessions if sessions is not None else SessionStore()

    def reply(self, session_id: str, message: str) -> str:
        history = self.sessions.history(session_id)
        result = self.planner.invoke(message, chat_history=history)
        # Both turns are committed only once the agent has answered.
        self.sessions.append(
            session_id,
            ChatTurn(role=Role.USER, content=message),
            ChatTurn(role=Role.ASSISTANT, content=result.answer),
        )
        logger.info(
            "Session %s answered after %d decision(s), tools=%s",
            session_id,
            result.iterations,
            [trace.name for trace in result.tool_traces],
        )
        return result.answer


def _create_llm(settings: Settings) -> Any:
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.openai_model,
        temperature=settings.temperature,
        api_key=settings.openai_api_key,
        max_retries=0,
    )


def build_chat_service(settings: Settings) -> ChatService:
    """Wire the production collaborators: OpenAI, FAISS index and SQLite claims."""

    embedder = OpenAIEmbedder(api_key=settings.openai_api_key, model=settings.embedding_model)
    vector_store = FaissVectorStoreAdapter(embedder, index_name=settings.vector_index_name)
    vector_store.load(settings.vector_index_dir)

    retriever = PolicyRetriever(vector_store, embedder, RetrievalConfig())
    registry = ToolRegistry()
    register_expense_tools(
        registry,
        ExpenseToolbox(retriever, SqliteClaimsStore(settings.claims_db_path)),
    )

    oracle = LangChainDecisionOracle(_create_llm(settings), registry.as_langchain_tools())
    planner = ExpenseAgentPlanner(oracle=oracle, tool_registry=registry, config=AgentConfig())
    return ChatService(planner)


def create_app(
    settings: Settings | None = None,
    *,
    chat_service: ChatService | None = None,
    public_dir: str | Path | None = None,
) -> FastAPI:
    """Application factory.

    Without an injected `chat_service`, settings are read from the environment
    and a missing `OPENAI_API_KEY` raises `ConfigurationError` before the app
    is built.
    """

    if chat_service is None:
        settings = settings or Settings.from_env()
        configure_logging(settings.log_level)
        chat_service = build_chat_service(settings)
    if public_dir is None:
        public_dir = settings.public_dir if settings is not None else Path("public")
    public_path = Path(public_dir)
    public_path.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Expense Policy Assistant", version="0.1.0")
    app.state.chat_service = chat_service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount("/public", StaticFiles(directory=public_path), name="public")

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": MESSAGE_REQUIRED})

    @app.post("/chat", response_model=None)
    def chat(request: ChatRequest) -> dict[str, str] | JSONResponse:
        session_id = request.session_id or SessionStore.new_session_id()
        try:
            answer = chat_service.reply(session_id, request.message)
        except Exception:
            logger.exception("Error processing chat for session %s", session_id)
            return JSONResponse(status_code=500, content={"error": AGENT_FAILED})
        return {"response": answer, "sessionId": session_id}

    return app


def serve() -> None:
    """Console entrypoint: run the API with uvicorn on port 8000."""

    import uvicorn

    uvicorn.run("expense_agent.api.main:create_app", factory=True, host="0.0.0.0", port=8000)
