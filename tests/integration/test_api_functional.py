from fastapi.testclient import TestClient

from expense_agent.agent.oracle import AgentContext, DirectAnswer
from expense_agent.agent.planner import ExpenseAgentPlanner
from expense_agent.agent.registry import ToolRegistry
from expense_agent.agent.session import SessionStore
from expense_agent.api.main import AGENT_FAILED, MESSAGE_REQUIRED, ChatService, create_app
from expense_agent.errors import ServiceError


class EchoOracle:
    def __init__(self) -> None:
        self.calls = 0

    def decide(self, context: AgentContext) -> DirectAnswer:
        self.calls += 1
        return DirectAnswer(text=f"echo: {context.message} (history={len(context.history)})")


class FailingOracle:
    def decide(self, context: AgentContext) -> DirectAnswer:
        raise ServiceError("model unavailable")


def _client(tmp_path, oracle) -> tuple[TestClient, SessionStore]:
    sessions = SessionStore()
    planner = ExpenseAgentPlanner(oracle=oracle, tool_registry=ToolRegistry())
    app = create_app(
        chat_service=ChatService(planner, sessions),
        public_dir=tmp_path / "public",
    )
    return TestClient(app), sessions


def test_chat_returns_response_and_records_history(tmp_path) -> None:
    client, sessions = _client(tmp_path, EchoOracle())

    first = client.post("/chat", json={"message": "hello", "sessionId": "s-1"})
    second = client.post("/chat", json={"message": "again", "sessionId": "s-1"})

    assert first.status_code == 200
    assert first.json() == {"response": "echo: hello (history=0)", "sessionId": "s-1"}
    assert second.json()["response"] == "echo: again (history=2)"
    assert len(sessions.history("s-1")) == 4


def test_sessions_do_not_share_history(tmp_path) -> None:
    client, sessions = _client(tmp_path, EchoOracle())

    client.post("/chat", json={"message": "from a", "sessionId": "a"})
    resp = client.post("/chat", json={"message": "from b", "sessionId": "b"})

    assert resp.json()["response"] == "echo: from b (history=0)"
    assert [turn.content for turn in sessions.history("b")] == ["from b", "echo: from b (history=0)"]


def test_missing_session_id_starts_new_session(tmp_path) -> None:
    client, sessions = _client(tmp_path, EchoOracle())

    resp = client.post("/chat", json={"message": "hello"})

    session_id = resp.json()["sessionId"]
    assert session_id
    assert session_id in sessions


def test_empty_body_is_rejected_without_agent_call(tmp_path) -> None:
    oracle = EchoOracle()
    client, sessions = _client(tmp_path, oracle)

    for kwargs in ({}, {"json": {}}, {"json": {"message": ""}}, {"json": {"message": "   "}}):
        resp = client.post("/chat", **kwargs)
        assert resp.status_code == 400
        assert resp.json() == {"error": MESSAGE_REQUIRED}

    assert oracle.calls == 0
    assert len(sessions) == 0


def test_agent_failure_returns_500_and_keeps_history_clean(tmp_path) -> None:
    client, sessions = _client(tmp_path, FailingOracle())

    resp = client.post("/chat", json={"message": "hello", "sessionId": "s-1"})

    assert resp.status_code == 500
    assert resp.json() == {"error": AGENT_FAILED}
    assert sessions.history("s-1") == []


def test_public_directory_is_served(tmp_path) -> None:
    client, _ = _client(tmp_path, EchoOracle())
    (tmp_path / "public" / "report.txt").write_text("claims export", encoding="utf-8")

    resp = client.get("/public/report.txt")

    assert resp.status_code == 200
    assert resp.text == "claims export"


def test_chat_service_keeps_an_empty_injected_session_store() -> None:
    sessions = SessionStore()
    planner = ExpenseAgentPlanner(oracle=EchoOracle(), tool_registry=ToolRegistry())

    service = ChatService(planner, sessions)
    service.reply("s-1", "hello")

    assert service.sessions is sessions
    assert len(sessions.history("s-1")) == 2
