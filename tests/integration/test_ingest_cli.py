import pytest

from expense_agent import config
from expense_agent.config import Settings
from expense_agent.ingest import cli
from expense_agent.ingest.embedder import HashingEmbedder
from expense_agent.retrieval.vector_store import FaissVectorStoreAdapter


def _policy_file(tmp_path):
    path = tmp_path / "expenses-policy.txt"
    sections = [
        f"Section {i}. Meals are reimbursed up to the per-diem limit of 75 dollars. "
        "Receipts are required for every taxi ride and hotel night."
        for i in range(30)
    ]
    path.write_text("\n\n".join(sections), encoding="utf-8")
    return path


@pytest.fixture
def patched_env(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr(cli, "OpenAIEmbedder", lambda **kwargs: HashingEmbedder())
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("VECTOR_INDEX_DIR", str(tmp_path / "index"))
    return monkeypatch


def test_run_persists_searchable_index(tmp_path) -> None:
    settings = Settings(
        openai_api_key="sk-test",
        policy_document_path=_policy_file(tmp_path),
        vector_index_dir=tmp_path / "index",
    )
    embedder = HashingEmbedder()

    chunks = cli.run(settings, embedder=embedder)

    assert len(chunks) >= 2
    assert all(len(chunk.text) <= 1000 for chunk in chunks)
    assert (tmp_path / "index" / "documents.faiss").exists()

    reopened = FaissVectorStoreAdapter(embedder)
    assert reopened.load(tmp_path / "index")
    hits = reopened.search(embedder.embed_query("per-diem limit"), 2)
    assert len(hits) == 2
    assert hits[0].score >= hits[1].score
    assert hits[0].chunk.chunk_id.startswith("expenses-policy-chunk-")


def test_main_succeeds_with_configured_document(patched_env, tmp_path) -> None:
    patched_env.setenv("POLICY_DOCUMENT_PATH", str(_policy_file(tmp_path)))

    assert cli.main() == 0
    assert (tmp_path / "index" / "documents.faiss").exists()


def test_main_exits_non_zero_when_document_missing(patched_env, tmp_path) -> None:
    patched_env.setenv("POLICY_DOCUMENT_PATH", str(tmp_path / "missing.docx"))

    assert cli.main() == 1
    assert not (tmp_path / "index").exists()


def test_main_exits_non_zero_without_api_key(patched_env) -> None:
    patched_env.delenv("OPENAI_API_KEY")

    assert cli.main() == 1
