import pytest
from pydantic import ValidationError

from expense_agent.config import ChunkingConfig
from expense_agent.ingest.chunker import BoundaryAwareChunker, chunk_text
from expense_agent.types import ParsedDocument


def _policy_text(paragraphs: int = 40) -> str:
    paragraph = (
        "Employees may claim meals while travelling on company business. "
        "The per-diem limit covers breakfast, lunch and dinner. "
        "Receipts must be attached to every claim above twenty dollars."
    )
    return "\n\n".join(f"Section {i}. {paragraph}" for i in range(paragraphs))


def _reconstruct(chunks) -> str:
    if not chunks:
        return ""
    return chunks[0].text + "".join(chunk.text[chunk.overlap :] for chunk in chunks[1:])


def test_short_input_yields_single_identical_chunk() -> None:
    text = "Taxi fares are reimbursable when public transport is unavailable."

    chunks = chunk_text(text)

    assert len(chunks) == 1
    assert chunks[0].text == text
    assert chunks[0].start == 0
    assert chunks[0].overlap == 0


def test_empty_input_yields_no_chunks() -> None:
    assert chunk_text("") == []


@pytest.mark.parametrize(
    "text",
    [
        _policy_text(),
        "x" * 4321,
        ("word " * 900).strip(),
        "Line one\nLine two\n" * 300,
    ],
)
def test_chunks_reconstruct_source_and_respect_limits(text: str) -> None:
    chunks = chunk_text(text, size=1000, overlap=200)

    assert len(chunks) >= 2
    assert _reconstruct(chunks) == text
    assert all(len(chunk.text) <= 1000 for chunk in chunks)
    assert all(0 <= chunk.overlap <= 200 for chunk in chunks)
    assert chunks[0].overlap == 0
    for chunk in chunks:
        assert text[chunk.start : chunk.start + len(chunk.text)] == chunk.text


def test_chunks_prefer_paragraph_boundaries() -> None:
    text = _policy_text()

    chunks = chunk_text(text, size=1000, overlap=200)

    assert all(chunk.text.endswith("\n\n") for chunk in chunks[:-1])


def test_overlap_carries_previous_tail() -> None:
    text = ("alpha beta gamma delta " * 200).strip()

    chunks = chunk_text(text, size=300, overlap=60)

    for previous, current in zip(chunks, chunks[1:]):
        assert current.overlap > 0
        assert previous.text.endswith(current.text[: current.overlap])


def test_chunk_document_ids_and_metadata() -> None:
    chunker = BoundaryAwareChunker(ChunkingConfig(chunk_size=200, chunk_overlap=40))
    doc = ParsedDocument(doc_id="policy", text=_policy_text(5), metadata={"source": "unit"})

    chunks = chunker.chunk_document(doc)

    assert [chunk.chunk_id for chunk in chunks[:2]] == ["policy-chunk-0000", "policy-chunk-0001"]
    assert all(chunk.metadata["source"] == "unit" for chunk in chunks)
    assert [chunk.metadata["chunk_index"] for chunk in chunks] == list(range(len(chunks)))


def test_chunking_is_deterministic() -> None:
    text = _policy_text()
    assert [c.text for c in chunk_text(text)] == [c.text for c in chunk_text(text)]


def test_overlap_must_be_smaller_than_size() -> None:
    with pytest.raises(ValidationError):
        ChunkingConfig(chunk_size=200, chunk_overlap=200)
