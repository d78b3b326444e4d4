"""Boundary-aware sliding-window chunking over characters."""

from __future__ import annotations

from expense_agent.config import ChunkingConfig
from expense_agent.types import DocumentChunk, ParsedDocument

# Highest priority first: paragraph, line, sentence, clause, word.
_SEPARATORS = ("\n\n", "\n", ". ", "! ", "? ", "; ", " ")


class BoundaryAwareChunker:
    """Splits text into overlapping windows that prefer natural boundaries.

    Design notes:
    1. Greedy windows.
       Each window takes up to `chunk_size` characters from its start offset.
       Unless the window already reaches the end of the text, its end is
       pulled back to the last separator found in the second half of the
       window, trying paragraph breaks first, then line breaks, sentence
       ends and finally word gaps. Without any separator the window is cut
       hard at `chunk_size`.

    2. Overlap carry-over.
       The next window starts `chunk_overlap` characters before the previous
       end, then moves forward to the next word start so that it does not open
       mid-word. The shared prefix is therefore never longer than
       `chunk_overlap`, and each chunk records its exact overlap.

    3. Exact slices.
       Chunks are verbatim slices of the source. Dropping `overlap` leading
       characters from every chunk after the first and concatenating
       reconstructs the input exactly.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk_document(self, document: ParsedDocument) -> list[DocumentChunk]:
        """Chunk a parsed document into ordered, overlapping slices."""

        return [
            DocumentChunk(
                chunk_id=f"{document.doc_id}-chunk-{index:04d}",
                doc_id=document.doc_id,
                text=document.text[start:end],
                start=start,
                overlap=overlap,
                metadata={**document.metadata, "chunk_index": index},
            )
            for index, (start, end, overlap) in enumerate(self._windows(document.text))
        ]

    def _windows(self, text: str) -> list[tuple[int, int, int]]:
        size = self.config.chunk_size
        windows: list[tuple[int, int, int]] = []
        length = len(text)
        start = 0
        previous_end = 0

        while start < length:
            end = min(start + size, length)
            if end < length:
                end = self._boundary(text, start, end)
            windows.append((start, end, previous_end - start if windows else 0))
            if end >= length:
                break

            next_start = max(end - self.config.chunk_overlap, start + 1)
            previous_end = end
            start = self._word_start(text, next_start, end)

        return windows

    def _boundary(self, text: str, start: int, end: int) -> int:
        floor = start + self.config.chunk_size // 2
        for separator in _SEPARATORS:
            index = text.rfind(separator, floor, end)
            if index != -1:
                return index + len(separator)
        return end

    @staticmethod
    def _word_start(text: str, position: int, limit: int) -> int:
        if position == 0 or text[position - 1].isspace() or text[position].isspace():
            return position
        for index in range(position, limit):
            if text[index].isspace():
                return index + 1
        return position


def chunk_text(
    text: str,
    size: int = 1000,
    overlap: int = 200,
    *,
    doc_id: str = "document",
) -> list[DocumentChunk]:
    """Chunk raw text with the given window size and overlap."""

    chunker = BoundaryAwareChunker(ChunkingConfig(chunk_size=size, chunk_overlap=overlap))
    return chunker.chunk_document(ParsedDocument(doc_id=doc_id, text=text, metadata={}))
