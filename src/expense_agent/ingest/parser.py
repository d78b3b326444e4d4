"""Parsing interfaces and concrete loaders for policy documents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from zipfile import BadZipFile

import docx
from docx.opc.exceptions import PackageNotFoundError
from lxml.etree import XMLSyntaxError

from expense_agent.errors import DocumentLoadError
from expense_agent.types import ParsedDocument

logger = logging.getLogger(__name__)


class Parser(ABC):
    """Base parser interface used by the ingest pipeline."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, path: Path, *, doc_id: str | None = None) -> ParsedDocument:
        """Parse a file into normalized text + metadata."""


class TextParser(Parser):
    """Parser for plain text documents."""

    extensions = (".txt",)

    def parse(self, path: Path, *, doc_id: str | None = None) -> ParsedDocument:
        return ParsedDocument(
            doc_id=doc_id or path.stem,
            text=_read_utf8(path),
            metadata={"source": str(path), "format": "text"},
        )


class MarkdownParser(Parser):
    """Parser for markdown documents."""

    extensions = (".md", ".markdown")

    def parse(self, path: Path, *, doc_id: str | None = None) -> ParsedDocument:
        return ParsedDocument(
            doc_id=doc_id or path.stem,
            text=_read_utf8(path),
            metadata={"source": str(path), "format": "markdown"},
        )


class DocxParser(Parser):
    """Raw-text extraction from Word documents.

    Paragraphs are joined with blank lines so the chunker sees them as
    paragraph boundaries. Table cells are appended row by row after the body
    text, since expense policies commonly keep their limits in tables.
    """

    extensions = (".docx",)

    def parse(self, path: Path, *, doc_id: str | None = None) -> ParsedDocument:
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        try:
            document = docx.Document(str(path))
        except (PackageNotFoundError, BadZipFile, XMLSyntaxError, KeyError, ValueError) as exc:
            raise DocumentLoadError(f"Cannot read Word document {path}: {exc}") from exc

        blocks = [p.text.strip() for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))

        logger.info("Extracted %d text blocks from %s", len(blocks), path)
        return ParsedDocument(
            doc_id=doc_id or path.stem,
            text="\n\n".join(blocks),
            metadata={"source": str(path), "format": "docx"},
        )


class ParserRegistry:
    """Maps file extension to parser implementation."""

    def __init__(self, parsers: list[Parser] | None = None) -> None:
        self._parsers: dict[str, Parser] = {}
        for parser in parsers or [TextParser(), MarkdownParser(), DocxParser()]:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for extension in parser.extensions:
            self._parsers[extension.lower()] = parser

    def parse_path(self, path: str | Path, *, doc_id: str | None = None) -> ParsedDocument:
        file_path = Path(path)
        parser = self._parsers.get(file_path.suffix.lower())
        if parser is None:
            raise ValueError(f"No parser registered for extension: {file_path.suffix}")
        return parser.parse(file_path, doc_id=doc_id)


def _read_utf8(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DocumentLoadError(f"{path} is not valid UTF-8 text") from exc
