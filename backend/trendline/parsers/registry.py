from __future__ import annotations

from pathlib import Path

from trendline.parsers.base import DocumentFormat, DocumentParser, ParseResult
from trendline.parsers.pdf_parser import PdfDocumentParser
from trendline.parsers.text_parser import TextDocumentParser
from trendline.parsers.word_parser import WordDocumentParser

WORD_FILE_EXTENSIONS = {".docx", ".doc", ".rtf"}


def classify_document(file_name: str = "", content_type: str = "") -> DocumentFormat:
    suffix = Path(file_name or "").suffix.lower()
    media = (content_type or "").lower()
    if "pdf" in media or suffix == ".pdf":
        return DocumentFormat.PDF
    if "word" in media or "rtf" in media or suffix in WORD_FILE_EXTENSIONS:
        return DocumentFormat.WORD
    return DocumentFormat.TEXT


class ParserRegistry:
    def __init__(self, parsers: dict[DocumentFormat, DocumentParser] | None = None) -> None:
        self._parsers: dict[DocumentFormat, DocumentParser] = parsers or {
            DocumentFormat.PDF: PdfDocumentParser(),
            DocumentFormat.WORD: WordDocumentParser(),
            DocumentFormat.TEXT: TextDocumentParser(),
        }

    def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
        document_format = classify_document(file_name, content_type)
        parser = self._parsers.get(document_format)
        if parser is None:
            return ParseResult(
                parser_id="none",
                text="",
                error=f"No parser registered for {document_format.value} documents.",
            )
        return parser.parse(content=content, file_name=file_name, content_type=content_type)
