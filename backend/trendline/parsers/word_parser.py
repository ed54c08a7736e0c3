from __future__ import annotations

import io
from pathlib import Path

from docx import Document
from striprtf.striprtf import rtf_to_text

from trendline.parsers.base import ParseResult
from trendline.parsers.text_parser import decode_text_bytes

RTF_MAGIC = b"{\\rtf"


def is_rich_text(*, content: bytes, file_name: str, content_type: str) -> bool:
    if "rtf" in content_type.lower() or Path(file_name).suffix.lower() == ".rtf":
        return True
    return content.lstrip().startswith(RTF_MAGIC)


class WordDocumentParser:
    """Word-processor documents: OOXML through python-docx, rich text through striprtf."""

    parser_id = "word"

    def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
        if is_rich_text(content=content, file_name=file_name, content_type=content_type):
            return self._parse_rtf(content)
        return self._parse_docx(content)

    def _parse_docx(self, content: bytes) -> ParseResult:
        try:
            document = Document(io.BytesIO(content))
            lines: list[str] = []

            for paragraph in document.paragraphs:
                text = " ".join(paragraph.text.split()).strip()
                if text:
                    lines.append(text)

            for table in document.tables:
                for row in table.rows:
                    cell_values = [" ".join(cell.text.split()).strip() for cell in row.cells]
                    row_text = " | ".join([value for value in cell_values if value])
                    if row_text:
                        lines.append(row_text)

            return ParseResult(parser_id="docx", text="\n".join(lines))
        except Exception as exc:
            return ParseResult(parser_id="docx", text="", error=f"docx parse failed: {exc}")

    def _parse_rtf(self, content: bytes) -> ParseResult:
        decoded = decode_text_bytes(content)
        if decoded is None:
            return ParseResult(parser_id="rtf", text="", error="rtf decode failed using utf-8 and latin-1")
        try:
            text = rtf_to_text(decoded)
        except Exception as exc:
            return ParseResult(parser_id="rtf", text="", error=f"rtf parse failed: {exc}")
        return ParseResult(parser_id="rtf", text=text)
