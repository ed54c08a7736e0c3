from __future__ import annotations

import io

from pypdf import PdfReader

from trendline.parsers.base import ParseResult


class PdfDocumentParser:
    parser_id = "pdf"

    def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
        del file_name, content_type
        try:
            reader = PdfReader(io.BytesIO(content), strict=False)
            pages: list[str] = []
            for page in reader.pages:
                extracted = page.extract_text() or ""
                if extracted.strip():
                    pages.append(extracted)
            return ParseResult(parser_id=self.parser_id, text="\n".join(pages))
        except Exception as exc:
            return ParseResult(parser_id=self.parser_id, text="", error=f"pdf parse failed: {exc}")
