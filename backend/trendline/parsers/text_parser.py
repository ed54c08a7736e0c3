from __future__ import annotations

from pathlib import Path

from trendline.parsers.base import ParseResult
from trendline.web import extract_main_text_from_html

HTML_FILE_EXTENSIONS = {".html", ".htm"}


def decode_text_bytes(content: bytes) -> str | None:
    for encoding in ("utf-8", "latin-1"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return None


class TextDocumentParser:
    parser_id = "text"

    def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
        text = decode_text_bytes(content.removeprefix(b"\xef\xbb\xbf"))
        if text is None:
            return ParseResult(
                parser_id=self.parser_id,
                text="",
                error="text decode failed using utf-8 and latin-1",
            )

        is_html = "html" in content_type.lower() or Path(file_name).suffix.lower() in HTML_FILE_EXTENSIONS
        if is_html:
            return ParseResult(parser_id="html", text=extract_main_text_from_html(text))
        return ParseResult(parser_id=self.parser_id, text=text.replace("\r\n", "\n"))
