from __future__ import annotations

import base64
from io import BytesIO

import pytest

from trendline.documents import (
    decode_document_payload,
    extract_document_text,
    extract_encoded_document_text,
)
from trendline.errors import IngestionError
from trendline.parsers import DocumentFormat, ParseResult, ParserRegistry, classify_document

MAX_BYTES = 2 * 1024 * 1024


def _build_pdf_bytes(text: str) -> bytes:
    from pypdf import PdfWriter
    from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)

    font = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font)
    resources = DictionaryObject({NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})})
    page[NameObject("/Resources")] = resources

    safe_text = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    content_stream = DecodedStreamObject()
    content_stream.set_data(f"BT /F1 12 Tf 72 720 Td ({safe_text}) Tj ET".encode("utf-8"))
    content_ref = writer._add_object(content_stream)
    page[NameObject("/Contents")] = content_ref

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _build_docx_bytes(text: str, table_rows: list[list[str]] | None = None) -> bytes:
    from docx import Document

    doc = Document()
    doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row_index, row in enumerate(table_rows):
            for column_index, value in enumerate(row):
                table.cell(row_index, column_index).text = value
    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _build_rtf_bytes(text: str) -> bytes:
    return (
        "{\\rtf1\\ansi\\deff0{\\fonttbl{\\f0 Arial;}}\\f0\\fs24 "
        + text.replace("\\", "\\\\").replace("{", "\\{").replace("}", "\\}")
        + "}"
    ).encode("utf-8")


@pytest.mark.parametrize(
    ("file_name", "content_type", "expected"),
    [
        ("report.pdf", "", DocumentFormat.PDF),
        ("blob", "application/pdf", DocumentFormat.PDF),
        ("notes.docx", "", DocumentFormat.WORD),
        ("legacy.doc", "", DocumentFormat.WORD),
        ("memo.rtf", "", DocumentFormat.WORD),
        ("blob", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", DocumentFormat.WORD),
        ("blob", "application/rtf", DocumentFormat.WORD),
        ("notes.txt", "text/plain", DocumentFormat.TEXT),
        ("page.html", "text/html", DocumentFormat.TEXT),
        ("", "", DocumentFormat.TEXT),
    ],
)
def test_classify_document_prefers_pdf_then_word_then_text(
    file_name: str, content_type: str, expected: DocumentFormat
) -> None:
    assert classify_document(file_name, content_type) == expected


def test_pdf_docx_rtf_parsers_extract_text() -> None:
    scenarios = [
        ("pdf", "sample.pdf", "application/pdf", _build_pdf_bytes("Quarterly revenue grew steadily"), "revenue"),
        (
            "docx",
            "sample.docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            _build_docx_bytes("Season one opened strong."),
            "Season one",
        ),
        ("rtf", "sample.rtf", "application/rtf", _build_rtf_bytes("Ratings dipped in the finale."), "finale"),
    ]

    registry = ParserRegistry()
    for parser_id, file_name, content_type, content, needle in scenarios:
        result = registry.parse(content=content, file_name=file_name, content_type=content_type)
        assert result.parser_id == parser_id
        assert result.ok
        assert needle in result.text


def test_docx_parser_includes_table_rows() -> None:
    content = _build_docx_bytes("Summary paragraph", table_rows=[["Year", "Score"], ["2021", "64"]])
    result = ParserRegistry().parse(content=content, file_name="table.docx", content_type="")

    assert result.ok
    assert "Summary paragraph" in result.text
    assert "Year | Score" in result.text
    assert "2021 | 64" in result.text


def test_rtf_detected_by_magic_even_with_word_suffix() -> None:
    content = _build_rtf_bytes("Saved from a word processor as rich text.")
    result = ParserRegistry().parse(content=content, file_name="exported.doc", content_type="")

    assert result.parser_id == "rtf"
    assert "rich text" in result.text


def test_malformed_pdf_reports_parser_error() -> None:
    result = ParserRegistry().parse(
        content=b"%PDF-1.7\nthis-is-not-a-valid-pdf-structure",
        content_type="application/pdf",
        file_name="broken.pdf",
    )

    assert result.parser_id == "pdf"
    assert not result.ok
    assert result.text == ""


def test_html_upload_uses_main_region() -> None:
    html = (
        "<html><body><nav>Home | About</nav>"
        "<main><h1>Box office</h1><p>Opening weekend beat forecasts.</p></main>"
        "<footer>Copyright</footer></body></html>"
    )
    result = ParserRegistry().parse(content=html.encode("utf-8"), file_name="page.html", content_type="text/html")

    assert result.parser_id == "html"
    assert "Opening weekend beat forecasts." in result.text
    assert "Home | About" not in result.text
    assert "Copyright" not in result.text


def test_text_parser_strips_bom_and_falls_back_to_latin1() -> None:
    registry = ParserRegistry()

    bom = registry.parse(content=b"\xef\xbb\xbfplain notes", file_name="a.txt", content_type="text/plain")
    assert bom.text == "plain notes"

    latin = registry.parse(content="café data".encode("latin-1"), file_name="b.txt", content_type="text/plain")
    assert latin.ok
    assert latin.text == "café data"


def test_extract_document_text_rejects_empty_and_oversized_files() -> None:
    with pytest.raises(IngestionError) as empty:
        extract_document_text(content=b"", file_name="empty.txt", content_type="text/plain", max_bytes=MAX_BYTES)
    assert empty.value.message == "File content is empty: empty.txt"

    with pytest.raises(IngestionError) as oversized:
        extract_document_text(
            content=b"x" * (MAX_BYTES + 1),
            file_name="big.txt",
            content_type="text/plain",
            max_bytes=MAX_BYTES,
        )
    assert oversized.value.message == "File exceeds the 2 MB limit: big.txt"


def test_extract_document_text_rejects_whitespace_only_text() -> None:
    with pytest.raises(IngestionError) as raised:
        extract_document_text(
            content=b"   \n\t  ",
            file_name="blank.txt",
            content_type="text/plain",
            max_bytes=MAX_BYTES,
        )
    assert raised.value.message == "File content is empty: blank.txt"


def test_extract_document_text_wraps_parser_failures() -> None:
    class ExplodingParser:
        parser_id = "boom"

        def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
            raise RuntimeError("parser crashed")

    class FailingParser:
        parser_id = "fail"

        def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
            return ParseResult(parser_id=self.parser_id, text="", error="bad bytes")

    for parser in (ExplodingParser(), FailingParser()):
        registry = ParserRegistry({DocumentFormat.TEXT: parser})
        with pytest.raises(IngestionError) as raised:
            extract_document_text(
                content=b"some bytes",
                file_name="notes.txt",
                content_type="text/plain",
                max_bytes=MAX_BYTES,
                registry=registry,
            )
        assert raised.value.message == "Cannot parse file: notes.txt"


def test_extract_document_text_normalizes_whitespace() -> None:
    text = extract_document_text(
        content=b"line one\n\n   line two\t\tend",
        file_name="notes.txt",
        content_type="text/plain",
        max_bytes=MAX_BYTES,
    )
    assert text == "line one line two end"


def test_decode_document_payload_accepts_data_urls() -> None:
    encoded = base64.b64encode(b"hello evidence").decode("ascii")

    assert decode_document_payload(encoded) == b"hello evidence"
    assert decode_document_payload(f"data:text/plain;base64,{encoded}") == b"hello evidence"


def test_extract_encoded_document_text_reports_undecodable_payloads() -> None:
    with pytest.raises(IngestionError) as raised:
        extract_encoded_document_text(
            encoded="abcde",
            file_name="weird.txt",
            content_type="text/plain",
            max_bytes=MAX_BYTES,
        )
    assert raised.value.message == "Cannot parse file: weird.txt"
