from __future__ import annotations

import base64
import binascii
import logging

from trendline.errors import IngestionError
from trendline.parsers import ParserRegistry
from trendline.references import normalize_whitespace

logger = logging.getLogger("trendline.documents")

_DEFAULT_REGISTRY = ParserRegistry()


def decode_document_payload(encoded: str) -> bytes:
    """Decode a base64 payload, accepting `data:<type>;base64,` prefixes."""
    payload = encoded.rsplit(",", 1)[-1] if "," in encoded else encoded
    return base64.b64decode("".join(payload.split()), validate=False)


def extract_document_text(
    *,
    content: bytes,
    file_name: str,
    content_type: str,
    max_bytes: int,
    registry: ParserRegistry | None = None,
) -> str:
    size = len(content)
    if size == 0:
        raise IngestionError(f"File content is empty: {file_name}")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise IngestionError(f"File exceeds the {limit_mb:g} MB limit: {file_name}")

    try:
        result = (registry or _DEFAULT_REGISTRY).parse(
            content=content,
            file_name=file_name,
            content_type=content_type,
        )
        parser_error = result.error
    except Exception as exc:
        parser_error = f"{type(exc).__name__}: {exc}"

    if parser_error is not None:
        logger.warning(
            "document_parse_failed",
            extra={
                "event": "document_parse_failed",
                "file_name": file_name,
                "content_type": content_type,
                "size_bytes": size,
                "error": parser_error,
            },
        )
        raise IngestionError(f"Cannot parse file: {file_name}")

    normalized = normalize_whitespace(result.text)
    if not normalized:
        raise IngestionError(f"File content is empty: {file_name}")

    logger.info(
        "document_parsed",
        extra={
            "event": "document_parsed",
            "file_name": file_name,
            "parser_id": result.parser_id,
            "size_bytes": size,
            "text_chars": len(normalized),
        },
    )
    return normalized


def extract_encoded_document_text(
    *,
    encoded: str,
    file_name: str,
    content_type: str,
    max_bytes: int,
    registry: ParserRegistry | None = None,
) -> str:
    try:
        content = decode_document_payload(encoded)
    except (binascii.Error, ValueError) as exc:
        raise IngestionError(f"Cannot parse file: {file_name}") from exc
    return extract_document_text(
        content=content,
        file_name=file_name,
        content_type=content_type,
        max_bytes=max_bytes,
        registry=registry,
    )
