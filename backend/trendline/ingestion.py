from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

import httpx

from trendline.config import Settings
from trendline.documents import extract_encoded_document_text
from trendline.errors import IngestionError
from trendline.parsers import ParserRegistry
from trendline.references import (
    USER_INPUT_SOURCE,
    DocumentEvidence,
    IngestionResult,
    ReferenceEntry,
    ReferenceKind,
    SourceOutcome,
    resolve_ingestion_status,
    truncate_text,
)
from trendline.web import build_fetch_client, fetch_link_text

logger = logging.getLogger("trendline.ingestion")

SourceTask = Callable[[], Awaitable[str]]


def _limited_entry(kind: ReferenceKind, source: str, content: str, max_chars: int) -> ReferenceEntry:
    return ReferenceEntry(kind=kind, source=source, content=truncate_text(content, max_chars))


async def _run_source(
    *,
    index: int,
    kind: ReferenceKind,
    source: str,
    task: SourceTask,
    timeout_seconds: float,
    timeout_message: str,
    fallback_message: str,
    semaphore: asyncio.Semaphore,
    max_chars: int,
) -> SourceOutcome:
    async with semaphore:
        try:
            content = await asyncio.wait_for(task(), timeout=timeout_seconds)
        except IngestionError as exc:
            return SourceOutcome(index=index, error=exc.message)
        except asyncio.TimeoutError:
            logger.warning(
                "reference_source_timed_out",
                extra={"event": "reference_source_timed_out", "kind": kind, "source": source},
            )
            return SourceOutcome(index=index, error=timeout_message)
        except Exception as exc:
            logger.warning(
                "reference_source_failed",
                extra={"event": "reference_source_failed", "kind": kind, "source": source, "error": str(exc)},
            )
            return SourceOutcome(index=index, error=fallback_message)
    return SourceOutcome(index=index, entry=_limited_entry(kind, source, content, max_chars))


async def ingest_references(
    *,
    supplemental_text: str | None,
    links: list[str],
    documents: list[DocumentEvidence],
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    registry: ParserRegistry | None = None,
) -> IngestionResult:
    """Turn user evidence into bounded reference entries.

    Documents and links run concurrently under a shared semaphore; one source
    failing or timing out never affects its siblings. Outcomes are reassembled in
    submission order: supplemental text, then documents, then links.
    """
    started = time.perf_counter()
    had_input = False
    outcomes: list[SourceOutcome] = []

    text_block = (supplemental_text or "").strip()
    if text_block:
        had_input = True
        outcomes.append(
            SourceOutcome(
                index=0,
                entry=_limited_entry("text", USER_INPUT_SOURCE, text_block, settings.max_reference_chars),
            )
        )

    link_inputs = [link.strip() for link in links if link and link.strip()]
    if documents or link_inputs:
        had_input = True

    semaphore = asyncio.Semaphore(max(1, settings.ingestion_concurrency))
    owns_client = client is None and bool(link_inputs)
    fetch_client = client
    if owns_client:
        fetch_client = build_fetch_client(
            user_agent=settings.fetch_user_agent,
            timeout_seconds=settings.url_fetch_timeout_seconds,
        )

    def document_task(document: DocumentEvidence) -> SourceTask:
        def parse() -> str:
            return extract_encoded_document_text(
                encoded=document.content,
                file_name=document.name,
                content_type=document.content_type,
                max_bytes=settings.max_upload_file_bytes,
                registry=registry,
            )

        return lambda: asyncio.to_thread(parse)

    def link_task(url: str) -> SourceTask:
        return lambda: fetch_link_text(url, client=fetch_client)

    coroutines = []
    position = 1
    for document in documents:
        coroutines.append(
            _run_source(
                index=position,
                kind="file",
                source=document.name,
                task=document_task(document),
                timeout_seconds=settings.document_parse_timeout_seconds,
                timeout_message=f"Timed out parsing file: {document.name}",
                fallback_message=f"Cannot read file: {document.name}",
                semaphore=semaphore,
                max_chars=settings.max_reference_chars,
            )
        )
        position += 1
    for url in link_inputs:
        coroutines.append(
            _run_source(
                index=position,
                kind="url",
                source=url,
                task=link_task(url),
                timeout_seconds=settings.url_fetch_timeout_seconds,
                timeout_message=f"Timed out fetching link: {url}",
                fallback_message=f"Cannot access link: {url}",
                semaphore=semaphore,
                max_chars=settings.max_reference_chars,
            )
        )
        position += 1

    try:
        outcomes.extend(await asyncio.gather(*coroutines))
    finally:
        if owns_client and fetch_client is not None:
            await fetch_client.aclose()

    outcomes.sort(key=lambda outcome: outcome.index)
    entries = [outcome.entry for outcome in outcomes if outcome.entry is not None]
    errors = [outcome.error for outcome in outcomes if outcome.error is not None]
    status = resolve_ingestion_status(had_input=had_input, succeeded=len(entries), failed=len(errors))

    logger.info(
        "references_ingested",
        extra={
            "event": "references_ingested",
            "status": status,
            "documents": len(documents),
            "links": len(link_inputs),
            "entries": len(entries),
            "errors": len(errors),
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    if not had_input:
        return IngestionResult(status="empty")
    return IngestionResult(status=status, entries=entries, errors=errors)
