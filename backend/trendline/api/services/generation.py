from __future__ import annotations

import logging
from typing import Callable

import httpx
from fastapi import HTTPException
from fastapi.concurrency import run_in_threadpool

from trendline.api.contracts import GenerateTrendRequest
from trendline.config import settings
from trendline.errors import (
    GeneratorConfigurationError,
    PayloadValidationError,
    RecoveryError,
    TrendPipelineError,
    UpstreamError,
)
from trendline.ingestion import ingest_references
from trendline.orchestrator import TrendGenerationOrchestrator, enrich_with_references
from trendline.references import DocumentEvidence

logger = logging.getLogger("trendline.api")

TrendOrchestratorGetter = Callable[[], TrendGenerationOrchestrator]
FetchClientGetter = Callable[[], "httpx.AsyncClient | None"]


def error_detail(exc: TrendPipelineError) -> dict[str, object]:
    return {"message": exc.message, "details": exc.details}


def collect_document_evidence(request: GenerateTrendRequest) -> list[DocumentEvidence]:
    accepted = request.documents[: settings.max_upload_files]
    dropped = len(request.documents) - len(accepted)
    if dropped > 0:
        logger.warning(
            "reference_documents_dropped",
            extra={
                "event": "reference_documents_dropped",
                "dropped": dropped,
                "max_upload_files": settings.max_upload_files,
            },
        )
    return [
        DocumentEvidence(name=document.name, content_type=document.type, content=document.content)
        for document in accepted
    ]


async def run_trend_generation(
    request: GenerateTrendRequest,
    *,
    get_trend_orchestrator: TrendOrchestratorGetter,
    get_fetch_client: FetchClientGetter,
) -> dict[str, object]:
    query = request.prompt.strip()
    if not query:
        raise HTTPException(
            status_code=400,
            detail={"message": "Please provide a valid trend description.", "details": []},
        )

    try:
        orchestrator = get_trend_orchestrator()
    except GeneratorConfigurationError as exc:
        raise HTTPException(status_code=500, detail=error_detail(exc)) from exc

    ingestion = await ingest_references(
        supplemental_text=request.supplemental_text,
        links=request.links,
        documents=collect_document_evidence(request),
        settings=settings,
        client=get_fetch_client(),
    )

    try:
        outcome = await run_in_threadpool(orchestrator.generate, query, ingestion)
    except GeneratorConfigurationError as exc:
        raise HTTPException(status_code=500, detail=error_detail(exc)) from exc
    except (UpstreamError, RecoveryError, PayloadValidationError) as exc:
        logger.warning(
            "trend_generation_failed",
            extra={
                "event": "trend_generation_failed",
                "error_type": type(exc).__name__,
                "error": exc.message,
                "reference_status": ingestion.status,
            },
        )
        raise HTTPException(status_code=502, detail=error_detail(exc)) from exc

    return enrich_with_references(
        outcome.payload,
        ingestion,
        preview_chars=settings.reference_preview_chars,
    )
