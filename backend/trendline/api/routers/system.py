from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from trendline.config import settings


router = APIRouter()


def _normalize_generator_backend(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized == "bedrock":
        return "bedrock"
    if normalized in {"openai_compatible", "deepseek"}:
        return "openai_compatible"
    return "unknown"


@router.get("/")
def root() -> dict[str, str]:
    return {"service": "trendline-backend", "status": "running"}


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}


@router.get("/ready", response_model=None)
def ready() -> JSONResponse:
    backend = _normalize_generator_backend(settings.generator_backend)
    payload: dict[str, object] = {
        "status": "ready",
        "environment": settings.app_env,
        "checks": {},
    }

    generator_check: dict[str, object] = {"backend": backend, "ok": True}
    if backend == "unknown":
        generator_check = {"backend": settings.generator_backend, "ok": False, "error": "unknown generator backend"}
    elif backend == "openai_compatible" and not settings.chat_api_key:
        generator_check = {"backend": backend, "ok": False, "error": "CHAT_API_KEY is not configured"}
    elif backend == "bedrock" and not settings.bedrock_model_id:
        generator_check = {"backend": backend, "ok": False, "error": "BEDROCK_MODEL_ID is not configured"}
    payload["checks"]["generator"] = generator_check

    if not generator_check["ok"]:
        payload["status"] = "not_ready"
        return JSONResponse(status_code=503, content=payload)
    return JSONResponse(status_code=200, content=payload)
