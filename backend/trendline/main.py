from contextlib import asynccontextmanager
from functools import lru_cache
import logging
import time

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from trendline.api.routers.system import router as system_router
from trendline.api.routers.trends import build_trends_router
from trendline.config import settings
from trendline.generator import build_text_generator
from trendline.observability import (
    configure_logging,
    normalize_request_id,
    reset_request_id,
    sanitize_for_logging,
    set_request_id,
)
from trendline.orchestrator import TrendGenerationOrchestrator
from trendline.version import APP_VERSION

logger = logging.getLogger("trendline.api")


@lru_cache(maxsize=1)
def _cached_trend_orchestrator() -> TrendGenerationOrchestrator:
    return TrendGenerationOrchestrator(settings=settings, generator=build_text_generator(settings))


def get_trend_orchestrator() -> TrendGenerationOrchestrator:
    return _cached_trend_orchestrator()


def get_fetch_client() -> httpx.AsyncClient | None:
    # None lets ingestion open and close a client per request.
    return None


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    logger.info(
        "application_startup",
        extra={
            "event": "application_startup",
            "environment": settings.app_env,
            "generator_backend": settings.generator_backend,
        },
    )
    yield
    logger.info("application_shutdown", extra={"event": "application_shutdown"})


def create_app() -> FastAPI:
    cors_origins = settings.cors_origins_list
    if settings.cors_allow_credentials and any(origin == "*" for origin in cors_origins):
        raise RuntimeError("Invalid CORS_ORIGINS: wildcard '*' is not allowed when credentials are enabled.")

    app = FastAPI(title=settings.app_name, version=APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", settings.request_id_header],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = normalize_request_id(request.headers.get(settings.request_id_header))
        request.state.request_id = request_id
        token = set_request_id(request_id)
        started = time.perf_counter()

        logger.info(
            "request_started",
            extra={
                "event": "request_started",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": sanitize_for_logging(dict(request.query_params)),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers[settings.request_id_header] = request_id
            logger.info(
                "request_completed",
                extra={
                    "event": "request_completed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
            )
            return response
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(
                "request_failed",
                extra={
                    "event": "request_failed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": elapsed_ms,
                },
            )
            raise
        finally:
            reset_request_id(token)

    app.include_router(system_router)
    # Resolved through module globals so tests can patch the providers.
    app.include_router(
        build_trends_router(
            get_trend_orchestrator=lambda: get_trend_orchestrator(),
            get_fetch_client=lambda: get_fetch_client(),
        )
    )
    return app


app = create_app()
