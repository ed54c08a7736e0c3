from __future__ import annotations

from fastapi import APIRouter, HTTPException

from trendline.api.contracts import ChartRequest, GenerateTrendRequest
from trendline.api.services.generation import (
    FetchClientGetter,
    TrendOrchestratorGetter,
    error_detail,
    run_trend_generation,
)
from trendline.errors import PayloadValidationError
from trendline.phases import build_chart, chart_to_wire
from trendline.validation import coerce_generated_payload


def build_trends_router(
    *,
    get_trend_orchestrator: TrendOrchestratorGetter,
    get_fetch_client: FetchClientGetter,
) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.post("/generate")
    async def generate_trend(payload: GenerateTrendRequest) -> dict[str, object]:
        return await run_trend_generation(
            payload,
            get_trend_orchestrator=get_trend_orchestrator,
            get_fetch_client=get_fetch_client,
        )

    @router.post("/chart")
    def build_trend_chart(request: ChartRequest) -> dict[str, object]:
        try:
            payload = coerce_generated_payload(request.payload)
        except PayloadValidationError as exc:
            raise HTTPException(status_code=422, detail=error_detail(exc)) from exc
        return chart_to_wire(build_chart(payload))

    return router
