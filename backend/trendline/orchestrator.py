from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from trendline.config import Settings
from trendline.errors import RecoveryError
from trendline.generator import TextGenerator
from trendline.prompts import (
    SYSTEM_PROMPT,
    build_reference_block,
    build_reference_instruction,
    build_user_prompt,
)
from trendline.recovery import extract_json_payload
from trendline.references import IngestionResult, build_reference_preview
from trendline.trend_models import GeneratedPayload
from trendline.validation import validate_with_coercion

logger = logging.getLogger("trendline.generation")

UNPARSEABLE_OUTPUT_MESSAGE = "Generator output could not be parsed (already retried once). Please try again later."


@dataclass(frozen=True)
class GenerationOutcome:
    payload: GeneratedPayload
    attempt: int
    raw_text: str


class TrendGenerationOrchestrator:
    def __init__(self, settings: Settings, generator: TextGenerator) -> None:
        self._settings = settings
        self._generator = generator

    def generate(self, query: str, ingestion: IngestionResult) -> GenerationOutcome:
        """Drive the generator until a payload is recovered and validated.

        Attempts run strictly in sequence. A missing or unparseable response moves
        on to the next attempt, which appends a strict-JSON reminder. Validation
        and transport failures are raised straight away.
        """
        reference_block = build_reference_block(ingestion)
        system_prompts = [SYSTEM_PROMPT]
        reference_instruction = build_reference_instruction(reference_block)
        if reference_instruction:
            system_prompts.append(reference_instruction)

        max_attempts = max(1, self._settings.generation_max_attempts)
        for attempt in range(max_attempts):
            started = time.perf_counter()
            user_prompt = build_user_prompt(query, reference_block, enforce_strict_json=attempt > 0)
            raw_text = self._generator.complete(system_prompts=system_prompts, user_prompt=user_prompt)
            if not raw_text:
                logger.warning(
                    "generation_attempt_empty",
                    extra={"event": "generation_attempt_empty", "attempt": attempt},
                )
                continue

            recovered = extract_json_payload(raw_text)
            if recovered is None:
                logger.warning(
                    "generation_attempt_unparseable",
                    extra={
                        "event": "generation_attempt_unparseable",
                        "attempt": attempt,
                        "response_chars": len(raw_text),
                    },
                )
                continue

            payload = validate_with_coercion(recovered, require_source_digest=ingestion.has_references)
            logger.info(
                "generation_attempt_succeeded",
                extra={
                    "event": "generation_attempt_succeeded",
                    "attempt": attempt,
                    "phases": len(payload.phases),
                    "dual_series": payload.secondary is not None,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return GenerationOutcome(payload=payload, attempt=attempt, raw_text=raw_text)

        raise RecoveryError(UNPARSEABLE_OUTPUT_MESSAGE)


def enrich_with_references(
    payload: GeneratedPayload,
    ingestion: IngestionResult,
    *,
    preview_chars: int = 240,
) -> dict[str, object]:
    return {
        **payload.to_wire(),
        "reference_status": ingestion.status,
        "reference_entries": [
            {
                "type": entry.kind,
                "source": entry.source,
                "preview": build_reference_preview(entry.content, preview_chars),
            }
            for entry in ingestion.entries
        ],
        "reference_errors": list(ingestion.errors),
    }
