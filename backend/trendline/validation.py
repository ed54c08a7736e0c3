from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from trendline.errors import PayloadValidationError
from trendline.trend_models import GeneratedPayload

MIN_PHASES = 5
MAX_PHASES = 10
MIN_SOURCE_DIGEST_CHARS = 20


def validate_generated_payload(payload: Any, *, require_source_digest: bool) -> None:
    """Structural gate on a recovered object; value ranges are not checked here."""
    if payload is None or not isinstance(payload, Mapping):
        raise PayloadValidationError("Generator did not return a valid JSON object.")

    phases = payload.get("phases")
    if not isinstance(phases, list):
        raise PayloadValidationError("Generator output is missing the phases field.")
    if not MIN_PHASES <= len(phases) <= MAX_PHASES:
        raise PayloadValidationError(
            f"Generator returned {len(phases)} phases; expected between {MIN_PHASES} and {MAX_PHASES}."
        )

    if require_source_digest:
        digest = payload.get("source_digest")
        if not isinstance(digest, str) or len(digest.strip()) < MIN_SOURCE_DIGEST_CHARS:
            raise PayloadValidationError("Generator output did not include a source_digest grounded in the references.")


def coerce_generated_payload(payload: Mapping[str, Any]) -> GeneratedPayload:
    try:
        return GeneratedPayload.model_validate(dict(payload))
    except ValidationError as exc:
        details = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise PayloadValidationError("Generator output has malformed phase data.", details=details) from exc


def validate_with_coercion(payload: Any, *, require_source_digest: bool) -> GeneratedPayload:
    validate_generated_payload(payload, require_source_digest=require_source_digest)
    return coerce_generated_payload(payload)
