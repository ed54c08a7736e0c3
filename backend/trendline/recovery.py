from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

import json5

logger = logging.getLogger("trendline.recovery")

_FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", flags=re.IGNORECASE | re.DOTALL)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([\]}])")

CandidateExtractor = Callable[[str], str | None]
Parser = Callable[[str], Any]


def normalize_json_text(value: str) -> str:
    return (
        value.replace("\u201c", '"')
        .replace("\u201d", '"')
        .replace("\u2018", "'")
        .replace("\u2019", "'")
        .replace("\ufeff", "")
        .strip()
    )


def _whole_text(text: str) -> str | None:
    return text or None


def _fenced_block(text: str) -> str | None:
    match = _FENCED_BLOCK_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def _brace_slice(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _strict(candidate: str) -> Any:
    return json.loads(candidate)


def _lenient(candidate: str) -> Any:
    return json5.loads(candidate)


def _without_trailing_commas(candidate: str) -> Any:
    return json.loads(_TRAILING_COMMA_PATTERN.sub(r"\1", candidate))


CANDIDATE_STRATEGIES: tuple[tuple[str, CandidateExtractor], ...] = (
    ("direct", _whole_text),
    ("fenced", _fenced_block),
    ("brace_slice", _brace_slice),
)
PARSE_STRATEGIES: tuple[tuple[str, Parser], ...] = (
    ("strict", _strict),
    ("json5", _lenient),
    ("trailing_commas", _without_trailing_commas),
)


def attempt_parse(candidate: str) -> tuple[dict[str, Any], str] | None:
    normalized = normalize_json_text(candidate)
    for parser_name, parser in PARSE_STRATEGIES:
        try:
            parsed = parser(normalized)
        except Exception:
            continue
        if isinstance(parsed, dict):
            return parsed, parser_name
    return None


def extract_json_payload(content: str | None) -> dict[str, Any] | None:
    """Recover the first JSON object from free-form generator output, or None."""
    if not content:
        return None
    text = normalize_json_text(content)
    for candidate_name, extract in CANDIDATE_STRATEGIES:
        candidate = extract(text)
        if candidate is None:
            continue
        parsed = attempt_parse(candidate)
        if parsed is None:
            continue
        payload, parser_name = parsed
        logger.debug(
            "structured_output_recovered",
            extra={
                "event": "structured_output_recovered",
                "candidate": candidate_name,
                "parser": parser_name,
            },
        )
        return payload
    return None
