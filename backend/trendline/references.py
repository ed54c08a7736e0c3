from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ReferenceKind = Literal["text", "file", "url"]
IngestionStatus = Literal["empty", "success", "partial", "failed"]

USER_INPUT_SOURCE = "user_input"


@dataclass(frozen=True)
class DocumentEvidence:
    name: str
    content_type: str
    # base64 payload as submitted, optionally a data: URL
    content: str


@dataclass(frozen=True)
class ReferenceEntry:
    kind: ReferenceKind
    source: str
    content: str


@dataclass(frozen=True)
class SourceOutcome:
    """Result of ingesting one source: exactly one of entry/error is set."""

    index: int
    entry: ReferenceEntry | None = None
    error: str | None = None


@dataclass(frozen=True)
class IngestionResult:
    status: IngestionStatus
    entries: list[ReferenceEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def has_references(self) -> bool:
        return bool(self.entries)


def resolve_ingestion_status(*, had_input: bool, succeeded: int, failed: int) -> IngestionStatus:
    if not had_input:
        return "empty"
    if succeeded == 0:
        return "failed"
    if failed > 0:
        return "partial"
    return "success"


def normalize_whitespace(value: str) -> str:
    return " ".join(value.split())


def truncate_text(value: str, limit: int) -> str:
    if not value:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit] + "…"


def build_reference_preview(value: str, limit: int = 240) -> str:
    return truncate_text(normalize_whitespace(value or ""), limit)
