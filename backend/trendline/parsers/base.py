from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class DocumentFormat(str, Enum):
    PDF = "pdf"
    WORD = "word"
    TEXT = "text"


@dataclass(frozen=True)
class ParseResult:
    parser_id: str
    text: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DocumentParser(Protocol):
    parser_id: str

    def parse(self, *, content: bytes, file_name: str, content_type: str) -> ParseResult:
        ...
