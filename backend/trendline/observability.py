from __future__ import annotations

from contextvars import ContextVar, Token
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any, Mapping
from uuid import uuid4


REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="-")
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
_LOGGING_CONFIGURED = False

SENSITIVE_KEY_NAMES = {
    "authorization",
    "cookie",
    "set-cookie",
    "token",
    "password",
    "secret",
    "api_key",
    "apikey",
    "chat_api_key",
    "aws_secret_access_key",
    "aws_session_token",
}
SENSITIVE_KEY_FRAGMENTS = (
    "password",
    "secret",
    "token",
    "api_key",
    "access_key",
)
# Uploaded document bodies travel as base64 and never belong in logs.
PAYLOAD_KEY_NAMES = {"content", "documents", "raw_text"}

BEARER_PATTERN = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*")
API_KEY_PATTERN = re.compile(r"\bsk-[A-Za-z0-9]{16,}\b")
AWS_ACCESS_KEY_PATTERN = re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")
DATA_URL_PATTERN = re.compile(r"data:[\w/+.-]+;base64,[A-Za-z0-9+/=]+")
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")


def normalize_request_id(candidate: str | None) -> str:
    if candidate:
        trimmed = candidate.strip()
        if REQUEST_ID_PATTERN.fullmatch(trimmed):
            return trimmed
    return str(uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return REQUEST_ID_CONTEXT.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    REQUEST_ID_CONTEXT.reset(token)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def _looks_sensitive_key(key: str) -> bool:
    normalized = key.strip().lower().replace("-", "_")
    if normalized in SENSITIVE_KEY_NAMES:
        return True
    return any(fragment in normalized for fragment in SENSITIVE_KEY_FRAGMENTS)


def _redact_string(value: str, *, max_length: int) -> str:
    redacted = DATA_URL_PATTERN.sub("[REDACTED_DATA_URL]", value)
    redacted = BEARER_PATTERN.sub("Bearer [REDACTED]", redacted)
    redacted = API_KEY_PATTERN.sub("[REDACTED_API_KEY]", redacted)
    redacted = AWS_ACCESS_KEY_PATTERN.sub("[REDACTED_AWS_ACCESS_KEY]", redacted)
    redacted = EMAIL_PATTERN.sub("[REDACTED_EMAIL]", redacted)
    if len(redacted) > max_length:
        return f"{redacted[:max_length]}...[truncated]"
    return redacted


def sanitize_for_logging(value: Any, *, max_string_length: int = 240) -> Any:
    if value is None:
        return None

    if isinstance(value, Mapping):
        sanitized: dict[str, Any] = {}
        for key, item in value.items():
            key_text = str(key)
            if _looks_sensitive_key(key_text):
                sanitized[key_text] = "[REDACTED]"
                continue
            if key_text.lower() in PAYLOAD_KEY_NAMES and isinstance(item, str):
                sanitized[key_text] = f"[{len(item)} chars]"
                continue
            sanitized[key_text] = sanitize_for_logging(item, max_string_length=max_string_length)
        return sanitized

    if isinstance(value, list):
        return [sanitize_for_logging(item, max_string_length=max_string_length) for item in value]

    if isinstance(value, tuple):
        return tuple(sanitize_for_logging(item, max_string_length=max_string_length) for item in value)

    if isinstance(value, bytes):
        return f"[{len(value)} bytes]"

    if isinstance(value, str):
        return _redact_string(value, max_length=max_string_length)

    return value


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    _STANDARD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", get_request_id()),
        }

        for key, value in record.__dict__.items():
            if key in self._STANDARD_ATTRS or key in payload:
                continue
            payload[key] = sanitize_for_logging(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level_name: str) -> None:
    global _LOGGING_CONFIGURED
    level = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if _LOGGING_CONFIGURED:
        return

    if any(getattr(handler, "_trendline_handler", False) for handler in root.handlers):
        _LOGGING_CONFIGURED = True
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    setattr(handler, "_trendline_handler", True)
    root.addHandler(handler)
    _LOGGING_CONFIGURED = True
