from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import httpx

from trendline.config import Settings
from trendline.errors import GeneratorConfigurationError, UpstreamError

logger = logging.getLogger("trendline.generation")

UPSTREAM_UNAVAILABLE_MESSAGE = "The generator service is temporarily unavailable. Please retry later."


class TextGenerator(Protocol):
    def complete(self, *, system_prompts: list[str], user_prompt: str) -> str | None:
        ...


class BedrockTextGenerator:
    """Calls a Bedrock model through the Converse API."""

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client or self._create_bedrock_client()

    def _create_bedrock_client(self) -> Any:
        import boto3  # type: ignore

        return boto3.client("bedrock-runtime", region_name=self._settings.aws_region)

    def complete(self, *, system_prompts: list[str], user_prompt: str) -> str | None:
        model_id = self._settings.bedrock_model_id
        if not model_id:
            raise GeneratorConfigurationError("Bedrock model ID is not configured.")

        started = time.perf_counter()
        try:
            response = self._client.converse(
                modelId=model_id,
                system=[{"text": prompt} for prompt in system_prompts],
                messages=[{"role": "user", "content": [{"text": user_prompt}]}],
                inferenceConfig={
                    "temperature": self._settings.generator_temperature,
                    "maxTokens": self._settings.generator_max_tokens,
                },
            )
        except Exception as exc:
            logger.warning(
                "generator_invoke_failed",
                extra={
                    "event": "generator_invoke_failed",
                    "backend": "bedrock",
                    "model_id": model_id,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "error": str(exc),
                },
            )
            raise UpstreamError(UPSTREAM_UNAVAILABLE_MESSAGE, details=[str(exc)]) from exc

        text = self._extract_text(response)
        logger.info(
            "generator_invoke_completed",
            extra={
                "event": "generator_invoke_completed",
                "backend": "bedrock",
                "model_id": model_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "user_prompt_chars": len(user_prompt),
                "response_chars": len(text or ""),
            },
        )
        return text

    @staticmethod
    def _extract_text(response: Any) -> str | None:
        outputs = response.get("output", {}).get("message", {}).get("content", [])
        parts: list[str] = []
        for item in outputs:
            text = item.get("text")
            if isinstance(text, str) and text.strip():
                parts.append(text)
        if not parts:
            return None
        return "\n".join(parts).strip()


class ChatCompletionsTextGenerator:
    """Calls an OpenAI-compatible `/chat/completions` endpoint (DeepSeek by default)."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        if not settings.chat_api_key:
            raise GeneratorConfigurationError("CHAT_API_KEY is not configured; cannot generate trends.")
        self._settings = settings
        self._client = client or httpx.Client(timeout=httpx.Timeout(settings.generator_timeout_seconds))

    def complete(self, *, system_prompts: list[str], user_prompt: str) -> str | None:
        url = f"{self._settings.chat_api_base_url.rstrip('/')}/chat/completions"
        messages = [{"role": "system", "content": prompt} for prompt in system_prompts]
        messages.append({"role": "user", "content": user_prompt})

        started = time.perf_counter()
        try:
            response = self._client.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._settings.chat_api_key}",
                },
                json={
                    "model": self._settings.chat_model,
                    "temperature": self._settings.generator_temperature,
                    "max_tokens": self._settings.generator_max_tokens,
                    "messages": messages,
                },
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "generator_invoke_failed",
                extra={"event": "generator_invoke_failed", "backend": "openai_compatible", "error": str(exc)},
            )
            raise UpstreamError(UPSTREAM_UNAVAILABLE_MESSAGE, details=[str(exc)]) from exc

        if not response.is_success:
            logger.warning(
                "generator_invoke_rejected",
                extra={
                    "event": "generator_invoke_rejected",
                    "backend": "openai_compatible",
                    "status_code": response.status_code,
                },
            )
            raise UpstreamError(UPSTREAM_UNAVAILABLE_MESSAGE, details=[response.text])

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(UPSTREAM_UNAVAILABLE_MESSAGE, details=["response body was not JSON"]) from exc

        choices = payload.get("choices") if isinstance(payload, dict) else None
        content = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            content = message.get("content") if isinstance(message, dict) else None

        logger.info(
            "generator_invoke_completed",
            extra={
                "event": "generator_invoke_completed",
                "backend": "openai_compatible",
                "model_id": self._settings.chat_model,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "user_prompt_chars": len(user_prompt),
                "response_chars": len(content or ""),
            },
        )
        return content if isinstance(content, str) and content.strip() else None


def build_text_generator(settings: Settings) -> TextGenerator:
    backend = settings.generator_backend.strip().lower()
    if backend == "bedrock":
        return BedrockTextGenerator(settings)
    if backend in {"openai_compatible", "deepseek"}:
        return ChatCompletionsTextGenerator(settings)
    raise GeneratorConfigurationError(f"Unknown generator backend: {settings.generator_backend}")
