from __future__ import annotations

import json

import httpx
import pytest

from trendline.config import Settings
from trendline.errors import GeneratorConfigurationError, UpstreamError
from trendline.generator import (
    BedrockTextGenerator,
    ChatCompletionsTextGenerator,
    build_text_generator,
)


class FakeBedrockClient:
    def __init__(self, text: str | None = "{\"phases\": []}", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, object]] = []

    def converse(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = [{"text": self.text}] if self.text is not None else []
        return {"output": {"message": {"content": content}}}


def test_bedrock_generator_sends_system_and_user_prompts() -> None:
    settings = Settings(bedrock_model_id="amazon.nova-pro-v1:0", generator_temperature=0.3, generator_max_tokens=512)
    client = FakeBedrockClient()
    generator = BedrockTextGenerator(settings, client=client)

    text = generator.complete(system_prompts=["system one", "system two"], user_prompt="model the trend")

    assert text == "{\"phases\": []}"
    call = client.calls[0]
    assert call["modelId"] == "amazon.nova-pro-v1:0"
    assert call["system"] == [{"text": "system one"}, {"text": "system two"}]
    assert call["messages"] == [{"role": "user", "content": [{"text": "model the trend"}]}]
    assert call["inferenceConfig"] == {"temperature": 0.3, "maxTokens": 512}


def test_bedrock_generator_returns_none_for_blank_output() -> None:
    generator = BedrockTextGenerator(Settings(), client=FakeBedrockClient(text="   "))
    assert generator.complete(system_prompts=["s"], user_prompt="u") is None

    empty = BedrockTextGenerator(Settings(), client=FakeBedrockClient(text=None))
    assert empty.complete(system_prompts=["s"], user_prompt="u") is None


def test_bedrock_generator_wraps_client_errors() -> None:
    generator = BedrockTextGenerator(Settings(), client=FakeBedrockClient(error=RuntimeError("throttled")))

    with pytest.raises(UpstreamError) as raised:
        generator.complete(system_prompts=["s"], user_prompt="u")
    assert raised.value.details == ["throttled"]


def test_bedrock_generator_requires_model_id() -> None:
    generator = BedrockTextGenerator(Settings(bedrock_model_id=""), client=FakeBedrockClient())

    with pytest.raises(GeneratorConfigurationError):
        generator.complete(system_prompts=["s"], user_prompt="u")


def _chat_settings(**overrides) -> Settings:
    values = {
        "generator_backend": "openai_compatible",
        "chat_api_key": "sk-testkey",
        "chat_api_base_url": "https://chat.example.org/v1/",
        "chat_model": "deepseek-chat",
    }
    values.update(overrides)
    return Settings(**values)


def test_chat_generator_posts_openai_compatible_request() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "{\"subject\": \"x\"}"}}]})

    generator = ChatCompletionsTextGenerator(
        _chat_settings(),
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    text = generator.complete(system_prompts=["system"], user_prompt="user")

    assert text == "{\"subject\": \"x\"}"
    request = captured[0]
    assert str(request.url) == "https://chat.example.org/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-testkey"
    body = json.loads(request.content)
    assert body["model"] == "deepseek-chat"
    assert body["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user"},
    ]


def test_chat_generator_maps_http_failures() -> None:
    def rejected(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    for handler in (rejected, unreachable, not_json):
        generator = ChatCompletionsTextGenerator(
            _chat_settings(),
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(UpstreamError):
            generator.complete(system_prompts=["system"], user_prompt="user")


def test_chat_generator_returns_none_without_content() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    generator = ChatCompletionsTextGenerator(
        _chat_settings(),
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    assert generator.complete(system_prompts=["system"], user_prompt="user") is None


def test_build_text_generator_selects_backend() -> None:
    assert isinstance(build_text_generator(_chat_settings(generator_backend="deepseek")), ChatCompletionsTextGenerator)

    with pytest.raises(GeneratorConfigurationError):
        build_text_generator(_chat_settings(chat_api_key=""))
    with pytest.raises(GeneratorConfigurationError):
        build_text_generator(_chat_settings(generator_backend="unknown"))
