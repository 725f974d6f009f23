"""
Unit tests for the OpenAI and Anthropic adapters.

HTTP is served by httpx.MockTransport; no network access is needed.
"""
import json

import httpx
import pytest

from app.services.ai.anthropic_provider import DEFAULT_MAX_TOKENS, AnthropicProvider
from app.services.ai.llm_client import (
    ChatOptions,
    LLMMessage,
    ProviderError,
    TokenUsage,
    validate_messages,
)
from app.services.ai.openai_provider import OpenAIProvider


MESSAGES = [
    LLMMessage(role="system", content="Classify the message."),
    LLMMessage(role="user", content="Water under the sink"),
]


def _transport(captured, status_code=200, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.MockTransport(handler)


def _openai(transport):
    return OpenAIProvider(
        model="gpt-4o-mini",
        api_key="sk-test",
        api_base="https://api.openai.test/v1/",
        transport=transport,
    )


def _anthropic(transport):
    return AnthropicProvider(
        model="claude-3-haiku-20240307",
        api_key="ak-test",
        api_base="https://api.anthropic.test/v1",
        transport=transport,
        api_version="2023-06-01",
    )


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_chat_request_and_response(self):
        captured = []
        body = {
            "choices": [{"message": {"role": "assistant", "content": '{"ok": true}'}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20},
        }
        provider = _openai(_transport(captured, body=body))

        response = await provider.chat(
            MESSAGES, ChatOptions(temperature=0.3, max_tokens=1024, json_mode=True)
        )

        assert response.text == '{"ok": true}'
        assert response.usage == TokenUsage(prompt_tokens=12, completion_tokens=8, total_tokens=20)

        request = captured[0]
        assert str(request.url) == "https://api.openai.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        sent = json.loads(request.content)
        assert sent["model"] == "gpt-4o-mini"
        assert sent["temperature"] == 0.3
        assert sent["max_tokens"] == 1024
        assert sent["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in sent["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_no_json_mode_no_max_tokens(self):
        captured = []
        body = {"choices": [{"message": {"content": "## Immediate Actions"}}]}
        provider = _openai(_transport(captured, body=body))

        response = await provider.chat(MESSAGES)

        sent = json.loads(captured[0].content)
        assert "response_format" not in sent
        assert "max_tokens" not in sent
        assert response.usage is None

    @pytest.mark.asyncio
    async def test_error_status_raises_provider_error(self):
        provider = _openai(_transport([], status_code=429, body={"error": "rate limited"}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.vendor == "openai"

    @pytest.mark.asyncio
    async def test_transport_failure_raises_provider_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = _openai(httpx.MockTransport(handler))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES)

        assert exc_info.value.error_type == "http_error"

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = _openai(httpx.MockTransport(handler))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES)

        assert exc_info.value.error_type == "timeout"

    @pytest.mark.asyncio
    async def test_malformed_payload_raises_provider_error(self):
        provider = _openai(_transport([], body={"choices": "nope"}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES)

        assert exc_info.value.error_type == "invalid_payload"


class TestAnthropicProvider:
    @pytest.mark.asyncio
    async def test_system_messages_are_hoisted(self):
        captured = []
        body = {
            "content": [
                {"type": "text", "text": "first"},
                {"type": "tool_use", "id": "x"},
                {"type": "text", "text": "second"},
            ],
            "usage": {"input_tokens": 30, "output_tokens": 12},
        }
        provider = _anthropic(_transport(captured, body=body))
        messages = [
            LLMMessage(role="system", content="Part one."),
            LLMMessage(role="system", content="Part two."),
            LLMMessage(role="user", content="Hello"),
            LLMMessage(role="assistant", content="Hi"),
            LLMMessage(role="user", content="Question"),
        ]

        response = await provider.chat(messages, ChatOptions(temperature=0.1, json_mode=True))

        assert response.text == "first\nsecond"
        assert response.usage == TokenUsage(prompt_tokens=30, completion_tokens=12, total_tokens=42)

        request = captured[0]
        assert str(request.url) == "https://api.anthropic.test/v1/messages"
        assert request.headers["x-api-key"] == "ak-test"
        assert request.headers["anthropic-version"] == "2023-06-01"

        sent = json.loads(request.content)
        assert sent["system"] == "Part one.\n\nPart two."
        assert [m["role"] for m in sent["messages"]] == ["user", "assistant", "user"]
        assert sent["max_tokens"] == DEFAULT_MAX_TOKENS
        assert "response_format" not in sent

    @pytest.mark.asyncio
    async def test_error_status_raises_provider_error(self):
        provider = _anthropic(_transport([], status_code=401, body={"type": "error"}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES)

        assert exc_info.value.vendor == "anthropic"
        assert exc_info.value.status_code == 401

    def test_no_system_key_without_system_messages(self):
        payload = _anthropic(None).build_payload(
            [LLMMessage(role="user", content="Hi")], ChatOptions(max_tokens=100)
        )
        assert "system" not in payload
        assert payload["max_tokens"] == 100


class TestValidateMessages:
    def test_empty_list(self):
        with pytest.raises(ValueError):
            validate_messages([])

    def test_blank_content(self):
        with pytest.raises(ValueError):
            validate_messages([LLMMessage(role="user", content="   ")])

    @pytest.mark.asyncio
    async def test_invalid_messages_make_no_request(self):
        captured = []
        provider = _openai(_transport(captured))

        with pytest.raises(ValueError):
            await provider.chat([])

        assert captured == []
