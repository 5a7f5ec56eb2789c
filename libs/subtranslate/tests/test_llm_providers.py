from __future__ import annotations

import json

import httpx
import pytest

from subtranslate.codecs import TRANSLATIONS_SCHEMA
from subtranslate.config import ApiType, JsonModeType, ProviderConfig
from subtranslate.error_codes import ErrorCode
from subtranslate.exceptions import ConfigurationError, TransportError
from subtranslate.providers import get_llm_provider
from subtranslate.providers.llm import (
    AnthropicProvider,
    GeminiProvider,
    Message,
    OpenAICompatProvider,
)

MESSAGES = [
    Message(role="system", content="be brief"),
    Message(role="user", content="hi"),
]


def _chat_reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def _openai(
    handler=None,
    *,
    api_type: ApiType = ApiType.OPENAI,
    json_mode_type: JsonModeType = JsonModeType.JSON_OBJECT,
    base_url: str | None = "https://example.com/v1",
    api_key: str | None = "x",
) -> OpenAICompatProvider:
    provider = OpenAICompatProvider(
        ProviderConfig(
            id="p1",
            api_type=api_type,
            base_url=base_url,
            api_key=api_key,
            json_mode_type=json_mode_type,
        )
    )
    if handler is not None:
        provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return provider


@pytest.mark.asyncio
async def test_openai_compat_posts_chat_completions_with_bearer() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _chat_reply("bonjour")

    provider = _openai(_handler)
    try:
        text = await provider.complete("gpt-4o", MESSAGES)
    finally:
        await provider.close()

    assert text == "bonjour"
    assert str(seen[0].url) == "https://example.com/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer x"
    body = json.loads(seen[0].content)
    assert body["model"] == "gpt-4o"
    assert body["messages"][0] == {"role": "system", "content": "be brief"}
    assert "response_format" not in body


@pytest.mark.asyncio
async def test_openai_compat_omits_auth_without_api_key() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _chat_reply("ok")

    provider = _openai(_handler, api_key=None)
    try:
        await provider.complete("m", MESSAGES)
    finally:
        await provider.close()

    assert "Authorization" not in seen[0].headers


def test_openai_compat_payload_per_json_capability() -> None:
    schema_provider = _openai(json_mode_type=JsonModeType.JSON_SCHEMA)
    payload = schema_provider.build_payload(
        "m", MESSAGES, json_mode=True, schema=TRANSLATIONS_SCHEMA
    )
    assert payload["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "response", "strict": True, "schema": TRANSLATIONS_SCHEMA},
    }

    # No schema to enforce: degrade to plain JSON object mode.
    payload = schema_provider.build_payload("m", MESSAGES, json_mode=True, schema=None)
    assert payload["response_format"] == {"type": "json_object"}

    object_provider = _openai(json_mode_type=JsonModeType.JSON_OBJECT)
    payload = object_provider.build_payload(
        "m", MESSAGES, json_mode=True, schema=TRANSLATIONS_SCHEMA
    )
    assert payload["response_format"] == {"type": "json_object"}

    none_provider = _openai(json_mode_type=JsonModeType.NONE)
    assert none_provider.supports_json_mode is False
    payload = none_provider.build_payload("m", MESSAGES, json_mode=True, schema=None)
    assert "response_format" not in payload

    assert "response_format" not in object_provider.build_payload(
        "m", MESSAGES, json_mode=False, schema=None
    )


def test_ollama_uses_format_json_and_local_default_base() -> None:
    provider = _openai(api_type=ApiType.OLLAMA, base_url=None, api_key=None)
    assert provider.url == "http://localhost:11434/v1/chat/completions"
    payload = provider.build_payload("llama3", MESSAGES, json_mode=True, schema=None)
    assert payload["format"] == "json"
    assert "response_format" not in payload


@pytest.mark.asyncio
async def test_openai_compat_retries_once_without_rejected_response_format() -> None:
    bodies: list[dict] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        if "response_format" in body:
            return httpx.Response(
                400,
                json={
                    "error": {
                        "message": "'response_format.type' must be 'json_schema' or 'text'",
                    }
                },
            )
        return _chat_reply('{"translations": []}')

    provider = _openai(_handler, json_mode_type=JsonModeType.JSON_SCHEMA)
    try:
        text = await provider.complete(
            "m", MESSAGES, json_mode=True, schema=TRANSLATIONS_SCHEMA
        )
    finally:
        await provider.close()

    assert text == '{"translations": []}'
    assert len(bodies) == 2
    assert "response_format" in bodies[0]
    assert "response_format" not in bodies[1]


@pytest.mark.asyncio
async def test_openai_compat_negotiation_retry_happens_at_most_once() -> None:
    calls = 0

    def _handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        nonlocal calls
        calls += 1
        return httpx.Response(400, text="response_format json_schema is not supported")

    provider = _openai(_handler, json_mode_type=JsonModeType.JSON_SCHEMA)
    try:
        with pytest.raises(TransportError) as excinfo:
            await provider.complete("m", MESSAGES, json_mode=True, schema=TRANSLATIONS_SCHEMA)
    finally:
        await provider.close()

    # The retry goes out without response_format, so a second rejection
    # is an ordinary transport error.
    assert calls == 2
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_openai_compat_does_not_retry_other_errors() -> None:
    calls = 0

    def _handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        nonlocal calls
        calls += 1
        return httpx.Response(500, text="upstream exploded")

    provider = _openai(_handler, json_mode_type=JsonModeType.JSON_SCHEMA)
    try:
        with pytest.raises(TransportError) as excinfo:
            await provider.complete("m", MESSAGES, json_mode=True, schema=TRANSLATIONS_SCHEMA)
    finally:
        await provider.close()

    assert calls == 1
    assert excinfo.value.provider == "p1"
    assert excinfo.value.status_code == 500
    assert "upstream exploded" in str(excinfo.value)


@pytest.mark.asyncio
async def test_openai_compat_unparseable_envelope_is_transport_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, text="<html>gateway</html>")

    provider = _openai(_handler)
    try:
        with pytest.raises(TransportError):
            await provider.complete("m", MESSAGES)
    finally:
        await provider.close()


@pytest.mark.asyncio
async def test_openai_compat_timeout_maps_to_llm_timeout() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    provider = _openai(_handler)
    try:
        with pytest.raises(TransportError) as excinfo:
            await provider.complete("m", MESSAGES)
    finally:
        await provider.close()

    assert excinfo.value.error_code == ErrorCode.LLM_TIMEOUT


@pytest.mark.asyncio
async def test_anthropic_messages_request_shape() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "id": "msg_01",
                "type": "message",
                "role": "assistant",
                "model": "claude-3-5-sonnet",
                "content": [{"type": "text", "text": "salut"}],
                "stop_reason": "end_turn",
                "stop_sequence": None,
                "usage": {"input_tokens": 5, "output_tokens": 2},
            },
        )

    provider = AnthropicProvider(
        ProviderConfig(id="claude", api_type=ApiType.CLAUDE, api_key="ak"),
        max_tokens=4096,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    try:
        text = await provider.complete("claude-3-5-sonnet", MESSAGES, json_mode=True)
    finally:
        await provider.close()

    assert text == "salut"
    assert provider.supports_json_mode is False
    request = seen[0]
    assert str(request.url) == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "ak"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["system"] == "be brief"
    assert body["messages"] == [{"role": "user", "content": "hi"}]
    assert body["max_tokens"] == 4096


@pytest.mark.asyncio
async def test_gemini_generate_content_request_shape() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "hallo"}]}}]}
        )

    provider = GeminiProvider(ProviderConfig(id="gemini", api_type=ApiType.GEMINI, api_key="gk"))
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    messages = [*MESSAGES, Message(role="assistant", content="earlier"), Message(role="user", content="more")]
    try:
        text = await provider.complete("gemini-1.5-flash", messages, json_mode=True)
    finally:
        await provider.close()

    assert text == "hallo"
    request = seen[0]
    assert request.url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
    assert request.url.params["key"] == "gk"
    body = json.loads(request.content)
    assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
    assert body["systemInstruction"] == {"parts": [{"text": "be brief"}]}
    assert body["generationConfig"] == {"responseMimeType": "application/json"}


def test_gemini_skips_mime_type_when_capability_is_none() -> None:
    provider = GeminiProvider(
        ProviderConfig(
            id="g", api_type=ApiType.GEMINI, api_key="gk", json_mode_type=JsonModeType.NONE
        )
    )
    assert "generationConfig" not in provider.build_payload(MESSAGES, json_mode=True)


def test_gemini_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        GeminiProvider(ProviderConfig(id="g", api_type=ApiType.GEMINI))


def test_registry_dispatches_on_api_type(settings) -> None:
    assert isinstance(get_llm_provider(settings.provider("openai"), settings), OpenAICompatProvider)
    assert isinstance(get_llm_provider(settings.provider("ollama"), settings), OpenAICompatProvider)
    assert isinstance(get_llm_provider(settings.provider("claude"), settings), AnthropicProvider)
    assert isinstance(get_llm_provider(settings.provider("gemini"), settings), GeminiProvider)


@pytest.mark.asyncio
async def test_anthropic_status_error_is_transport_error_without_sdk_retries() -> None:
    calls = 0

    def _handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        nonlocal calls
        calls += 1
        return httpx.Response(
            529,
            json={"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
        )

    provider = AnthropicProvider(
        ProviderConfig(id="claude", api_type=ApiType.CLAUDE, api_key="ak"),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    try:
        with pytest.raises(TransportError) as excinfo:
            await provider.complete("claude-3-5-sonnet", MESSAGES)
    finally:
        await provider.close()

    assert calls == 1
    assert excinfo.value.provider == "claude"
    assert excinfo.value.status_code == 529
