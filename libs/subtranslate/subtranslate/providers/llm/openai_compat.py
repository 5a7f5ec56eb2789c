"""OpenAI-compatible LLM Provider implementation (OpenAI, Ollama, local servers)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from subtranslate.config import ApiType, JsonModeType, ProviderConfig
from subtranslate.exceptions import TransportError
from subtranslate.providers.llm._utils import (
    dig,
    format_http_error,
    log_llm_call,
    post_json,
    read_json_envelope,
)
from subtranslate.providers.llm.base import LLMProvider, Message

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"


class _ResponseFormatRejected(TransportError):
    """The server refused the `response_format` field we sent."""


def _is_response_format_rejection(body: str) -> bool:
    # e.g. "'response_format.type' must be 'json_schema' or 'text'"
    return "response_format" in body and "json_schema" in body


def _log_negotiation_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    provider = getattr(exc, "provider", "llm")
    logger.warning(
        "llm response_format rejected, retrying without it (provider=%s, attempt=%s, error=%s)",
        provider,
        state.attempt_number,
        exc,
    )


def _strip_v1(base_url: str) -> str:
    resolved = base_url.strip().rstrip("/")
    if resolved.endswith("/v1"):
        resolved = resolved[:-3]
    return resolved


class OpenAICompatProvider(LLMProvider):
    """OpenAI-compatible chat-completions provider (works with OpenAI, Ollama, vLLM, LM Studio...)."""

    def __init__(self, config: ProviderConfig, *, timeout: float = 120.0) -> None:
        super().__init__(config)
        default_base = (
            DEFAULT_OLLAMA_BASE_URL if config.api_type == ApiType.OLLAMA else DEFAULT_OPENAI_BASE_URL
        )
        self.base_url = _strip_v1(str(config.base_url or "") or default_base)
        self.api_key = str(config.api_key or "").strip()
        self.timeout = float(timeout)
        self._client: httpx.AsyncClient | None = None

    @property
    def supports_json_mode(self) -> bool:
        return self.config.json_mode_type != JsonModeType.NONE

    @property
    def url(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def build_payload(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool,
        schema: dict[str, Any] | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if not json_mode:
            return payload

        mode = self.config.json_mode_type
        if mode == JsonModeType.JSON_SCHEMA and schema is None:
            logger.warning(
                "json_schema mode without a schema, falling back to json_object (provider=%s)",
                self.provider,
            )
            mode = JsonModeType.JSON_OBJECT

        if mode == JsonModeType.JSON_SCHEMA:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "strict": True, "schema": schema},
            }
        elif mode == JsonModeType.JSON_OBJECT:
            if self.config.api_type == ApiType.OLLAMA:
                payload["format"] = "json"
            else:
                payload["response_format"] = {"type": "json_object"}
        return payload

    async def _chat_completions(self, payload: dict[str, Any]) -> str:
        client = await self._get_client()
        response = await post_json(
            client,
            self.url,
            provider=self.provider,
            payload=payload,
            headers=self._headers(),
            logger=logger,
        )
        if response.status_code >= 400:
            message = format_http_error(response)
            if "response_format" in payload and _is_response_format_rejection(response.text):
                # Strip before raising so the single retry goes out without it.
                payload.pop("response_format", None)
                raise _ResponseFormatRejected(
                    self.provider, message, status_code=response.status_code
                )
            raise TransportError(self.provider, message, status_code=response.status_code)

        data = read_json_envelope(response, provider=self.provider)
        content = dig(data, "choices", 0, "message", "content")
        if not isinstance(content, str):
            raise TransportError(
                self.provider,
                "Failed to parse LLM response content",
                status_code=response.status_code,
            )
        return content

    async def complete(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool = False,
        schema: dict[str, Any] | None = None,
    ) -> str:
        payload = self.build_payload(model, messages, json_mode=json_mode, schema=schema)
        started = time.perf_counter()
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(_ResponseFormatRejected),
            stop=stop_after_attempt(2),
            before_sleep=_log_negotiation_retry,
            reraise=True,
        ):
            with attempt:
                text = await self._chat_completions(payload)

        latency_ms = int((time.perf_counter() - started) * 1000)
        log_llm_call(
            logger,
            provider=self.provider,
            model=model,
            latency_ms=latency_ms,
            json_mode=json_mode,
        )
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OpenAICompatProvider":
        await self._get_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        await self.close()
