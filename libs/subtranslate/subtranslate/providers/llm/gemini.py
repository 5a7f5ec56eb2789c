"""Google Gemini generateContent provider."""

from __future__ import annotations

import logging
import time
from typing import Any, TypedDict

import httpx

from subtranslate.config import JsonModeType, ProviderConfig
from subtranslate.exceptions import ConfigurationError, TransportError
from subtranslate.providers.llm._utils import (
    dig,
    format_http_error,
    log_llm_call,
    post_json,
    read_json_envelope,
    split_system_messages,
)
from subtranslate.providers.llm.base import LLMProvider, Message

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"


class _GeminiPart(TypedDict):
    text: str


class _GeminiContent(TypedDict):
    role: str
    parts: list[_GeminiPart]


def _to_gemini_contents(messages: list[Message]) -> list[_GeminiContent]:
    contents: list[_GeminiContent] = []
    for m in messages:
        role = str(m.role or "").strip().lower()
        role = "model" if role in {"assistant", "model"} else "user"
        contents.append({"role": role, "parts": [{"text": str(m.content)}]})
    return contents


class GeminiProvider(LLMProvider):
    """Gemini API provider (Google AI Studio / compatible endpoints)."""

    def __init__(self, config: ProviderConfig, *, timeout: float = 120.0) -> None:
        super().__init__(config)
        self.api_key = str(config.api_key or "").strip()
        if not self.api_key:
            raise ConfigurationError(f"Gemini provider {config.id!r} requires api_key")
        self.base_url = str(config.base_url or "").strip().rstrip("/") or DEFAULT_GEMINI_BASE_URL
        self.timeout = float(timeout)
        self._client: httpx.AsyncClient | None = None

    @property
    def supports_json_mode(self) -> bool:
        return self.config.json_mode_type != JsonModeType.NONE

    def url_for(self, model: str) -> str:
        # Key-in-URL auth.
        return f"{self.base_url}/v1beta/models/{model}:generateContent?key={self.api_key}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def build_payload(self, messages: list[Message], *, json_mode: bool) -> dict[str, Any]:
        system_instruction, non_system = split_system_messages(messages)
        payload: dict[str, Any] = {"contents": _to_gemini_contents(non_system)}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if json_mode and self.supports_json_mode:
            payload["generationConfig"] = {"responseMimeType": "application/json"}
        return payload

    async def complete(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool = False,
        schema: dict[str, Any] | None = None,
    ) -> str:
        client = await self._get_client()
        started = time.perf_counter()
        response = await post_json(
            client,
            self.url_for(model),
            provider=self.provider,
            payload=self.build_payload(messages, json_mode=json_mode),
            headers={"Content-Type": "application/json"},
            logger=logger,
        )
        if response.status_code >= 400:
            raise TransportError(
                self.provider, format_http_error(response), status_code=response.status_code
            )

        data = read_json_envelope(response, provider=self.provider)
        text = dig(data, "candidates", 0, "content", "parts", 0, "text")
        if not isinstance(text, str):
            raise TransportError(
                self.provider,
                "Failed to parse Gemini response content",
                status_code=response.status_code,
            )

        log_llm_call(
            logger,
            provider=self.provider,
            model=model,
            latency_ms=int((time.perf_counter() - started) * 1000),
            json_mode=json_mode,
        )
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GeminiProvider":
        await self._get_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        await self.close()
