"""Anthropic (Claude) provider using the official SDK."""

from __future__ import annotations

import logging
import time
from typing import Any

import anthropic
import httpx

from subtranslate.config import ProviderConfig
from subtranslate.error_codes import ErrorCode
from subtranslate.exceptions import TransportError
from subtranslate.providers.llm._utils import log_llm_call, split_system_messages
from subtranslate.providers.llm.base import LLMProvider, Message

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"
DEFAULT_MAX_TOKENS = 4096


def _to_anthropic_messages(messages: list[Message]) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for m in messages:
        role = str(m.role or "").strip().lower()
        if role not in {"user", "assistant"}:
            role = "user"
        out.append({"role": role, "content": str(m.content or "")})
    return out


def _first_text_block(message: Any) -> str | None:
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str):
            return block.text
    return None


class AnthropicProvider(LLMProvider):
    """Claude messages endpoint; no server-side JSON mode negotiation."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        timeout: float = 120.0,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        # SDK expects the base url without /v1.
        resolved = str(config.base_url or "").strip().rstrip("/")
        if resolved.endswith("/v1"):
            resolved = resolved[:-3]
        self.base_url = resolved or DEFAULT_ANTHROPIC_BASE_URL
        self.api_key = str(config.api_key or "").strip()
        self.max_tokens = int(max_tokens)
        self.timeout = float(timeout)
        self._http_client = http_client
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def supports_json_mode(self) -> bool:
        return False

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                # The only automatic retry lives in the OpenAI-compatible provider.
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    def build_request(self, model: str, messages: list[Message]) -> dict[str, Any]:
        system, non_system = split_system_messages(messages)
        request: dict[str, Any] = {
            "model": model,
            "messages": _to_anthropic_messages(non_system),
            "max_tokens": self.max_tokens,
        }
        if system:
            request["system"] = system
        return request

    async def complete(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool = False,
        schema: dict[str, Any] | None = None,
    ) -> str:
        client = self._get_client()
        started = time.perf_counter()
        try:
            message = await client.messages.create(**self.build_request(model, messages))
        except anthropic.APITimeoutError as exc:
            logger.warning("llm request timeout (provider=%s): %s", self.provider, exc)
            raise TransportError(self.provider, str(exc), error_code=ErrorCode.LLM_TIMEOUT) from exc
        except anthropic.APIConnectionError as exc:
            logger.warning("llm connection error (provider=%s): %s", self.provider, exc)
            raise TransportError(self.provider, str(exc)) from exc
        except anthropic.APIStatusError as exc:
            logger.warning("llm request failed (provider=%s): %s", self.provider, exc)
            raise TransportError(self.provider, str(exc), status_code=exc.status_code) from exc
        except anthropic.APIError as exc:
            raise TransportError(self.provider, f"unparseable response envelope: {exc}") from exc

        text = _first_text_block(message)
        if text is None:
            raise TransportError(self.provider, "Failed to parse Claude response content")

        log_llm_call(
            logger,
            provider=self.provider,
            model=model,
            latency_ms=int((time.perf_counter() - started) * 1000),
            json_mode=False,
        )
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        elif self._http_client is not None:
            await self._http_client.aclose()
        self._http_client = None

    async def __aenter__(self) -> "AnthropicProvider":
        self._get_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        await self.close()
