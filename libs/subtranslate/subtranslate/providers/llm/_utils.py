"""Shared utilities for LLM providers."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from subtranslate.error_codes import ErrorCode
from subtranslate.exceptions import TransportError
from subtranslate.providers.llm.base import Message


def format_http_error(response: httpx.Response) -> str:
    status = response.status_code
    reason = response.reason_phrase
    detail = ""
    if response.content:
        detail = response.content.decode("utf-8", errors="replace").strip()
    if detail:
        if len(detail) > 2000:
            detail = detail[:2000] + "…"
        return f"HTTP {status} {reason}: {detail}"
    return f"HTTP {status} {reason}"


def split_system_messages(messages: list[Message]) -> tuple[str | None, list[Message]]:
    system_chunks: list[str] = []
    non_system: list[Message] = []
    for m in messages:
        role = str(m.role or "").strip().lower()
        if role == "system":
            if m.content:
                system_chunks.append(str(m.content))
            continue
        non_system.append(m)
    system = "\n\n".join(system_chunks).strip() if system_chunks else ""
    return (system or None), non_system


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    provider: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    logger: logging.Logger,
) -> httpx.Response:
    """POST a JSON payload, mapping connection failures to `TransportError`.

    Non-2xx responses are returned to the caller, which decides whether the
    body warrants a retry.
    """
    try:
        return await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        logger.warning("llm request timeout (provider=%s): %s", provider, exc)
        raise TransportError(provider, str(exc), error_code=ErrorCode.LLM_TIMEOUT) from exc
    except httpx.TransportError as exc:
        logger.warning("llm request failed (provider=%s): %s", provider, exc)
        raise TransportError(provider, str(exc)) from exc


def read_json_envelope(response: httpx.Response, *, provider: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(
            provider,
            f"unparseable response envelope: {response.text[:200]!r}",
            status_code=response.status_code,
        ) from exc


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None on the first missing step."""
    cur = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(cur, list) or len(cur) <= key:
                return None
            cur = cur[key]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(key)
    return cur


def log_llm_call(
    logger: logging.Logger,
    *,
    provider: str,
    model: str,
    latency_ms: int,
    json_mode: bool,
) -> None:
    logger.info(
        "llm call (provider=%s, model=%s, latency_ms=%s, json_mode=%s)",
        provider,
        model,
        int(latency_ms),
        json_mode,
    )
