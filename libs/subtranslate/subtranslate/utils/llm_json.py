"""Lenient parsing of model output that is supposed to be JSON."""

from __future__ import annotations

import json
import re
from typing import Any, cast

from subtranslate.utils.json_repair import repair_truncated_json

_THINK_BLOCK_RE = re.compile(r"^\s*<think>[\s\S]*?</think>\s*", re.IGNORECASE)
_THINK_TAG_RE = re.compile(r"</?think>\s*", re.IGNORECASE)
_FENCE_RES = (
    re.compile(r"```json\s*([\s\S]*?)\s*```"),
    re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)\s*```"),
)
_OPEN_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*")

JSONData = dict[str, Any] | list[Any]


def strip_llm_wrappers(text: str) -> str:
    """Remove reasoning blocks and Markdown code fences around a reply.

    A reply cut off before its closing fence keeps everything after the
    opening fence.
    """
    text = (text or "").strip()
    text = _THINK_BLOCK_RE.sub("", text).strip()
    text = _THINK_TAG_RE.sub("", text).strip()

    for pattern in _FENCE_RES:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()

    if text.startswith("```"):
        text = _OPEN_FENCE_RE.sub("", text, count=1)
    return text.strip().rstrip("`").strip()


def _as_json_data(data: object, source: str) -> JSONData:
    if isinstance(data, dict):
        return cast(dict[str, Any], data)
    if isinstance(data, list):
        return data
    raise json.JSONDecodeError("Expected a JSON object/array", source, 0)


def parse_llm_json(text: str, *, repair: bool = False) -> JSONData:
    """Parse JSON from LLM output, supporting Markdown code blocks.

    Handles:
    - Plain JSON
    - ```json ... ``` code blocks
    - leading/trailing prose around a single object or array
    - (with `repair=True`) output truncated mid-string/array/object

    Raises:
        json.JSONDecodeError: If JSON parsing fails
    """
    text = strip_llm_wrappers(text)

    first_error: json.JSONDecodeError | None = None
    try:
        return _as_json_data(json.loads(text), text)
    except json.JSONDecodeError as exc:
        first_error = exc

    # Heuristic: extract the first JSON object/array payload from the text.
    starts: list[tuple[int, str]] = []
    for ch in ("{", "["):
        idx = text.find(ch)
        if idx != -1:
            starts.append((idx, ch))
    if not starts:
        raise first_error

    start_idx, start_ch = min(starts, key=lambda x: x[0])
    end_ch = "}" if start_ch == "{" else "]"
    end_idx = text.rfind(end_ch)
    if end_idx > start_idx:
        candidate = text[start_idx : end_idx + 1].strip()
        try:
            return _as_json_data(json.loads(candidate), candidate)
        except json.JSONDecodeError as exc:
            first_error = exc

    if not repair:
        raise first_error

    tail = text[start_idx:]
    try:
        repaired = repair_truncated_json(tail)
        return _as_json_data(json.loads(repaired), repaired)
    except json.JSONDecodeError as exc:
        first_error = exc

    # Drop the incomplete trailing element and close what remains.
    last_close = tail.rfind("}")
    if last_close <= 0:
        raise first_error
    repaired = repair_truncated_json(tail[: last_close + 1])
    return _as_json_data(json.loads(repaired), repaired)
