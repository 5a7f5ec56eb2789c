"""Batch protocol codecs.

A codec turns a window's `BatchItem`s into the text placed in a prompt and
turns the model's reply back into `{id: text}`. All variants carry the same
information and share one fallback policy (see `BatchCodec.resolve`), so the
stages never branch on the wire format.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from subtranslate.config import CodecKind, JsonModeType, ProviderConfig
from subtranslate.exceptions import DecodeError
from subtranslate.models.segment import BatchItem, BatchTranslationResponse
from subtranslate.utils.llm_json import parse_llm_json, strip_llm_wrappers

logger = logging.getLogger(__name__)

_TEXT_KEYS = ("translated_text", "text", "translation")
_TAGGED_LINE_RE = re.compile(r"^\s*\[(\d+)\]\s?(.*)$")

TRANSLATIONS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "translations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "translated_text": {"type": "string"},
                },
                "required": ["id", "translated_text"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["translations"],
    "additionalProperties": False,
}


def _single_line(text: str) -> str:
    return " ".join(str(text or "").splitlines()).strip()


def coerce_id(raw: object) -> int | None:
    """Integer id from a model reply; fractional or non-numeric ids are rejected."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None


class BatchCodec(ABC):
    """Encode/decode strategy for one window of items."""

    kind: CodecKind
    json_mode: bool = False
    schema: dict[str, Any] | None = None
    input_label: str = "Input"

    @abstractmethod
    def output_instructions(self) -> str:
        """Sentence(s) telling the model how to lay out its reply."""

    @abstractmethod
    def encode(self, items: Sequence[BatchItem]) -> str: ...

    @abstractmethod
    def decode(self, raw: str, items: Sequence[BatchItem]) -> dict[int, str]:
        """Return the ids the reply resolved; raise `DecodeError` if nothing is usable."""

    def missing_text(self, item: BatchItem) -> str:
        """Text for an item the reply did not resolve (identity fallback)."""
        return item.text

    def resolve(
        self,
        raw: str,
        items: Sequence[BatchItem],
        *,
        fallback: Callable[[BatchItem], str] | None = None,
    ) -> list[BatchTranslationResponse]:
        """Decode `raw` into exactly one response per item, in item order."""
        try:
            decoded = self.decode(raw, items)
        except DecodeError as exc:
            logger.warning(
                "%s decode failed, using identity fallback (items=%d): %s",
                self.kind.value,
                len(items),
                exc,
            )
            return [
                BatchTranslationResponse(
                    id=item.id,
                    translated_text=fallback(item) if fallback is not None else item.text,
                )
                for item in items
            ]

        missing = [item.id for item in items if item.id not in decoded]
        if missing:
            logger.warning(
                "%s reply missing ids=%s (items=%d)", self.kind.value, missing, len(items)
            )

        out: list[BatchTranslationResponse] = []
        for item in items:
            if item.id in decoded:
                text = decoded[item.id]
            elif fallback is not None:
                text = fallback(item)
            else:
                text = self.missing_text(item)
            out.append(BatchTranslationResponse(id=item.id, translated_text=text))
        return out


class _JSONCodec(BatchCodec):
    input_label = "Input JSON"

    def encode(self, items: Sequence[BatchItem]) -> str:
        return json.dumps([{"id": it.id, "text": it.text} for it in items], ensure_ascii=False)

    def decode(self, raw: str, items: Sequence[BatchItem]) -> dict[int, str]:
        try:
            data = parse_llm_json(raw, repair=True)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"Invalid JSON: {exc}") from exc

        entries: list[Any] | None = None
        if isinstance(data, list):
            entries = data
        else:
            candidate = data.get("translations")
            if isinstance(candidate, list):
                entries = candidate
            else:
                entries = next((v for v in data.values() if isinstance(v, list)), None)
        if entries is None:
            raise DecodeError(f"Expected a JSON array of translations, got keys={sorted(data)}")

        valid_ids = {item.id for item in items}
        out: dict[int, str] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            seg_id = coerce_id(entry.get("id"))
            if seg_id is None or seg_id not in valid_ids or seg_id in out:
                continue
            text = next((entry[k] for k in _TEXT_KEYS if isinstance(entry.get(k), str)), None)
            if text is None:
                continue
            out[seg_id] = text.strip()
        return out


class JSONSchemaCodec(_JSONCodec):
    """Structured JSON with server-side schema enforcement."""

    kind = CodecKind.JSON_SCHEMA
    json_mode = True
    schema = TRANSLATIONS_SCHEMA

    def output_instructions(self) -> str:
        return (
            "Output ONLY a JSON object of the form "
            '{"translations": [{"id": 0, "translated_text": "..."}, ...]} '
            "with exactly one entry per input id."
        )


class JSONArrayCodec(_JSONCodec):
    """Best-effort JSON array, no schema enforcement."""

    kind = CodecKind.JSON_ARRAY

    def output_instructions(self) -> str:
        return (
            "Maintain the JSON structure with the same 'id' for each item. "
            'Output ONLY the JSON response: [{"id": 0, "translated_text": "..."}, ...]'
        )


class TaggedLinesCodec(BatchCodec):
    """One line per item, prefixed with its bracketed id: `[3] text`."""

    kind = CodecKind.TAGGED_LINES
    input_label = "Input Lines"

    def output_instructions(self) -> str:
        return (
            "Output one line per input line, starting with the same bracketed id, "
            "e.g. `[3] text`. Output ONLY those lines."
        )

    def encode(self, items: Sequence[BatchItem]) -> str:
        return "\n".join(f"[{it.id}] {_single_line(it.text)}" for it in items)

    def decode(self, raw: str, items: Sequence[BatchItem]) -> dict[int, str]:
        valid_ids = {item.id for item in items}
        out: dict[int, str] = {}
        matched = False
        for line in strip_llm_wrappers(raw).splitlines():
            match = _TAGGED_LINE_RE.match(line)
            if not match:
                continue
            matched = True
            seg_id = int(match.group(1))
            if seg_id in valid_ids and seg_id not in out:
                out[seg_id] = match.group(2).strip()
        if not matched and items:
            raise DecodeError("No `[id] text` lines found in reply")
        return out


class PlainLinesCodec(BatchCodec):
    """One line per item with no id markers; alignment is by line order."""

    kind = CodecKind.PLAIN_LINES
    input_label = "Input Text"

    def output_instructions(self) -> str:
        return (
            "The input is a list of sentences separated by newlines. "
            "You must maintain the exact line-by-line correspondence: line N of the output "
            "must correspond to line N of the input. Do not merge, split, or reorder lines. "
            "Output ONLY the resulting lines, no other comments or explanations."
        )

    def encode(self, items: Sequence[BatchItem]) -> str:
        return "\n".join(_single_line(it.text) for it in items)

    def decode(self, raw: str, items: Sequence[BatchItem]) -> dict[int, str]:
        """Align reply lines to items by position.

        A short reply leaves the trailing items unresolved, and `missing_text`
        turns them into "". A reply with no lines at all is a total decode
        failure and takes the identity fallback, the same as unparseable JSON.
        """
        lines = strip_llm_wrappers(raw).splitlines()
        if not lines and items:
            raise DecodeError("Empty reply")
        return {item.id: lines[pos].strip() for pos, item in enumerate(items) if pos < len(lines)}

    def missing_text(self, item: BatchItem) -> str:
        # A short reply cannot be re-aligned to the higher positions.
        return ""


_CODECS: dict[CodecKind, type[BatchCodec]] = {
    CodecKind.JSON_SCHEMA: JSONSchemaCodec,
    CodecKind.JSON_ARRAY: JSONArrayCodec,
    CodecKind.TAGGED_LINES: TaggedLinesCodec,
    CodecKind.PLAIN_LINES: PlainLinesCodec,
}


def get_codec(kind: CodecKind | str) -> BatchCodec:
    return _CODECS[CodecKind(kind)]()


def select_codec(kind: CodecKind | str | None, provider: ProviderConfig) -> BatchCodec:
    """Use the configured codec, or the strongest one the provider declares."""
    if kind is not None:
        return get_codec(kind)
    if provider.json_mode_type == JsonModeType.JSON_SCHEMA:
        return JSONSchemaCodec()
    return JSONArrayCodec()
