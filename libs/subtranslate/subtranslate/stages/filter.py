"""Filter stage: drop segments that match configured removal conditions."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from subtranslate.codecs import coerce_id
from subtranslate.config import FilterConfig
from subtranslate.exceptions import FilterDecodeError
from subtranslate.models.segment import BatchItem, FilterResponse, TranslatedSegment
from subtranslate.providers.llm import LLMProvider, Message
from subtranslate.utils.llm_json import parse_llm_json

logger = logging.getLogger(__name__)

FILTER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "remove_ids": {
            "type": "array",
            "items": {"type": "integer"},
        }
    },
    "required": ["remove_ids"],
    "additionalProperties": False,
}


def parse_filter_response(raw: str, *, window_len: int) -> FilterResponse:
    """Decode `{"remove_ids": [...]}`; ids outside the window are ignored.

    Raises:
        FilterDecodeError: the reply is not an object with a `remove_ids` list.
    """
    try:
        data = parse_llm_json(raw)
    except json.JSONDecodeError as exc:
        raise FilterDecodeError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("remove_ids"), list):
        raise FilterDecodeError("Expected an object with a 'remove_ids' list")

    ids: set[int] = set()
    for raw_id in data["remove_ids"]:
        seg_id = coerce_id(raw_id)
        if seg_id is not None and 0 <= seg_id < window_len:
            ids.add(seg_id)
    return FilterResponse(remove_ids=frozenset(ids))


class FilterStage:
    name = "filter"

    def __init__(
        self,
        conditions: Sequence[FilterConfig],
        llm: LLMProvider,
        model: str,
    ) -> None:
        self.conditions = list(conditions)
        self.llm = llm
        self.model = model
        self.provider_id = llm.provider

    @property
    def enabled(self) -> bool:
        return bool(self.conditions)

    def _get_prompt(self, items: Sequence[BatchItem]) -> str:
        lines = [
            f"{i}. {cond.prompt} (Confidence Threshold: {cond.threshold})"
            for i, cond in enumerate(self.conditions, start=1)
        ]
        payload = json.dumps([{"id": it.id, "text": it.text} for it in items], ensure_ascii=False)
        return (
            "You are a content filter. Analyze the following JSON list of texts and identify "
            "items that should be removed based on the following instructions:\n"
            + "\n".join(lines)
            + "\nFor each item, if it matches ANY of the instructions with a confidence score "
            "higher than the specified threshold, mark it for removal.\n"
            'Return the IDs of items to remove in JSON format: { "remove_ids": [0, 2, ...] }. '
            "Output ONLY the JSON.\n\n"
            f"Input JSON:\n{payload}"
        )

    async def run(self, segments: Sequence[TranslatedSegment]) -> list[TranslatedSegment]:
        if not segments or not self.enabled:
            return list(segments)

        items = [BatchItem(id=i, text=seg.translated) for i, seg in enumerate(segments)]
        raw = await self.llm.complete(
            self.model,
            [Message(role="user", content=self._get_prompt(items))],
            json_mode=True,
            schema=FILTER_SCHEMA,
        )
        try:
            decision = parse_filter_response(raw, window_len=len(segments))
        except FilterDecodeError as exc:
            logger.warning("filter decode failed, keeping all %d items: %s", len(segments), exc)
            return list(segments)

        if decision.remove_ids:
            logger.info(
                "filter removed ids=%s (items=%d)", sorted(decision.remove_ids), len(segments)
            )
        return [seg for i, seg in enumerate(segments) if i not in decision.remove_ids]
