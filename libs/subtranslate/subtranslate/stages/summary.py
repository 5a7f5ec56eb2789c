"""Rolling summary update after each window."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from subtranslate.models.segment import TranslatedSegment
from subtranslate.providers.llm import LLMProvider, Message

logger = logging.getLogger(__name__)


class SummaryStage:
    name = "summarize"

    def __init__(self, llm: LLMProvider, model: str) -> None:
        self.llm = llm
        self.model = model
        self.provider_id = llm.provider

    @staticmethod
    def _get_prompt(summary: str, segments: Sequence[TranslatedSegment]) -> str:
        recent_text = " ".join(seg.translated for seg in segments)
        return (
            "Update the summary of the conversation based on the new text.\n"
            f"Old Summary: {summary}\n"
            f"New Text: {recent_text}\n"
            "Output ONLY the updated summary in one or two sentences."
        )

    async def run(self, summary: str, segments: Sequence[TranslatedSegment]) -> str:
        """Return the summary to embed in the next window's prompt."""
        if not segments:
            return summary
        reply = await self.llm.complete(
            self.model,
            [Message(role="user", content=self._get_prompt(summary, segments))],
        )
        updated = str(reply or "").strip()
        if not updated:
            logger.warning("summary update returned empty text, keeping previous summary")
            return summary
        return updated
