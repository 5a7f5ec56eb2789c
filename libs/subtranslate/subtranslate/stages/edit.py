"""Edit stage: restyle an already-translated window without re-translating."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from subtranslate.codecs import BatchCodec
from subtranslate.models.segment import BatchItem, TranslatedSegment
from subtranslate.providers.llm import LLMProvider, Message

logger = logging.getLogger(__name__)


class EditStage:
    name = "edit"

    def __init__(
        self,
        llm: LLMProvider,
        model: str,
        codec: BatchCodec,
        *,
        directive: str,
    ) -> None:
        self.llm = llm
        self.model = model
        self.codec = codec
        self.directive = str(directive or "").strip()
        self.provider_id = llm.provider

    @property
    def enabled(self) -> bool:
        return bool(self.directive)

    def _get_system_prompt(self, target_lang: str) -> str:
        return (
            "You are a professional editor. Refine the following translated sentences "
            "based on these instructions:\n"
            f"Target Language: {target_lang}\n"
            f"Instructions:\n{self.directive}\n"
            "DO NOT TRANSLATE THE TEXT. JUST EDIT THE TEXT BASED ON THE INSTRUCTIONS.\n"
            "Edit each item one by one. Item N of the output must be the edited version of "
            "item N of the input. Do not merge, split, or reorder items.\n"
            f"{self.codec.output_instructions()}"
        )

    def build_messages(self, items: Sequence[BatchItem], *, target_lang: str) -> list[Message]:
        return [
            Message(role="system", content=self._get_system_prompt(target_lang)),
            Message(
                role="user",
                content=f"{self.codec.input_label}:\n{self.codec.encode(items)}",
            ),
        ]

    async def run(
        self,
        segments: Sequence[TranslatedSegment],
        *,
        target_lang: str,
    ) -> list[TranslatedSegment]:
        if not segments or not self.enabled:
            return list(segments)

        items = [BatchItem(id=i, text=seg.translated) for i, seg in enumerate(segments)]
        raw = await self.llm.complete(
            self.model,
            self.build_messages(items, target_lang=target_lang),
            json_mode=self.codec.json_mode,
            schema=self.codec.schema,
        )
        # Unresolved positions keep the prior translation, whatever the codec.
        responses = self.codec.resolve(raw, items, fallback=lambda item: item.text)
        return [
            dataclasses.replace(seg, translated=resp.translated_text)
            for seg, resp in zip(segments, responses)
        ]
