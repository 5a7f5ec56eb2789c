"""Translation stage: one request per window, rolling summary in the prompt."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from subtranslate.codecs import BatchCodec
from subtranslate.models.segment import BatchItem, BatchTranslationResponse, TranslatedSegment
from subtranslate.providers.llm import LLMProvider, Message
from subtranslate.providers.local import LocalTranslator
from subtranslate.utils.tokenizer import estimate_prompt_tokens
from subtranslate.utils.windowing import Window

logger = logging.getLogger(__name__)

SUMMARY_SENTINEL = "No context yet."


class TranslationBackend(ABC):
    """Produces one response per item for a window of source texts."""

    name: str
    provider_id: str | None = None

    @abstractmethod
    async def translate_batch(
        self,
        items: Sequence[BatchItem],
        *,
        target_lang: str,
        summary: str,
    ) -> list[BatchTranslationResponse]: ...

    def estimate_prompt_tokens(
        self,
        items: Sequence[BatchItem],  # noqa: ARG002
        *,
        target_lang: str,  # noqa: ARG002
        summary: str,  # noqa: ARG002
    ) -> int | None:
        return None


class LLMTranslationBackend(TranslationBackend):
    name = "llm"

    def __init__(
        self,
        llm: LLMProvider,
        model: str,
        codec: BatchCodec,
        *,
        system_prompt_prefix: str = "",
    ) -> None:
        self.llm = llm
        self.model = model
        self.codec = codec
        self.system_prompt_prefix = str(system_prompt_prefix or "")
        self.provider_id = llm.provider

    def _get_system_prompt(self, target_lang: str) -> str:
        prefix = self.system_prompt_prefix
        if prefix and not prefix.endswith((" ", "\n")):
            prefix += "\n"
        return (
            f"{prefix}You are a professional video subtitle translator. "
            f"Translate every item of the following input into {target_lang}. "
            "Keep one output entry per input entry. "
            "Use the provided summary to ensure natural flow and correct tone. "
            f"{self.codec.output_instructions()}"
        )

    def _get_user_input(self, items: Sequence[BatchItem], summary: str) -> str:
        return (
            f"Summary of previous conversation: {summary}\n\n"
            f"{self.codec.input_label}:\n{self.codec.encode(items)}"
        )

    def build_messages(
        self,
        items: Sequence[BatchItem],
        *,
        target_lang: str,
        summary: str,
    ) -> list[Message]:
        return [
            Message(role="system", content=self._get_system_prompt(target_lang)),
            Message(role="user", content=self._get_user_input(items, summary)),
        ]

    def estimate_prompt_tokens(
        self,
        items: Sequence[BatchItem],
        *,
        target_lang: str,
        summary: str,
    ) -> int | None:
        return estimate_prompt_tokens(
            self._get_system_prompt(target_lang), self._get_user_input(items, summary)
        )

    async def translate_batch(
        self,
        items: Sequence[BatchItem],
        *,
        target_lang: str,
        summary: str,
    ) -> list[BatchTranslationResponse]:
        messages = self.build_messages(items, target_lang=target_lang, summary=summary)
        raw = await self.llm.complete(
            self.model,
            messages,
            json_mode=self.codec.json_mode,
            schema=self.codec.schema,
        )
        return self.codec.resolve(raw, items)


class LocalTranslationBackend(TranslationBackend):
    """Per-item on-device translation; no batching and no summary."""

    name = "local"

    def __init__(self, translator: LocalTranslator, *, source_lang: str | None = None) -> None:
        self.translator = translator
        self.source_lang = source_lang

    async def translate_batch(
        self,
        items: Sequence[BatchItem],
        *,
        target_lang: str,
        summary: str,  # noqa: ARG002
    ) -> list[BatchTranslationResponse]:
        out: list[BatchTranslationResponse] = []
        for item in items:
            if not item.text:
                out.append(BatchTranslationResponse(id=item.id, translated_text=""))
                continue
            text = await self.translator.translate(item.text, target_lang, self.source_lang)
            out.append(BatchTranslationResponse(id=item.id, translated_text=text))
        return out


class TranslateStage:
    """Translate a window, preserving one output segment per input segment."""

    name = "translate"

    def __init__(self, backend: TranslationBackend) -> None:
        self.backend = backend

    async def run(
        self,
        window: Window,
        *,
        target_lang: str,
        summary: str,
    ) -> list[TranslatedSegment]:
        items = window.batch_items()
        responses = await self.backend.translate_batch(
            items, target_lang=target_lang, summary=summary
        )

        by_id: dict[int, str] = {}
        for resp in responses:
            by_id.setdefault(resp.id, resp.translated_text)

        # Walk the window, not the responses, so the output length is fixed.
        return [
            TranslatedSegment.from_source(seg, by_id.get(i, seg.text))
            for i, seg in enumerate(window.segments)
        ]
