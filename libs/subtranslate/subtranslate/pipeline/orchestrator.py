"""Window-by-window translation orchestrator."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from subtranslate.error_codes import ErrorCode
from subtranslate.exceptions import ProviderError, StageExecutionError
from subtranslate.models.segment import TranscriptSegment, TranslatedSegment
from subtranslate.pipeline.progress import ProgressReporter
from subtranslate.providers.llm.base import LLMProvider
from subtranslate.stages import (
    SUMMARY_SENTINEL,
    EditStage,
    FilterStage,
    SummaryStage,
    TranslateStage,
)
from subtranslate.utils.windowing import Window, iter_windows

logger = logging.getLogger(__name__)


class WindowState(str, Enum):
    TRANSLATE = "translate"
    EDIT = "edit"
    FILTER = "filter"
    SUMMARIZE = "summarize"
    APPENDED = "appended"


@dataclass
class WindowResult:
    index: int
    segments: list[TranslatedSegment]
    summary: str
    states: list[WindowState] = field(default_factory=list)


@dataclass
class TranslationRunResult:
    segments: list[TranslatedSegment]
    summary: str
    windows: int


class TranslationPipeline:
    """Runs Translate, Edit, Filter and Summarize over each window in order.

    Windows are strictly sequential: the summary produced by window k is part
    of window k+1's translate prompt. The summary is passed explicitly through
    `process_window` and never stored on the pipeline.
    """

    def __init__(
        self,
        *,
        translate: TranslateStage,
        target_lang: str,
        window_size: int,
        edit: EditStage | None = None,
        filter: FilterStage | None = None,  # noqa: A002
        summarizer: SummaryStage | None = None,
        providers: Sequence[LLMProvider] = (),
    ) -> None:
        self.translate = translate
        self.target_lang = target_lang
        self.window_size = int(window_size)
        self.edit = edit if edit is not None and edit.enabled else None
        self.filter = filter if filter is not None and filter.enabled else None
        self.summarizer = summarizer
        self._providers = list(providers)

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()

    async def __aenter__(self) -> "TranslationPipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _stage_provider(self, state: WindowState) -> str | None:
        match state:
            case WindowState.TRANSLATE:
                return self.translate.backend.provider_id
            case WindowState.EDIT:
                return self.edit.provider_id if self.edit else None
            case WindowState.FILTER:
                return self.filter.provider_id if self.filter else None
            case WindowState.SUMMARIZE:
                return self.summarizer.provider_id if self.summarizer else None
            case _:
                return None

    def _estimate_prompt_tokens(self, window: Window, summary: str) -> int | None:
        # Diagnostics only; tiktoken may need to fetch its encoding on first use.
        try:
            return self.translate.backend.estimate_prompt_tokens(
                window.batch_items(), target_lang=self.target_lang, summary=summary
            )
        except Exception as exc:
            logger.debug("prompt token estimate failed (index=%d): %s", window.index, exc)
            return None

    async def process_window(self, window: Window, summary: str) -> WindowResult:
        """Run one window through every configured stage.

        Returns the window's output segments and the summary to hand to the
        next window.
        """
        result = WindowResult(index=window.index, segments=[], summary=summary)
        state = WindowState.TRANSLATE
        try:
            result.states.append(state)
            segments = await self.translate.run(
                window, target_lang=self.target_lang, summary=summary
            )

            if self.edit is not None:
                state = WindowState.EDIT
                result.states.append(state)
                segments = await self.edit.run(segments, target_lang=self.target_lang)

            if self.filter is not None:
                state = WindowState.FILTER
                result.states.append(state)
                segments = await self.filter.run(segments)

            if self.summarizer is not None:
                state = WindowState.SUMMARIZE
                result.states.append(state)
                summary = await self.summarizer.run(summary, segments)
        except ProviderError as exc:
            raise StageExecutionError(
                state.value,
                exc.message,
                window_index=window.index,
                provider_id=exc.provider or self._stage_provider(state),
                error_code=exc.error_code or ErrorCode.UNKNOWN,
            ) from exc
        except Exception as exc:
            raise StageExecutionError(
                state.value,
                f"{type(exc).__name__}: {exc}",
                window_index=window.index,
                provider_id=self._stage_provider(state),
                error_code=ErrorCode.UNKNOWN,
            ) from exc

        result.segments = segments
        result.summary = summary
        result.states.append(WindowState.APPENDED)
        return result

    async def run(
        self,
        segments: Sequence[TranscriptSegment],
        *,
        progress_reporter: ProgressReporter | None = None,
    ) -> TranslationRunResult:
        total = len(segments)
        output: list[TranslatedSegment] = []
        summary = SUMMARY_SENTINEL
        completed = 0
        windows = 0

        for window in iter_windows(segments, self.window_size):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "window start (index=%d, size=%d, est_prompt_tokens=%s)",
                    window.index,
                    len(window),
                    self._estimate_prompt_tokens(window, summary),
                )
            started = time.monotonic()
            try:
                result = await self.process_window(window, summary)
            except StageExecutionError as exc:
                exc.partial_output = list(output)
                logger.error(
                    "window failed (index=%d, stage=%s, provider=%s, kept=%d): %s",
                    window.index,
                    exc.stage,
                    exc.provider_id,
                    len(output),
                    exc.message,
                )
                raise

            output.extend(result.segments)
            summary = result.summary
            completed += len(window)
            windows += 1
            logger.info(
                "window done (index=%d, size=%d, kept=%d, elapsed_ms=%d)",
                window.index,
                len(window),
                len(result.segments),
                int((time.monotonic() - started) * 1000),
            )
            if progress_reporter is not None:
                await progress_reporter.report(
                    completed, total, f"window {window.index + 1} done"
                )

        return TranslationRunResult(segments=output, summary=summary, windows=windows)
