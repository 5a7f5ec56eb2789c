"""Per-window processing stages."""

from subtranslate.stages.edit import EditStage
from subtranslate.stages.filter import FilterStage
from subtranslate.stages.summary import SummaryStage
from subtranslate.stages.translate import (
    SUMMARY_SENTINEL,
    LLMTranslationBackend,
    LocalTranslationBackend,
    TranslateStage,
    TranslationBackend,
)

__all__ = [
    "SUMMARY_SENTINEL",
    "EditStage",
    "FilterStage",
    "LLMTranslationBackend",
    "LocalTranslationBackend",
    "SummaryStage",
    "TranslateStage",
    "TranslationBackend",
]
