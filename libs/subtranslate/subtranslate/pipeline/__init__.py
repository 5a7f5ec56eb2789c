"""Pipeline orchestration."""

from subtranslate.pipeline.factory import create_translation_pipeline
from subtranslate.pipeline.orchestrator import (
    TranslationPipeline,
    TranslationRunResult,
    WindowResult,
    WindowState,
)
from subtranslate.pipeline.progress import LoggingProgressReporter, ProgressReporter

__all__ = [
    "LoggingProgressReporter",
    "ProgressReporter",
    "TranslationPipeline",
    "TranslationRunResult",
    "WindowResult",
    "WindowState",
    "create_translation_pipeline",
]
