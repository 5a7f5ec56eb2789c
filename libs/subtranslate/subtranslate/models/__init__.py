"""Core data models for subtranslate."""

from subtranslate.models.segment import (
    BatchItem,
    BatchTranslationResponse,
    FilterResponse,
    TranscriptSegment,
    TranslatedSegment,
)

__all__ = [
    "BatchItem",
    "BatchTranslationResponse",
    "FilterResponse",
    "TranscriptSegment",
    "TranslatedSegment",
]
