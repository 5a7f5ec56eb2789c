"""Segment models flowing through the translation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TranscriptSegment:
    """A time-coded source segment produced upstream by speech recognition."""

    start: int  # centiseconds
    end: int  # centiseconds
    text: str


@dataclass
class TranslatedSegment:
    start: int
    end: int
    original: str
    translated: str

    @classmethod
    def from_source(cls, segment: TranscriptSegment, translated: str) -> TranslatedSegment:
        return cls(
            start=segment.start,
            end=segment.end,
            original=segment.text,
            translated=translated,
        )


@dataclass(frozen=True)
class BatchItem:
    """Provider-agnostic request unit; `id` is local to its window."""

    id: int
    text: str


@dataclass(frozen=True)
class BatchTranslationResponse:
    id: int
    translated_text: str


@dataclass(frozen=True)
class FilterResponse:
    remove_ids: frozenset[int] = field(default_factory=frozenset)
