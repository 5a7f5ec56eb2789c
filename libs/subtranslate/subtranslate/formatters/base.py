"""Subtitle formatter base."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from subtranslate.models.segment import TranslatedSegment


class SubtitleFormatter(ABC):
    extension: str

    @abstractmethod
    def format(self, segments: Sequence[TranslatedSegment]) -> str:
        ...
