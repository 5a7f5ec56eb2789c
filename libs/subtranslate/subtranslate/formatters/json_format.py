"""JSON translation output."""

from __future__ import annotations

import json
from collections.abc import Sequence

from subtranslate.formatters.base import SubtitleFormatter
from subtranslate.models.segment import TranslatedSegment


class JSONFormatter(SubtitleFormatter):
    extension = "translation.json"

    def format(self, segments: Sequence[TranslatedSegment]) -> str:
        payload = [
            {
                "start": seg.start,
                "end": seg.end,
                "original": seg.original,
                "translated": seg.translated,
            }
            for seg in segments
        ]
        return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def format_translation_json(segments: Sequence[TranslatedSegment]) -> str:
    return JSONFormatter().format(segments)
