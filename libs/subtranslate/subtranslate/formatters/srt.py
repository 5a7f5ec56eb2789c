"""SRT subtitle formatter."""

from __future__ import annotations

from collections.abc import Sequence

from subtranslate.formatters.base import SubtitleFormatter
from subtranslate.models.segment import TranslatedSegment


def _format_srt_timestamp(centiseconds: int) -> str:
    if centiseconds < 0:
        centiseconds = 0
    total_ms = int(centiseconds) * 10
    ms = total_ms % 1000
    total_s = total_ms // 1000
    s = total_s % 60
    total_m = total_s // 60
    m = total_m % 60
    h = total_m // 60
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


class SRTFormatter(SubtitleFormatter):
    extension = "srt"

    def format(self, segments: Sequence[TranslatedSegment]) -> str:
        lines: list[str] = []
        for index, seg in enumerate(segments, start=1):
            lines.append(str(index))
            lines.append(f"{_format_srt_timestamp(seg.start)} --> {_format_srt_timestamp(seg.end)}")
            lines.append(seg.translated.strip())
            lines.append("")
        if not lines:
            return ""
        return "\n".join(lines).rstrip() + "\n"


def format_srt(segments: Sequence[TranslatedSegment]) -> str:
    return SRTFormatter().format(segments)
