"""Output formatters."""

from subtranslate.formatters.base import SubtitleFormatter
from subtranslate.formatters.json_format import JSONFormatter, format_translation_json
from subtranslate.formatters.srt import SRTFormatter, format_srt

__all__ = [
    "JSONFormatter",
    "SRTFormatter",
    "SubtitleFormatter",
    "format_srt",
    "format_translation_json",
]
