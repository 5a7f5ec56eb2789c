"""Utility helpers."""

from subtranslate.utils.llm_json import parse_llm_json, strip_llm_wrappers
from subtranslate.utils.tokenizer import count_tokens, estimate_prompt_tokens
from subtranslate.utils.windowing import Window, iter_windows

__all__ = [
    "Window",
    "count_tokens",
    "estimate_prompt_tokens",
    "iter_windows",
    "parse_llm_json",
    "strip_llm_wrappers",
]
