"""Canonical error codes attached to fatal pipeline errors."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    CONFIG_INVALID = "CONFIG_INVALID"

    LLM_FAILED = "LLM_FAILED"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LOCAL_TRANSLATION_FAILED = "LOCAL_TRANSLATION_FAILED"
