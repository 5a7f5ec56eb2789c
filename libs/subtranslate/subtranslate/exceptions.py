"""subtranslate exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from subtranslate.error_codes import ErrorCode

if TYPE_CHECKING:
    from subtranslate.models.segment import TranslatedSegment


class SubTranslateError(Exception):
    """Base error for subtranslate."""


class ConfigurationError(SubTranslateError):
    """Raised when configuration or inputs are invalid."""

    error_code = ErrorCode.CONFIG_INVALID


class ProviderError(SubTranslateError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code


class TransportError(ProviderError):
    """Non-2xx response, connection failure or unparseable response envelope."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        error_code: ErrorCode | str | None = ErrorCode.LLM_FAILED,
    ) -> None:
        super().__init__(provider, message, error_code=error_code)
        self.status_code = status_code


class LocalTranslationError(ProviderError):
    """The on-device translation capability reported an error."""

    def __init__(self, message: str) -> None:
        super().__init__("local", message, error_code=ErrorCode.LOCAL_TRANSLATION_FAILED)


class DecodeError(SubTranslateError, ValueError):
    """A model reply could not be decoded (recovered locally, never fatal)."""


class FilterDecodeError(DecodeError):
    """A filter reply could not be decoded (recovered by keeping every item)."""


class StageExecutionError(SubTranslateError):
    """Raised when a window fails with an unrecoverable error."""

    def __init__(
        self,
        stage: str,
        message: str,
        *,
        window_index: int | None = None,
        provider_id: str | None = None,
        error_code: ErrorCode | str | None = None,
        partial_output: list[TranslatedSegment] | None = None,
    ) -> None:
        prefix = f"{stage}"
        details: list[str] = []
        if window_index is not None:
            details.append(f"window={window_index}")
        if provider_id:
            details.append(f"provider={provider_id}")
        if details:
            prefix = f"{prefix} ({', '.join(details)})"
        super().__init__(f"{prefix}: {message}")
        self.stage = stage
        self.window_index = window_index
        self.provider_id = provider_id
        self.message = message
        self.error_code = error_code
        self.partial_output: list[TranslatedSegment] = list(partial_output or [])
