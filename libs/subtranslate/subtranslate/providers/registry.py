"""Provider factory and registry."""

from __future__ import annotations

from subtranslate.config import ApiType, ProviderConfig, Settings
from subtranslate.exceptions import ConfigurationError
from subtranslate.providers.llm.base import LLMProvider


def get_llm_provider(config: ProviderConfig, settings: Settings | None = None) -> LLMProvider:
    """Build the provider variant matching `config.api_type`."""
    timeout = float(settings.llm.request_timeout_s) if settings is not None else 120.0

    match config.api_type:
        case ApiType.OPENAI | ApiType.OLLAMA:
            from subtranslate.providers.llm.openai_compat import OpenAICompatProvider

            return OpenAICompatProvider(config, timeout=timeout)
        case ApiType.CLAUDE:
            from subtranslate.providers.llm.anthropic import AnthropicProvider

            max_tokens = int(settings.llm.max_tokens) if settings is not None else 4096
            return AnthropicProvider(config, timeout=timeout, max_tokens=max_tokens)
        case ApiType.GEMINI:
            from subtranslate.providers.llm.gemini import GeminiProvider

            return GeminiProvider(config, timeout=timeout)
        case _:
            raise ConfigurationError(f"Unknown LLM api_type: {config.api_type!r}")
