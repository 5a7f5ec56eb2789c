"""LLM Provider implementations."""

from __future__ import annotations

from subtranslate.providers.llm.anthropic import AnthropicProvider
from subtranslate.providers.llm.base import LLMProvider, Message
from subtranslate.providers.llm.gemini import GeminiProvider
from subtranslate.providers.llm.openai_compat import OpenAICompatProvider

__all__ = ["AnthropicProvider", "GeminiProvider", "LLMProvider", "Message", "OpenAICompatProvider"]
