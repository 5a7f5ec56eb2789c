"""Provider abstractions for external services."""

from subtranslate.providers.local import CallableLocalTranslator, LocalTranslator
from subtranslate.providers.registry import get_llm_provider

__all__ = ["CallableLocalTranslator", "LocalTranslator", "get_llm_provider"]
