"""LLM Provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from subtranslate.config import ProviderConfig


@dataclass
class Message:
    """A chat message."""

    role: str  # "system" | "user" | "assistant"
    content: str


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    A provider wraps exactly one `ProviderConfig`; every call is independent
    and the only state kept between calls is the pooled HTTP client.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @property
    def provider(self) -> str:
        return self.config.id

    @property
    @abstractmethod
    def supports_json_mode(self) -> bool:
        """Whether `json_mode=True` changes the request sent to the server."""

    @abstractmethod
    async def complete(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool = False,
        schema: dict[str, Any] | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            model: Model name understood by the provider.
            messages: List of chat messages.
            json_mode: Ask the server to constrain output to JSON when it can.
            schema: JSON schema for servers that accept strict schemas.

        Returns:
            Generated text.

        Raises:
            TransportError: non-2xx status, connection failure or an
                unparseable response envelope.
        """
        ...

    async def close(self) -> None:
        """Close any underlying resources (optional)."""
        return None
