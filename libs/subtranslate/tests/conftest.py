from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from subtranslate.config import (
    ApiType,
    JsonModeType,
    LLMSettings,
    ProviderConfig,
    Settings,
)
from subtranslate.providers.llm import LLMProvider, Message


@dataclass
class RecordedCall:
    model: str
    messages: list[Message]
    json_mode: bool
    schema: dict[str, Any] | None

    @property
    def prompt(self) -> str:
        return "\n".join(m.content for m in self.messages)


Reply = str | Exception | Callable[[RecordedCall], str]


class ScriptedLLM(LLMProvider):
    """Replays canned replies in order and records every call."""

    def __init__(
        self,
        replies: list[Reply] | None = None,
        *,
        provider_id: str = "fake",
        json_mode_type: JsonModeType = JsonModeType.JSON_OBJECT,
        default: Reply | None = None,
    ) -> None:
        super().__init__(ProviderConfig(id=provider_id, json_mode_type=json_mode_type))
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[RecordedCall] = []
        self.closed = False

    @property
    def supports_json_mode(self) -> bool:
        return self.config.json_mode_type != JsonModeType.NONE

    async def complete(
        self,
        model: str,
        messages: list[Message],
        *,
        json_mode: bool = False,
        schema: dict[str, Any] | None = None,
    ) -> str:
        call = RecordedCall(model=model, messages=list(messages), json_mode=json_mode, schema=schema)
        self.calls.append(call)
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError(f"unexpected llm call #{len(self.calls)}")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(call)
        return reply

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        log_dir=str(tmp_path / "logs"),
        llm=LLMSettings(
            providers=[
                ProviderConfig(
                    id="openai",
                    api_type=ApiType.OPENAI,
                    base_url="https://llm.example.com/v1",
                    api_key="sk-test",
                    json_mode_type=JsonModeType.JSON_SCHEMA,
                ),
                ProviderConfig(
                    id="ollama",
                    api_type=ApiType.OLLAMA,
                    json_mode_type=JsonModeType.JSON_OBJECT,
                ),
                ProviderConfig(id="claude", api_type=ApiType.CLAUDE, api_key="ak-test"),
                ProviderConfig(id="gemini", api_type=ApiType.GEMINI, api_key="gk-test"),
            ]
        ),
    )


@pytest.fixture()
def scripted_llm() -> type[ScriptedLLM]:
    return ScriptedLLM
