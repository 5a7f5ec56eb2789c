"""On-device translation capability reached through a platform bridge.

The bridge itself lives outside this package; the pipeline only needs an
object that satisfies `LocalTranslator`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from subtranslate.exceptions import LocalTranslationError

logger = logging.getLogger(__name__)

BridgeFunc = Callable[[str, str | None, str], "str | Awaitable[str]"]


@runtime_checkable
class LocalTranslator(Protocol):
    async def translate(self, text: str, target_lang: str, source_lang: str | None = None) -> str:
        """Translate one string; raise `LocalTranslationError` on failure."""
        ...


class CallableLocalTranslator:
    """Adapt a bridge function `(text, source_lang, target_lang) -> text`.

    Blocking functions run in a worker thread so the event loop stays free.
    """

    def __init__(self, func: BridgeFunc, *, supports_source_hint: bool = True) -> None:
        self._func = func
        self.supports_source_hint = bool(supports_source_hint)

    async def translate(self, text: str, target_lang: str, source_lang: str | None = None) -> str:
        hint = source_lang if self.supports_source_hint else None
        try:
            if inspect.iscoroutinefunction(self._func):
                result = await self._func(text, hint, target_lang)
            else:
                result = await asyncio.to_thread(self._func, text, hint, target_lang)
                if inspect.isawaitable(result):
                    result = await result
        except LocalTranslationError:
            raise
        except Exception as exc:
            logger.warning("local translation failed: %s", exc)
            raise LocalTranslationError(str(exc)) from exc

        if not isinstance(result, str):
            raise LocalTranslationError(f"bridge returned {type(result).__name__}, expected str")
        return result
