"""Progress reporting for pipeline runs."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    async def report(self, completed: int, total: int, message: str) -> None: ...


class LoggingProgressReporter:
    """Writes one INFO line per completed window."""

    def __init__(self, *, name: str = "translate") -> None:
        self._name = name
        self._last_completed = 0

    async def report(self, completed: int, total: int, message: str) -> None:
        completed = max(self._last_completed, int(completed))
        self._last_completed = completed
        pct = int(completed * 100 / total) if total > 0 else 100
        logger.info("%s %d/%d (%d%%) %s", self._name, completed, total, pct, message)
