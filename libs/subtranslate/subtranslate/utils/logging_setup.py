"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from subtranslate.config import LoggingSettings, Settings

_CONFIGURED_FLAG = "_subtranslate_configured"


def _resolve_level(name: str | None) -> int:
    level = logging.getLevelName(str(name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _build_handlers(cfg: LoggingSettings, *, log_dir: str, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=str(cfg.format), datefmt=str(cfg.datefmt))
    handlers: list[logging.Handler] = []

    if cfg.console:
        handlers.append(logging.StreamHandler())

    if cfg.file:
        file_path = Path(str(cfg.file))
        if not file_path.is_absolute():
            file_path = Path(log_dir) / file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=int(cfg.max_bytes),
                backupCount=int(cfg.backup_count),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, level: str | None = None) -> None:
    """Configure the `subtranslate` logger tree from Settings.

    `level` overrides `settings.logging.level` (the CLI's `--log-level`).
    Other libraries keep their own loggers, except that httpx's per-request
    INFO lines are hidden unless we run at DEBUG.
    """
    logger = logging.getLogger("subtranslate")
    if getattr(logger, _CONFIGURED_FLAG, False):
        return

    resolved = _resolve_level(level or settings.logging.level)
    logger.setLevel(resolved)
    logger.handlers = _build_handlers(settings.logging, log_dir=settings.log_dir, level=resolved)
    logger.propagate = False

    if resolved > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
    setattr(logger, _CONFIGURED_FLAG, True)
