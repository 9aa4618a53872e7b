# === FILE: contact_scout/logger.py ===
"""Logging for ContactScout.

All project modules log under the ``ContactScout`` logger: pipeline-level
messages go to :data:`logger` itself, modules take a child via
:func:`get_logger` (``ContactScout.orchestrator``, ``ContactScout.extraction.queue``…).

The CLI calls :func:`init_logging` once with ``--log-level`` / ``--log-file`` /
``--log-format``. Library loggers that are chatty during a run (asyncio,
aiohttp, Playwright driver) are held at WARNING unless DEBUG is requested.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterable, List, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "ContactScout"
_NOISY_LOGGERS: Final[tuple] = ("asyncio", "aiohttp.client", "aiohttp.access", "playwright")

# Rotation for --log-file.
_MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _handlers(fmt: str, log_file: str | Path | None) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt)
    console = logging.StreamHandler(sys.stdout)
    handlers: List[logging.Handler] = [console]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=str(path),
                maxBytes=_MAX_LOG_BYTES,
                backupCount=_LOG_BACKUPS,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _quiet(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Настраивает логгер проекта.

    level - уровень (``"DEBUG"`` или число); log_file - файл с ротацией,
    *None* означает только консоль; replace_handlers - убрать прежние обработчики.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)
    if replace_handlers:
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()
    for handler in _handlers(log_format, log_file):
        lg.addHandler(handler)
    lg.propagate = False

    effective = lg.getEffectiveLevel()
    _quiet(_NOISY_LOGGERS, logging.DEBUG if effective <= logging.DEBUG else logging.WARNING)
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replaces any handlers set up earlier."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(suffix: str) -> logging.Logger:
    """Child of the project logger, e.g. ``get_logger("contacts")`` → ``ContactScout.contacts``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{suffix}")


# Console-only until the CLI reconfigures it.
logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger"]
