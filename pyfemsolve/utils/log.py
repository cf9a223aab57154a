"""Logging configuration helpers.

Library modules only create loggers (``logging.getLogger(__name__)``);
applications and examples call :func:`setup_logging` once.
"""

from __future__ import annotations

import logging
import os

ENV_LOG_LEVEL = "PYFEMSOLVE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _parse_level(value: str | int | None, default_level: int) -> int:
    if value is None:
        return default_level
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if not text:
        return default_level
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text)
    if isinstance(resolved, int):
        return resolved
    return default_level


def get_log_level_from_env(default: str | int = "INFO") -> int:
    """Resolve the log level from ``PYFEMSOLVE_LOG_LEVEL``."""
    default_level = _parse_level(default, logging.INFO)
    return _parse_level(os.environ.get(ENV_LOG_LEVEL), default_level)


def setup_logging(level: str | int | None = None) -> None:
    """Configure root logging once.

    Args:
        level: Log level; defaults to :func:`get_log_level_from_env`.
    """
    level = get_log_level_from_env() if level is None else _parse_level(level, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            continue
        handler.setLevel(level)
