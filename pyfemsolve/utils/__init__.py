"""Utilities."""

from pyfemsolve.utils.log import get_log_level_from_env, setup_logging

__all__ = [
    "get_log_level_from_env",
    "setup_logging",
]
