"""
loguru sinks for Social RSS.

``setup_logger`` is called once by the CLI with the ``LoggingConfig`` taken
from the process configuration. Modules log through ``get_logger(__name__)``
so every record carries the emitting module in ``extra["name"]``.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from social_rss.config import LoggingConfig


def _common_options(log_config: LoggingConfig, level: str) -> dict:
    # Tracebacks never include local variable values
    return {
        "format": log_config.format,
        "level": level,
        "backtrace": True,
        "diagnose": False,
    }


def setup_logger(
    log_config: LoggingConfig,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Replace all loguru sinks with the ones ``log_config`` enables.

    Args:
        log_config: Logging section of the process configuration
        level: Level override, e.g. from ``--log-level``
        log_file: File sink path override
    """
    level = (level or log_config.level).upper()
    options = _common_options(log_config, level)

    _logger.remove()

    if log_config.console_enabled:
        _logger.add(sys.stderr, colorize=True, **options)

    if not log_config.file_enabled:
        return

    target = Path(log_file or log_config.file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    _logger.add(
        str(target),
        rotation=log_config.rotation,
        retention=log_config.retention,
        compression="zip",
        encoding="utf-8",
        # scheduler, fetch and request threads all write here
        enqueue=True,
        **options,
    )


def get_logger(name: Optional[str] = None):
    """Module logger; ``name`` is bound into the record extras."""
    return _logger.bind(name=name) if name else _logger


logger = _logger

__all__ = ["setup_logger", "get_logger", "logger"]
