"""Logging utilities for specgraph commands.

Two levels of detail are used. Per-directory progress (scans, manifest
counts, diff comparisons) is logged at INFO. Per-node traversal (every file
visited, every back edge) is logged at DEBUG by the loggers named in
``NODE_LOGGERS``; on large trees that output is only wanted when asked for
twice (``-vv``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

_LOGGER_NAME = "specgraph"
_CONSOLE_FORMAT = "[specgraph] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

NODE_LOGGERS: Sequence[str] = ("walker",)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the specgraph hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def level_for(verbosity: int) -> int:
    return logging.DEBUG if verbosity > 0 else logging.INFO


def node_level_for(verbosity: int) -> int:
    return logging.DEBUG if verbosity > 1 else logging.INFO


def configure_logging(
    *, verbose: int = 0, log_file: Path | None = None
) -> logging.Logger:
    """Configure the specgraph logger with console output and optional file sink.

    ``verbose`` counts ``-v`` flags: one enables DEBUG for components, two
    also enables per-node traversal messages. The console handler writes to
    stderr so findings on stdout stay machine readable.
    """
    verbosity = int(verbose)
    level = level_for(verbosity)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    for name in NODE_LOGGERS:
        get_logger(name).setLevel(node_level_for(verbosity))

    return logger


__all__ = ["NODE_LOGGERS", "configure_logging", "get_logger", "level_for", "node_level_for"]
