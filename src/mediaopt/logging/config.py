"""Logging setup for mediaopt.

Two streams of records go through the same handlers:

- mediaopt's own loggers, filtered by ``LoggingConfig.level``;
- ``mediaopt.engine``, which carries the lines ffmpeg prints while a job
  runs, filtered by ``LoggingConfig.engine_level``.

Handlers themselves do not filter by level, so either threshold can be
lowered without the other. Every handler gets a JobContextFilter, so records
from the supervising thread and its helper threads carry the job tags.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from mediaopt.logging.context import JobContextFilter
from mediaopt.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from mediaopt.config.models import LoggingConfig

ENGINE_LOGGER_NAME = "mediaopt.engine"

# job_tag is "[job:1a2b3c4d] " inside a job, empty string otherwise
TEXT_FORMAT = "%(asctime)s - %(job_tag)s%(name)s - %(levelname)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def parse_level(name: str) -> int:
    """Map a configured level name (any case) to a logging level."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format.casefold() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _open_log_file(config: LoggingConfig) -> logging.Handler | None:
    """Rotating handler for ``config.file``, or None if it cannot be opened."""
    path = Path(config.file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Logging is not set up yet, so report straight to the terminal
        sys.stderr.write(f"Warning: Could not open log file {path}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> list[logging.Handler]:
    """Install mediaopt's handlers on the root logger.

    Replaces any existing root handlers. Output goes to the log file when
    one is configured and can be opened, and to stderr when no file is in
    use or ``include_stderr`` is set.

    Args:
        config: Logging configuration.

    Returns:
        The installed handlers.
    """
    handlers: list[logging.Handler] = []
    if config.file:
        file_handler = _open_log_file(config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = build_formatter(config.format)
    context_filter = JobContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(parse_level(config.level))
    for handler in handlers:
        root.addHandler(handler)

    logging.getLogger(ENGINE_LOGGER_NAME).setLevel(parse_level(config.engine_level))
    return handlers
