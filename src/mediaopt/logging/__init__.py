"""Structured logging module for mediaopt.

Provides configurable logging with JSON format support and file rotation.
Includes job context support for supervisor helper threads and a separate
logger for ffmpeg diagnostic output.
"""

from mediaopt.logging.config import ENGINE_LOGGER_NAME, configure_logging
from mediaopt.logging.context import (
    JobContextFilter,
    clear_job_context,
    get_job_context,
    job_context,
    set_job_context,
)
from mediaopt.logging.handlers import JSONFormatter

__all__ = [
    "ENGINE_LOGGER_NAME",
    "JSONFormatter",
    "JobContextFilter",
    "clear_job_context",
    "configure_logging",
    "get_job_context",
    "job_context",
    "set_job_context",
]
