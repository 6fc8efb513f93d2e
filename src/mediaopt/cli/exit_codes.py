"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (policy, config, input)
    20-29: Target/file errors
    30-39: Tool/dependency errors
    40-49: Job outcome errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for mediaopt CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Job cancelled by SIGINT/SIGTERM or superseded

    # Validation errors (10-19)
    POLICY_VALIDATION_ERROR = 10
    CONFIG_ERROR = 11

    # Target/file errors (20-29)
    TARGET_NOT_FOUND = 20
    NO_AUDIO_STREAM = 22

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30
    FFPROBE_NOT_FOUND = 32

    # Job outcome errors (40-49)
    OPERATION_FAILED = 40
    STALLED = 41
    TIMED_OUT = 42
    PROBE_ERROR = 43


# Job error kinds with a more specific exit code than OPERATION_FAILED
ERROR_KIND_EXIT_CODES = {
    "probe": ExitCode.PROBE_ERROR,
    "no_audio": ExitCode.NO_AUDIO_STREAM,
    "spawn": ExitCode.TOOL_NOT_AVAILABLE,
    "stalled": ExitCode.STALLED,
    "timeout": ExitCode.TIMED_OUT,
}
