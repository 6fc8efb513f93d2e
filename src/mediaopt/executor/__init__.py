"""Executor module: engine command line, process lifecycle and output commit."""

from mediaopt.executor.command import build_command
from mediaopt.executor.commit import (
    OutputCommitter,
    commit,
    discard,
    temp_paths,
    validate_output,
)
from mediaopt.executor.process import EngineProcess, ExitStatus, ProcessSupervisor

__all__ = [
    "EngineProcess",
    "ExitStatus",
    "OutputCommitter",
    "ProcessSupervisor",
    "build_command",
    "commit",
    "discard",
    "temp_paths",
    "validate_output",
]
