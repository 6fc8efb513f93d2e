"""Job system module for mediaopt.

This module provides supervision of transcoding jobs:
- exceptions: Error taxonomy reported in job results
- models: Job keys, specs, handles, states and results
- registry: In-memory single-flight map of active jobs
- tracker: Progress tailing, stall detection and diagnostic draining
- controller: The job state machine (submit, submit_async, cancel)
- progress: Progress reporters for the CLI

Note: FFmpeg progress line parsing is in mediaopt.tools.ffmpeg_progress
"""

from mediaopt.jobs.exceptions import (
    CommitError,
    EngineExitError,
    JobError,
    JobTimeoutError,
    NoAudioStreamError,
    ProbeError,
    SpawnError,
    StalledError,
)
from mediaopt.jobs.models import (
    CancelReason,
    JobHandle,
    JobKey,
    JobOutcome,
    JobResult,
    JobSpec,
    JobState,
    ProgressSample,
    make_job_key,
)
from mediaopt.jobs.progress import (
    LoggingProgressReporter,
    NullProgressReporter,
    ProgressReporter,
    StderrProgressReporter,
)
from mediaopt.jobs.registry import JobRegistry

_LAZY = {
    "JobController": "mediaopt.jobs.controller",
    "JobOptions": "mediaopt.jobs.controller",
    "ProgressChannel": "mediaopt.jobs.tracker",
    "ProgressTracker": "mediaopt.jobs.tracker",
}


def __getattr__(name: str):
    """Lazy import for modules that depend on the executor (circular imports)."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib

    return getattr(importlib.import_module(module_name), name)


__all__ = [
    # Exceptions
    "CommitError",
    "EngineExitError",
    "JobError",
    "JobTimeoutError",
    "NoAudioStreamError",
    "ProbeError",
    "SpawnError",
    "StalledError",
    # Models
    "CancelReason",
    "JobHandle",
    "JobKey",
    "JobOutcome",
    "JobResult",
    "JobSpec",
    "JobState",
    "ProgressSample",
    "make_job_key",
    # Registry
    "JobRegistry",
    # Progress reporters
    "LoggingProgressReporter",
    "NullProgressReporter",
    "ProgressReporter",
    "StderrProgressReporter",
    # Lazy loaded
    "JobController",
    "JobOptions",
    "ProgressChannel",
    "ProgressTracker",
]
