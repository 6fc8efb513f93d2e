"""Job controller: the state machine that runs one optimization job.

States::

    queued -> probing -> selecting -> running -> committing -> completed
                  \\           \\          \\            \\
                   +-----------+----------+------------+--> failed | cancelled

A job is admitted to the registry as soon as it is submitted and a later
submission for the same input supersedes it. Each job is owned by its
supervising thread (the caller of submit(), or the thread submit_async()
starts). That thread is the only one that moves the job to a terminal
state, removes it from the registry and cleans up its temporary files.
Other threads (trackers, a superseding job, cancel()) can only raise the
job's cancellation signal and terminate its engine.
"""

from __future__ import annotations

import contextvars
import logging
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path

from mediaopt.config.loader import get_temp_directory
from mediaopt.config.models import MediaoptConfig
from mediaopt.core.formatting import format_file_size
from mediaopt.executor.commit import OutputCommitter
from mediaopt.executor.process import ExitStatus, ProcessSupervisor
from mediaopt.introspector.interface import MediaIntrospector
from mediaopt.jobs.exceptions import EngineExitError, JobError, NoAudioStreamError
from mediaopt.jobs.models import (
    CancelReason,
    JobHandle,
    JobKey,
    JobOutcome,
    JobResult,
    JobSpec,
    JobState,
    make_job_key,
)
from mediaopt.jobs.registry import JobRegistry
from mediaopt.jobs.tracker import ProgressCallback, ProgressChannel, ProgressTracker
from mediaopt.logging.context import job_context
from mediaopt.policy.audio_selection import select_audio_stream
from mediaopt.policy.models import EncodingPolicy, NoAudioMode

logger = logging.getLogger(__name__)

StateListener = Callable[[JobKey, str, JobState], None]

OUTPUT_SUFFIX = "_optimized"


@dataclass(frozen=True)
class _Admission:
    handle: JobHandle
    source: Path
    destination: Path
    # Active job for the same input at admission time, now superseded
    previous: JobHandle | None


@dataclass(frozen=True)
class JobOptions:
    """Per-job overrides of the controller's defaults."""

    policy: EncodingPolicy | None = None
    threads: int | None = None
    temp_directory: Path | None = None

    def __post_init__(self) -> None:
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")


def default_output_path(input_path: Path) -> Path:
    """``<stem>_optimized<suffix>`` next to the input."""
    name = f"{input_path.stem}{OUTPUT_SUFFIX}{input_path.suffix}"
    return input_path.with_name(name)


def resolve_threads(
    input_path: Path, requested: int | None, config: MediaoptConfig
) -> int:
    """Encoder thread count for a job.

    An explicit request or configured value is used as is. Otherwise the
    CPU count is used, halved (minimum 1) for inputs smaller than the
    large-file threshold when halving is enabled.
    """
    explicit = requested or config.jobs.threads
    if explicit:
        return explicit

    threads = os.cpu_count() or 1
    if config.jobs.halve_threads_for_small_files:
        try:
            size = input_path.stat().st_size
        except OSError:
            size = None
        if size is not None and size < config.jobs.large_file_threshold:
            threads = max(1, threads // 2)
            logger.debug(
                "Input is %s, below the large-file threshold; using %d threads",
                format_file_size(size),
                threads,
            )
    return threads


class JobController:
    """Runs optimization jobs with single-flight per input path.

    Args:
        registry: Registry of active jobs, shared by everything that should
            see the same single-flight keys.
        introspector: Duration/stream probe. Defaults to ffprobe, created on
            first use so a missing ffprobe fails the job, not the controller.
        supervisor: Engine process supervisor.
        committer: Output publisher.
        config: Tunables; defaults to MediaoptConfig().
        policy: Default encoding policy for jobs without an override.
        state_listener: Called as ``(key, job_id, state)`` on every state
            change, from the thread that owns the job.
    """

    def __init__(
        self,
        registry: JobRegistry | None = None,
        introspector: MediaIntrospector | None = None,
        supervisor: ProcessSupervisor | None = None,
        committer: OutputCommitter | None = None,
        config: MediaoptConfig | None = None,
        policy: EncodingPolicy | None = None,
        state_listener: StateListener | None = None,
    ) -> None:
        self.config = config or MediaoptConfig()
        self.registry = registry if registry is not None else JobRegistry()
        self._introspector = introspector
        self._introspector_lock = threading.Lock()
        self.supervisor = supervisor or ProcessSupervisor(
            ffmpeg_path=self.config.tools.ffmpeg,
            grace_period=self.config.jobs.grace_period,
        )
        self.committer = committer or OutputCommitter()
        self.policy = policy or EncodingPolicy()
        self._state_listener = state_listener

    # Public API

    def submit(
        self,
        input_path: Path | str,
        output_path: Path | str | None = None,
        options: JobOptions | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> JobResult:
        """Run a job to completion and return its terminal result.

        Never raises for job failures; they are reported in the result.

        Args:
            input_path: Media file to optimize.
            output_path: Destination. Defaults to ``<stem>_optimized<ext>``.
            options: Per-job overrides.
            progress_callback: Receives strictly increasing percentages.
        """
        admission = self._admit(input_path, output_path)
        return self._execute(admission, options or JobOptions(), progress_callback)

    def submit_async(
        self,
        input_path: Path | str,
        output_path: Path | str | None = None,
        options: JobOptions | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> Future[JobResult]:
        """Run a job on its own supervising thread.

        The job is admitted before this returns, so it supersedes any job
        submitted earlier for the same input and is visible to cancel().

        Returns:
            Future resolved with the job's JobResult.
        """
        admission = self._admit(input_path, output_path)
        future: Future[JobResult] = Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                # Still owned by this thread; tear it down without a result
                admission.handle.request_cancel(CancelReason.REQUESTED)
                self._execute(admission, options or JobOptions(), progress_callback)
                return
            try:
                future.set_result(
                    self._execute(
                        admission, options or JobOptions(), progress_callback
                    )
                )
            except Exception as e:
                future.set_exception(e)

        ctx = contextvars.copy_context()
        thread = threading.Thread(
            target=ctx.run,
            args=(runner,),
            name=f"job-{admission.source.name}",
            daemon=True,
        )
        thread.start()
        return future

    def cancel(self, input_path: Path | str) -> bool:
        """Cancel the active job for ``input_path``.

        A job can be cancelled from the moment it is submitted. If its
        engine is running this blocks until the engine has exited; a job
        still waiting on ffprobe stops as soon as the probe returns.

        Returns:
            True if a job was found and cancellation was accepted, False if
            there is no active job or it is already publishing its output.
        """
        handle = self.registry.lookup(make_job_key(input_path))
        if handle is None:
            return False
        return self._cancel_handle(handle, CancelReason.REQUESTED)

    def cancel_all(self) -> int:
        """Cancel every active job. Returns how many accepted cancellation."""
        cancelled = 0
        for key in self.registry.active_keys():
            handle = self.registry.lookup(key)
            if handle is not None and self._cancel_handle(
                handle, CancelReason.REQUESTED
            ):
                cancelled += 1
        return cancelled

    # State machine

    def _admit(
        self, input_path: Path | str, output_path: Path | str | None
    ) -> _Admission:
        """Create the job and make it the active one for its input.

        Runs in the submitting thread, so jobs for one input supersede each
        other in submission order. The job being replaced is only signalled
        here; its engine is terminated from the new job's thread.
        """
        source = Path(input_path).expanduser()
        destination = (
            Path(output_path).expanduser()
            if output_path is not None
            else default_output_path(source)
        )
        handle = JobHandle(make_job_key(source))
        previous = self.registry.register(handle.key, handle)
        if previous is not None:
            previous.request_cancel(CancelReason.SUPERSEDED)
        return _Admission(handle, source, destination, previous)

    def _execute(
        self,
        admission: _Admission,
        options: JobOptions,
        progress_callback: ProgressCallback | None,
    ) -> JobResult:
        handle = admission.handle
        with job_context(handle.job_id, handle.key):
            logger.info(
                "Job submitted: %s -> %s",
                admission.source,
                admission.destination,
                extra={
                    "input": str(admission.source),
                    "output": str(admission.destination),
                },
            )
            self._notify(handle, JobState.QUEUED)
            if admission.previous is not None:
                self._cancel_handle(admission.previous, CancelReason.SUPERSEDED)
            return self._run(
                handle,
                admission.source,
                admission.destination,
                options,
                ProgressChannel(progress_callback),
                admission.previous,
            )

    def _run(
        self,
        handle: JobHandle,
        source: Path,
        destination: Path,
        options: JobOptions,
        channel: ProgressChannel,
        previous: JobHandle | None = None,
    ) -> JobResult:
        started = time.monotonic()
        spec: JobSpec | None = None
        outcome = JobOutcome.FAILED
        error: JobError | None = None
        cancel_reason: CancelReason | None = None

        try:
            if not handle.cancel_requested:
                self._transition(handle, JobState.PROBING)
                introspector = self._get_introspector()
                duration = introspector.get_duration(source)

                # Cancels raised while ffprobe ran take effect here
                if not handle.cancel_requested:
                    self._transition(handle, JobState.SELECTING)
                    policy = options.policy or self.policy
                    audio_index = self._select_audio(introspector, source, policy)
                    spec = self._build_spec(
                        handle,
                        source,
                        destination,
                        options,
                        policy,
                        audio_index,
                        duration,
                    )

            if previous is not None:
                self._wait_for_previous(previous)

            if handle.cancel_requested:
                outcome = JobOutcome.CANCELLED
                cancel_reason = handle.cancel_reason
                logger.info(
                    "Job cancelled before the engine started",
                    extra={"cancel_reason": cancel_reason.value},
                )
            else:
                self._transition(handle, JobState.RUNNING)
                outcome, error, cancel_reason = self._run_engine(handle, spec, channel)
        except JobError as e:
            error = e
            outcome = JobOutcome.FAILED
            logger.error("Job failed: %s", e, extra={"error_kind": e.kind})
        except Exception as e:
            logger.exception("Unexpected error in job")
            error = JobError(f"Unexpected error: {e}")
            outcome = JobOutcome.FAILED
        finally:
            channel.close()
            if spec is not None:
                self.committer.discard(spec.temp_output_path, spec.progress_path)
            if previous is not None:
                # Jobs for one input finish in the order they were admitted
                previous.finished.wait()

            final_state = {
                JobOutcome.COMPLETED: JobState.COMPLETED,
                JobOutcome.FAILED: JobState.FAILED,
                JobOutcome.CANCELLED: JobState.CANCELLED,
            }[outcome]
            self._transition(handle, final_state)
            self.registry.remove(handle.key, handle)
            handle.finished.set()

        elapsed = time.monotonic() - started
        logger.info(
            "Job %s in %.1fs",
            outcome.value,
            elapsed,
            extra={
                "outcome": outcome.value,
                "error_kind": error.kind if error is not None else None,
                "cancel_reason": cancel_reason.value if cancel_reason else None,
            },
        )
        return JobResult(
            job_id=handle.job_id,
            key=handle.key,
            outcome=outcome,
            output_path=destination,
            error=error,
            cancel_reason=cancel_reason,
            final_progress=channel.last,
            elapsed_seconds=elapsed,
        )

    def _run_engine(
        self, handle: JobHandle, spec: JobSpec, channel: ProgressChannel
    ) -> tuple[JobOutcome, JobError | None, CancelReason | None]:
        """Run the engine and decide the outcome from its exit status.

        Raises:
            SpawnError, CommitError: Propagated to the caller as failures.
        """
        process = self.supervisor.start(spec)
        if not handle.attach(process):
            # Cancelled between registration and spawn
            self.supervisor.terminate(process)

        jobs = self.config.jobs
        tracker = ProgressTracker(
            handle,
            process,
            self.supervisor,
            spec.duration,
            spec.progress_path,
            channel,
            stall_timeout=jobs.stall_timeout,
            max_runtime=jobs.max_runtime,
            poll_interval=jobs.poll_interval,
            drain_period=jobs.drain_period,
        )
        tracker.start()
        status: ExitStatus | None = None
        try:
            status = self.supervisor.wait(process)
        finally:
            if status is None:
                # Interrupted while waiting; never leave the engine running
                self.supervisor.terminate(process)
            tracker.finish()

        logger.debug(
            "Engine exited with %d",
            status.returncode,
            extra={"returncode": status.returncode, "terminated": status.terminated},
        )

        if handle.cancel_requested:
            return JobOutcome.CANCELLED, tracker.failure, handle.cancel_reason

        if not status.success:
            raise EngineExitError(status.returncode, tracker.output_tail())

        if not handle.begin_commit():
            return JobOutcome.CANCELLED, None, handle.cancel_reason

        self._transition(handle, JobState.COMMITTING)
        self.committer.commit(spec.temp_output_path, spec.output_path)
        return JobOutcome.COMPLETED, None, None

    # Steps

    def _get_introspector(self) -> MediaIntrospector:
        with self._introspector_lock:
            if self._introspector is None:
                from mediaopt.introspector.ffprobe import FFprobeIntrospector

                self._introspector = FFprobeIntrospector(
                    ffprobe_path=self.config.tools.ffprobe,
                    timeout=self.config.jobs.probe_timeout,
                )
            return self._introspector

    def _select_audio(
        self, introspector: MediaIntrospector, source: Path, policy: EncodingPolicy
    ) -> int | None:
        streams = introspector.get_streams(source)
        try:
            selection = select_audio_stream(
                streams,
                language_code=policy.target_language_code,
                language_name=policy.target_language_name,
                preferred_channels=policy.preferred_channels,
            )
        except NoAudioStreamError:
            if policy.on_missing_audio is NoAudioMode.VIDEO_ONLY:
                logger.warning(
                    "No audio streams in %s; output will be video only", source
                )
                return None
            raise NoAudioStreamError(str(source)) from None

        logger.info(
            "Selected audio stream %d (%s)",
            selection.index,
            selection.tier.value,
            extra={"stream_index": selection.index, "tier": selection.tier.value},
        )
        return selection.index

    def _build_spec(
        self,
        handle: JobHandle,
        source: Path,
        destination: Path,
        options: JobOptions,
        policy: EncodingPolicy,
        audio_index: int | None,
        duration: float,
    ) -> JobSpec:
        if options.temp_directory is not None:
            temp_dir = options.temp_directory.expanduser()
            temp_dir.mkdir(parents=True, exist_ok=True)
        else:
            temp_dir = get_temp_directory(self.config)

        temp_output, progress = self.committer.temp_paths(
            temp_dir, handle.job_id, destination
        )
        return JobSpec(
            input_path=source,
            output_path=destination,
            temp_directory=temp_dir,
            temp_output_path=temp_output,
            progress_path=progress,
            audio_stream_index=audio_index,
            threads=resolve_threads(source, options.threads, self.config),
            duration=duration,
            policy=policy,
        )

    def _wait_for_previous(self, previous: JobHandle) -> None:
        if previous.finished.is_set():
            return
        logger.info(
            "Waiting for superseded job %s to finish",
            previous.job_id,
            extra={"previous_job_id": previous.job_id},
        )
        previous.finished.wait()

    def _cancel_handle(self, handle: JobHandle, reason: CancelReason) -> bool:
        if not handle.request_cancel(reason):
            logger.info(
                "Job %s is committing; cancellation refused",
                handle.job_id,
                extra={"cancel_reason": reason.value},
            )
            return False
        process = handle.process
        if process is not None:
            self.supervisor.terminate(process)
        return True

    def _transition(self, handle: JobHandle, state: JobState) -> None:
        handle.set_state(state)
        logger.debug("Job state -> %s", state.value)
        self._notify(handle, state)

    def _notify(self, handle: JobHandle, state: JobState) -> None:
        if self._state_listener is None:
            return
        try:
            self._state_listener(handle.key, handle.job_id, state)
        except Exception:
            logger.exception("State listener raised")
