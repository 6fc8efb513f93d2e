"""CLI optimize command: run one supervised transcoding job."""

from __future__ import annotations

import dataclasses
import json
import logging
import signal
import sys
import threading
from pathlib import Path

import click

from mediaopt.cli.exit_codes import ERROR_KIND_EXIT_CODES, ExitCode
from mediaopt.cli.output import error_exit, format_result_human, result_to_dict
from mediaopt.config.loader import get_config
from mediaopt.config.models import MediaoptConfig
from mediaopt.core.formatting import truncate_filename
from mediaopt.jobs.controller import JobController, JobOptions
from mediaopt.jobs.models import JobOutcome, JobResult
from mediaopt.jobs.progress import (
    LoggingProgressReporter,
    ProgressReporter,
    StderrProgressReporter,
)
from mediaopt.policy.loader import PolicyValidationError, load_policy
from mediaopt.policy.models import EncodingPolicy

logger = logging.getLogger(__name__)

_CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def load_effective_policy(
    policy_path: Path | None,
    config: MediaoptConfig,
    language: tuple[str, str] | None = None,
) -> EncodingPolicy:
    """Resolve the policy for a command.

    ``--policy`` wins over the configured policy file, which wins over the
    built-in defaults. ``--language`` then overrides the target language.

    Raises:
        FileNotFoundError: If the policy file does not exist.
        PolicyValidationError: If the policy file is invalid.
    """
    path = policy_path or config.policy_path
    policy = load_policy(path) if path is not None else EncodingPolicy()
    if language is not None:
        code, name = language
        policy = dataclasses.replace(
            policy,
            target_language_code=code.lower(),
            target_language_name=name.lower(),
        )
    return policy


def exit_code_for(result: JobResult) -> ExitCode:
    """Map a job result to the process exit code."""
    if result.outcome == JobOutcome.COMPLETED:
        return ExitCode.SUCCESS
    kind = result.error_kind
    if kind in ERROR_KIND_EXIT_CODES:
        return ERROR_KIND_EXIT_CODES[kind]
    if result.outcome == JobOutcome.CANCELLED:
        return ExitCode.INTERRUPTED
    return ExitCode.OPERATION_FAILED


def _make_reporter(label: str, json_output: bool) -> ProgressReporter:
    if json_output:
        return StderrProgressReporter(enabled=False)
    if sys.stderr.isatty():
        return StderrProgressReporter(label=truncate_filename(label))
    return LoggingProgressReporter()


class _CancelOnSignal:
    """Install SIGINT/SIGTERM handlers that cancel every active job.

    The handler runs on the main thread, which is blocked waiting on the
    job, so the cancel itself runs on a helper thread. A second signal
    puts the previous handlers back and re-delivers the signal, so a
    second Ctrl-C interrupts even a job that is slow to stop.
    """

    def __init__(self, controller: JobController) -> None:
        self._controller = controller
        self._previous: dict[int, object] = {}
        self.received: int | None = None

    def __enter__(self) -> _CancelOnSignal:
        if threading.current_thread() is threading.main_thread():
            for signum in _CANCEL_SIGNALS:
                self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._restore()

    def _restore(self) -> None:
        for signum, handler in self._previous.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        if self.received is None:
            self.received = signum
            logger.info("Received %s, cancelling job...", sig_name)
            threading.Thread(
                target=self._controller.cancel_all, name="signal-cancel", daemon=True
            ).start()
            return

        if not self._previous:
            logger.info("Received %s again, cancellation already in progress", sig_name)
            return
        logger.warning("Received %s again, not waiting for the job to stop", sig_name)
        self._restore()
        signal.raise_signal(signum)


@click.command("optimize")
@click.argument("input_file", type=click.Path(path_type=Path, dir_okay=False))
@click.option(
    "--output",
    "-o",
    "output_file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Output path (default: <name>_optimized<ext> next to the input).",
)
@click.option(
    "--policy",
    "-p",
    "policy_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML encoding policy (default: config policy.path or built-in).",
)
@click.option(
    "--language",
    "-l",
    nargs=2,
    type=str,
    default=None,
    metavar="CODE NAME",
    help="Target audio language, e.g. --language jpn japanese.",
)
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(min=1),
    default=None,
    help="Encoder threads (default: derived from CPU count and file size).",
)
@click.option(
    "--temp-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for temporary output and progress files.",
)
@click.option(
    "--stall-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds without progress before the job is cancelled.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Print the job result as JSON.",
)
@click.pass_context
def optimize_command(
    ctx: click.Context,
    input_file: Path,
    output_file: Path | None,
    policy_path: Path | None,
    language: tuple[str, str] | None,
    threads: int | None,
    temp_dir: Path | None,
    stall_timeout: float | None,
    json_output: bool,
) -> None:
    """Optimize INPUT_FILE: copy video, downmix the selected audio track.

    Progress is shown on stderr. SIGINT/SIGTERM cancel the job and remove
    its temporary files; the destination is only written on success.
    """
    ctx.ensure_object(dict)

    if not input_file.exists():
        error_exit(
            f"File not found: {input_file}", ExitCode.TARGET_NOT_FOUND, json_output
        )

    try:
        config = get_config(
            config_path=ctx.obj.get("config_path"),
            temp_directory=temp_dir,
            threads=threads,
            stall_timeout=stall_timeout,
        )
    except ValueError as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR, json_output)

    try:
        policy = load_effective_policy(policy_path, config, language)
    except FileNotFoundError as e:
        error_exit(str(e), ExitCode.TARGET_NOT_FOUND, json_output)
    except (PolicyValidationError, ValueError) as e:
        error_exit(str(e), ExitCode.POLICY_VALIDATION_ERROR, json_output)

    controller = ctx.obj.get("controller") or JobController(
        config=config, policy=policy
    )
    reporter = _make_reporter(input_file.name, json_output)
    options = JobOptions(policy=policy, threads=threads, temp_directory=temp_dir)

    try:
        with _CancelOnSignal(controller):
            future = controller.submit_async(
                input_file, output_file, options, progress_callback=reporter
            )
            result = future.result()
    except KeyboardInterrupt:
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)

    reporter.on_complete(result.success)

    if json_output:
        click.echo(json.dumps(result_to_dict(result), indent=2))
    else:
        click.echo(format_result_human(result), err=not result.success)

    ctx.exit(int(exit_code_for(result)))
