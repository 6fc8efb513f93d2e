"""Unified CLI output formatting for JSON and human-readable output."""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from mediaopt.cli.exit_codes import ExitCode
from mediaopt.jobs.models import JobResult


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Exit with formatted error message.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.
    """
    if isinstance(code, ExitCode):
        code_name = code.name
    else:
        code_name = "UNKNOWN_ERROR"

    if json_output:
        click.echo(
            json.dumps(
                {
                    "status": "failed",
                    "error": {
                        "code": code_name,
                        "message": message,
                    },
                }
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(int(code))


def result_to_dict(result: JobResult) -> dict[str, Any]:
    """Convert a JobResult to a JSON-serializable dict."""
    return {
        "job_id": result.job_id,
        "input": result.key,
        "status": result.outcome.value,
        "output": str(result.output_path) if result.success else None,
        "error": (
            {"kind": result.error.kind, "message": str(result.error)}
            if result.error is not None
            else None
        ),
        "cancel_reason": (
            result.cancel_reason.value if result.cancel_reason is not None else None
        ),
        "final_progress": result.final_progress,
        "elapsed_seconds": round(result.elapsed_seconds, 2),
    }


def format_result_human(result: JobResult) -> str:
    """One-paragraph summary of a finished job."""
    elapsed = f"{result.elapsed_seconds:.1f}s"
    if result.success:
        return f"Completed in {elapsed}: {result.output_path}"
    if result.cancel_reason is not None:
        line = f"Cancelled ({result.cancel_reason.value}) after {elapsed}"
        if result.error is not None:
            line += f": {result.error}"
        return line
    return f"Failed after {elapsed}: {result.error}"
