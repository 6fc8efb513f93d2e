"""CLI inspect command: show what an optimize run would pick."""

import logging
from pathlib import Path

import click

from mediaopt.cli.exit_codes import ExitCode
from mediaopt.cli.optimize import load_effective_policy
from mediaopt.cli.output import error_exit
from mediaopt.config.loader import get_config
from mediaopt.introspector.ffprobe import FFprobeIntrospector
from mediaopt.introspector.formatters import format_human, format_json
from mediaopt.jobs.exceptions import NoAudioStreamError, ProbeError
from mediaopt.policy.audio_selection import select_audio_stream
from mediaopt.policy.loader import PolicyValidationError

logger = logging.getLogger(__name__)


@click.command("inspect")
@click.argument("file", type=click.Path(path_type=Path, dir_okay=False))
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["human", "json"]),
    default="human",
    help="Output format (default: human)",
)
@click.option(
    "--policy",
    "-p",
    "policy_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML encoding policy used for audio selection.",
)
@click.pass_context
def inspect_command(
    ctx: click.Context,
    file: Path,
    output_format: str,
    policy_path: Path | None,
) -> None:
    """Inspect a media file: duration, audio streams and the selected one.

    FILE is the path to the media file to inspect.
    """
    ctx.ensure_object(dict)
    json_output = output_format == "json"

    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.TARGET_NOT_FOUND, json_output)

    try:
        config = get_config(config_path=ctx.obj.get("config_path"))
        policy = load_effective_policy(policy_path, config)
    except FileNotFoundError as e:
        error_exit(str(e), ExitCode.TARGET_NOT_FOUND, json_output)
    except (PolicyValidationError, ValueError) as e:
        error_exit(str(e), ExitCode.POLICY_VALIDATION_ERROR, json_output)

    try:
        introspector = ctx.obj.get("introspector") or FFprobeIntrospector(
            ffprobe_path=config.tools.ffprobe,
            timeout=config.jobs.probe_timeout,
        )
    except ProbeError as e:
        error_exit(str(e), ExitCode.FFPROBE_NOT_FOUND, json_output)

    try:
        duration = introspector.get_duration(file)
        streams = introspector.get_streams(file)
    except ProbeError as e:
        logger.debug("Probe failed for %s: %s", file, e)
        error_exit(f"Could not probe {file}: {e}", ExitCode.PROBE_ERROR, json_output)

    try:
        selection = select_audio_stream(
            streams,
            language_code=policy.target_language_code,
            language_name=policy.target_language_name,
            preferred_channels=policy.preferred_channels,
        )
    except NoAudioStreamError:
        selection = None

    if json_output:
        click.echo(format_json(file, duration, streams, selection))
    else:
        click.echo(format_human(file, duration, streams, selection))
