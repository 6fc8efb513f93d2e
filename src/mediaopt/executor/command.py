"""FFmpeg command building for optimization jobs.

Pure functions: the argument vector depends only on the JobSpec. The
output position is always the spec's temporary output path; the final
destination never appears on the engine's command line.
"""

from __future__ import annotations

from pathlib import Path

from mediaopt.jobs.models import JobSpec

# Deeper analysis window for large or oddly muxed inputs
INPUT_ANALYZE_ARGS = ("-analyzeduration", "100M", "-probesize", "100M")


def _video_args(spec: JobSpec) -> list[str]:
    policy = spec.policy
    args = ["-map", "0:v:0", "-c:v", policy.video_codec]
    if policy.video_codec != "copy":
        if policy.video_crf is not None:
            args.extend(["-crf", str(policy.video_crf)])
        if policy.video_preset is not None:
            args.extend(["-preset", policy.video_preset])
    return args


def _audio_args(spec: JobSpec) -> list[str]:
    """Audio mapping, codec, filter chain and metadata for the output.

    The stream is mapped by absolute index (``0:<index>``), which is what
    the probe reports; ``0:a:<n>`` would count audio streams only.
    """
    if spec.audio_stream_index is None:
        return ["-an"]

    policy = spec.policy
    args = [
        "-map",
        f"0:{spec.audio_stream_index}",
        "-c:a",
        policy.audio_codec,
        "-ac",
        str(policy.audio_channels),
        "-b:a",
        policy.audio_bitrate,
    ]
    if policy.audio_filter_chain:
        args.extend(["-af", policy.audio_filter_chain])
    if policy.audio_title:
        args.extend(["-metadata:s:a:0", f"title={policy.audio_title}"])
    if policy.audio_language:
        args.extend(["-metadata:s:a:0", f"language={policy.audio_language}"])
    return args


def build_command(
    spec: JobSpec, progress_path: Path, ffmpeg_path: Path | str = "ffmpeg"
) -> list[str]:
    """Build the ffmpeg argument vector for a job.

    Args:
        spec: The job's immutable specification.
        progress_path: File ffmpeg appends ``key=value`` progress blocks to.
        ffmpeg_path: Engine executable.

    Returns:
        Complete argument list, temporary output path last.
    """
    cmd = [str(ffmpeg_path), *INPUT_ANALYZE_ARGS, "-i", str(spec.input_path)]
    cmd.extend(_video_args(spec))
    cmd.extend(_audio_args(spec))
    cmd.extend(spec.policy.extra_output_args)
    cmd.extend(
        [
            "-threads",
            str(spec.threads),
            "-y",
            "-nostdin",
            "-progress",
            str(progress_path),
            str(spec.temp_output_path),
        ]
    )
    return cmd
