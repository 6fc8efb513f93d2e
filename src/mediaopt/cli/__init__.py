"""CLI module for mediaopt."""

import logging
from pathlib import Path

import click

_logging_configured: bool = False
_startup_logged: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the config file and CLI options.

    Args:
        config_path: Config file to read the [logging] section from.
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
    """
    global _logging_configured
    if _logging_configured:
        return

    from mediaopt.config.loader import get_config
    from mediaopt.config.logging_factory import build_logging_config
    from mediaopt.logging.config import configure_logging

    base = get_config(config_path=config_path).logging
    configure_logging(
        build_logging_config(
            base,
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    )
    _logging_configured = True


def _log_startup_settings(config_path: Path | None) -> None:
    """Log the effective config file and tool overrides at startup."""
    global _startup_logged
    if _startup_logged:
        return
    _startup_logged = True

    from mediaopt.config.loader import get_config, get_default_config_path

    config = get_config(config_path=config_path)
    path = config_path or get_default_config_path()
    path_display = str(path).replace(str(Path.home()), "~")
    source = "found" if path.exists() else "missing"

    logger.debug(
        "mediaopt starting: config=%s (%s), ffmpeg=%s, ffprobe=%s, temp_dir=%s",
        path_display,
        source,
        config.tools.ffmpeg or "PATH",
        config.tools.ffprobe or "PATH",
        config.jobs.temp_directory or "default",
    )


@click.group()
@click.version_option(package_name="mediaopt")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.mediaopt/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """mediaopt - Optimize media files with a supervised ffmpeg job."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    try:
        _configure_logging(config_path, log_level, log_file, log_json)
    except ValueError as e:
        from mediaopt.cli.exit_codes import ExitCode
        from mediaopt.cli.output import error_exit

        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR)

    _log_startup_settings(config_path)


# Defer import to avoid circular dependency
def _register_commands():
    from mediaopt.cli.inspect import inspect_command
    from mediaopt.cli.optimize import optimize_command

    main.add_command(inspect_command)
    main.add_command(optimize_command)


_register_commands()
