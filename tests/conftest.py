"""Shared test fixtures for mediaopt."""

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from mediaopt.config.loader import clear_config_cache
from mediaopt.config.models import JobsConfig, MediaoptConfig, ToolPathsConfig

# Stands in for ffmpeg. The "input file" is a JSON document telling the
# script how to behave; it writes the -progress feed and the output file
# the way ffmpeg does.
FAKE_ENGINE = """#!{python}
import json
import signal
import sys
import time

args = sys.argv[1:]
source = args[args.index("-i") + 1]
progress_path = args[args.index("-progress") + 1]
output_path = args[-1]

with open(source) as f:
    behaviour = json.load(f)
mode = behaviour.get("mode", "success")
delay = behaviour.get("delay", 0.01)

if mode == "ignore_term":
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

if behaviour.get("record_args"):
    with open(behaviour["record_args"], "w") as f:
        json.dump(args, f)

print("Input #0, matroska,webm, from '%s':" % source, file=sys.stderr, flush=True)

with open(progress_path, "a") as feed:
    for seconds in behaviour.get("progress", []):
        feed.write("frame=1\\nout_time_us=%d\\nprogress=continue\\n" % (seconds * 1e6))
        feed.flush()
        time.sleep(delay)

    if mode in ("hang", "ignore_term"):
        with open(output_path, "w") as f:
            f.write("partial")
        while True:
            time.sleep(0.05)

    if mode == "fail":
        with open(output_path, "w") as f:
            f.write("partial")
        print("Error while decoding stream #0:1", file=sys.stderr, flush=True)
        sys.exit(behaviour.get("returncode", 1))

    if mode != "no_end":
        feed.write("progress=end\\n")
        feed.flush()

if mode != "empty_output":
    with open(output_path, "w") as f:
        f.write(behaviour.get("output", "optimized"))
print("video:1kB audio:1kB", file=sys.stderr, flush=True)
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's config file and MEDIAOPT_* variables."""
    for name in list(os.environ):
        if name.startswith("MEDIAOPT_"):
            monkeypatch.delenv(name, raising=False)
    config_dir = tmp_path_factory.mktemp("mediaopt-config")
    monkeypatch.setenv("MEDIAOPT_CONFIG_PATH", str(config_dir / "config.toml"))
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def fake_engine(tmp_path: Path) -> Path:
    """Path to an executable script that behaves like ffmpeg."""
    if os.name != "posix":
        pytest.skip("fake engine requires a POSIX shebang")
    script = tmp_path / "fake-ffmpeg"
    script.write_text(FAKE_ENGINE.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def make_input(tmp_path: Path):
    """Factory creating an input file that scripts the fake engine."""

    def _make(name: str = "movie.mkv", **behaviour) -> Path:
        media_dir = tmp_path / "media"
        media_dir.mkdir(exist_ok=True)
        path = media_dir / name
        path.write_text(json.dumps(behaviour))
        return path

    return _make


@pytest.fixture
def job_temp_dir(tmp_path: Path) -> Path:
    """Temp directory for job artifacts."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def job_config(fake_engine: Path, job_temp_dir: Path) -> MediaoptConfig:
    """Config pointing at the fake engine with short timings."""
    return MediaoptConfig(
        tools=ToolPathsConfig(ffmpeg=fake_engine),
        jobs=JobsConfig(
            temp_directory=job_temp_dir,
            stall_timeout=5.0,
            grace_period=1.0,
            drain_period=0.2,
            poll_interval=0.02,
            threads=2,
        ),
    )
