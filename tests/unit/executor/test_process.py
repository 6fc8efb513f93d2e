"""Tests for ProcessSupervisor against the fake engine script."""

import json
import signal
import threading
import time
from pathlib import Path

import pytest

from mediaopt.executor.process import ExitStatus, ProcessSupervisor
from mediaopt.jobs.exceptions import SpawnError
from mediaopt.jobs.models import JobSpec
from mediaopt.policy.models import EncodingPolicy


@pytest.fixture
def make_spec(make_input, job_temp_dir: Path):
    def _make(**behaviour) -> JobSpec:
        source = make_input(**behaviour)
        return JobSpec(
            input_path=source,
            output_path=source.with_name("out.mkv"),
            temp_directory=job_temp_dir,
            temp_output_path=job_temp_dir / "temp_t.mkv",
            progress_path=job_temp_dir / "progress_t.txt",
            audio_stream_index=1,
            threads=1,
            duration=10.0,
            policy=EncodingPolicy(),
        )

    return _make


def wait_for(path: Path, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not path.exists():
        if time.monotonic() > deadline:
            raise AssertionError(f"{path} never appeared")
        time.sleep(0.01)


class TestExitStatus:
    """Tests for ExitStatus."""

    def test_success(self) -> None:
        assert ExitStatus(0).success is True
        assert ExitStatus(1).success is False
        assert ExitStatus(0, terminated=True).success is False


class TestStart:
    """Tests for ProcessSupervisor.start."""

    def test_missing_engine_is_spawn_error(self, tmp_path: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=tmp_path / "no-ffmpeg")
        with pytest.raises(SpawnError, match="ffmpeg"):
            supervisor.start(make_spec())

    def test_runs_to_completion(self, fake_engine: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine)
        spec = make_spec(progress=[5, 10])
        process = supervisor.start(spec)
        output = process.output.read()
        status = supervisor.wait(process)

        assert status == ExitStatus(returncode=0, terminated=False)
        assert spec.temp_output_path.read_text() == "optimized"
        assert "progress=end" in spec.progress_path.read_text()
        assert "video:1kB" in output

    def test_command_uses_temp_output(
        self, fake_engine: Path, make_spec, tmp_path: Path
    ) -> None:
        record = tmp_path / "args.json"
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine)
        spec = make_spec(record_args=str(record))
        supervisor.wait(supervisor.start(spec))
        args = json.loads(record.read_text())
        assert args[-1] == str(spec.temp_output_path)
        assert str(spec.output_path) not in args

    def test_failure_exit_code(self, fake_engine: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine)
        process = supervisor.start(make_spec(mode="fail", returncode=3))
        process.output.read()
        assert supervisor.wait(process) == ExitStatus(returncode=3)


class TestTerminate:
    """Tests for two-phase termination."""

    def test_polite_termination(self, fake_engine: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine, grace_period=5.0)
        spec = make_spec(mode="hang")
        process = supervisor.start(spec)
        wait_for(spec.temp_output_path)

        started = time.monotonic()
        supervisor.terminate(process)
        assert time.monotonic() - started < 5.0
        assert not process.is_running()

        status = supervisor.wait(process)
        assert status.terminated is True
        assert status.returncode == -signal.SIGTERM

    def test_escalates_to_kill(self, fake_engine: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine, grace_period=0.3)
        spec = make_spec(mode="ignore_term")
        process = supervisor.start(spec)
        wait_for(spec.temp_output_path)

        supervisor.terminate(process)
        status = supervisor.wait(process)
        assert status.terminated is True
        assert status.returncode == -signal.SIGKILL

    def test_idempotent_and_noop_after_exit(self, fake_engine: Path, make_spec):
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine)
        process = supervisor.start(make_spec())
        process.output.read()
        supervisor.wait(process)

        supervisor.terminate(process)
        supervisor.terminate(process)
        assert process.terminated is False

    def test_unblocks_concurrent_waiter(self, fake_engine: Path, make_spec) -> None:
        supervisor = ProcessSupervisor(ffmpeg_path=fake_engine, grace_period=1.0)
        spec = make_spec(mode="hang")
        process = supervisor.start(spec)
        wait_for(spec.temp_output_path)

        statuses: list[ExitStatus] = []
        waiter = threading.Thread(
            target=lambda: statuses.append(supervisor.wait(process))
        )
        waiter.start()
        supervisor.terminate(process)
        waiter.join(timeout=5.0)

        assert not waiter.is_alive()
        assert statuses[0].terminated is True
