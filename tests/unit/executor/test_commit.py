"""Tests for output commit and temp cleanup."""

import errno
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from mediaopt.executor.commit import (
    OutputCommitter,
    commit,
    discard,
    temp_paths,
    validate_output,
)
from mediaopt.jobs.exceptions import CommitError


class TestTempPaths:
    """Tests for temp_paths."""

    def test_namespaced_by_job_id(self, tmp_path: Path) -> None:
        temp, progress = temp_paths(tmp_path, "abc123", Path("/m/out.mp4"))
        assert temp == tmp_path / "temp_abc123.mp4"
        assert progress == tmp_path / "progress_abc123.txt"

    def test_default_suffix(self, tmp_path: Path) -> None:
        temp, _ = temp_paths(tmp_path, "abc", Path("/m/out"))
        assert temp.suffix == ".mkv"

    def test_distinct_jobs_never_collide(self, tmp_path: Path) -> None:
        a = temp_paths(tmp_path, "job-a", Path("/m/x.mkv"))
        b = temp_paths(tmp_path, "job-b", Path("/m/x.mkv"))
        assert not set(a) & set(b)


class TestValidateOutput:
    """Tests for validate_output."""

    def test_missing(self, tmp_path: Path) -> None:
        valid, message = validate_output(tmp_path / "nope.mkv")
        assert not valid
        assert "does not exist" in message

    def test_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "out.mkv"
        path.touch()
        assert validate_output(path) == (False, f"Output file is empty: {path}")

    def test_directory(self, tmp_path: Path) -> None:
        valid, _ = validate_output(tmp_path)
        assert not valid

    def test_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "out.mkv"
        path.write_bytes(b"data")
        assert validate_output(path) == (True, None)


class TestCommit:
    """Tests for commit."""

    def test_moves_into_place(self, tmp_path: Path) -> None:
        temp = tmp_path / "temp_1.mkv"
        temp.write_bytes(b"complete")
        dest = tmp_path / "out" / "movie_optimized.mkv"

        assert commit(temp, dest) == dest
        assert dest.read_bytes() == b"complete"
        assert not temp.exists()

    def test_overwrites_existing(self, tmp_path: Path) -> None:
        temp = tmp_path / "temp_1.mkv"
        temp.write_bytes(b"new")
        dest = tmp_path / "movie_optimized.mkv"
        dest.write_bytes(b"old")
        commit(temp, dest)
        assert dest.read_bytes() == b"new"

    def test_empty_output_never_published(self, tmp_path: Path) -> None:
        temp = tmp_path / "temp_1.mkv"
        temp.touch()
        dest = tmp_path / "movie_optimized.mkv"
        with pytest.raises(CommitError, match="empty"):
            commit(temp, dest)
        assert not dest.exists()

    def test_missing_output(self, tmp_path: Path) -> None:
        with pytest.raises(CommitError, match="does not exist"):
            commit(tmp_path / "temp_1.mkv", tmp_path / "dest.mkv")

    def test_cross_device_copies_then_renames(self, tmp_path: Path) -> None:
        temp = tmp_path / "temp_1.mkv"
        temp.write_bytes(b"payload")
        dest = tmp_path / "dest" / "movie_optimized.mkv"
        real_replace = os.replace
        calls: list[tuple[Path, Path]] = []

        def fake_replace(src, dst):
            calls.append((Path(src), Path(dst)))
            if Path(src) == temp:
                raise OSError(errno.EXDEV, "Invalid cross-device link")
            real_replace(src, dst)

        with patch("mediaopt.executor.commit.os.replace", side_effect=fake_replace):
            commit(temp, dest)

        assert dest.read_bytes() == b"payload"
        assert not temp.exists()
        assert calls[-1] == (dest.with_name(".movie_optimized.mkv.partial"), dest)
        assert not dest.with_name(".movie_optimized.mkv.partial").exists()

    def test_other_os_error_wrapped(self, tmp_path: Path) -> None:
        temp = tmp_path / "temp_1.mkv"
        temp.write_bytes(b"payload")
        with patch(
            "mediaopt.executor.commit.os.replace",
            side_effect=PermissionError(errno.EACCES, "denied"),
        ):
            with pytest.raises(CommitError, match="Could not publish"):
                commit(temp, tmp_path / "dest.mkv")
        assert not (tmp_path / "dest.mkv").exists()


class TestDiscard:
    """Tests for discard."""

    def test_removes_files_and_ignores_missing(self, tmp_path: Path) -> None:
        a = tmp_path / "temp_1.mkv"
        a.write_bytes(b"x")
        discard(a, tmp_path / "progress_1.txt")
        assert not a.exists()

    def test_failures_logged_not_raised(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch.object(Path, "unlink", side_effect=PermissionError("busy")):
            with caplog.at_level(logging.WARNING):
                discard(tmp_path / "temp_1.mkv")
        assert "Could not clean up temp file" in caplog.text


class TestOutputCommitter:
    """OutputCommitter delegates to the module functions."""

    def test_round_trip(self, tmp_path: Path) -> None:
        committer = OutputCommitter()
        temp, progress = committer.temp_paths(tmp_path, "j1", Path("x.mkv"))
        temp.write_bytes(b"data")
        progress.write_text("progress=end\n")
        dest = tmp_path / "x.mkv"
        committer.commit(temp, dest)
        committer.discard(temp, progress)
        assert dest.exists()
        assert not progress.exists()
