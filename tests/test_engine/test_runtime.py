"""Unit tests for the file-system and process ports (polyapp.engine.runtime)."""

from __future__ import annotations

from pathlib import Path

import pytest

from polyapp.engine.runtime import LocalFileSystem, MemoryFileSystem, ProcessResult, SubprocessRunner
from polyapp.utils import TIMEOUT_MESSAGE_PREFIX

pytestmark = pytest.mark.unit


class TestMemoryFileSystem:
    def test_seeded_files(self):
        fs = MemoryFileSystem({"/p/a.txt": "A"})
        assert fs.read_text(Path("/p/a.txt")) == "A"
        assert fs.exists(Path("/p"))
        assert Path("/p") in fs.dirs
        assert fs.writes == []

    def test_write_records_and_creates_parents(self):
        fs = MemoryFileSystem()
        fs.write_text(Path("/p/sub/b.txt"), "B")
        assert fs.writes == [Path("/p/sub/b.txt")]
        assert Path("/p/sub") in fs.dirs
        assert Path("/p/sub/b.txt") not in fs.dirs

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            MemoryFileSystem().read_text(Path("/nope"))

    def test_make_dirs(self):
        fs = MemoryFileSystem()
        fs.make_dirs(Path("/p/a/b"))
        assert fs.exists(Path("/p/a"))
        assert fs.files == {}

    def test_write_below_a_file_fails(self):
        fs = MemoryFileSystem({"/p/blocker": "x"})
        with pytest.raises(NotADirectoryError):
            fs.write_text(Path("/p/blocker/sub/a.txt"), "A")
        with pytest.raises(NotADirectoryError):
            fs.make_dirs(Path("/p/blocker/sub"))
        assert fs.writes == []


class TestLocalFileSystem:
    def test_round_trip(self, tmp_path):
        fs = LocalFileSystem()
        target = tmp_path / "deep" / "file.txt"
        fs.write_text(target, "hello")
        assert fs.read_text(target) == "hello"
        assert (tmp_path / "deep").is_dir()

    def test_make_dirs_is_idempotent(self, tmp_path):
        fs = LocalFileSystem()
        fs.make_dirs(tmp_path / "x" / "y")
        fs.make_dirs(tmp_path / "x" / "y")
        assert fs.exists(tmp_path / "x" / "y")


class TestProcessResult:
    def test_ok(self):
        assert ProcessResult(0).ok
        assert not ProcessResult(1).ok
        assert not ProcessResult(0, timed_out=True).ok


class TestSubprocessRunner:
    async def test_maps_timeout(self, tmp_path, monkeypatch):
        async def fake_run_command(command, cwd=None, timeout=600):
            return -1, "", f"{TIMEOUT_MESSAGE_PREFIX} {timeout}s"

        monkeypatch.setattr("polyapp.engine.runtime.run_command", fake_run_command)
        result = await SubprocessRunner().run("sleep 5", tmp_path, 1)
        assert result.timed_out
        assert not result.ok

    async def test_passes_output_through(self, tmp_path, monkeypatch):
        async def fake_run_command(command, cwd=None, timeout=600):
            return 2, "out", "err"

        monkeypatch.setattr("polyapp.engine.runtime.run_command", fake_run_command)
        result = await SubprocessRunner().run("false", tmp_path, 5)
        assert (result.returncode, result.stdout, result.stderr, result.timed_out) == (2, "out", "err", False)
