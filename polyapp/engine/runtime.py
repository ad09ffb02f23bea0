"""Side-effect ports used by the stage executor.

Every file read/write and every external process goes through one of two
small interfaces so that the executor, template instantiation and CodeMods
can run against an in-memory file system and a fake process runner in tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from polyapp.utils import TIMEOUT_MESSAGE_PREFIX, run_command

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


class FileSystem(ABC):
    """Minimal file-system surface needed by the engine."""

    @abstractmethod
    def read_text(self, path: Path) -> str: ...

    @abstractmethod
    def write_text(self, path: Path, content: str) -> None:
        """Write *content*, creating parent directories as needed."""

    @abstractmethod
    def exists(self, path: Path) -> bool: ...

    @abstractmethod
    def make_dirs(self, path: Path) -> None: ...


class LocalFileSystem(FileSystem):
    """The real disk."""

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def make_dirs(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)


class MemoryFileSystem(FileSystem):
    """Dictionary-backed file system for tests and dry runs."""

    def __init__(self, files: dict[str | Path, str] | None = None) -> None:
        self.files: dict[Path, str] = {}
        self.dirs: set[Path] = set()
        self.writes: list[Path] = []
        for path, content in (files or {}).items():
            self._store(Path(path), content)

    def _store(self, path: Path, content: str) -> None:
        self.files[path] = content
        self.dirs.update(path.parents)

    def read_text(self, path: Path) -> str:
        try:
            return self.files[Path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def _check_parents(self, path: Path) -> None:
        for parent in path.parents:
            if parent in self.files:
                raise NotADirectoryError(f"Not a directory: {path}")

    def write_text(self, path: Path, content: str) -> None:
        self._check_parents(Path(path))
        self._store(Path(path), content)
        self.writes.append(Path(path))

    def exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self.files or path in self.dirs

    def make_dirs(self, path: Path) -> None:
        path = Path(path)
        self._check_parents(path)
        if path in self.files:
            raise FileExistsError(f"File exists: {path}")
        self.dirs.add(path)
        self.dirs.update(path.parents)


# ---------------------------------------------------------------------------
# Process runner
# ---------------------------------------------------------------------------


@dataclass
class ProcessResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class ProcessRunner(ABC):
    @abstractmethod
    async def run(self, command: str, cwd: Path, timeout: int) -> ProcessResult:
        """Run *command* through the shell in *cwd* and wait for it to exit."""


class SubprocessRunner(ProcessRunner):
    """Runs commands with ``asyncio`` subprocesses via ``run_command``."""

    async def run(self, command: str, cwd: Path, timeout: int) -> ProcessResult:
        logger.debug("Running %r in %s (timeout %ss)", command, cwd, timeout)
        returncode, stdout, stderr = await run_command(command, cwd=cwd, timeout=timeout)
        timed_out = returncode == -1 and stderr.startswith(TIMEOUT_MESSAGE_PREFIX)
        return ProcessResult(
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
        )
