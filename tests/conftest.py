"""Shared pytest fixtures for the polyapp test suite.

Provides reusable fixtures for:
- An in-memory file system and a recording process runner
- A small template tree on disk
- Sample features and answer maps
"""

from __future__ import annotations

from pathlib import Path

import pytest

from polyapp.answers import AnswerMap
from polyapp.engine.runtime import MemoryFileSystem, ProcessResult, ProcessRunner
from polyapp.features.models import Feature, ScriptSpec, Stage
from polyapp.predicates import IncludesValue


# ---------------------------------------------------------------------------
# Process runner
# ---------------------------------------------------------------------------

class RecordingRunner(ProcessRunner):
    """Records every command and replies with canned results.

    ``results`` maps a substring of the command to the ``ProcessResult`` to
    return; commands matching nothing succeed with exit code 0.
    """

    def __init__(self, results: dict[str, ProcessResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, Path, int]] = []

    async def run(self, command: str, cwd: Path, timeout: int) -> ProcessResult:
        self.calls.append((command, Path(cwd), timeout))
        for needle, result in self.results.items():
            if needle in command:
                return result
        return ProcessResult(returncode=0)

    @property
    def commands(self) -> list[str]:
        return [command for command, _, _ in self.calls]


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


# ---------------------------------------------------------------------------
# File system & paths
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def project_dir() -> Path:
    return Path("/work/demo")


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A template tree with one directory source and one single-file source."""
    root = tmp_path / "templates"
    (root / "api" / "src").mkdir(parents=True)
    (root / "api" / "src" / "index.ts.j2").write_text(
        "console.log('{{ projectName }} on {{ port }}')\n", encoding="utf-8"
    )
    (root / "api" / "README.md").write_text("# {{ projectName }}\n", encoding="utf-8")
    (root / "single.txt.j2").write_text("hello {{ who }}\n", encoding="utf-8")
    (root / "broken.j2").write_text("{{ not_defined_anywhere }}\n", encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Features & answers
# ---------------------------------------------------------------------------

@pytest.fixture
def web_feature() -> Feature:
    """Feature active only when the react-webapp workspace is selected."""
    return Feature(
        id="web",
        activated_by=IncludesValue("projectWorkspaces", "react-webapp"),
        stages=[
            Stage(name="create", scripts=[ScriptSpec(command="echo create-web")]),
            Stage(name="configure", scripts=[ScriptSpec(command="echo configure-web")]),
        ],
    )


@pytest.fixture
def web_answers() -> AnswerMap:
    return AnswerMap({"projectName": "demo", "projectWorkspaces": ["react-webapp"]})
