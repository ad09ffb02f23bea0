"""Unit tests for dependency merging (polyapp.engine.manifest)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from polyapp.engine.manifest import DependencyMerger
from polyapp.engine.runtime import MemoryFileSystem
from polyapp.errors import MutationError, TemplateError
from polyapp.features.models import DependencyKind, DependencyRequest

pytestmark = pytest.mark.unit


@pytest.fixture
def merger(project_dir, memory_fs) -> DependencyMerger:
    return DependencyMerger(project_dir, memory_fs)


def _manifest(fs: MemoryFileSystem, path: Path) -> dict:
    return json.loads(fs.read_text(path))


class TestManifestPath:
    def test_root_aliases(self, merger, project_dir):
        for workspace in ("root", ".", ""):
            assert merger.manifest_path(workspace) == project_dir / "package.json"

    def test_sub_workspace(self, merger, project_dir):
        assert merger.manifest_path("api") == project_dir / "api" / "package.json"

    def test_placeholder_resolved_from_answers(self, merger, project_dir):
        path = merger.manifest_path("{{projectName}}-web", {"projectName": "demo"})
        assert path == project_dir / "demo-web" / "package.json"

    def test_unresolved_placeholder(self, merger):
        with pytest.raises(TemplateError):
            merger.manifest_path("{{missing}}", {})


class TestMerge:
    def test_creates_missing_manifest(self, merger, memory_fs, project_dir):
        outcomes = merger.merge([DependencyRequest(names=["react", "react-dom"], workspace="web")])
        path = project_dir / "web" / "package.json"
        assert _manifest(memory_fs, path) == {"dependencies": {"react": "latest", "react-dom": "latest"}}
        assert outcomes[0].created
        assert all(o.changed for o in outcomes)

    def test_dev_section_and_version(self, merger, memory_fs, project_dir):
        merger.merge([DependencyRequest(names="prisma", kind=DependencyKind.DEV_DEPENDENCIES, version="^6.0.0")])
        assert _manifest(memory_fs, project_dir / "package.json") == {"devDependencies": {"prisma": "^6.0.0"}}

    def test_existing_entry_is_never_altered(self, project_dir):
        path = project_dir / "package.json"
        fs = MemoryFileSystem({path: json.dumps({"name": "demo", "devDependencies": {"react": "^18.2.0"}})})
        outcomes = DependencyMerger(project_dir, fs).merge([DependencyRequest(names="react")])
        assert not outcomes[0].changed
        assert fs.writes == []
        assert _manifest(fs, path) == {"name": "demo", "devDependencies": {"react": "^18.2.0"}}

    def test_unrelated_content_preserved(self, project_dir):
        path = project_dir / "package.json"
        fs = MemoryFileSystem({path: json.dumps({"name": "demo", "scripts": {"dev": "vite"}})})
        DependencyMerger(project_dir, fs).merge([DependencyRequest(names="zod")])
        data = _manifest(fs, path)
        assert data["scripts"] == {"dev": "vite"}
        assert list(data) == ["name", "scripts", "dependencies"]

    def test_second_merge_is_a_no_op(self, merger, memory_fs):
        requests = [DependencyRequest(names=["graphql"], workspace="api")]
        merger.merge(requests)
        writes = len(memory_fs.writes)
        outcomes = merger.merge(requests)
        assert not any(o.changed for o in outcomes)
        assert len(memory_fs.writes) == writes

    def test_invalid_manifest(self, project_dir):
        fs = MemoryFileSystem({project_dir / "package.json": "{not json"})
        with pytest.raises(MutationError, match="invalid JSON"):
            DependencyMerger(project_dir, fs).merge([DependencyRequest(names="zod")])

    def test_written_sink_keeps_manifests_before_a_failure(self, project_dir):
        broken = project_dir / "api" / "package.json"
        fs = MemoryFileSystem({broken: "{not json"})
        written: list[Path] = []
        requests = [
            DependencyRequest(names=["react", "react-dom"], workspace="web"),
            DependencyRequest(names="zod", workspace="api"),
        ]
        with pytest.raises(MutationError):
            DependencyMerger(project_dir, fs).merge(requests, {}, written)
        assert written == [project_dir / "web" / "package.json"]
