"""Unit tests for manifest CodeMods (polyapp.codemods.manifest)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from polyapp.codemods.manifest import (
    AddDependency,
    AddWorkspacePackage,
    SetPackageFields,
    SetPackageScripts,
    render_value,
)
from polyapp.engine.runtime import MemoryFileSystem
from polyapp.errors import MutationError

pytestmark = pytest.mark.unit

MANIFEST = Path("/work/demo/package.json")
WORKSPACE = Path("/work/demo/pnpm-workspace.yaml")


def _json(fs: MemoryFileSystem) -> dict:
    return json.loads(fs.read_text(MANIFEST))


class TestRenderValue:
    def test_replaces_known_tokens(self):
        assert render_value("{{projectName}}-web", {"projectName": "demo"}) == "demo-web"

    def test_leaves_unknown_tokens(self):
        assert render_value("{{other}}", {"projectName": "demo"}) == "{{other}}"


class TestAddDependency:
    def test_rejects_unknown_section(self):
        with pytest.raises(ValueError):
            AddDependency("x", section="bundled")

    def test_name_includes_package(self):
        assert AddDependency("react").name == "AddDependency[react]"

    def test_adds_to_section(self):
        fs = MemoryFileSystem({MANIFEST: '{"name": "demo"}'})
        AddDependency("vite", "^6.0.0", "devDependencies").apply(MANIFEST, {}, fs)
        assert _json(fs) == {"name": "demo", "devDependencies": {"vite": "^6.0.0"}}

    def test_listed_in_other_section_is_left_alone(self):
        fs = MemoryFileSystem({MANIFEST: '{"peerDependencies": {"react": "*"}}'})
        assert not AddDependency("react").apply(MANIFEST, {}, fs).changed


class TestSetPackageScripts:
    def test_keeps_existing_by_default(self):
        fs = MemoryFileSystem({MANIFEST: '{"scripts": {"dev": "custom"}}'})
        SetPackageScripts({"dev": "vite", "build": "vite build"}).apply(MANIFEST, {}, fs)
        assert _json(fs)["scripts"] == {"dev": "custom", "build": "vite build"}

    def test_overwrite(self):
        fs = MemoryFileSystem({MANIFEST: '{"scripts": {"dev": "custom"}}'})
        SetPackageScripts({"dev": "vite"}, overwrite=True).apply(MANIFEST, {}, fs)
        assert _json(fs)["scripts"] == {"dev": "vite"}

    def test_renders_tokens(self):
        fs = MemoryFileSystem()
        SetPackageScripts({"gen": "{{packageManager}} run prisma:generate"}).apply(
            MANIFEST, {"packageManager": "pnpm"}, fs
        )
        assert _json(fs)["scripts"] == {"gen": "pnpm run prisma:generate"}

    def test_non_object_scripts_block(self):
        fs = MemoryFileSystem({MANIFEST: '{"scripts": []}'})
        with pytest.raises(MutationError, match="not an object"):
            SetPackageScripts({"dev": "vite"}).apply(MANIFEST, {}, fs)


class TestSetPackageFields:
    def test_sets_and_renders(self):
        fs = MemoryFileSystem({MANIFEST: '{"name": "web"}'})
        SetPackageFields({"name": "{{projectName}}-web", "private": True}).apply(
            MANIFEST, {"projectName": "demo"}, fs
        )
        assert _json(fs) == {"name": "demo-web", "private": True}

    def test_no_overwrite(self):
        fs = MemoryFileSystem({MANIFEST: '{"type": "commonjs"}'})
        SetPackageFields({"type": "module"}, overwrite=False).apply(MANIFEST, {}, fs)
        assert _json(fs) == {"type": "commonjs"}


class TestAddWorkspacePackage:
    def test_creates_file(self):
        fs = MemoryFileSystem()
        outcome = AddWorkspacePackage("web").apply(WORKSPACE, {}, fs)
        assert outcome.created
        assert yaml.safe_load(fs.read_text(WORKSPACE)) == {"packages": ["web"]}

    def test_appends_once(self):
        fs = MemoryFileSystem({WORKSPACE: "packages:\n  - web\n"})
        AddWorkspacePackage("api").apply(WORKSPACE, {}, fs)
        assert not AddWorkspacePackage("api").apply(WORKSPACE, {}, fs).changed
        assert yaml.safe_load(fs.read_text(WORKSPACE)) == {"packages": ["web", "api"]}

    def test_missing_packages_key(self):
        fs = MemoryFileSystem({WORKSPACE: "onlyBuiltDependencies: []\n"})
        AddWorkspacePackage("{{projectName}}-web").apply(WORKSPACE, {"projectName": "demo"}, fs)
        data = yaml.safe_load(fs.read_text(WORKSPACE))
        assert data == {"onlyBuiltDependencies": [], "packages": ["demo-web"]}
