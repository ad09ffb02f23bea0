"""Unit tests for Config (polyapp.config)."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from polyapp.config import Config
from polyapp.engine.executor import RunMode
from polyapp.engine.templates import DEFAULT_TEMPLATE_ROOT

pytestmark = pytest.mark.unit


class TestDefaults:
    def test_defaults(self):
        config = Config()
        assert config.run_mode is RunMode.FAIL_FAST
        assert config.script_timeout == 600
        assert config.install_command is None
        assert config.template_root == DEFAULT_TEMPLATE_ROOT
        assert config.write_report is True

    def test_timeout_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            Config(script_timeout=0)


class TestPaths:
    def test_derived_paths(self):
        config = Config(output_dir=Path("/work"), project_name="demo")
        assert config.project_dir == Path("/work/demo")
        assert config.metadata_dir == Path("/work/demo/.polyapp")
        assert config.report_path == Path("/work/demo/.polyapp/run-result.json")

    def test_with_project_name_fills_blank(self):
        config = Config(output_dir=Path("/work")).with_project_name("demo")
        assert config.project_dir == Path("/work/demo")

    def test_with_project_name_keeps_explicit(self):
        config = Config(project_name="fixed").with_project_name("demo")
        assert config.project_name == "fixed"


class TestSerialisation:
    def test_save_and_load(self, tmp_path):
        config = Config(output_dir=tmp_path, project_name="demo", run_mode=RunMode.CONTINUE)
        path = config.save()
        assert path == tmp_path / "demo" / ".polyapp" / "config.json"
        loaded = Config.load(path)
        assert loaded.run_mode is RunMode.CONTINUE
        assert loaded.project_dir == config.project_dir

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POLYAPP_PROJECT_NAME", "envapp")
        monkeypatch.setenv("POLYAPP_OUTPUT_DIR", "/tmp/out")
        monkeypatch.setenv("POLYAPP_RUN_MODE", "continue")
        monkeypatch.setenv("POLYAPP_SCRIPT_TIMEOUT", "30")
        monkeypatch.setenv("POLYAPP_INSTALL_COMMAND", "pnpm install")
        monkeypatch.setenv("POLYAPP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("POLYAPP_PRESETS_FILE", "/tmp/presets.json")
        config = Config.from_env()
        assert config.project_dir == Path("/tmp/out/envapp")
        assert config.run_mode is RunMode.CONTINUE
        assert config.script_timeout == 30
        assert config.install_command == "pnpm install"
        assert config.log_level == "DEBUG"
        assert config.presets_file == Path("/tmp/presets.json")

    def test_from_env_empty(self, monkeypatch):
        for name in ("POLYAPP_PROJECT_NAME", "POLYAPP_OUTPUT_DIR", "POLYAPP_RUN_MODE", "POLYAPP_SCRIPT_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        assert Config.from_env().run_mode is RunMode.FAIL_FAST

    def test_from_env_rejects_unknown_run_mode(self, monkeypatch):
        monkeypatch.setenv("POLYAPP_RUN_MODE", "bogus")
        with pytest.raises(pydantic.ValidationError):
            Config.from_env()
