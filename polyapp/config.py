"""polyapp configuration.

Centralised, typed run configuration. Settings use a Pydantic v2 model so
they are validated at construction time and can be serialised to/from JSON
or read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from polyapp.engine.executor import RunMode
from polyapp.engine.templates import DEFAULT_TEMPLATE_ROOT
from polyapp.forms.presets import DEFAULT_PRESET_FILE


class Config(BaseModel):
    """Global polyapp configuration.

    Instances are created once by the CLI entry point (or by a test) and
    passed to ``Scaffolder``.
    """

    project_name: str = Field(default="", description="Falls back to the projectName answer")
    output_dir: Path = Field(default=Path("."))
    metadata_dir_name: str = Field(default=".polyapp")
    run_mode: RunMode = Field(default=RunMode.FAIL_FAST)
    script_timeout: int = Field(default=600, ge=1, description="Per-script timeout in seconds")
    install_command: str | None = Field(
        default=None, description="Run best-effort after a dependency merge, e.g. 'pnpm install'"
    )
    template_root: Path = Field(default=DEFAULT_TEMPLATE_ROOT)
    log_level: str = Field(default="INFO")
    log_file: Path | None = Field(default=None)
    write_report: bool = Field(default=True)
    presets_file: Path = Field(default=DEFAULT_PRESET_FILE, description="JSON file holding saved answer presets")

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def project_dir(self) -> Path:
        """Directory the project is generated into."""
        return self.output_dir / self.project_name

    @property
    def metadata_dir(self) -> Path:
        """Root of the ``.polyapp/`` metadata directory inside the project."""
        return self.project_dir / self.metadata_dir_name

    @property
    def report_path(self) -> Path:
        """Path to the persisted run result."""
        return self.metadata_dir / "run-result.json"

    def with_project_name(self, name: str) -> "Config":
        """Return a copy targeting *name*, unless a name was set explicitly."""
        if self.project_name:
            return self
        return self.model_copy(update={"project_name": name})

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<metadata_dir>/config.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.metadata_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            POLYAPP_PROJECT_NAME, POLYAPP_OUTPUT_DIR, POLYAPP_RUN_MODE,
            POLYAPP_SCRIPT_TIMEOUT, POLYAPP_INSTALL_COMMAND,
            POLYAPP_LOG_LEVEL, POLYAPP_LOG_FILE, POLYAPP_PRESETS_FILE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("POLYAPP_PROJECT_NAME"):
            kwargs["project_name"] = os.environ["POLYAPP_PROJECT_NAME"]
        if os.environ.get("POLYAPP_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["POLYAPP_OUTPUT_DIR"])
        if os.environ.get("POLYAPP_RUN_MODE"):
            kwargs["run_mode"] = os.environ["POLYAPP_RUN_MODE"]
        if os.environ.get("POLYAPP_SCRIPT_TIMEOUT"):
            kwargs["script_timeout"] = int(os.environ["POLYAPP_SCRIPT_TIMEOUT"])
        if os.environ.get("POLYAPP_INSTALL_COMMAND"):
            kwargs["install_command"] = os.environ["POLYAPP_INSTALL_COMMAND"]
        if os.environ.get("POLYAPP_LOG_LEVEL"):
            kwargs["log_level"] = os.environ["POLYAPP_LOG_LEVEL"]
        if os.environ.get("POLYAPP_LOG_FILE"):
            kwargs["log_file"] = Path(os.environ["POLYAPP_LOG_FILE"])
        if os.environ.get("POLYAPP_PRESETS_FILE"):
            kwargs["presets_file"] = Path(os.environ["POLYAPP_PRESETS_FILE"])
        return cls(**kwargs)
