"""Pydantic v2 models for feature declarations.

A ``Feature`` is a static, immutable declaration: its dependencies, its
activation predicate, the extra options it asks for and the ordered stages
that perform its work. Nothing here executes anything; see
``polyapp.engine.executor`` for that.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polyapp.codemods.base import CodeMod
from polyapp.forms.models import ConfigOption, OptionGroup
from polyapp.predicates import Predicate


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class DependencyKind(str, Enum):
    """Which manifest section a dependency request lands in."""
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"


ROOT_WORKSPACES = ("root", ".", "")


# ---------------------------------------------------------------------------
# Stage steps
# ---------------------------------------------------------------------------

class DependencyRequest(BaseModel):
    """One or more packages to add to a workspace manifest."""
    model_config = ConfigDict(frozen=True)

    names: list[str] = Field(..., min_length=1)
    workspace: str = Field(default="root", description="'root' or a sub-directory, may hold {{key}}")
    kind: DependencyKind = Field(default=DependencyKind.DEPENDENCIES)
    version: str | None = Field(default=None, description="Version range; 'latest' when unset")

    @field_validator("names", mode="before")
    @classmethod
    def _single_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @property
    def is_root(self) -> bool:
        return self.workspace in ROOT_WORKSPACES


class ScriptSpec(BaseModel):
    """A shell command run from a directory inside the project."""
    model_config = ConfigDict(frozen=True)

    command: str = Field(..., description="Shell command; {{key}} placeholders are resolved first")
    working_dir: str = Field(default=".", description="Relative to the project directory")
    best_effort: bool = Field(default=False, description="Log a failure instead of failing the stage")
    timeout: int | None = Field(default=None, ge=1, description="Overrides Config.script_timeout")


class TemplateSpec(BaseModel):
    """A template file or directory rendered into the project."""
    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="File or directory relative to the template root")
    destination: str = Field(default=".", description="Relative to the project directory")
    context: dict[str, Any] = Field(default_factory=dict, description="Literal values for this template")


class Stage(BaseModel):
    """An independently-activatable slice of a feature's work.

    Steps run in a fixed order: dependencies, scripts, templates, mods.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    activated_by: Predicate | None = Field(default=None)
    dependencies: list[DependencyRequest] = Field(default_factory=list)
    scripts: list[ScriptSpec] = Field(default_factory=list)
    templates: list[TemplateSpec] = Field(default_factory=list)
    mods: dict[str, list[CodeMod]] = Field(
        default_factory=dict, description="Target path (relative to project) -> ordered CodeMods"
    )


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------

class Feature(BaseModel):
    """A unit of optional functionality."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    description: str = Field(default="")
    depends_on: list[str] = Field(default_factory=list)
    activated_by: Predicate | None = Field(default=None)
    configuration: list[ConfigOption] = Field(default_factory=list)
    stages: list[Stage] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def option_group(self) -> OptionGroup | None:
        """The feature's own options as a group, shown only while it is active."""
        if not self.configuration:
            return None
        return OptionGroup(
            id=f"{self.id}-options",
            title=f"{self.display_name} options",
            description=self.description,
            options=list(self.configuration),
            show_if=[self.activated_by] if self.activated_by is not None else [],
        )
