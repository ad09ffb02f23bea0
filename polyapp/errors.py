"""Error taxonomy for the polyapp scaffolding engine.

Errors fall into two families:

* **Pre-execution** errors (``ConfigurationError``, ``GraphError``,
  ``PredicateError``) abort the whole run before any file is touched.
* **Execution** errors (``ScriptError``, ``MutationError``,
  ``TemplateError``) abort the current feature's remaining stages and are
  reported in the ``RunResult`` with the originating feature, stage and step.

``ValidationError`` is recoverable during interactive collection (the option
is re-prompted) and fatal when answers are supplied non-interactively.
"""

from __future__ import annotations

from pathlib import Path


class PolyAppError(Exception):
    """Base class for every error raised by polyapp.

    Execution errors get their ``feature_id``, ``stage`` and ``step`` filled
    in by the executor once they propagate out of a stage step.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        self.feature_id: str | None = None
        self.stage: str | None = None
        self.step: str | None = None
        super().__init__(message)

    def locate(self, feature_id: str, stage: str, step: str) -> "PolyAppError":
        """Attach the originating feature/stage/step and return ``self``."""
        self.feature_id = feature_id
        self.stage = stage
        self.step = step
        return self

    @property
    def location(self) -> str:
        parts = [p for p in (self.feature_id, self.stage, self.step) if p]
        return "/".join(parts)

    def __str__(self) -> str:
        if self.location:
            return f"[{self.location}] {self.message}"
        return self.message


# ---------------------------------------------------------------------------
# Pre-execution errors
# ---------------------------------------------------------------------------


class ConfigurationError(PolyAppError):
    """A required option has no answer and no default."""

    def __init__(self, option_id: str, message: str | None = None) -> None:
        self.option_id = option_id
        super().__init__(message or f"Option '{option_id}' is required but was not answered")


class ValidationError(PolyAppError):
    """A validator rejected an answer."""

    def __init__(self, option_id: str, message: str) -> None:
        self.option_id = option_id
        super().__init__(f"{option_id}: {message}")
        self.reason = message


class GraphError(PolyAppError):
    """The feature dependency graph is cyclic or references a missing feature."""


class PredicateError(PolyAppError):
    """A predicate references an answer key that no option declares."""

    def __init__(self, owner: str, key: str) -> None:
        self.owner = owner
        self.key = key
        super().__init__(f"{owner} references undeclared option '{key}'")


class CollectionCancelled(PolyAppError):
    """The user cancelled answer collection; no answer map was produced."""

    def __init__(self, message: str = "Answer collection cancelled") -> None:
        super().__init__(message)


class PresetError(PolyAppError):
    """A preset file is unreadable, or a named preset does not exist."""


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------


class ScriptError(PolyAppError):
    """A stage script exited non-zero or timed out."""

    def __init__(
        self,
        command: str,
        returncode: int,
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out
        if timed_out:
            message = f"Script timed out: {command}"
        else:
            message = f"Script exited with code {returncode}: {command}"
        if stderr:
            message = f"{message}\n{stderr[:500]}"
        super().__init__(message)


class MutationError(PolyAppError):
    """A CodeMod could not parse or edit its target file."""

    def __init__(self, path: str | Path, codemod: str, message: str) -> None:
        self.path = Path(path)
        self.codemod = codemod
        super().__init__(f"{codemod} failed on {path}: {message}")


class TemplateError(PolyAppError):
    """A template placeholder could not be resolved or a source is unreadable."""


class DependencyFailedError(PolyAppError):
    """A feature could not run because one of its dependencies failed."""

    def __init__(self, feature_id: str, dependency_id: str) -> None:
        self.dependency_id = dependency_id
        super().__init__(f"Feature '{feature_id}' depends on failed feature '{dependency_id}'")
        self.feature_id = feature_id
