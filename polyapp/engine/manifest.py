"""Additive dependency merge into workspace ``package.json`` manifests."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from polyapp.codemods.base import MutationOutcome
from polyapp.codemods.manifest import AddDependency, render_value
from polyapp.engine.runtime import FileSystem
from polyapp.errors import TemplateError
from polyapp.features.models import DependencyRequest

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"
DEFAULT_VERSION = "latest"


class DependencyMerger:
    """Merges dependency requests into the manifests of one project.

    Each package becomes one ``AddDependency`` CodeMod, so the merge inherits
    its guarantees: a missing manifest is synthesised as ``{}``, a package
    already listed in any dependency section is left untouched, and a
    second identical merge changes nothing.
    """

    def __init__(self, project_dir: Path, fs: FileSystem) -> None:
        self.project_dir = Path(project_dir)
        self.fs = fs

    def manifest_path(self, workspace: str, answers: Mapping[str, Any] | None = None) -> Path:
        """Resolve the ``package.json`` path for *workspace*."""
        name = render_value(workspace, answers or {})
        if "{{" in name:
            raise TemplateError(f"Unresolved placeholder in workspace name: {workspace}")
        if name in ("root", ".", ""):
            return self.project_dir / MANIFEST_NAME
        return self.project_dir / name / MANIFEST_NAME

    def merge(
        self,
        requests: Iterable[DependencyRequest],
        answers: Mapping[str, Any] | None = None,
        written: list[Path] | None = None,
    ) -> list[MutationOutcome]:
        """Apply every request and return one outcome per package.

        Changed manifests are appended to *written* (once each) as soon as
        they are saved, so a later failure does not hide earlier writes.
        """
        answers = answers or {}
        outcomes: list[MutationOutcome] = []
        for request in requests:
            path = self.manifest_path(request.workspace, answers)
            for name in request.names:
                mod = AddDependency(
                    name,
                    version=request.version or DEFAULT_VERSION,
                    section=request.kind.value,
                )
                outcome = mod.apply(path, answers, self.fs)
                if outcome.changed:
                    logger.info("Added %s to %s (%s)", name, path, request.kind.value)
                    if written is not None and path not in written:
                        written.append(path)
                else:
                    logger.debug("%s already present in %s", name, path)
                outcomes.append(outcome)
        return outcomes
