"""CodeMod contract.

A CodeMod performs exactly one structural edit on one file:

1. read the current content, or synthesise a minimal default document if the
   file does not exist yet;
2. parse it (a parse failure is a ``MutationError``);
3. apply its edit while preserving unrelated content;
4. write the result back, but only if it changed. An edit that leaves the
   parsed document equal keeps the original text, formatting included.

Running a CodeMod on its own output must produce no further change.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from polyapp.errors import MutationError

if TYPE_CHECKING:
    from polyapp.engine.runtime import FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationOutcome:
    """Result of a single CodeMod application."""

    path: Path
    codemod: str
    changed: bool
    created: bool = False


class CodeMod(ABC):
    """Base class for all CodeMods.

    Subclasses implement :meth:`transform` (text in, text out) and may
    override :meth:`default_document` for files that do not exist yet.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def default_document(self, context: Mapping[str, Any]) -> str:
        return ""

    @abstractmethod
    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        """Return *source* with this CodeMod's edit applied."""

    def apply(self, path: Path, context: Mapping[str, Any], fs: FileSystem) -> MutationOutcome:
        path = Path(path)
        try:
            existing = fs.read_text(path) if fs.exists(path) else None
            source = existing if existing is not None else self.default_document(context)
            updated = self.transform(source, path, context)
            changed = updated != existing
            if changed:
                fs.write_text(path, updated)
        except MutationError:
            raise
        except (OSError, ValueError, TypeError, KeyError) as exc:
            raise MutationError(path, self.name, str(exc)) from exc

        logger.debug("%s on %s: %s", self.name, path, "changed" if changed else "unchanged")
        return MutationOutcome(path=path, codemod=self.name, changed=changed, created=existing is None)

    def __repr__(self) -> str:
        return f"{self.name}()"


# ---------------------------------------------------------------------------
# Structured-document bases
# ---------------------------------------------------------------------------


class JsonCodeMod(CodeMod):
    """CodeMod over a JSON object document (``package.json``, ``tsconfig.json``)."""

    def default_document(self, context: Mapping[str, Any]) -> str:
        return "{}\n"

    @abstractmethod
    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        """Mutate *data* in place."""

    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        try:
            data = json.loads(source) if source.strip() else {}
        except json.JSONDecodeError as exc:
            raise MutationError(path, self.name, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MutationError(path, self.name, "expected a JSON object at the top level")
        before = copy.deepcopy(data)
        self.edit(data, context)
        if data == before:
            return source
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class YamlCodeMod(CodeMod):
    """CodeMod over a YAML mapping document (``pnpm-workspace.yaml``)."""

    @abstractmethod
    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        """Mutate *data* in place."""

    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        try:
            data = yaml.safe_load(source) if source.strip() else {}
        except yaml.YAMLError as exc:
            raise MutationError(path, self.name, f"invalid YAML: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MutationError(path, self.name, "expected a YAML mapping at the top level")
        before = copy.deepcopy(data)
        self.edit(data, context)
        if data == before:
            return source
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=1000)
