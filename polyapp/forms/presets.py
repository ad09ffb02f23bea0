"""Named answer presets.

A preset is a saved answer map for one form, so a later run can replay the
same choices without prompting. All presets live in a single JSON document::

    {
      "version": "1.0",
      "updated_at": "2026-10-19T12:00:00Z",
      "presets": [{"id": "preset_...", "name": "web-only", "form_id": "create-poly-app", ...}]
    }

Preset names are unique per form: saving under an existing name replaces
that preset's answers and keeps its id and creation time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from polyapp.errors import PresetError

logger = logging.getLogger(__name__)

PRESET_FILE_VERSION = "1.0"
DEFAULT_PRESET_FILE = Path.home() / ".polyapp" / "presets.json"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return f"preset_{uuid.uuid4().hex[:12]}"


def _plain(answers: Mapping[str, Any]) -> dict[str, Any]:
    return {key: list(value) if isinstance(value, tuple) else value for key, value in answers.items()}


class Preset(BaseModel):
    """One saved answer map."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    form_id: str
    answers: dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def answer_count(self) -> int:
        return len(self.answers)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name, description or any tag."""
        term = query.lower()
        return (
            term in self.name.lower()
            or term in self.description.lower()
            or any(term in tag.lower() for tag in self.tags)
        )


class PresetDocument(BaseModel):
    """On-disk layout of the preset file."""

    version: str = PRESET_FILE_VERSION
    updated_at: datetime | None = None
    presets: list[Preset] = Field(default_factory=list)


class PresetStore:
    """Load and persist presets in one JSON file.

    Every operation reads the file afresh, so two stores pointed at the same
    path see each other's writes. A missing file is an empty store; it is
    created on the first write.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or DEFAULT_PRESET_FILE)

    # -- Reading -----------------------------------------------------------

    def all(self) -> list[Preset]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PresetError(f"Cannot read preset file {self.path}: {exc}") from exc
        if not raw.strip():
            return []
        return self._parse(raw, origin=str(self.path)).presets

    def for_form(self, form_id: str) -> list[Preset]:
        return [p for p in self.all() if p.form_id == form_id]

    def get(self, preset_id: str) -> Preset | None:
        return next((p for p in self.all() if p.id == preset_id), None)

    def find(self, name: str, form_id: str) -> Preset | None:
        """The preset called *name* for *form_id*, if any."""
        return next((p for p in self.for_form(form_id) if p.name == name), None)

    def load(self, name: str, form_id: str) -> Preset:
        preset = self.find(name, form_id)
        if preset is None:
            raise PresetError(f"No preset named '{name}' for form '{form_id}' in {self.path}")
        return preset

    def search(self, query: str) -> list[Preset]:
        return [p for p in self.all() if p.matches(query)]

    # -- Writing -----------------------------------------------------------

    def save(
        self,
        name: str,
        form_id: str,
        answers: Mapping[str, Any],
        description: str = "",
        tags: Iterable[str] = (),
    ) -> Preset:
        """Store *answers* under *name*, replacing a same-named preset for the form."""
        presets = self.all()
        existing = next((p for p in presets if p.name == name and p.form_id == form_id), None)
        if existing is not None:
            preset = existing.model_copy(
                update={
                    "answers": _plain(answers),
                    "description": description or existing.description,
                    "tags": list(tags) or existing.tags,
                    "updated_at": _now(),
                }
            )
            presets = [preset if p.id == existing.id else p for p in presets]
            logger.info("Updated preset '%s' (%s)", name, preset.id)
        else:
            preset = Preset(
                name=name, form_id=form_id, answers=_plain(answers), description=description, tags=list(tags)
            )
            presets.append(preset)
            logger.info("Saved preset '%s' (%s)", name, preset.id)
        self._write(presets)
        return preset

    def update(self, preset_id: str, **changes: Any) -> Preset | None:
        """Change fields of one preset; ``id`` and ``created_at`` are fixed."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        if "answers" in changes:
            changes["answers"] = _plain(changes["answers"])
        presets = self.all()
        for index, preset in enumerate(presets):
            if preset.id == preset_id:
                data = {**preset.model_dump(), **changes, "updated_at": _now()}
                try:
                    presets[index] = Preset.model_validate(data)
                except PydanticValidationError as exc:
                    raise PresetError(f"Invalid preset update for {preset_id}: {exc}") from exc
                self._write(presets)
                return presets[index]
        return None

    def delete(self, preset_id: str) -> bool:
        presets = self.all()
        remaining = [p for p in presets if p.id != preset_id]
        if len(remaining) == len(presets):
            return False
        self._write(remaining)
        return True

    def delete_for_form(self, form_id: str) -> int:
        presets = self.all()
        remaining = [p for p in presets if p.form_id != form_id]
        removed = len(presets) - len(remaining)
        if removed:
            self._write(remaining)
        return removed

    def clear(self) -> None:
        self._write([])

    # -- Exchange ----------------------------------------------------------

    def export_json(self) -> str:
        document = PresetDocument(updated_at=_now(), presets=self.all())
        return document.model_dump_json(indent=2)

    def import_json(self, data: str, merge: bool = True) -> int:
        """Import an exported document and return how many presets were added.

        With *merge*, presets whose id already exists are skipped; otherwise
        the store is replaced by the imported presets.
        """
        imported = self._parse(data, origin="imported presets").presets
        if not merge:
            self._write(imported)
            return len(imported)
        existing = self.all()
        known = {p.id for p in existing}
        added = [p for p in imported if p.id not in known]
        self._write(existing + added)
        return len(added)

    # -- Internals ---------------------------------------------------------

    def _parse(self, raw: str, origin: str) -> PresetDocument:
        try:
            return PresetDocument.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise PresetError(f"Invalid preset data in {origin}: {exc}") from exc

    def _write(self, presets: list[Preset]) -> None:
        document = PresetDocument(updated_at=_now(), presets=presets)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(document.model_dump_json(indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise PresetError(f"Cannot write preset file {self.path}: {exc}") from exc
