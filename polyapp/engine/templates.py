"""Jinja2 template instantiation for feature stages.

``TemplateRenderer`` reads template sources from the template root (the
packaged ``polyapp/features/templates`` directory by default) and writes the
rendered output through a ``FileSystem`` port. Rendering is strict: any
``{{ name }}`` that the context does not provide raises ``TemplateError``
instead of rendering as an empty string.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from polyapp.engine.runtime import FileSystem
from polyapp.errors import TemplateError
from polyapp.features.models import TemplateSpec

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ROOT = Path(__file__).resolve().parent.parent / "features" / "templates"
TEMPLATE_SUFFIX = ".j2"


def build_context(
    stage_context: Mapping[str, Any],
    engine_args: Mapping[str, Any],
    answers: Mapping[str, Any],
) -> dict[str, Any]:
    """Merge render context, lowest precedence first.

    Stage literals are overridden by engine arguments (``projectName``,
    ``projectDir``, ``enabledFeatures``), which are overridden by answers.
    A ``has_feature(id)`` helper is derived from ``enabledFeatures``.
    """
    context: dict[str, Any] = {**stage_context, **engine_args}
    for key, value in answers.items():
        context[key] = list(value) if isinstance(value, tuple) else value
    enabled = frozenset(context.get("enabledFeatures") or ())
    context["has_feature"] = lambda feature_id: feature_id in enabled
    return context


class TemplateRenderer:
    """Renders template files and inline strings with Jinja2."""

    def __init__(self, fs: FileSystem, template_root: str | Path | None = None) -> None:
        self.fs = fs
        self.template_root = Path(template_root or DEFAULT_TEMPLATE_ROOT)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_root)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter

    # -- Rendering ---------------------------------------------------------

    def render_string(self, text: str, context: Mapping[str, Any], origin: str = "<string>") -> str:
        """Render *text*; undefined names and syntax errors become ``TemplateError``."""
        return self._render(lambda: self.env.from_string(text), context, origin)

    def render_file(self, source_file: Path, context: Mapping[str, Any]) -> str:
        """Render a template file.

        Files under the template root are loaded through the environment's
        loader, so they can ``{% include %}`` or ``{% extends %}`` siblings.
        Files outside it are read directly and rendered standalone.
        """
        origin = str(source_file)
        name = self._loader_name(source_file)
        if name is None:
            try:
                text = source_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise TemplateError(f"Cannot read template {source_file}: {exc}") from exc
            return self.render_string(text, context, origin)
        return self._render(lambda: self.env.get_template(name), context, origin)

    def _render(
        self,
        load: Callable[[], jinja2.Template],
        context: Mapping[str, Any],
        origin: str,
    ) -> str:
        try:
            return load().render(**context)
        except jinja2.UndefinedError as exc:
            raise TemplateError(f"Unresolved placeholder in {origin}: {exc.message}") from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Cannot render {origin}: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateError(f"Cannot read template {origin}: {exc}") from exc

    def _loader_name(self, source_file: Path) -> str | None:
        try:
            relative = source_file.relative_to(self.template_root)
        except ValueError:
            return None
        if ".." in relative.parts:
            return None
        return relative.as_posix()

    def resolve_source(self, source: str) -> Path:
        path = Path(source)
        return path if path.is_absolute() else self.template_root / path

    # -- Instantiation -----------------------------------------------------

    def instantiate(
        self,
        spec: TemplateSpec,
        project_dir: Path,
        context: Mapping[str, Any],
        written: list[Path] | None = None,
    ) -> list[Path]:
        """Render *spec* into *project_dir* and return the written paths.

        A directory source is copied file by file, keeping its layout. A
        single-file source is written to ``destination``, or into it when
        ``destination`` has no file extension. A trailing ``.j2`` is dropped
        from output names. Existing files are overwritten.

        When *written* is given, each path is appended to it as soon as the
        file is on disk, so callers still see partial output if a later file
        fails.
        """
        source = self.resolve_source(spec.source)
        destination = Path(project_dir) / spec.destination

        if source.is_dir():
            pairs = [
                (file, destination / _output_name(file.relative_to(source)))
                for file in sorted(p for p in source.rglob("*") if p.is_file())
            ]
        elif source.is_file():
            target = destination
            if not Path(spec.destination).suffix:
                target = destination / _output_name(Path(source.name))
            pairs = [(source, target)]
        else:
            raise TemplateError(f"Template source not found: {source}")

        return self._write_all(pairs, context, [] if written is None else written)

    def _write_all(
        self,
        pairs: Iterable[tuple[Path, Path]],
        context: Mapping[str, Any],
        written: list[Path],
    ) -> list[Path]:
        start = len(written)
        for source_file, target in pairs:
            rendered = self.render_file(source_file, context)
            try:
                self.fs.write_text(target, rendered)
            except OSError as exc:
                raise TemplateError(f"Cannot write {target}: {exc}") from exc
            logger.info("Wrote %s", target)
            written.append(target)
        return written[start:]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output_name(relative: Path) -> Path:
    if relative.name.endswith(TEMPLATE_SUFFIX):
        return relative.with_name(relative.name[: -len(TEMPLATE_SUFFIX)])
    return relative


def _slugify_filter(value: str) -> str:
    """Convert a string to a package-name-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", str(value))
    return "".join(word.capitalize() for word in parts if word)
