"""Line-oriented CodeMods for TypeScript/JavaScript and CSS sources.

These edits work on text rather than a full syntax tree. Each locates a
well-defined anchor (the import block, the ``defineConfig({...})`` call, a
marker line) and inserts its content only when it is not already there.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from polyapp.codemods.base import CodeMod
from polyapp.codemods.manifest import render_value
from polyapp.errors import MutationError

_IMPORT_LINE = re.compile(r"^\s*(import\b|@import\b)")
_DEFINE_CONFIG = re.compile(r"defineConfig\s*\(\s*\{")
_PLUGINS_KEY = re.compile(r"\bplugins\s*:\s*\[")


def _ensure_trailing_newline(text: str) -> str:
    return text if not text or text.endswith("\n") else text + "\n"


def _matching_bracket(text: str, open_index: int) -> int:
    """Index of the bracket closing the one at *open_index*, or -1."""
    pairs = {"[": "]", "{": "}", "(": ")"}
    stack: list[str] = []
    quote: str | None = None
    i = open_index
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char in pairs:
            stack.append(pairs[char])
        elif stack and char == stack[-1]:
            stack.pop()
            if not stack:
                return i
        i += 1
    return -1


class AddImport(CodeMod):
    """Insert an import statement if the exact statement is not present.

    The statement goes after the last existing import line, or at the top
    of the file when there is none. ``position="top"`` always prepends,
    which is what CSS ``@import`` rules need.
    """

    def __init__(self, statement: str, position: str = "after-imports") -> None:
        if position not in ("after-imports", "top"):
            raise ValueError(f"Unknown import position: {position}")
        self.statement = statement.strip()
        self.position = position

    @property
    def name(self) -> str:
        return f"AddImport[{self.statement}]"

    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        statement = render_value(self.statement, context)
        lines = source.splitlines()
        if any(line.strip() == statement for line in lines):
            return source

        insert_at = 0
        if self.position == "after-imports":
            for index, line in enumerate(lines):
                if _IMPORT_LINE.match(line):
                    insert_at = index + 1
        lines.insert(insert_at, statement)
        return _ensure_trailing_newline("\n".join(lines))


class AddVitePlugin(CodeMod):
    """Register a Vite plugin: default-import it and add ``name()`` to ``plugins``.

    Raises ``MutationError`` when the file has no ``defineConfig({...})`` call
    to anchor the edit on.
    """

    def __init__(self, module: str, import_name: str) -> None:
        self.module = module
        self.import_name = import_name

    @property
    def name(self) -> str:
        return f"AddVitePlugin[{self.module}]"

    def default_document(self, context: Mapping[str, Any]) -> str:
        return "import { defineConfig } from 'vite'\n\nexport default defineConfig({\n  plugins: [],\n})\n"

    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        already_imported = re.search(
            rf"""import\s+{re.escape(self.import_name)}\b[^;\n]*from\s+['"]{re.escape(self.module)}['"]""",
            source,
        )
        if not already_imported:
            source = AddImport(f"import {self.import_name} from '{self.module}'").transform(
                source, path, context
            )

        call = _DEFINE_CONFIG.search(source)
        if call is None:
            raise MutationError(path, self.name, "no defineConfig({...}) call found")
        body_open = call.end() - 1
        body_close = _matching_bracket(source, body_open)
        if body_close == -1:
            raise MutationError(path, self.name, "unbalanced defineConfig({...}) body")

        plugin_call = f"{self.import_name}()"
        plugins = _PLUGINS_KEY.search(source, body_open, body_close)
        if plugins is None:
            insertion = f"\n  plugins: [{plugin_call}],"
            return source[: body_open + 1] + insertion + source[body_open + 1 :]

        array_open = plugins.end() - 1
        array_close = _matching_bracket(source, array_open)
        if array_close == -1:
            raise MutationError(path, self.name, "unbalanced plugins array")
        elements = source[array_open + 1 : array_close]
        if re.search(rf"\b{re.escape(self.import_name)}\s*\(", elements):
            return source

        stripped = elements.rstrip()
        if not stripped.strip():
            new_elements = plugin_call
        elif stripped.endswith(","):
            new_elements = f"{stripped} {plugin_call}"
        else:
            new_elements = f"{stripped}, {plugin_call}"
        return source[: array_open + 1] + new_elements + source[array_close:]


class AppendBlock(CodeMod):
    """Append a block of text unless its marker line is already present.

    The marker defaults to the first non-blank line of the block.
    """

    def __init__(self, block: str, marker: str | None = None) -> None:
        self.block = block.strip("\n")
        self.marker = marker or next(
            (line.strip() for line in self.block.splitlines() if line.strip()), ""
        )
        if not self.marker:
            raise ValueError("AppendBlock needs a non-empty block")

    def transform(self, source: str, path: Path, context: Mapping[str, Any]) -> str:
        marker = render_value(self.marker, context)
        if marker in source:
            return source
        block = render_value(self.block, context)
        if not source.strip():
            return block + "\n"
        return _ensure_trailing_newline(source) + "\n" + block + "\n"
