"""Unit tests for source-text CodeMods (polyapp.codemods.source)."""

from __future__ import annotations

from pathlib import Path

import pytest

from polyapp.codemods.source import AddImport, AddVitePlugin, AppendBlock
from polyapp.engine.runtime import MemoryFileSystem
from polyapp.errors import MutationError

pytestmark = pytest.mark.unit

SOURCE = Path("/work/demo/web/src/main.ts")
VITE = Path("/work/demo/web/vite.config.ts")

VITE_CONFIG = """\
import { defineConfig } from 'vite'
import react from '@vitejs/plugin-react'

// https://vite.dev/config/
export default defineConfig({
  plugins: [react()],
})
"""


class TestAddImport:
    def test_after_last_import(self):
        source = "import a from 'a'\nimport b from 'b'\n\nrun()\n"
        result = AddImport("import c from 'c'").transform(source, SOURCE, {})
        assert result == "import a from 'a'\nimport b from 'b'\nimport c from 'c'\n\nrun()\n"

    def test_top_when_no_imports(self):
        assert AddImport("import x from 'x'").transform("run()\n", SOURCE, {}) == "import x from 'x'\nrun()\n"

    def test_top_position(self):
        result = AddImport('@import "tailwindcss";', position="top").transform("body {}\n", SOURCE, {})
        assert result == '@import "tailwindcss";\nbody {}\n'

    def test_twice_is_byte_identical(self):
        fs = MemoryFileSystem({SOURCE: "import a from 'a'\n\nrun()\n"})
        mod = AddImport("import './index.css'")
        assert mod.apply(SOURCE, {}, fs).changed
        first = fs.read_text(SOURCE)
        assert not mod.apply(SOURCE, {}, fs).changed
        assert fs.read_text(SOURCE) == first

    def test_missing_file_is_created(self):
        fs = MemoryFileSystem()
        AddImport('@import "tailwindcss";', position="top").apply(SOURCE, {}, fs)
        assert fs.read_text(SOURCE) == '@import "tailwindcss";\n'

    def test_unknown_position(self):
        with pytest.raises(ValueError):
            AddImport("import a from 'a'", position="bottom")


class TestAddVitePlugin:
    def test_adds_import_and_plugin(self):
        result = AddVitePlugin("@tailwindcss/vite", "tailwindcss").transform(VITE_CONFIG, VITE, {})
        assert "import tailwindcss from '@tailwindcss/vite'\n" in result
        assert "plugins: [react(), tailwindcss()]," in result
        assert result.index("@vitejs/plugin-react") < result.index("@tailwindcss/vite")

    def test_idempotent(self):
        fs = MemoryFileSystem({VITE: VITE_CONFIG})
        mod = AddVitePlugin("@tailwindcss/vite", "tailwindcss")
        mod.apply(VITE, {}, fs)
        first = fs.read_text(VITE)
        assert not mod.apply(VITE, {}, fs).changed
        assert fs.read_text(VITE) == first

    def test_default_document(self):
        fs = MemoryFileSystem()
        AddVitePlugin("@tailwindcss/vite", "tailwindcss").apply(VITE, {}, fs)
        assert "plugins: [tailwindcss()]," in fs.read_text(VITE)

    def test_adds_plugins_key_when_absent(self):
        source = "import { defineConfig } from 'vite'\n\nexport default defineConfig({\n  base: '/',\n})\n"
        result = AddVitePlugin("@tailwindcss/vite", "tailwindcss").transform(source, VITE, {})
        assert "defineConfig({\n  plugins: [tailwindcss()],\n  base: '/'," in result

    def test_trailing_comma_in_plugins(self):
        source = "import { defineConfig } from 'vite'\nexport default defineConfig({ plugins: [react(),] })\n"
        result = AddVitePlugin("@tailwindcss/vite", "tailwindcss").transform(source, VITE, {})
        assert "plugins: [react(), tailwindcss()]" in result

    def test_without_define_config(self):
        with pytest.raises(MutationError, match="defineConfig"):
            AddVitePlugin("@tailwindcss/vite", "tailwindcss").apply(
                VITE, {}, MemoryFileSystem({VITE: "export default {}\n"})
            )


class TestAppendBlock:
    def test_appends_with_blank_line(self):
        result = AppendBlock("# polyapp\n.env\n").transform("node_modules/", SOURCE, {})
        assert result == "node_modules/\n\n# polyapp\n.env\n"

    def test_empty_source(self):
        assert AppendBlock("# polyapp\n.env").transform("", SOURCE, {}) == "# polyapp\n.env\n"

    def test_marker_prevents_duplicates(self):
        source = "# polyapp\n.env\n"
        assert AppendBlock("# polyapp\n.env\n").transform(source, SOURCE, {}) == source

    def test_explicit_marker_with_tokens(self):
        mod = AppendBlock("DATABASE_URL=file:./{{projectName}}.db", marker="DATABASE_URL=")
        result = mod.transform("", SOURCE, {"projectName": "demo"})
        assert result == "DATABASE_URL=file:./demo.db\n"

    def test_empty_block_rejected(self):
        with pytest.raises(ValueError):
            AppendBlock("\n\n")
