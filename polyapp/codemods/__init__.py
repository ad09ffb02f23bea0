"""polyapp CodeMods -- idempotent read-edit-write operations on one file.

Quick usage::

    from polyapp.codemods import AddDependency
    from polyapp.engine.runtime import LocalFileSystem

    outcome = AddDependency("graphql").apply(
        Path("my-app/api/package.json"), {}, LocalFileSystem()
    )
    outcome.changed  # False on the second run
"""

from polyapp.codemods.base import CodeMod, JsonCodeMod, MutationOutcome, YamlCodeMod
from polyapp.codemods.manifest import (
    AddDependency,
    AddWorkspacePackage,
    SetPackageFields,
    SetPackageScripts,
)
from polyapp.codemods.source import AddImport, AddVitePlugin, AppendBlock

__all__ = [
    "AddDependency",
    "AddImport",
    "AddVitePlugin",
    "AddWorkspacePackage",
    "AppendBlock",
    "CodeMod",
    "JsonCodeMod",
    "MutationOutcome",
    "SetPackageFields",
    "SetPackageScripts",
    "YamlCodeMod",
]
