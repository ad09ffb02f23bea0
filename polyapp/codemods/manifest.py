"""CodeMods for package manifests and workspace membership files."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from polyapp.codemods.base import JsonCodeMod, YamlCodeMod

DEPENDENCY_SECTIONS = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")


def render_value(value: str, context: Mapping[str, Any]) -> str:
    """Substitute ``{{key}}`` tokens from *context*, leaving unknown tokens intact."""
    for key, replacement in context.items():
        value = value.replace("{{" + key + "}}", str(replacement))
    return value


class AddDependency(JsonCodeMod):
    """Add ``name`` to a dependency section unless any section already lists it.

    Existing entries are never altered, so an explicit version pinned by the
    user or by an earlier feature always wins.
    """

    def __init__(self, name: str, version: str = "latest", section: str = "dependencies") -> None:
        if section not in DEPENDENCY_SECTIONS:
            raise ValueError(f"Unknown dependency section: {section}")
        self.package = name
        self.version = version
        self.section = section

    @property
    def name(self) -> str:
        return f"AddDependency[{self.package}]"

    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        for section in DEPENDENCY_SECTIONS:
            if self.package in (data.get(section) or {}):
                return
        deps = data.setdefault(self.section, {})
        if not isinstance(deps, dict):
            raise ValueError(f"'{self.section}' is not an object")
        deps[self.package] = self.version


class SetPackageScripts(JsonCodeMod):
    """Ensure the ``scripts`` block contains the given entries.

    With ``overwrite=False`` (default) an existing script of the same name is
    kept as is.
    """

    def __init__(self, scripts: Mapping[str, str], overwrite: bool = False) -> None:
        self.scripts = dict(scripts)
        self.overwrite = overwrite

    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        block = data.setdefault("scripts", {})
        if not isinstance(block, dict):
            raise ValueError("'scripts' is not an object")
        for key, command in self.scripts.items():
            if self.overwrite or key not in block:
                block[key] = render_value(command, context)


class SetPackageFields(JsonCodeMod):
    """Set top-level manifest fields such as ``type`` or ``private``.

    String values may contain ``{{key}}`` tokens resolved from the answers.
    """

    def __init__(self, fields: Mapping[str, Any], overwrite: bool = True) -> None:
        self.fields = dict(fields)
        self.overwrite = overwrite

    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        for key, value in self.fields.items():
            if not self.overwrite and key in data:
                continue
            data[key] = render_value(value, context) if isinstance(value, str) else value


class AddWorkspacePackage(YamlCodeMod):
    """Register a workspace directory in ``pnpm-workspace.yaml``."""

    def __init__(self, package: str) -> None:
        self.package = package

    @property
    def name(self) -> str:
        return f"AddWorkspacePackage[{self.package}]"

    def default_document(self, context: Mapping[str, Any]) -> str:
        return "packages: []\n"

    def edit(self, data: dict[str, Any], context: Mapping[str, Any]) -> None:
        package = render_value(self.package, context)
        packages = data.get("packages")
        if packages is None:
            packages = data["packages"] = []
        if not isinstance(packages, list):
            raise ValueError("'packages' is not a list")
        if package not in packages:
            packages.append(package)
