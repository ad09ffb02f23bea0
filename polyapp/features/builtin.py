"""Built-in feature catalogue.

Template sources are relative to ``polyapp/features/templates``. Answer
values are available to scripts, workspace names, CodeMod arguments and
templates as ``{{ key }}``.
"""

from __future__ import annotations

from polyapp.codemods import (
    AddImport,
    AddVitePlugin,
    AddWorkspacePackage,
    AppendBlock,
    SetPackageFields,
    SetPackageScripts,
)
from polyapp.features.models import (
    DependencyKind,
    DependencyRequest,
    Feature,
    ScriptSpec,
    Stage,
    TemplateSpec,
)
from polyapp.features.registry import FeatureRegistry
from polyapp.forms.definitions import GRAPHQL_SERVER, REACT_WEBAPP
from polyapp.forms.models import Choice, ConfigOption, OptionKind
from polyapp.predicates import And, Equals, IncludesValue

DEV = DependencyKind.DEV_DEPENDENCIES

GITIGNORE = """\
# polyapp
node_modules/
dist/
.env
.polyapp/
"""


project_dir = Feature(
    id="project-dir",
    name="Project Directory",
    description="The root directory of the project",
    stages=[
        Stage(
            name="setup-directory",
            scripts=[ScriptSpec(command="git init", best_effort=True)],
        ),
        Stage(
            name="create-workspace",
            templates=[TemplateSpec(source="project-dir", destination=".")],
            mods={".gitignore": [AppendBlock(GITIGNORE)]},
        ),
    ],
)


vite = Feature(
    id="vite",
    name="Vite",
    description="A modern frontend build tool",
    depends_on=["project-dir"],
    activated_by=IncludesValue("projectWorkspaces", REACT_WEBAPP),
    stages=[
        Stage(
            name="create-vite-app",
            scripts=[ScriptSpec(command="npm create vite@latest web -- --template react-ts", timeout=300)],
        ),
        Stage(
            name="register-workspace",
            mods={
                "pnpm-workspace.yaml": [AddWorkspacePackage("web")],
                "web/package.json": [SetPackageFields({"name": "{{projectName}}-web", "private": True})],
            },
        ),
    ],
)


tailwind = Feature(
    id="tailwind",
    name="TailwindCSS",
    description="A utility-first CSS framework",
    depends_on=["vite"],
    activated_by=And(
        IncludesValue("projectWorkspaces", REACT_WEBAPP),
        Equals("includeTailwind", True),
    ),
    stages=[
        Stage(
            name="install-tailwind",
            dependencies=[
                DependencyRequest(names=["tailwindcss", "@tailwindcss/vite"], workspace="web", kind=DEV),
            ],
        ),
        Stage(
            name="configure-tailwind",
            mods={
                "web/vite.config.ts": [AddVitePlugin("@tailwindcss/vite", "tailwindcss")],
                "web/src/index.css": [AddImport('@import "tailwindcss";', position="top")],
            },
        ),
    ],
)


apollo_server = Feature(
    id="apollo-server",
    name="Apollo Server",
    description="A GraphQL API server in TypeScript",
    depends_on=["project-dir"],
    activated_by=IncludesValue("projectWorkspaces", GRAPHQL_SERVER),
    stages=[
        Stage(
            name="setup-api-structure",
            dependencies=[
                DependencyRequest(names=["typescript", "@types/node", "tsx"], workspace="api", kind=DEV),
                DependencyRequest(names=["@apollo/server", "graphql"], workspace="api"),
            ],
            templates=[TemplateSpec(source="apollo-server", destination="api")],
            mods={
                "api/package.json": [
                    SetPackageFields({"name": "{{projectName}}-api", "private": True, "type": "module"}),
                    SetPackageScripts(
                        {
                            "compile": "tsc",
                            "build": "tsc -p tsconfig.json",
                            "dev": 'tsx watch --include "./src/**/*" ./src/index.ts',
                            "start": "node dist/index.js",
                        }
                    ),
                ],
                "pnpm-workspace.yaml": [AddWorkspacePackage("api")],
            },
        ),
        Stage(
            name="create-modules",
            activated_by=IncludesValue("apiFeatures", "books"),
            dependencies=[
                DependencyRequest(
                    names=["@graphql-tools/load-files", "@graphql-tools/merge", "graphql-scalars"],
                    workspace="api",
                ),
            ],
            templates=[TemplateSpec(source="apollo-server-books", destination="api/src/modules/books")],
        ),
    ],
)


prisma = Feature(
    id="prisma",
    name="Prisma ORM",
    description="Database ORM with schema management and type-safe client generation",
    depends_on=["apollo-server"],
    activated_by=And(
        IncludesValue("projectWorkspaces", GRAPHQL_SERVER),
        IncludesValue("apiFeatures", "database"),
    ),
    configuration=[
        ConfigOption(
            id="databaseProvider",
            kind=OptionKind.SINGLE_CHOICE,
            title="Which database should Prisma use?",
            default_value="sqlite",
            required=True,
            choices=[
                Choice(label="SQLite", value="sqlite", description="File-based, no server needed"),
                Choice(label="PostgreSQL", value="postgresql"),
            ],
        ),
    ],
    stages=[
        Stage(
            name="install-prisma-dependencies",
            dependencies=[
                DependencyRequest(names="prisma", workspace="api", kind=DEV),
                DependencyRequest(names="@prisma/client", workspace="api"),
            ],
        ),
        Stage(
            name="setup-prisma-files",
            templates=[TemplateSpec(source="prisma", destination="api")],
        ),
        Stage(
            name="configure-prisma-scripts",
            mods={
                "api/package.json": [
                    SetPackageScripts(
                        {
                            "prisma:generate": "prisma generate",
                            "prisma:push": "prisma db push",
                            "prisma:migrate": "prisma migrate dev",
                            "prisma:deploy": "prisma migrate deploy",
                            "prisma:seed": "tsx prisma/seed.ts",
                            "prisma:studio": "prisma studio",
                        }
                    ),
                ],
            },
        ),
        Stage(
            name="generate-prisma-client",
            scripts=[ScriptSpec(command="{{ packageManager }} run prisma:generate", working_dir="api")],
        ),
    ],
)


developer_experience = Feature(
    id="developer-experience",
    name="Developer Experience Suite",
    description="Linting, formatting and commit conventions",
    activated_by=Equals("enableDevX", True),
    configuration=[
        ConfigOption(
            id="includeAccessibility",
            kind=OptionKind.BOOLEAN,
            title="Include accessibility linting?",
            description="ESLint rules for accessibility (jsx-a11y)",
            default_value=True,
        ),
        ConfigOption(
            id="includeImportSorting",
            kind=OptionKind.BOOLEAN,
            title="Enable import sorting?",
            default_value=True,
        ),
        ConfigOption(
            id="enableConventionalCommits",
            kind=OptionKind.BOOLEAN,
            title="Enforce conventional commit messages?",
            default_value=True,
        ),
    ],
    stages=[
        Stage(
            name="install-core-dependencies",
            dependencies=[
                DependencyRequest(
                    names=["@eslint/js", "typescript-eslint", "eslint", "prettier", "globals"],
                    kind=DEV,
                ),
            ],
        ),
        Stage(
            name="install-accessibility-tools",
            activated_by=Equals("includeAccessibility", True),
            dependencies=[DependencyRequest(names="eslint-plugin-jsx-a11y", kind=DEV)],
        ),
        Stage(
            name="install-import-sorting-tools",
            activated_by=Equals("includeImportSorting", True),
            dependencies=[
                DependencyRequest(names=["prettier-plugin-organize-imports", "prettier-plugin-packagejson"], kind=DEV),
            ],
        ),
        Stage(
            name="setup-conventional-commits",
            activated_by=Equals("enableConventionalCommits", True),
            dependencies=[
                DependencyRequest(
                    names=["lint-staged", "@commitlint/cli", "@commitlint/config-conventional"],
                    kind=DEV,
                ),
            ],
            templates=[
                TemplateSpec(
                    source="developer-experience/commitlint.config.js.j2",
                    destination="commitlint.config.js",
                ),
            ],
        ),
        Stage(
            name="setup-configuration-files",
            templates=[
                TemplateSpec(source="developer-experience/eslint.config.js.j2", destination="."),
                TemplateSpec(source="developer-experience/prettier.config.js.j2", destination="."),
            ],
            mods={
                "package.json": [
                    SetPackageScripts(
                        {
                            "lint": "eslint .",
                            "lint:fix": "eslint . --fix",
                            "format": "prettier --check .",
                            "format:fix": "prettier --write .",
                        }
                    ),
                ],
            },
        ),
        Stage(
            name="run-linting-formatting",
            scripts=[
                ScriptSpec(
                    command="{{ packageManager }} run lint:fix && {{ packageManager }} run format:fix",
                    best_effort=True,
                ),
            ],
        ),
    ],
)


BUILTIN_FEATURES: tuple[Feature, ...] = (
    project_dir,
    vite,
    tailwind,
    apollo_server,
    prisma,
    developer_experience,
)


def default_registry() -> FeatureRegistry:
    return FeatureRegistry.from_features(BUILTIN_FEATURES)
