"""The built-in ``create-poly-app`` questionnaire."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from polyapp.forms.models import Choice, ConfigOption, Form, OptionGroup, OptionKind
from polyapp.forms.validators import MaxLength, MinItems, MinLength, Pattern
from polyapp.predicates import IncludesValue

if TYPE_CHECKING:
    from polyapp.features.models import Feature

PROJECT_NAME_PATTERN = r"^[a-zA-Z0-9-_]+$"

REACT_WEBAPP = "react-webapp"
GRAPHQL_SERVER = "graphql-server"


def base_form() -> Form:
    """Project-level questions asked before any feature options."""
    return Form(
        id="create-poly-app",
        title="Create Poly App",
        description="Let's set up your new polyglot project with the features you need.",
        groups=[
            OptionGroup(
                id="project-basics",
                title="Project Setup",
                description="Tell us about your project",
                options=[
                    ConfigOption(
                        id="projectName",
                        title="What is the name of your project?",
                        description="Used as the directory name and package name",
                        required=True,
                        default_value="my-awesome-project",
                        validation=[
                            MinLength(1, "Project name cannot be empty"),
                            MaxLength(214, "Project name must be at most 214 characters"),
                            Pattern(
                                PROJECT_NAME_PATTERN,
                                "Project name can only contain letters, numbers, hyphens, and underscores",
                            ),
                        ],
                    ),
                    ConfigOption(
                        id="projectDescription",
                        title="Project description (optional)",
                        description="A brief description of what your project does",
                    ),
                ],
            ),
            OptionGroup(
                id="workspaces",
                title="Workspaces",
                description="Pick the applications that make up the project",
                options=[
                    ConfigOption(
                        id="projectWorkspaces",
                        kind=OptionKind.MULTI_CHOICE,
                        title="Which workspaces should be created?",
                        required=True,
                        default_value=[REACT_WEBAPP, GRAPHQL_SERVER],
                        choices=[
                            Choice(
                                label="React web app",
                                value=REACT_WEBAPP,
                                description="React + TypeScript frontend built with Vite",
                            ),
                            Choice(
                                label="GraphQL server",
                                value=GRAPHQL_SERVER,
                                description="Apollo Server API in TypeScript",
                            ),
                        ],
                        validation=[MinItems(1, "Select at least one workspace")],
                    ),
                ],
            ),
            OptionGroup(
                id="frontend-setup",
                title="Frontend Configuration",
                show_if=[IncludesValue("projectWorkspaces", REACT_WEBAPP)],
                options=[
                    ConfigOption(
                        id="includeTailwind",
                        kind=OptionKind.BOOLEAN,
                        title="Do you want to include TailwindCSS?",
                        description="A utility-first CSS framework",
                        default_value=True,
                    ),
                ],
            ),
            OptionGroup(
                id="api-features",
                title="API Features",
                description="Configure your GraphQL API features",
                show_if=[IncludesValue("projectWorkspaces", GRAPHQL_SERVER)],
                options=[
                    ConfigOption(
                        id="apiFeatures",
                        kind=OptionKind.MULTI_CHOICE,
                        title="Which API features would you like to include?",
                        default_value=["books"],
                        choices=[
                            Choice(
                                label="Books Module",
                                value="books",
                                description="Sample books module with queries and mutations",
                            ),
                            Choice(
                                label="Database Integration",
                                value="database",
                                description="Prisma ORM with a SQLite datasource",
                            ),
                        ],
                    ),
                    ConfigOption(
                        id="apiPort",
                        kind=OptionKind.NUMBER,
                        title="Which port should the API listen on?",
                        default_value=4000,
                    ),
                ],
            ),
            OptionGroup(
                id="development-setup",
                title="Development Environment",
                options=[
                    ConfigOption(
                        id="packageManager",
                        kind=OptionKind.SINGLE_CHOICE,
                        title="Which package manager do you prefer?",
                        required=True,
                        default_value="pnpm",
                        choices=[
                            Choice(label="pnpm (recommended)", value="pnpm"),
                            Choice(label="npm", value="npm"),
                            Choice(label="yarn", value="yarn"),
                        ],
                    ),
                    ConfigOption(
                        id="enableDevX",
                        kind=OptionKind.BOOLEAN,
                        title="Set up linting, formatting and commit tooling?",
                        default_value=False,
                    ),
                ],
            ),
        ],
    )


def build_form(base: Form, features: Iterable["Feature"]) -> Form:
    """Append each feature's option group after the base questions."""
    extra = [group for group in (f.option_group() for f in features) if group is not None]
    return base.with_groups(extra)
