"""Unit tests for the built-in feature catalogue (polyapp.features.builtin)."""

from __future__ import annotations

import pytest

from polyapp.features.builtin import BUILTIN_FEATURES, default_registry
from polyapp.features.resolver import active_features, resolve_order
from polyapp.forms.definitions import base_form, build_form
from polyapp.forms.engine import FormEngine

pytestmark = pytest.mark.unit


@pytest.fixture
def registry():
    return default_registry()


class TestCatalogue:
    def test_graph_is_valid(self, registry):
        registry.check_dependencies()
        order = resolve_order(registry)
        assert order[0] == "project-dir"
        assert order.index("vite") < order.index("tailwind")
        assert order.index("apollo-server") < order.index("prisma")

    def test_predicates_reference_declared_options(self, registry):
        registry.check_predicates(build_form(base_form(), registry))

    def test_stage_names_unique_per_feature(self):
        for feature in BUILTIN_FEATURES:
            names = feature.stage_names()
            assert len(names) == len(set(names)), feature.id

    def test_feature_option_ids_do_not_clash(self, registry):
        ids = build_form(base_form(), registry).option_ids()
        assert len(ids) == len(set(ids))


class TestActivation:
    def _answers(self, registry, supplied):
        return FormEngine(build_form(base_form(), registry)).resolve(supplied)

    def test_defaults(self, registry):
        active = active_features(registry, self._answers(registry, {}))
        assert active == {"project-dir", "vite", "tailwind", "apollo-server"}

    def test_api_only_with_database(self, registry):
        answers = self._answers(
            registry,
            {"projectWorkspaces": ["graphql-server"], "apiFeatures": ["database"]},
        )
        assert active_features(registry, answers) == {"project-dir", "apollo-server", "prisma"}
        assert answers["databaseProvider"] == "sqlite"

    def test_tailwind_off(self, registry):
        answers = self._answers(registry, {"projectWorkspaces": ["react-webapp"], "includeTailwind": False})
        assert active_features(registry, answers) == {"project-dir", "vite"}

    def test_devx(self, registry):
        answers = self._answers(registry, {"enableDevX": True})
        assert "developer-experience" in active_features(registry, answers)
        assert answers["includeAccessibility"] is True
