"""Unit tests for the built-in questionnaire (polyapp.forms.definitions)."""

from __future__ import annotations

import pytest

from polyapp.forms.definitions import GRAPHQL_SERVER, REACT_WEBAPP, base_form, build_form
from polyapp.forms.engine import FormEngine
from polyapp.features.models import Feature
from polyapp.forms.models import ConfigOption
from polyapp.errors import ValidationError
from polyapp.predicates import Equals

pytestmark = pytest.mark.unit


class TestBaseForm:
    def test_option_ids_are_unique(self):
        ids = base_form().option_ids()
        assert len(ids) == len(set(ids))
        assert {"projectName", "projectWorkspaces", "packageManager", "enableDevX"} <= set(ids)

    def test_defaults_resolve_without_input(self):
        answers = FormEngine(base_form()).resolve({})
        assert answers["projectName"] == "my-awesome-project"
        assert answers["projectWorkspaces"] == (REACT_WEBAPP, GRAPHQL_SERVER)
        assert answers["includeTailwind"] is True
        assert answers["apiFeatures"] == ("books",)
        assert answers["packageManager"] == "pnpm"

    def test_frontend_questions_hidden_without_webapp(self):
        answers = FormEngine(base_form()).resolve({"projectWorkspaces": [GRAPHQL_SERVER]})
        assert answers["includeTailwind"] is True
        engine = FormEngine(base_form())
        engine.resolve({"projectWorkspaces": [GRAPHQL_SERVER]})
        group = next(g for g in engine.form.groups if g.id == "frontend-setup")
        assert not engine.is_group_visible(group)

    @pytest.mark.parametrize("name", ["bad name", "", "a/b"])
    def test_project_name_rejected(self, name):
        with pytest.raises(ValidationError) as exc_info:
            FormEngine(base_form()).resolve({"projectName": name})
        assert exc_info.value.option_id == "projectName"

    def test_empty_workspace_selection_rejected(self):
        with pytest.raises(ValidationError):
            FormEngine(base_form()).resolve({"projectWorkspaces": []})


class TestBuildForm:
    def test_appends_feature_groups(self):
        feature = Feature(
            id="extras",
            activated_by=Equals("enableDevX", True),
            configuration=[ConfigOption(id="extraFlag", default_value="x")],
        )
        form = build_form(base_form(), [feature, Feature(id="bare")])
        assert form.groups[-1].id == "extras-options"
        assert form.option_ids()[-1] == "extraFlag"
        assert len(form.groups) == len(base_form().groups) + 1

    def test_feature_options_hidden_when_inactive(self):
        feature = Feature(
            id="extras",
            activated_by=Equals("enableDevX", True),
            configuration=[ConfigOption(id="extraFlag", default_value="x")],
        )
        form = build_form(base_form(), [feature])
        answers = FormEngine(form).resolve({"extraFlag": "y"})
        assert answers["extraFlag"] == "x"
        answers = FormEngine(form).resolve({"enableDevX": True, "extraFlag": "y"})
        assert answers["extraFlag"] == "y"
