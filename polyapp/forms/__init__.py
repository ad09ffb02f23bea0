"""polyapp forms -- declarative questions turned into an answer map.

Quick usage::

    from polyapp.forms import FormEngine, RichPrompter, base_form

    answers = await FormEngine(base_form()).collect(RichPrompter())
    answers["projectName"]
"""

from polyapp.forms.definitions import base_form, build_form
from polyapp.forms.engine import FormEngine
from polyapp.forms.models import Choice, ConfigOption, Form, OptionGroup, OptionKind
from polyapp.forms.presets import Preset, PresetStore
from polyapp.forms.prompter import Prompter, Reply, RichPrompter, ScriptedPrompter

__all__ = [
    "Choice",
    "ConfigOption",
    "Form",
    "FormEngine",
    "OptionGroup",
    "OptionKind",
    "Preset",
    "PresetStore",
    "Prompter",
    "Reply",
    "RichPrompter",
    "ScriptedPrompter",
    "base_form",
    "build_form",
]
