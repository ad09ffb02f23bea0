"""Unit tests for prompters (polyapp.forms.prompter)."""

from __future__ import annotations

import io

import pytest
from rich.console import Console
from rich.prompt import Prompt

from polyapp.forms.models import Choice, ConfigOption, Form, OptionGroup, OptionKind
from polyapp.forms.prompter import (
    Reply,
    RichPrompter,
    ScriptedPrompter,
    _choice_index,
    _keyword_reply,
    _parse_multi,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def pm_option() -> ConfigOption:
    return ConfigOption(
        id="pm",
        kind=OptionKind.SINGLE_CHOICE,
        choices=[Choice(label="pnpm", value="pnpm"), Choice(label="npm", value="npm")],
    )


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False)


# ---------------------------------------------------------------------------
# ScriptedPrompter
# ---------------------------------------------------------------------------


class TestScriptedPrompter:
    async def test_wraps_raw_values(self, pm_option):
        prompter = ScriptedPrompter(["npm"])
        reply = await prompter.ask(pm_option, None)
        assert reply == Reply.answer("npm")
        assert prompter.asked == ["pm"]

    async def test_passes_replies_through(self, pm_option):
        prompter = ScriptedPrompter([Reply.go_back()])
        assert (await prompter.ask(pm_option, None)).back

    async def test_empty_queue_cancels(self, pm_option):
        reply = await ScriptedPrompter([]).ask(pm_option, None)
        assert reply.cancel

    async def test_records_groups_and_errors(self, pm_option):
        prompter = ScriptedPrompter([])
        await prompter.show_group(OptionGroup(id="g"), 1, 1)
        await prompter.show_error(pm_option, "bad")
        assert prompter.groups == ["g"]
        assert prompter.errors == [("pm", "bad")]


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_keyword_reply(self):
        assert _keyword_reply("  BACK ") == Reply.go_back()
        assert _keyword_reply("cancel") == Reply.cancelled()
        assert _keyword_reply("backend") is None
        assert _keyword_reply("") is None

    def test_choice_index(self, pm_option):
        assert _choice_index(pm_option, "npm") == 2
        assert _choice_index(pm_option, "yarn") is None

    def test_parse_multi_numbers_and_values(self, pm_option):
        assert _parse_multi(pm_option, "2, 1, 2") == ["npm", "pnpm"]
        assert _parse_multi(pm_option, "pnpm, 9,") == ["pnpm", "9"]
        assert _parse_multi(pm_option, "") == []


# ---------------------------------------------------------------------------
# RichPrompter
# ---------------------------------------------------------------------------


class TestRichPrompter:
    async def test_text_back_keyword(self, monkeypatch, quiet_console):
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "back")
        reply = await RichPrompter(quiet_console).ask(ConfigOption(id="name"), None)
        assert reply.back

    async def test_number_is_converted(self, monkeypatch, quiet_console):
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "4000")
        option = ConfigOption(id="port", kind=OptionKind.NUMBER)
        assert (await RichPrompter(quiet_console).ask(option, 3000)).value == 4000

    async def test_boolean_accepts_yes_no_words(self, monkeypatch, quiet_console):
        option = ConfigOption(id="flag", kind=OptionKind.BOOLEAN)
        prompter = RichPrompter(quiet_console)
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "yes")
        assert (await prompter.ask(option, None)).value is True
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "N")
        assert (await prompter.ask(option, True)).value is False

    async def test_boolean_keywords(self, monkeypatch, quiet_console):
        option = ConfigOption(id="flag", kind=OptionKind.BOOLEAN)
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "cancel")
        assert (await RichPrompter(quiet_console).ask(option, None)).cancel

    async def test_boolean_unknown_word_is_left_for_validation(self, monkeypatch, quiet_console):
        option = ConfigOption(id="flag", kind=OptionKind.BOOLEAN)
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "maybe")
        reply = await RichPrompter(quiet_console).ask(option, None)
        assert reply.value == "maybe"
        assert option.validate_value(reply.value) == "flag must be yes or no"

    async def test_single_choice_maps_index(self, monkeypatch, quiet_console, pm_option):
        monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "2")
        assert (await RichPrompter(quiet_console).ask(pm_option, "pnpm")).value == "npm"

    async def test_single_choice_back_keyword(self, monkeypatch, quiet_console, pm_option):
        replies = iter(["back", "1"])
        monkeypatch.setattr(quiet_console, "input", lambda *args, **kwargs: next(replies))
        reply = await RichPrompter(quiet_console).ask(pm_option, None)
        assert reply == Reply.go_back()

    async def test_single_choice_enter_keeps_current(self, monkeypatch, quiet_console, pm_option):
        monkeypatch.setattr(quiet_console, "input", lambda *args, **kwargs: "")
        assert (await RichPrompter(quiet_console).ask(pm_option, "npm")).value == "npm"

    async def test_number_enter_without_current_is_unanswered(self, monkeypatch, quiet_console):
        monkeypatch.setattr(quiet_console, "input", lambda *args, **kwargs: "")
        option = ConfigOption(id="port", kind=OptionKind.NUMBER)
        reply = await RichPrompter(quiet_console).ask(option, None)
        assert reply == Reply.answer(None)

    async def test_number_enter_keeps_current(self, monkeypatch, quiet_console):
        monkeypatch.setattr(quiet_console, "input", lambda *args, **kwargs: "")
        option = ConfigOption(id="port", kind=OptionKind.NUMBER)
        assert (await RichPrompter(quiet_console).ask(option, 3000)).value == 3000

    async def test_interrupt_cancels(self, monkeypatch, quiet_console):
        def interrupt(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(Prompt, "ask", interrupt)
        assert (await RichPrompter(quiet_console).ask(ConfigOption(id="name"), None)).cancel

    async def test_start_and_group_headers(self, quiet_console):
        prompter = RichPrompter(quiet_console)
        await prompter.start(Form(id="f", title="Create Poly App"))
        await prompter.show_group(OptionGroup(id="g", title="Basics"), 1, 3)
        output = quiet_console.file.getvalue()
        assert "Create Poly App" in output
        assert "Basics (1/3)" in output
