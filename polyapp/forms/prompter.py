"""Prompters: the only place answer collection waits on an outside actor.

``RichPrompter`` asks questions on the terminal with ``rich.prompt``.
``ScriptedPrompter`` replays a queue of replies and is used for automation
and tests.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.prompt import Prompt

from polyapp.forms.models import ConfigOption, Form, OptionGroup, OptionKind
from polyapp.utils import console as default_console

BACK_KEYWORD = "back"
CANCEL_KEYWORD = "cancel"
TRUE_WORDS = frozenset({"y", "yes", "true"})
FALSE_WORDS = frozenset({"n", "no", "false"})


@dataclass(frozen=True)
class Reply:
    """What a prompter returns for one question."""

    value: Any = None
    back: bool = False
    cancel: bool = False

    @classmethod
    def answer(cls, value: Any) -> "Reply":
        return cls(value=value)

    @classmethod
    def go_back(cls) -> "Reply":
        return cls(back=True)

    @classmethod
    def cancelled(cls) -> "Reply":
        return cls(cancel=True)


class Prompter(ABC):
    """Interface between the form engine and whoever supplies answers."""

    async def start(self, form: Form) -> None:
        """Called once before the first group is shown."""

    async def show_group(self, group: OptionGroup, position: int, total: int) -> None:
        """Called each time a visible group is entered."""

    @abstractmethod
    async def ask(self, option: ConfigOption, current: Any) -> Reply:
        """Ask for *option*; *current* is the previous answer or the default."""

    async def show_error(self, option: ConfigOption, message: str) -> None:
        """Surface a validation message before the option is asked again."""


class ScriptedPrompter(Prompter):
    """Answers questions from a queue of ``Reply`` objects or raw values.

    Raw values are wrapped with ``Reply.answer``. Every question asked and
    every error shown is recorded so tests can assert on the conversation.
    """

    def __init__(self, replies: Iterable[Reply | Any]) -> None:
        self._replies: deque[Reply] = deque(
            r if isinstance(r, Reply) else Reply.answer(r) for r in replies
        )
        self.asked: list[str] = []
        self.errors: list[tuple[str, str]] = []
        self.groups: list[str] = []

    async def show_group(self, group: OptionGroup, position: int, total: int) -> None:
        self.groups.append(group.id)

    async def ask(self, option: ConfigOption, current: Any) -> Reply:
        self.asked.append(option.id)
        if not self._replies:
            return Reply.cancelled()
        return self._replies.popleft()

    async def show_error(self, option: ConfigOption, message: str) -> None:
        self.errors.append((option.id, message))


class RichPrompter(Prompter):
    """Interactive terminal prompter built on ``rich.prompt``.

    Typing ``back`` returns to the previous group (when the form allows it)
    and ``cancel`` or Ctrl+C aborts collection.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or default_console
        self._show_progress = True

    async def start(self, form: Form) -> None:
        self._show_progress = form.show_progress
        if form.title:
            self.console.print(f"\n[bold bright_cyan]{form.title}[/bold bright_cyan]")
        if form.description:
            self.console.print(form.description)

    async def show_group(self, group: OptionGroup, position: int, total: int) -> None:
        title = group.title or group.id
        progress = f" ({position}/{total})" if self._show_progress else ""
        self.console.print(f"\n[bold]--- {title}{progress} ---[/bold]")
        if group.description:
            self.console.print(f"[dim]{group.description}[/dim]")

    async def ask(self, option: ConfigOption, current: Any) -> Reply:
        try:
            return await asyncio.to_thread(self._ask_blocking, option, current)
        except (KeyboardInterrupt, EOFError):
            return Reply.cancelled()

    async def show_error(self, option: ConfigOption, message: str) -> None:
        self.console.print(f"  [bold red]x[/bold red] {message}")

    # -- Blocking helpers (run in a worker thread) -------------------------

    def _ask_blocking(self, option: ConfigOption, current: Any) -> Reply:
        question = option.title
        if option.description:
            question = f"{question} [dim]({option.description})[/dim]"

        if option.kind is OptionKind.BOOLEAN:
            default = bool(current) if current is not None else False
            raw = Prompt.ask(
                f"{question} [dim](y/n)[/dim]",
                default="y" if default else "n",
                console=self.console,
            )
            keyword = _keyword_reply(raw)
            if keyword is not None:
                return keyword
            return Reply.answer(_parse_bool(raw, default))

        if option.kind is OptionKind.NUMBER:
            raw = Prompt.ask(
                question,
                default=str(current) if current is not None else "",
                show_default=current is not None,
                console=self.console,
            )
            keyword = _keyword_reply(raw)
            if keyword is not None:
                return keyword
            return Reply.answer(_parse_number(raw))

        if option.kind is OptionKind.SINGLE_CHOICE and option.choices:
            self._print_choices(option)
            index = _choice_index(option, current)
            raw = Prompt.ask(
                question,
                default=str(index) if index is not None else "",
                show_default=index is not None,
                console=self.console,
            )
            keyword = _keyword_reply(raw)
            if keyword is not None:
                return keyword
            return Reply.answer(_parse_single(option, raw))

        if option.kind is OptionKind.MULTI_CHOICE:
            self._print_choices(option)
            default = ",".join(
                str(_choice_index(option, v)) for v in (current or []) if _choice_index(option, v)
            )
            raw = Prompt.ask(
                f"{question} [dim](comma-separated numbers)[/dim]",
                default=default,
                console=self.console,
            )
            keyword = _keyword_reply(raw)
            if keyword is not None:
                return keyword
            return Reply.answer(_parse_multi(option, raw))

        raw = Prompt.ask(
            question,
            default=str(current) if current is not None else "",
            console=self.console,
        )
        keyword = _keyword_reply(raw)
        return keyword if keyword is not None else Reply.answer(raw)

    def _print_choices(self, option: ConfigOption) -> None:
        for number, choice in enumerate(option.choices, start=1):
            hint = f" [dim]- {choice.description}[/dim]" if choice.description else ""
            self.console.print(f"  {number}. {choice.label}{hint}")


def _keyword_reply(raw: str) -> Reply | None:
    lowered = (raw or "").strip().lower()
    if lowered == BACK_KEYWORD:
        return Reply.go_back()
    if lowered == CANCEL_KEYWORD:
        return Reply.cancelled()
    return None


def _choice_index(option: ConfigOption, value: Any) -> int | None:
    for number, choice in enumerate(option.choices, start=1):
        if choice.value == value:
            return number
    return None


def _parse_multi(option: ConfigOption, raw: str) -> list[Any]:
    selected: list[Any] = []
    for token in (raw or "").split(","):
        token = token.strip()
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= len(option.choices):
            value = option.choices[int(token) - 1].value
        else:
            value = token
        if value not in selected:
            selected.append(value)
    return selected


def _parse_bool(raw: str, default: bool) -> Any:
    lowered = (raw or "").strip().lower()
    if not lowered:
        return default
    if lowered in TRUE_WORDS:
        return True
    if lowered in FALSE_WORDS:
        return False
    # Let the kind check report it.
    return raw


def _parse_number(raw: str) -> Any:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        try:
            return float(text)
        except ValueError:
            return raw


def _parse_single(option: ConfigOption, raw: str) -> Any:
    text = (raw or "").strip()
    if not text:
        return None
    if text.isdigit() and 1 <= int(text) <= len(option.choices):
        return option.choices[int(text) - 1].value
    return text
