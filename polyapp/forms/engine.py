"""Form engine: turns a declarative ``Form`` into an ``AnswerMap``.

Two entry points share the same visibility and default rules:

* :meth:`FormEngine.collect` walks the form interactively through a
  ``Prompter``, re-asking an option until its validators pass and supporting
  back-navigation between groups.
* :meth:`FormEngine.resolve` builds the answer map from a supplied mapping
  (a preset file, CLI input) without prompting.

An option hidden by its own ``show_if`` or by its group's ``show_if`` is never
asked; its answer is its default, or it is left absent when it has none.
Because a later answer can change the visibility of an earlier option, both
entry points re-check visibility against the final answers before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from polyapp.answers import AnswerMap
from polyapp.errors import CollectionCancelled, ConfigurationError, ValidationError
from polyapp.forms.models import ConfigOption, Form, OptionGroup
from polyapp.forms.prompter import Prompter

logger = logging.getLogger(__name__)

_BACK = "back"
_DONE = "done"


class FormEngine:
    """Collects answers for a single ``Form``.

    Attributes:
        form: The form being collected.
        answers: Working answers. Only frozen into an ``AnswerMap`` on success.
        accepted: Ids of options whose current answer was explicitly given.
    """

    def __init__(self, form: Form) -> None:
        self.form = form
        self.answers: dict[str, Any] = {}
        self.accepted: set[str] = set()

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def is_group_visible(self, group: OptionGroup, answers: Mapping[str, Any] | None = None) -> bool:
        return group.visibility.evaluate(self.answers if answers is None else answers)

    def is_visible(
        self,
        group: OptionGroup,
        option: ConfigOption,
        answers: Mapping[str, Any] | None = None,
    ) -> bool:
        current = self.answers if answers is None else answers
        return self.is_group_visible(group, current) and option.visibility.evaluate(current)

    def visible_groups(self) -> list[OptionGroup]:
        return [g for g in self.form.groups if self.is_group_visible(g)]

    def visible_options(self, group: OptionGroup) -> list[ConfigOption]:
        return [o for o in group.options if self.is_visible(group, o)]

    def _hide(self, option: ConfigOption) -> None:
        self.accepted.discard(option.id)
        if option.has_default:
            self.answers[option.id] = option.default_value
        else:
            self.answers.pop(option.id, None)

    def _stale_options(self) -> tuple[list[ConfigOption], list[tuple[int, ConfigOption]]]:
        """Compare every option's visibility against the current answers.

        Returns ``(now_hidden, now_visible)`` where *now_hidden* are options that
        hold an explicit answer but are no longer visible and *now_visible* are
        ``(group_index, option)`` pairs that are visible but were never answered.
        """
        now_hidden: list[ConfigOption] = []
        now_visible: list[tuple[int, ConfigOption]] = []
        for index, group in enumerate(self.form.groups):
            for option in group.options:
                visible = self.is_visible(group, option)
                if not visible and option.id in self.accepted:
                    now_hidden.append(option)
                elif visible and option.id not in self.accepted:
                    now_visible.append((index, option))
        return now_hidden, now_visible

    # ------------------------------------------------------------------
    # Interactive collection
    # ------------------------------------------------------------------

    async def collect(self, prompter: Prompter) -> AnswerMap:
        """Walk the form through *prompter* and return the final answers.

        Raises:
            CollectionCancelled: The prompter signalled cancellation. No answer
                map is produced.
        """
        await prompter.start(self.form)
        await self._walk(prompter, start=0)

        # Later answers may have changed the visibility of earlier groups.
        for _ in range(len(self.form.option_ids()) + 1):
            now_hidden, now_visible = self._stale_options()
            for option in now_hidden:
                logger.debug("Option %s is no longer visible, reverting to default", option.id)
                self._hide(option)
            if not now_visible:
                break
            first_group = now_visible[0][0]
            logger.debug("Revisiting group %s for newly visible options", self.form.groups[first_group].id)
            await self._walk(prompter, start=first_group, only_unanswered=True)

        return AnswerMap(self.answers)

    async def _walk(self, prompter: Prompter, start: int, only_unanswered: bool = False) -> None:
        groups = self.form.groups
        history: list[int] = []
        index = start
        while index < len(groups):
            group = groups[index]
            if not self.is_group_visible(group):
                for option in group.options:
                    self._hide(option)
                index += 1
                continue

            visible = self.visible_groups()
            await prompter.show_group(group, visible.index(group) + 1, len(visible))
            outcome = await self._ask_group(group, prompter, only_unanswered)
            if outcome == _BACK:
                if history:
                    index = history.pop()
                    only_unanswered = False
                continue
            history.append(index)
            index += 1

    async def _ask_group(self, group: OptionGroup, prompter: Prompter, only_unanswered: bool) -> str:
        for option in group.options:
            if not self.is_visible(group, option):
                self._hide(option)
                continue
            if only_unanswered and option.id in self.accepted:
                continue

            while True:
                current = self.answers.get(option.id, option.default_value)
                reply = await prompter.ask(option, current)
                if reply.cancel:
                    raise CollectionCancelled()
                if reply.back:
                    if self.form.allow_back:
                        return _BACK
                    continue

                error = option.validate_value(reply.value)
                if error:
                    await prompter.show_error(option, error)
                    continue

                self.answers[option.id] = reply.value
                self.accepted.add(option.id)
                break
        return _DONE

    # ------------------------------------------------------------------
    # Non-interactive resolution
    # ------------------------------------------------------------------

    def resolve(self, supplied: Mapping[str, Any]) -> AnswerMap:
        """Build the answer map from *supplied* values without prompting.

        Raises:
            ConfigurationError: A visible required option has neither a
                supplied value nor a default.
            ValidationError: A supplied or default value fails validation.
        """
        for group in self.form.groups:
            for option in group.options:
                if self.is_visible(group, option):
                    self._accept_supplied(option, supplied)
                else:
                    self._hide(option)

        for _ in range(len(self.form.option_ids()) + 1):
            now_hidden, now_visible = self._stale_options()
            if not now_hidden and not now_visible:
                break
            for option in now_hidden:
                self._hide(option)
            for _, option in now_visible:
                self._accept_supplied(option, supplied)

        unknown = sorted(set(supplied) - set(self.form.option_ids()))
        if unknown:
            logger.warning("Ignoring answers for undeclared options: %s", ", ".join(unknown))

        return AnswerMap(self.answers)

    def _accept_supplied(self, option: ConfigOption, supplied: Mapping[str, Any]) -> None:
        if supplied.get(option.id) is not None:
            value = supplied[option.id]
        elif option.has_default:
            value = option.default_value
        elif option.required:
            raise ConfigurationError(option.id)
        else:
            self.answers.pop(option.id, None)
            # Nothing to record, but the option has been considered.
            self.accepted.add(option.id)
            return

        error = option.validate_value(value)
        if error:
            raise ValidationError(option.id, error)
        self.answers[option.id] = value
        self.accepted.add(option.id)
