"""Pydantic v2 models for declarative question forms.

A ``Form`` is an ordered list of ``OptionGroup`` objects, each holding ordered
``ConfigOption`` objects. Visibility (``show_if``) is expressed with
activation predicates and evaluated against the answers collected so far.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from polyapp.forms.validators import Validator, is_empty
from polyapp.predicates import Predicate, all_of


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class OptionKind(str, Enum):
    """Value kind of a configuration option."""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

class Choice(BaseModel):
    """One selectable value of a choice option."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Text shown to the user")
    value: Any = Field(..., description="Value recorded in the answer map")
    description: str = Field(default="")


class ConfigOption(BaseModel):
    """A single question whose answer lands in the answer map."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., description="Answer map key")
    kind: OptionKind = Field(default=OptionKind.TEXT)
    title: str = Field(default="", description="Prompt text", validate_default=True)
    description: str = Field(default="")
    default_value: Any = Field(default=None, description="Value used when hidden or left blank")
    required: bool = Field(default=False)
    choices: list[Choice] = Field(default_factory=list)
    validation: list[Validator] = Field(default_factory=list)
    show_if: list[Predicate] = Field(
        default_factory=list, description="Implicit AND of visibility conditions"
    )

    @field_validator("title")
    @classmethod
    def _title_defaults_to_id(cls, value: str, info: ValidationInfo) -> str:
        return value or info.data.get("id", "")

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def visibility(self) -> Predicate:
        return all_of(self.show_if)

    def choice_values(self) -> list[Any]:
        return [c.value for c in self.choices]

    def check_kind(self, value: Any) -> str | None:
        """Return an error if *value* does not fit this option's kind."""
        if is_empty(value):
            return None
        if self.kind is OptionKind.TEXT and not isinstance(value, str):
            return f"{self.title} must be text"
        if self.kind is OptionKind.NUMBER and (
            isinstance(value, bool) or not isinstance(value, (int, float))
        ):
            return f"{self.title} must be a number"
        if self.kind is OptionKind.BOOLEAN and not isinstance(value, bool):
            return f"{self.title} must be yes or no"
        if self.kind is OptionKind.SINGLE_CHOICE and self.choices:
            if value not in self.choice_values():
                return f"{self.title} must be one of: {', '.join(map(str, self.choice_values()))}"
        if self.kind is OptionKind.MULTI_CHOICE:
            if not isinstance(value, (list, tuple)):
                return f"{self.title} must be a list of selections"
            allowed = self.choice_values()
            unknown = [v for v in value if allowed and v not in allowed]
            if unknown:
                return f"{self.title} has unknown selection(s): {', '.join(map(str, unknown))}"
        return None

    def validate_value(self, value: Any) -> str | None:
        """Run the kind check, the required check, then declared validators.

        Returns the first failing message, or ``None`` if the value is accepted.
        """
        error = self.check_kind(value)
        if error:
            return error
        if self.required and is_empty(value):
            return f"{self.title} is required"
        for validator in self.validation:
            error = validator(value, self)
            if error:
                return error
        return None


class OptionGroup(BaseModel):
    """An ordered set of options rendered together."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    title: str = Field(default="")
    description: str = Field(default="")
    options: list[ConfigOption] = Field(default_factory=list)
    show_if: list[Predicate] = Field(default_factory=list)

    @property
    def visibility(self) -> Predicate:
        return all_of(self.show_if)


class Form(BaseModel):
    """A complete questionnaire."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    title: str = Field(default="")
    description: str = Field(default="")
    groups: list[OptionGroup] = Field(default_factory=list)
    allow_back: bool = Field(default=True)
    show_progress: bool = Field(default=True)

    def options(self) -> Iterator[ConfigOption]:
        for group in self.groups:
            yield from group.options

    def option_ids(self) -> list[str]:
        return [option.id for option in self.options()]

    def find_option(self, option_id: str) -> ConfigOption | None:
        for option in self.options():
            if option.id == option_id:
                return option
        return None

    def with_groups(self, extra: list[OptionGroup]) -> "Form":
        """Return a copy with *extra* groups appended."""
        return self.model_copy(update={"groups": [*self.groups, *extra]})
