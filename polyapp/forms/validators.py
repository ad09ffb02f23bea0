"""Answer validators.

Each validator is a small frozen dataclass called with the candidate value and
the option it belongs to. It returns ``None`` when the value is acceptable or
a human-readable message otherwise. Validators never coerce values.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

if TYPE_CHECKING:
    from polyapp.forms.models import ConfigOption

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_empty(value: Any) -> bool:
    """Return ``True`` for ``None``, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


class Validator(ABC):
    message: str | None

    @abstractmethod
    def check(self, value: Any, option: "ConfigOption") -> str | None:
        """Return an error message, or ``None`` if *value* passes."""

    def __call__(self, value: Any, option: "ConfigOption") -> str | None:
        return self.check(value, option)

    def _fail(self, default: str) -> str:
        return self.message or default


@dataclass(frozen=True)
class Required(Validator):
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if is_empty(value):
            return self._fail(f"{option.title} is required")
        return None


@dataclass(frozen=True)
class MinLength(Validator):
    value: int
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, str) and len(value) < self.value:
            return self._fail(f"{option.title} must be at least {self.value} characters")
        return None


@dataclass(frozen=True)
class MaxLength(Validator):
    value: int
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, str) and len(value) > self.value:
            return self._fail(f"{option.title} must be no more than {self.value} characters")
        return None


@dataclass(frozen=True)
class Minimum(Validator):
    value: float
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if _is_number(value) and value < self.value:
            return self._fail(f"{option.title} must be at least {self.value}")
        return None


@dataclass(frozen=True)
class Maximum(Validator):
    value: float
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if _is_number(value) and value > self.value:
            return self._fail(f"{option.title} must be no more than {self.value}")
        return None


@dataclass(frozen=True)
class Pattern(Validator):
    regex: str
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, str) and not re.search(self.regex, value):
            return self._fail(f"{option.title} format is invalid")
        return None


@dataclass(frozen=True)
class Email(Validator):
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, str) and not _EMAIL_RE.match(value):
            return self._fail(f"{option.title} must be a valid email address")
        return None


@dataclass(frozen=True)
class Url(Validator):
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if not isinstance(value, str):
            return None
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            return self._fail(f"{option.title} must be a valid URL")
        return None


@dataclass(frozen=True)
class MinItems(Validator):
    value: int
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, (list, tuple)) and len(value) < self.value:
            return self._fail(f"{option.title} needs at least {self.value} selection(s)")
        return None


@dataclass(frozen=True)
class MaxItems(Validator):
    value: int
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        if isinstance(value, (list, tuple)) and len(value) > self.value:
            return self._fail(f"{option.title} allows at most {self.value} selection(s)")
        return None


@dataclass(frozen=True)
class Custom(Validator):
    """Wraps a function returning ``True``/``False`` or an error string."""

    fn: Callable[[Any], bool | str]
    message: str | None = None

    def check(self, value: Any, option: "ConfigOption") -> str | None:
        result = self.fn(value)
        if isinstance(result, str):
            return result
        if not result:
            return self._fail(f"{option.title} is invalid")
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
