"""Activation predicates.

Feature, stage and option visibility conditions are small immutable ASTs
evaluated against an answer map. Leaves look up exactly one answer key;
combinators (``And``/``Or``/``Not``) compose other predicates.

Evaluation is pure: it never mutates the answers and never raises for a
missing key. A key that no answer carries is *absent*, and every leaf except
``Custom`` evaluates to ``False`` against an absent value. Referencing a key
that no option *declares* is a different matter and is caught up front by
:func:`check_references`.

Example::

    from polyapp.predicates import And, Equals, IncludesValue, evaluate

    rule = And(Equals("x", 1), IncludesValue("y", "a"))
    evaluate(rule, {"x": 1, "y": ["a", "b"]})  # True
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from polyapp.errors import PredicateError


class _Absent:
    """Marker for an answer key that has no value."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _same_value(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; answers from a boolean option must not match a number.
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    return actual == expected


class Predicate(ABC):
    """Base class for all activation predicates."""

    @abstractmethod
    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        """Return whether the predicate holds for *answers*."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Yield every answer key the predicate reads."""


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Leaf(Predicate):
    key: str

    def lookup(self, answers: Mapping[str, Any]) -> Any:
        return answers.get(self.key, ABSENT)

    def keys(self) -> Iterator[str]:
        yield self.key


@dataclass(frozen=True)
class Equals(Leaf):
    value: Any

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        actual = self.lookup(answers)
        if actual is ABSENT:
            return False
        return _same_value(actual, self.value)

    def __str__(self) -> str:
        return f"{self.key} == {self.value!r}"


@dataclass(frozen=True)
class IncludesValue(Leaf):
    """The answer is a collection and *value* is one of its members."""

    value: Any

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        actual = self.lookup(answers)
        if not isinstance(actual, _COLLECTION_TYPES):
            return False
        return any(_same_value(item, self.value) for item in actual)

    def __str__(self) -> str:
        return f"{self.value!r} in {self.key}"


@dataclass(frozen=True, init=False)
class OneOf(Leaf):
    """The answer equals one of *values*."""

    values: tuple[Any, ...]

    def __init__(self, key: str, values: Iterable[Any]) -> None:
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "values", tuple(values))

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        actual = self.lookup(answers)
        if actual is ABSENT:
            return False
        return any(_same_value(actual, v) for v in self.values)

    def __str__(self) -> str:
        return f"{self.key} in {list(self.values)!r}"


@dataclass(frozen=True)
class Contains(Leaf):
    """The answer is text containing *substring*."""

    substring: str

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        actual = self.lookup(answers)
        return isinstance(actual, str) and self.substring in actual

    def __str__(self) -> str:
        return f"{self.substring!r} in text {self.key}"


@dataclass(frozen=True)
class Custom(Leaf):
    """Delegates to a pure function of the raw answer (``None`` when absent)."""

    fn: Callable[[Any], bool]
    label: str = "custom"

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        actual = self.lookup(answers)
        return bool(self.fn(None if actual is ABSENT else actual))

    def __str__(self) -> str:
        return f"{self.label}({self.key})"


@dataclass(frozen=True)
class Always(Predicate):
    """Holds unconditionally. Used when a stage declares no predicate."""

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return True

    def keys(self) -> Iterator[str]:
        return iter(())

    def __str__(self) -> str:
        return "always"


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------


@dataclass(frozen=True, init=False)
class And(Predicate):
    """Holds when every child holds. Stops at the first false child."""

    children: tuple[Predicate, ...]

    def __init__(self, *children: Predicate) -> None:
        object.__setattr__(self, "children", tuple(children))

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        for child in self.children:
            if not child.evaluate(answers):
                return False
        return True

    def keys(self) -> Iterator[str]:
        for child in self.children:
            yield from child.keys()

    def __str__(self) -> str:
        return "(" + " AND ".join(str(c) for c in self.children) + ")"


@dataclass(frozen=True, init=False)
class Or(Predicate):
    """Holds when any child holds. Stops at the first true child."""

    children: tuple[Predicate, ...]

    def __init__(self, *children: Predicate) -> None:
        object.__setattr__(self, "children", tuple(children))

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        for child in self.children:
            if child.evaluate(answers):
                return True
        return False

    def keys(self) -> Iterator[str]:
        for child in self.children:
            yield from child.keys()

    def __str__(self) -> str:
        return "(" + " OR ".join(str(c) for c in self.children) + ")"


@dataclass(frozen=True)
class Not(Predicate):
    child: Predicate

    def evaluate(self, answers: Mapping[str, Any]) -> bool:
        return not self.child.evaluate(answers)

    def keys(self) -> Iterator[str]:
        return self.child.keys()

    def __str__(self) -> str:
        return f"NOT {self.child}"


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def evaluate(predicate: Predicate | None, answers: Mapping[str, Any]) -> bool:
    """Evaluate *predicate* against *answers*; ``None`` means always true."""
    if predicate is None:
        return True
    return predicate.evaluate(answers)


def all_of(predicates: Iterable[Predicate] | None) -> Predicate:
    """Collapse a ``showIf`` condition list into a single predicate."""
    items = tuple(predicates or ())
    if not items:
        return Always()
    if len(items) == 1:
        return items[0]
    return And(*items)


def check_references(owner: str, predicate: Predicate | None, declared: Iterable[str]) -> None:
    """Raise ``PredicateError`` if *predicate* reads a key outside *declared*."""
    if predicate is None:
        return
    known = set(declared)
    for key in predicate.keys():
        if key not in known:
            raise PredicateError(owner, key)


class ActivationConditions:
    """Shorthand constructors for the common leaves."""

    @staticmethod
    def includes_value(key: str, value: Any) -> Predicate:
        return IncludesValue(key, value)

    @staticmethod
    def equals(key: str, value: Any) -> Predicate:
        return Equals(key, value)

    @staticmethod
    def is_one_of(key: str, values: Iterable[Any]) -> Predicate:
        return OneOf(key, values)

    @staticmethod
    def custom(key: str, fn: Callable[[Any], bool], label: str = "custom") -> Predicate:
        return Custom(key, fn, label)
