"""Immutable answer map produced by answer collection."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(value, key=str))
    return value


class AnswerMap(Mapping[str, Any]):
    """Read-only ``{option_id: value}`` mapping.

    Collection answers are stored as tuples so that nothing reachable from
    the map can be mutated after collection completes.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        frozen = {key: _freeze(value) for key, value in (data or {}).items()}
        self._data = MappingProxyType(frozen)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"AnswerMap({dict(self._data)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def merged(self, extra: Mapping[str, Any]) -> "AnswerMap":
        """Return a new map with *extra* layered on top."""
        return AnswerMap({**self._data, **extra})

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-friendly copy (tuples become lists)."""
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in self._data.items()
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False, default=str)
