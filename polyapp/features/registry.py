"""Immutable, process-wide registry of feature declarations."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from polyapp.errors import GraphError
from polyapp.features.models import Feature
from polyapp.forms.models import Form
from polyapp.predicates import check_references


@dataclass(frozen=True)
class FeatureRegistry:
    _by_id: dict[str, Feature]

    @classmethod
    def from_features(cls, features: Iterable[Feature]) -> "FeatureRegistry":
        entries: dict[str, Feature] = {}
        for feature in features:
            if feature.id in entries:
                raise GraphError(f"Duplicate feature id: {feature.id}")
            entries[feature.id] = feature
        return cls(_by_id=entries)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._by_id

    def ids(self) -> tuple[str, ...]:
        """Feature ids in declaration order."""
        return tuple(self._by_id)

    def get(self, feature_id: str) -> Feature:
        feature = self._by_id.get(feature_id)
        if feature is None:
            available = ", ".join(self._by_id) or "<none>"
            raise GraphError(f"Unknown feature id: {feature_id} (available: {available})")
        return feature

    def check_dependencies(self) -> None:
        """Raise ``GraphError`` for any ``depends_on`` naming a missing feature."""
        for feature in self:
            for dependency in feature.depends_on:
                if dependency not in self._by_id:
                    raise GraphError(
                        f"Feature '{feature.id}' depends on unknown feature '{dependency}'"
                    )

    def check_predicates(self, form: Form) -> None:
        """Raise ``PredicateError`` for any predicate reading an undeclared option.

        Covers feature and stage predicates here plus every ``show_if`` in
        *form*, which is expected to already include the features' own
        option groups.
        """
        declared = form.option_ids()
        for feature in self:
            check_references(f"Feature '{feature.id}'", feature.activated_by, declared)
            for stage in feature.stages:
                check_references(
                    f"Stage '{feature.id}/{stage.name}'", stage.activated_by, declared
                )
        for group in form.groups:
            check_references(f"Group '{group.id}'", group.visibility, declared)
            for option in group.options:
                check_references(f"Option '{option.id}'", option.visibility, declared)
