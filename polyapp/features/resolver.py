"""Feature graph resolution: topological order over ``depends_on``."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from polyapp.errors import GraphError
from polyapp.features.models import Feature
from polyapp.features.registry import FeatureRegistry
from polyapp.predicates import evaluate

logger = logging.getLogger(__name__)


def resolve_order(features: FeatureRegistry | Iterable[Feature]) -> list[str]:
    """Return feature ids ordered so every feature follows its dependencies.

    Depth-first, visiting features and their ``depends_on`` lists in
    declaration order, so independent features keep their declared order.

    Raises:
        GraphError: A dependency names a feature that does not exist, or the
            dependency relation contains a cycle.
    """
    registry = features if isinstance(features, FeatureRegistry) else FeatureRegistry.from_features(features)
    order: list[str] = []
    visited: set[str] = set()
    visiting: list[str] = []

    def visit(feature_id: str, required_by: str | None) -> None:
        if feature_id in visited:
            return
        if feature_id in visiting:
            cycle = visiting[visiting.index(feature_id):] + [feature_id]
            raise GraphError(f"Dependency cycle: {' -> '.join(cycle)}")
        if feature_id not in registry:
            raise GraphError(f"Feature '{required_by}' depends on unknown feature '{feature_id}'")

        visiting.append(feature_id)
        for dependency in registry.get(feature_id).depends_on:
            visit(dependency, feature_id)
        visiting.pop()
        visited.add(feature_id)
        order.append(feature_id)

    for feature_id in registry.ids():
        visit(feature_id, None)

    logger.debug("Resolved feature order: %s", ", ".join(order))
    return order


def active_features(registry: FeatureRegistry, answers: Mapping[str, Any]) -> set[str]:
    """Features whose predicate holds, plus everything they depend on."""
    active: set[str] = set()
    pending = [f.id for f in registry if evaluate(f.activated_by, answers)]
    while pending:
        feature_id = pending.pop()
        if feature_id in active:
            continue
        active.add(feature_id)
        for dependency in registry.get(feature_id).depends_on:
            if dependency not in active:
                logger.debug("Pulling in %s (required by %s)", dependency, feature_id)
                pending.append(dependency)
    return active
