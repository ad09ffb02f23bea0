"""polyapp features -- declarations, registry and dependency ordering.

Quick usage::

    from polyapp.features import default_registry, resolve_order

    registry = default_registry()
    resolve_order(registry)  # ['project-dir', 'vite', 'tailwind', ...]
"""

from polyapp.features.builtin import BUILTIN_FEATURES, default_registry
from polyapp.features.models import (
    DependencyKind,
    DependencyRequest,
    Feature,
    ScriptSpec,
    Stage,
    TemplateSpec,
)
from polyapp.features.registry import FeatureRegistry
from polyapp.features.resolver import active_features, resolve_order

__all__ = [
    "BUILTIN_FEATURES",
    "DependencyKind",
    "DependencyRequest",
    "Feature",
    "FeatureRegistry",
    "ScriptSpec",
    "Stage",
    "TemplateSpec",
    "active_features",
    "default_registry",
    "resolve_order",
]
