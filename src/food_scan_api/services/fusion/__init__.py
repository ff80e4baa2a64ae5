"""Fusion & resolution engine: image -> dish -> nutrition -> analysis."""

from .analysis import NutritionAnalyst
from .engine import (
    FusionEngine,
    ScanContext,
    build_composite_record,
    normalize_composition,
    select_top_concepts,
)
from .resolution import Resolved, ResolutionExhausted, Strategy, Unresolved, resolve_first

__all__ = [
    "FusionEngine",
    "NutritionAnalyst",
    "ScanContext",
    "build_composite_record",
    "normalize_composition",
    "select_top_concepts",
    "Resolved",
    "ResolutionExhausted",
    "Strategy",
    "Unresolved",
    "resolve_first",
]
