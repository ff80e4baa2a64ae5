"""Pydantic models for API schemas."""

from .food_scan import (
    AIAnalysis,
    CompositeIngredient,
    ConceptObservation,
    DishIdentification,
    DishSource,
    HealthImpact,
    NutritionRecord,
    NutritionSource,
    ScanErrorResponse,
    ScanPathway,
    ScanResponse,
)

__all__ = [
    # Identification
    "ConceptObservation",
    "DishIdentification",
    "DishSource",
    # Nutrition
    "CompositeIngredient",
    "HealthImpact",
    "NutritionRecord",
    "NutritionSource",
    # Response
    "AIAnalysis",
    "ScanErrorResponse",
    "ScanPathway",
    "ScanResponse",
]
