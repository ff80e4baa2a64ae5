"""Pydantic models for the food scan pipeline and its API contract.

Covers the per-request data that flows from image to response:
vision concepts, the resolved dish, nutrition records, the AI
analysis and the response envelope returned by /food/scan-food.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Enums
# =============================================================================


class DishSource(str, Enum):
    """How the identified dish name was derived."""

    FUSION_SYNTHESIS = "FusionSynthesis"  # LLM synthesis over vision concepts
    HEURISTIC_FALLBACK = "HeuristicFallback"  # Static catalog match
    VISION_PRIMARY = "VisionPrimary"  # Top vision concept as-is
    VISION_OVERRIDE = "VisionOverride"  # Vision-LLM re-identification of the image


class NutritionSource(str, Enum):
    """Provenance of a nutrition record."""

    USDA = "usda"  # USDA FoodData Central
    NUTRITIONIX = "nutritionix"  # Nutritionix natural-language lookup
    COMPOSITE = "composite"  # Weighted blend of ingredient records
    OCR = "ocr"  # Parsed from a packaging label


# =============================================================================
# Vision / identification
# =============================================================================


class ConceptObservation(BaseModel):
    """One tag returned by the vision provider."""

    name: str = Field(..., description="Concept label, e.g. 'rice'")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence 0-1")


class DishIdentification(BaseModel):
    """The resolved dish label and how it was derived."""

    name: str = Field(..., description="Canonical dish name")
    source: DishSource = Field(..., description="Resolution strategy that produced the name")
    confidence: float = Field(ge=0.0, le=1.0, description="Top vision concept confidence")


# =============================================================================
# Nutrition
# =============================================================================


class HealthImpact(BaseModel):
    """Derived glycemic / inflammatory indicators."""

    glycemic_index: int | None = Field(None, ge=0, description="Glycemic index (glucose = 100)")
    glycemic_load: int | None = Field(None, ge=0, description="round(GI x carbs / 100)")
    inflammatory_score: float | None = Field(
        None, description="Dietary inflammatory score, negative is anti-inflammatory"
    )


NUMERIC_NUTRITION_FIELDS = (
    "serving_qty",
    "serving_weight_grams",
    "calories",
    "total_fat",
    "saturated_fat",
    "cholesterol",
    "sodium",
    "total_carbohydrate",
    "dietary_fiber",
    "sugars",
    "protein",
    "potassium",
    "phosphorus",
)


def coerce_nutrient(value: Any) -> float:
    """Coerce a provider value to a finite non-negative float (missing -> 0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


class NutritionRecord(BaseModel):
    """
    Canonical nutrient set for one food.

    Every numeric field is a finite number >= 0. Missing provider values
    are coerced to 0 rather than omitted.
    """

    food_name: str = Field(..., description="Name of the food as resolved by the provider")
    brand_name: str | None = Field(None, description="Brand, when the provider returns one")
    data_source: NutritionSource = Field(..., description="Where the numbers came from")

    # Serving descriptor
    serving_qty: float = Field(1.0, ge=0)
    serving_unit: str = Field("serving")
    serving_weight_grams: float = Field(100.0, ge=0)

    # Nutrients per serving
    calories: float = Field(0.0, ge=0, description="Energy in kcal")
    total_fat: float = Field(0.0, ge=0, description="Total fat in grams")
    saturated_fat: float = Field(0.0, ge=0, description="Saturated fat in grams")
    cholesterol: float = Field(0.0, ge=0, description="Cholesterol in mg")
    sodium: float = Field(0.0, ge=0, description="Sodium in mg")
    total_carbohydrate: float = Field(0.0, ge=0, description="Carbohydrates in grams")
    dietary_fiber: float = Field(0.0, ge=0, description="Dietary fiber in grams")
    sugars: float = Field(0.0, ge=0, description="Total sugars in grams")
    protein: float = Field(0.0, ge=0, description="Protein in grams")
    potassium: float = Field(0.0, ge=0, description="Potassium in mg")
    phosphorus: float = Field(0.0, ge=0, description="Phosphorus in mg")

    health_impact: HealthImpact | None = Field(None, description="Derived health indicators")

    @field_validator(*NUMERIC_NUTRITION_FIELDS, mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> float:
        return coerce_nutrient(value)

    def per_gram(self, field_name: str) -> float:
        """Nutrient amount per gram of this record's serving."""
        grams = self.serving_weight_grams or 100.0
        return getattr(self, field_name) / grams


class CompositeIngredient(BaseModel):
    """One entry of an AI-estimated recipe breakdown."""

    name: str = Field(..., min_length=1)
    percent: int = Field(ge=1, le=100, description="Percent of dish weight")


# =============================================================================
# AI analysis
# =============================================================================


class AIAnalysis(BaseModel):
    """The LLM's interpretation of the nutrition record."""

    description: str = Field(..., description="1-2 sentence evidence-based summary")
    health_score: int = Field(ge=1, le=100, description="Health score 1-100")
    suggestions: list[str] = Field(default_factory=list, description="Actionable tips")


# =============================================================================
# Response
# =============================================================================


class ScanPathway(BaseModel):
    """Provenance of the response."""

    source: DishSource
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime


class ScanResponse(BaseModel):
    """Response payload for POST /food/scan-food."""

    identified_dish: DishIdentification
    nutrition: list[NutritionRecord] = Field(..., min_length=1)
    ai_analysis: AIAnalysis | None = None
    warnings: list[str] = Field(default_factory=list)
    pathway: ScanPathway


class ScanErrorResponse(BaseModel):
    """Error payload for failed scans."""

    error: str = Field(..., description="Human-readable message")
    error_code: str = Field(..., description="Failure category")
    remediation: str | None = Field(None, description="What the user or operator can do")
    details: dict[str, Any] | None = None
