"""
Nutrition facts parsing from packaging label text.

Regex extraction over OCR'd label text. Records built from label values
are marked as OCR-sourced, which tightens claim tolerance in the
accuracy validator.
"""

import re

from pydantic import BaseModel, Field

from food_scan_api.models.food_scan import NutritionRecord, NutritionSource

KJ_PER_KCAL = 4.184

ENERGY_KJ = re.compile(r"energy[:\s]+(\d+(?:\.\d+)?)\s*kj", re.I)
ENERGY_KCAL = (
    re.compile(r"(\d+(?:\.\d+)?)\s*(?:kcal|cal)\b", re.I),
    re.compile(r"calories[:\s]+(\d+(?:\.\d+)?)", re.I),
)
PROTEIN = (re.compile(r"protein[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),)
FAT = (
    re.compile(r"fat[,\s]+total[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),
    re.compile(r"total\s+fat[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),
)
SATURATED_FAT = (re.compile(r"saturated(?:\s+fat)?[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),)
CARBOHYDRATE = (re.compile(r"carbohydrates?[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),)
SUGARS = (re.compile(r"sugars?[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),)
FIBER = (
    re.compile(r"dietary\s+fi[bv](?:er|re)[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),
    re.compile(r"fi(?:ber|bre)[:\s]+(\d+(?:\.\d+)?)\s*g", re.I),
)
SODIUM = re.compile(r"sodium[:\s]+(\d+(?:\.\d+)?)\s*(mg|g)\b", re.I)


class OCRNutritionFacts(BaseModel):
    """Values parsed from a nutrition facts panel (per 100 g unless stated)."""

    energy_kj: float | None = None
    energy_kcal: float | None = None
    protein_g: float | None = None
    fat_total_g: float | None = None
    fat_saturated_g: float | None = None
    carbohydrate_g: float | None = None
    sugars_g: float | None = None
    fiber_g: float | None = None
    sodium_mg: float | None = None

    confidence: float = Field(ge=0.0, le=1.0)

    @property
    def calories(self) -> float | None:
        if self.energy_kcal is not None:
            return self.energy_kcal
        if self.energy_kj is not None:
            return round(self.energy_kj / KJ_PER_KCAL, 1)
        return None

    def to_nutrition_record(self, food_name: str, brand_name: str | None = None) -> NutritionRecord:
        """Build a per-100g NutritionRecord from the label values."""
        return NutritionRecord(
            food_name=food_name,
            brand_name=brand_name,
            data_source=NutritionSource.OCR,
            serving_qty=100,
            serving_unit="g",
            serving_weight_grams=100,
            calories=self.calories,
            protein=self.protein_g,
            total_fat=self.fat_total_g,
            saturated_fat=self.fat_saturated_g,
            total_carbohydrate=self.carbohydrate_g,
            sugars=self.sugars_g,
            dietary_fiber=self.fiber_g,
            sodium=self.sodium_mg,
        )


def _first(patterns: tuple[re.Pattern[str], ...], text: str) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def parse_nutrition_text(text: str) -> OCRNutritionFacts | None:
    """
    Parse nutrition facts from raw label text.

    Args:
        text: OCR output of a nutrition facts panel

    Returns:
        Parsed facts, or None when fewer than two values were found
    """
    values: dict[str, float | None] = {
        "energy_kj": None,
        "energy_kcal": _first(ENERGY_KCAL, text),
        "protein_g": _first(PROTEIN, text),
        "fat_total_g": _first(FAT, text),
        "fat_saturated_g": _first(SATURATED_FAT, text),
        "carbohydrate_g": _first(CARBOHYDRATE, text),
        "sugars_g": _first(SUGARS, text),
        "fiber_g": _first(FIBER, text),
        "sodium_mg": None,
    }

    kj = ENERGY_KJ.search(text)
    if kj:
        values["energy_kj"] = float(kj.group(1))

    sodium = SODIUM.search(text)
    if sodium:
        amount = float(sodium.group(1))
        values["sodium_mg"] = amount * 1000 if sodium.group(2).lower() == "g" else amount

    found = sum(1 for v in values.values() if v is not None)
    if found < 2:
        return None

    return OCRNutritionFacts(**values, confidence=min(0.7, found / 8))
