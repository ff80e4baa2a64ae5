"""Business logic services."""

from .fusion import FusionEngine, NutritionAnalyst
from .ocr_nutrition import OCRNutritionFacts, parse_nutrition_text
from .quota import QuotaExceeded, QuotaLimit, QuotaPeriod, QuotaTracker

__all__ = [
    "FusionEngine",
    "NutritionAnalyst",
    "OCRNutritionFacts",
    "parse_nutrition_text",
    "QuotaExceeded",
    "QuotaLimit",
    "QuotaPeriod",
    "QuotaTracker",
]
