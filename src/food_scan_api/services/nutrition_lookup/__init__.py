"""Nutrition database lookups."""

from .base import NutritionLookupError, NutritionLookupService
from .factory import get_nutrition_lookup_services
from .nutritionix_provider import NutritionixNutritionLookup
from .usda_provider import USDANutritionLookup

__all__ = [
    "NutritionLookupError",
    "NutritionLookupService",
    "NutritionixNutritionLookup",
    "USDANutritionLookup",
    "get_nutrition_lookup_services",
]
