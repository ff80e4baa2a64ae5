"""
Factory for creating nutrition lookup service instances.

Reads configuration from settings and returns the configured providers
in lookup order.
"""

import logging

from food_scan_api.core.config import Settings, get_settings

from .base import NutritionLookupService
from .nutritionix_provider import NutritionixNutritionLookup
from .usda_provider import USDANutritionLookup

logger = logging.getLogger(__name__)


def get_nutrition_lookup_services(
    settings: Settings | None = None,
) -> list[NutritionLookupService]:
    """
    Build the configured nutrition providers, primary first.

    Configuration is read from settings:
    - usda_api_key / usda_api_base_url: USDA FoodData Central (primary)
    - nutritionix_app_id / nutritionix_api_key: Nutritionix (fallback)

    Returns:
        Providers in lookup order; unconfigured providers are skipped
    """
    if settings is None:
        settings = get_settings()

    providers: list[NutritionLookupService] = []

    if settings.is_usda_configured:
        logger.info("Initializing USDA nutrition lookup service")
        providers.append(
            USDANutritionLookup(
                api_key=settings.usda_api_key,
                base_url=settings.usda_api_base_url,
                timeout=settings.provider_timeout_seconds,
            )
        )
    else:
        logger.warning("USDA nutrition lookup not configured (missing API key)")

    if settings.is_nutritionix_configured:
        logger.info("Initializing Nutritionix nutrition lookup service")
        providers.append(
            NutritionixNutritionLookup(
                app_id=settings.nutritionix_app_id,
                api_key=settings.nutritionix_api_key,
                base_url=settings.nutritionix_base_url,
                timeout=settings.provider_timeout_seconds,
            )
        )
    else:
        logger.warning("Nutritionix lookup not configured (missing app id or key)")

    return providers
