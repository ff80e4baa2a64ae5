"""
Factory for creating the vision concept provider.

Reads configuration from settings and returns the Clarifai provider.
"""

import logging

from food_scan_api.core.config import Settings, get_settings
from food_scan_api.services.quota import QuotaTracker

from .base import FoodRecognitionService
from .clarifai_provider import ClarifaiConceptProvider

logger = logging.getLogger(__name__)


def get_food_recognition_service(
    quota: QuotaTracker | None = None,
    settings: Settings | None = None,
) -> FoodRecognitionService:
    """
    Build the configured vision concept provider.

    Configuration is read from settings:
    - clarifai_api_key: Clarifai API key
    - clarifai_model_url: Model outputs endpoint
    - provider_timeout_seconds: Request timeout

    Args:
        quota: Tracker that gates vision calls
        settings: Application settings (uses default if not provided)

    Returns:
        Configured FoodRecognitionService instance
    """
    if settings is None:
        settings = get_settings()

    if not settings.is_vision_configured:
        logger.warning("Clarifai API key not configured; vision calls will fail")

    return ClarifaiConceptProvider(
        api_key=settings.clarifai_api_key,
        model_url=settings.clarifai_model_url,
        timeout=settings.provider_timeout_seconds,
        quota=quota,
    )
