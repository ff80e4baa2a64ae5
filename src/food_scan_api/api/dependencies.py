"""FastAPI dependency injection factories."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from food_scan_api.core.config import Settings, get_settings
from food_scan_api.core.retry import RetryPolicy
from food_scan_api.services.food_catalog import CatalogWeights
from food_scan_api.services.food_recognition import get_food_recognition_service
from food_scan_api.services.fusion import FusionEngine
from food_scan_api.services.llm import LLMClient, get_llm
from food_scan_api.services.nutrition_lookup import get_nutrition_lookup_services
from food_scan_api.services.quota import QuotaLimit, QuotaPeriod, QuotaTracker

# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]


@lru_cache
def get_quota_tracker() -> QuotaTracker:
    """
    Get the process-wide quota tracker.

    Returns:
        QuotaTracker gating the vision provider (monthly) and LLM (per minute)
    """
    settings = get_settings()
    return QuotaTracker(
        {
            "clarifai": QuotaLimit(settings.vision_monthly_quota, QuotaPeriod.MONTH),
            "llm": QuotaLimit(settings.llm_per_minute_quota, QuotaPeriod.MINUTE),
        }
    )


QuotaTrackerDep = Annotated[QuotaTracker, Depends(get_quota_tracker)]


def build_llm_client(settings: Settings, quota: QuotaTracker) -> LLMClient | None:
    """
    Build the policy-wrapped LLM client.

    Returns:
        LLMClient, or None when no LLM provider key is configured
    """
    if not settings.is_llm_configured:
        return None

    policy = RetryPolicy(
        max_retries=settings.llm_max_retries,
        backoff_seconds=settings.llm_backoff_seconds,
        timeout_seconds=settings.llm_timeout_seconds,
    )
    return LLMClient(
        lambda temperature, max_tokens: get_llm(settings, temperature=temperature, max_tokens=max_tokens),
        policy,
        quota=quota,
    )


@lru_cache
def get_fusion_engine() -> FusionEngine:
    """
    Get the scan pipeline, wired from settings.

    Returns:
        FusionEngine sharing the process-wide quota tracker
    """
    settings = get_settings()
    quota = get_quota_tracker()
    return FusionEngine(
        vision=get_food_recognition_service(quota=quota, settings=settings),
        nutrition_providers=get_nutrition_lookup_services(settings),
        llm=build_llm_client(settings, quota),
        min_confidence=settings.concept_min_confidence,
        max_concepts=settings.max_concepts,
        catalog_weights=CatalogWeights(
            exact=settings.catalog_exact_weight,
            substring=settings.catalog_substring_weight,
            multi_match_bonus=settings.catalog_multi_match_bonus,
            min_score=settings.catalog_min_score,
            min_substring_length=settings.catalog_min_substring_length,
        ),
        reidentify=settings.vision_reidentification_enabled,
    )


FusionEngineDep = Annotated[FusionEngine, Depends(get_fusion_engine)]
