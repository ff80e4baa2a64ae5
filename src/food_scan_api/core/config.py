"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Vision concept provider (Clarifai food-item-recognition)
    clarifai_api_key: str = ""
    clarifai_model_url: str = (
        "https://api.clarifai.com/v2/models/food-item-recognition/"
        "versions/1d5fd481e0cf4826aa72ec3ff049e044/outputs"
    )

    # Nutrition provider #1: USDA FoodData Central
    usda_api_key: str = ""
    usda_api_base_url: str = "https://api.nal.usda.gov/fdc/v1"

    # Nutrition provider #2: Nutritionix
    nutritionix_app_id: str = ""
    nutritionix_api_key: str = ""
    nutritionix_base_url: str = "https://trackapi.nutritionix.com/v2"

    # LLM Provider Selection
    llm_provider: LLMProvider = LLMProvider.GEMINI

    # OpenAI Configuration
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Google Gemini Configuration
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # LLM Settings
    llm_temperature: float = 0.2

    # Call policies
    provider_timeout_seconds: float = 12.0
    llm_timeout_seconds: float = 15.0
    llm_max_retries: int = 2
    llm_backoff_seconds: float = 0.5  # linear: backoff * attempt

    # Quotas (in-process, reset on restart)
    vision_monthly_quota: int = 1000
    llm_per_minute_quota: int = 60

    # Fusion tunables
    concept_min_confidence: float = 0.50
    max_concepts: int = 7
    catalog_exact_weight: float = 10.0
    catalog_substring_weight: float = 5.0
    catalog_multi_match_bonus: float = 3.0
    catalog_min_score: float = 5.0
    catalog_min_substring_length: int = 4
    vision_reidentification_enabled: bool = True

    # Uploads
    max_image_bytes: int = 10 * 1024 * 1024  # 10 MB

    # App
    debug: bool = False
    log_level: str = "INFO"
    app_name: str = "Food Scan API"
    api_version: str = "1.0.0"

    @property
    def is_llm_configured(self) -> bool:
        """Check if the selected LLM provider is configured."""
        if self.llm_provider == LLMProvider.OPENAI:
            return bool(self.openai_api_key)
        elif self.llm_provider == LLMProvider.GEMINI:
            return bool(self.google_api_key)
        return False

    @property
    def is_vision_configured(self) -> bool:
        return bool(self.clarifai_api_key)

    @property
    def is_usda_configured(self) -> bool:
        return bool(self.usda_api_key)

    @property
    def is_nutritionix_configured(self) -> bool:
        return bool(self.nutritionix_app_id and self.nutritionix_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
