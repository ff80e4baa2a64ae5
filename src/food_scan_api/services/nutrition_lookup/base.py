"""
Base classes for nutrition lookup services.

Defines the abstract interface that all providers must implement. Every
provider normalizes its own response schema into NutritionRecord.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from food_scan_api.models.food_scan import NutritionRecord

logger = logging.getLogger(__name__)


class NutritionLookupError(Exception):
    """Error during nutrition lookup."""

    def __init__(
        self,
        message: str,
        error_code: str = "LOOKUP_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}


class NutritionLookupService(ABC):
    """
    Abstract base class for nutrition lookup services.

    All providers (USDA, Nutritionix) must implement this interface.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def search_food(self, query: str) -> NutritionRecord | None:
        """
        Search for a food and return its nutrition record.

        Args:
            query: Food name/description to search for

        Returns:
            NutritionRecord for the best match, or None when nothing matched

        Raises:
            NutritionLookupError: If the provider call fails
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available and healthy.

        Returns:
            True if the provider is ready to accept requests
        """
        ...

    async def lookup(self, query: str) -> NutritionRecord | None:
        """
        Search for a food, treating provider errors as a miss.

        Returns:
            NutritionRecord, or None on miss or failure
        """
        try:
            return await self.search_food(query)
        except NutritionLookupError as e:
            logger.warning(f"{self.provider_name} lookup failed for '{query}': {e.message}")
            return None

    async def close(self) -> None:
        """Release any held resources."""
