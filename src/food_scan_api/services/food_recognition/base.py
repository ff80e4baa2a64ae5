"""
Base classes for the vision concept provider.

Defines the abstract interface that concept providers implement and the
error type they raise.
"""

from abc import ABC, abstractmethod
from typing import Any

from food_scan_api.models.food_scan import ConceptObservation


class FoodRecognitionError(Exception):
    """Error during vision concept extraction."""

    def __init__(
        self,
        message: str,
        error_code: str = "RECOGNITION_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}


class FoodRecognitionService(ABC):
    """
    Abstract base class for vision concept providers.

    A provider turns raw image bytes into a ranked list of food concepts.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def extract_concepts(self, image_data: bytes) -> list[ConceptObservation]:
        """
        Extract food concepts from an image.

        Args:
            image_data: Raw image bytes (JPEG or PNG)

        Returns:
            Concepts sorted by descending confidence (never empty)

        Raises:
            FoodRecognitionError: If the provider is unavailable, quota-gated,
                or returned no concepts
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

    async def close(self) -> None:
        """Release any held resources."""
