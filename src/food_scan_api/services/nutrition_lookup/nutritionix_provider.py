"""
Nutritionix provider for nutrition lookup.

Uses the natural-language nutrients endpoint, which accepts informal
food names ("a bowl of pho") and returns per-serving values.
API Documentation: https://docx.syndigo.com/developers
"""

import logging
from typing import Any

import httpx

from food_scan_api.models.food_scan import NutritionRecord, NutritionSource

from .base import NutritionLookupError, NutritionLookupService
from .health_data import with_health_impact

logger = logging.getLogger(__name__)


# Nutritionix nf_* fields -> NutritionRecord fields
NF_FIELDS = {
    "nf_calories": "calories",
    "nf_total_fat": "total_fat",
    "nf_saturated_fat": "saturated_fat",
    "nf_cholesterol": "cholesterol",
    "nf_sodium": "sodium",
    "nf_total_carbohydrate": "total_carbohydrate",
    "nf_dietary_fiber": "dietary_fiber",
    "nf_sugars": "sugars",
    "nf_protein": "protein",
    "nf_potassium": "potassium",
    "nf_p": "phosphorus",
}


class NutritionixNutritionLookup(NutritionLookupService):
    """
    Nutrition lookup using the Nutritionix natural-language API.
    """

    def __init__(
        self,
        app_id: str,
        api_key: str,
        base_url: str = "https://trackapi.nutritionix.com/v2",
        timeout: float = 12.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.app_id = app_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "nutritionix"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-app-id": self.app_id,
            "x-app-key": self.api_key,
        }

    async def search_food(self, query: str) -> NutritionRecord | None:
        """Resolve a free-text food name to its first Nutritionix match."""
        try:
            logger.info(f"Searching Nutritionix for: {query}")
            response = await self._client.post(
                f"{self.base_url}/natural/nutrients",
                json={"query": query},
                headers=self._headers(),
            )

            # Nutritionix answers 404 when it cannot parse any food from the query
            if response.status_code == 404:
                logger.info(f"No Nutritionix results for: {query}")
                return None

            if response.status_code != 200:
                raise NutritionLookupError(
                    message=f"Nutritionix API error: {response.status_code}",
                    error_code="API_ERROR",
                    provider=self.provider_name,
                    details={"status_code": response.status_code},
                )

            foods = response.json().get("foods") or []
            if not foods:
                logger.info(f"No Nutritionix results for: {query}")
                return None

            return with_health_impact(self._build_record(foods[0]))

        except httpx.TimeoutException as e:
            raise NutritionLookupError(
                message=f"Nutritionix request timed out after {self.timeout}s",
                error_code="TIMEOUT",
                provider=self.provider_name,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Nutritionix request failed: {e}")
            raise NutritionLookupError(
                message=f"Failed to connect to Nutritionix API: {e}",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
            ) from e
        except NutritionLookupError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in Nutritionix search")
            raise NutritionLookupError(
                message=f"Unexpected error: {e}",
                error_code="UNEXPECTED_ERROR",
                provider=self.provider_name,
            ) from e

    def _build_record(self, food: dict[str, Any]) -> NutritionRecord:
        values = {field: food.get(nf_key) for nf_key, field in NF_FIELDS.items()}
        return NutritionRecord(
            food_name=food.get("food_name") or "Unknown food",
            brand_name=food.get("brand_name"),
            data_source=NutritionSource.NUTRITIONIX,
            serving_qty=food.get("serving_qty") or 1,
            serving_unit=food.get("serving_unit") or "serving",
            serving_weight_grams=food.get("serving_weight_grams") or 100,
            **values,
        )

    async def health_check(self) -> bool:
        """Check that credentials are configured and the API answers."""
        if not (self.app_id and self.api_key):
            return False
        try:
            response = await self._client.post(
                f"{self.base_url}/natural/nutrients",
                json={"query": "apple"},
                headers=self._headers(),
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Nutritionix health check failed: {e}")
            return False

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
