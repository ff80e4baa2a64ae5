"""
USDA FoodData Central provider for nutrition lookup.

Searches FDC for the best match, then fetches the full food record by
FDC ID. FDC nutrient amounts are per 100 g.
API Documentation: https://fdc.nal.usda.gov/api-guide.html
"""

import logging
from typing import Any

import httpx

from food_scan_api.models.food_scan import NutritionRecord, NutritionSource

from .base import NutritionLookupError, NutritionLookupService
from .health_data import with_health_impact

logger = logging.getLogger(__name__)


# USDA nutrient IDs -> NutritionRecord fields
NUTRIENT_IDS = {
    1008: "calories",  # Energy (kcal)
    1003: "protein",  # Protein
    1004: "total_fat",  # Total lipid (fat)
    1005: "total_carbohydrate",  # Carbohydrate, by difference
    1079: "dietary_fiber",  # Fiber, total dietary
    2000: "sugars",  # Total Sugars
    1258: "saturated_fat",  # Fatty acids, total saturated
    1093: "sodium",  # Sodium, Na
    1253: "cholesterol",  # Cholesterol
    1092: "potassium",  # Potassium, K
    1091: "phosphorus",  # Phosphorus, P
}

# Atwater energy values used by Foundation foods that omit 1008
FALLBACK_ENERGY_IDS = (2048, 2047)


class USDANutritionLookup(NutritionLookupService):
    """
    Nutrition lookup using USDA FoodData Central API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.nal.usda.gov/fdc/v1",
        timeout: float = 12.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize USDA provider.

        Args:
            api_key: USDA FoodData Central API key
            base_url: API base URL
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client (tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "usda"

    async def search_food(self, query: str) -> NutritionRecord | None:
        """Search FDC and return the detailed record of the best match."""
        try:
            params = {"api_key": self.api_key, "query": query, "pageSize": 5}

            logger.info(f"Searching USDA for: {query}")
            response = await self._client.get(f"{self.base_url}/foods/search", params=params)

            if response.status_code != 200:
                raise NutritionLookupError(
                    message=f"USDA search failed: {response.status_code}",
                    error_code="API_ERROR",
                    provider=self.provider_name,
                    details={"status_code": response.status_code},
                )

            foods = response.json().get("foods") or []
            if not foods:
                logger.info(f"No USDA results for: {query}")
                return None

            best_match = foods[0]
            fdc_id = best_match.get("fdcId")
            detail = await self._get_food_detail(fdc_id) if fdc_id is not None else None

            if detail is not None:
                record = self._build_record(detail, detail.get("foodNutrients") or [], is_search_format=False)
            else:
                record = self._build_record(best_match, best_match.get("foodNutrients") or [], is_search_format=True)

            return with_health_impact(record)

        except httpx.TimeoutException as e:
            raise NutritionLookupError(
                message=f"USDA request timed out after {self.timeout}s",
                error_code="TIMEOUT",
                provider=self.provider_name,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"USDA request failed: {e}")
            raise NutritionLookupError(
                message=f"Failed to connect to USDA API: {e}",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
            ) from e
        except NutritionLookupError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in USDA search")
            raise NutritionLookupError(
                message=f"Unexpected error: {e}",
                error_code="UNEXPECTED_ERROR",
                provider=self.provider_name,
            ) from e

    async def _get_food_detail(self, fdc_id: Any) -> dict[str, Any] | None:
        """Fetch the full FDC record; None if the detail call does not succeed."""
        response = await self._client.get(
            f"{self.base_url}/food/{fdc_id}", params={"api_key": self.api_key}
        )
        if response.status_code != 200:
            logger.warning(f"USDA detail fetch for {fdc_id} returned {response.status_code}")
            return None
        return response.json()

    def _build_record(
        self,
        food: dict[str, Any],
        nutrients: list[dict[str, Any]],
        is_search_format: bool,
    ) -> NutritionRecord:
        """Map an FDC food (search hit or detail) to a per-100g NutritionRecord."""
        values = self._parse_nutrients(nutrients, is_search_format)
        brand = food.get("brandName") or food.get("brandOwner")

        return NutritionRecord(
            food_name=food.get("description") or "Unknown food",
            brand_name=brand,
            data_source=NutritionSource.USDA,
            serving_qty=100,
            serving_unit="g",
            serving_weight_grams=100,
            **values,
        )

    def _parse_nutrients(
        self,
        nutrients: list[dict[str, Any]],
        is_search_format: bool = True,
    ) -> dict[str, float]:
        """Parse an FDC nutrient list into NutritionRecord field values."""
        values: dict[str, float] = {}
        fallback_energy: dict[int, float] = {}

        for nutrient in nutrients:
            # Search results use nutrientId, detail uses nutrient.id
            if is_search_format:
                nutrient_id = nutrient.get("nutrientId")
                value = nutrient.get("value")
            else:
                nutrient_id = (nutrient.get("nutrient") or {}).get("id")
                value = nutrient.get("amount")

            if nutrient_id is None or value is None:
                continue

            if nutrient_id in NUTRIENT_IDS:
                values[NUTRIENT_IDS[nutrient_id]] = value
            elif nutrient_id in FALLBACK_ENERGY_IDS:
                fallback_energy[nutrient_id] = value

        if "calories" not in values:
            for energy_id in FALLBACK_ENERGY_IDS:
                if energy_id in fallback_energy:
                    values["calories"] = fallback_energy[energy_id]
                    break

        return values

    async def health_check(self) -> bool:
        """Check if USDA API is available."""
        try:
            params = {"api_key": self.api_key, "query": "apple", "pageSize": 1}
            response = await self._client.get(f"{self.base_url}/foods/search", params=params)
            return response.status_code == 200

        except httpx.HTTPError as e:
            logger.error(f"USDA health check failed: {e}")
            return False

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
