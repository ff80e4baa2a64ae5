"""Tests for the HTTP-backed vision and nutrition providers."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import SAMPLE_IMAGE
from food_scan_api.models.food_scan import NutritionSource
from food_scan_api.services.food_recognition.base import FoodRecognitionError
from food_scan_api.services.food_recognition.clarifai_provider import ClarifaiConceptProvider
from food_scan_api.services.nutrition_lookup.base import NutritionLookupError
from food_scan_api.services.nutrition_lookup.nutritionix_provider import NutritionixNutritionLookup
from food_scan_api.services.nutrition_lookup.usda_provider import USDANutritionLookup
from food_scan_api.services.quota import QuotaLimit, QuotaPeriod, QuotaTracker


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# =============================================================================
# USDA
# =============================================================================


SEARCH_HIT = {
    "fdcId": 12345,
    "description": "Burrito, bean and cheese",
    "foodNutrients": [
        {"nutrientId": 1008, "value": 189},
        {"nutrientId": 1003, "value": 7.1},
    ],
}

DETAIL = {
    "fdcId": 12345,
    "description": "Burrito, bean and cheese",
    "foodNutrients": [
        {"nutrient": {"id": 1008}, "amount": 206},
        {"nutrient": {"id": 1003}, "amount": 8.0},
        {"nutrient": {"id": 1004}, "amount": 6.5},
        {"nutrient": {"id": 1005}, "amount": 30.0},
        {"nutrient": {"id": 1093}, "amount": 480},
    ],
}


class TestUSDANutritionLookup:
    """Tests for USDANutritionLookup."""

    @pytest.mark.asyncio
    async def test_detail_record_is_preferred(self):
        """Test the detail endpoint is used for the best search hit."""
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path.endswith("/foods/search"):
                assert request.url.params["query"] == "burrito"
                return httpx.Response(200, json={"foods": [SEARCH_HIT]})
            return httpx.Response(200, json=DETAIL)

        provider = USDANutritionLookup("key", client=mock_client(handler))

        record = await provider.search_food("burrito")

        assert paths == ["/fdc/v1/foods/search", "/fdc/v1/food/12345"]
        assert record.data_source == NutritionSource.USDA
        assert record.calories == 206
        assert record.sodium == 480
        assert record.serving_weight_grams == 100
        assert record.health_impact.glycemic_index == 39
        assert record.health_impact.glycemic_load == round(39 * 30 / 100)

    @pytest.mark.asyncio
    async def test_search_format_fallback(self):
        """Test the search hit is used when the detail call fails."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/foods/search"):
                return httpx.Response(200, json={"foods": [SEARCH_HIT]})
            return httpx.Response(500)

        provider = USDANutritionLookup("key", client=mock_client(handler))

        record = await provider.search_food("burrito")

        assert record.calories == 189
        assert record.protein == 7.1
        assert record.total_fat == 0

    @pytest.mark.asyncio
    async def test_atwater_energy_fallback(self):
        hit = {
            "fdcId": None,
            "description": "Apples, raw",
            "foodNutrients": [{"nutrientId": 2047, "value": 61}],
        }
        provider = USDANutritionLookup(
            "key", client=mock_client(lambda r: httpx.Response(200, json={"foods": [hit]}))
        )

        record = await provider.search_food("apple")

        assert record.calories == 61

    @pytest.mark.asyncio
    async def test_no_foods_is_none(self):
        provider = USDANutritionLookup(
            "key", client=mock_client(lambda r: httpx.Response(200, json={"foods": []}))
        )

        assert await provider.search_food("zzfood") is None

    @pytest.mark.asyncio
    async def test_search_error_raises(self):
        provider = USDANutritionLookup("key", client=mock_client(lambda r: httpx.Response(500)))

        with pytest.raises(NutritionLookupError) as exc_info:
            await provider.search_food("burrito")

        assert exc_info.value.error_code == "API_ERROR"
        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_lookup_treats_errors_as_miss(self):
        provider = USDANutritionLookup("key", client=mock_client(lambda r: httpx.Response(503)))

        assert await provider.lookup("burrito") is None


# =============================================================================
# Nutritionix
# =============================================================================


class TestNutritionixNutritionLookup:
    """Tests for NutritionixNutritionLookup."""

    @pytest.mark.asyncio
    async def test_missing_macros_become_zero(self):
        """Test null nf_* values are reported as explicit zeros."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "foods": [
                        {
                            "food_name": "coca-cola",
                            "serving_qty": 1,
                            "serving_unit": "can",
                            "serving_weight_grams": 368,
                            "nf_calories": 140,
                            "nf_total_fat": None,
                            "nf_protein": None,
                            "nf_sugars": 39,
                            "nf_sodium": 45,
                        }
                    ]
                },
            )

        provider = NutritionixNutritionLookup("app", "secret", client=mock_client(handler))

        record = await provider.search_food("coca-cola")

        assert seen["body"] == {"query": "coca-cola"}
        assert seen["headers"]["x-app-id"] == "app"
        assert seen["headers"]["x-app-key"] == "secret"
        assert record.data_source == NutritionSource.NUTRITIONIX
        assert record.calories == 140
        assert record.protein == 0
        assert record.total_fat == 0
        assert record.serving_unit == "can"

    @pytest.mark.asyncio
    async def test_not_found_is_none(self):
        provider = NutritionixNutritionLookup(
            "app", "secret", client=mock_client(lambda r: httpx.Response(404, json={"message": "no match"}))
        )

        assert await provider.search_food("zzfood") is None

    @pytest.mark.asyncio
    async def test_auth_failure_raises(self):
        provider = NutritionixNutritionLookup(
            "app", "bad", client=mock_client(lambda r: httpx.Response(401))
        )

        with pytest.raises(NutritionLookupError) as exc_info:
            await provider.search_food("apple")

        assert exc_info.value.provider == "nutritionix"

    @pytest.mark.asyncio
    async def test_health_check_requires_credentials(self):
        provider = NutritionixNutritionLookup("", "", client=mock_client(lambda r: httpx.Response(200)))

        assert await provider.health_check() is False


# =============================================================================
# Clarifai
# =============================================================================


CLARIFAI_OUTPUT = {
    "outputs": [
        {
            "data": {
                "concepts": [
                    {"name": "rice", "value": 0.71},
                    {"name": "burrito", "value": 0.94},
                    {"name": "", "value": 0.5},
                    {"name": "beans", "value": 0.83},
                ]
            }
        }
    ]
}


class TestClarifaiConceptProvider:
    """Tests for ClarifaiConceptProvider."""

    @pytest.fixture
    def tracker(self):
        return QuotaTracker({"clarifai": QuotaLimit(1, QuotaPeriod.MONTH)})

    @pytest.mark.asyncio
    async def test_concepts_are_sorted(self, tracker):
        """Test concepts come back highest-confidence first."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=CLARIFAI_OUTPUT)

        provider = ClarifaiConceptProvider(
            "pat", "https://clarifai.test/outputs", quota=tracker, client=mock_client(handler)
        )

        concepts = await provider.extract_concepts(SAMPLE_IMAGE)

        assert [c.name for c in concepts] == ["burrito", "beans", "rice"]
        assert seen["auth"] == "Key pat"
        assert "base64" in seen["body"]["inputs"][0]["data"]["image"]
        assert tracker.status()["clarifai"]["used"] == 1

    @pytest.mark.asyncio
    async def test_quota_gate_blocks_before_request(self, tracker):
        """Test an exhausted quota fails without an outbound call."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=CLARIFAI_OUTPUT)

        tracker.increment("clarifai")
        provider = ClarifaiConceptProvider(
            "pat", "https://clarifai.test/outputs", quota=tracker, client=mock_client(handler)
        )

        with pytest.raises(FoodRecognitionError) as exc_info:
            await provider.extract_concepts(SAMPLE_IMAGE)

        assert exc_info.value.error_code == "QUOTA_EXHAUSTED"
        assert exc_info.value.details["reset_date"] > datetime.now(timezone.utc)
        assert calls == []

    @pytest.mark.asyncio
    async def test_auth_error_code(self):
        provider = ClarifaiConceptProvider(
            "bad", "https://clarifai.test/outputs", client=mock_client(lambda r: httpx.Response(401))
        )

        with pytest.raises(FoodRecognitionError) as exc_info:
            await provider.extract_concepts(SAMPLE_IMAGE)

        assert exc_info.value.error_code == "AUTH_ERROR"

    @pytest.mark.asyncio
    async def test_empty_concepts(self):
        provider = ClarifaiConceptProvider(
            "pat",
            "https://clarifai.test/outputs",
            client=mock_client(lambda r: httpx.Response(200, json={"outputs": [{"data": {}}]})),
        )

        with pytest.raises(FoodRecognitionError) as exc_info:
            await provider.extract_concepts(SAMPLE_IMAGE)

        assert exc_info.value.error_code == "NO_CONCEPTS"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """Test a 200 response that is not JSON maps to INVALID_RESPONSE."""
        provider = ClarifaiConceptProvider(
            "pat",
            "https://clarifai.test/outputs",
            client=mock_client(lambda r: httpx.Response(200, text="<html>gateway</html>")),
        )

        with pytest.raises(FoodRecognitionError) as exc_info:
            await provider.extract_concepts(SAMPLE_IMAGE)

        assert exc_info.value.error_code == "INVALID_RESPONSE"
        assert exc_info.value.details["body"] == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_malformed_outputs(self):
        provider = ClarifaiConceptProvider(
            "pat",
            "https://clarifai.test/outputs",
            client=mock_client(lambda r: httpx.Response(200, json={"outputs": ["oops"]})),
        )

        with pytest.raises(FoodRecognitionError) as exc_info:
            await provider.extract_concepts(SAMPLE_IMAGE)

        assert exc_info.value.error_code == "INVALID_RESPONSE"
