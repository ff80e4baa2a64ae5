"""Tests for the HTTP surface."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from conftest import (
    SAMPLE_IMAGE,
    VALID_ANALYSIS,
    FakeLLM,
    FakeNutrition,
    FakeVision,
    make_concepts,
    make_record,
)
from food_scan_api.api.dependencies import get_fusion_engine, get_quota_tracker
from food_scan_api.main import app
from food_scan_api.models.food_scan import NutritionSource
from food_scan_api.services.food_recognition.base import FoodRecognitionError
from food_scan_api.services.quota import QuotaLimit, QuotaPeriod, QuotaTracker


def upload(content: bytes = SAMPLE_IMAGE, content_type: str = "image/jpeg") -> dict:
    return {"image": ("meal.jpg", content, content_type)}


class TestScanFoodRoute:
    """Tests for POST /food/scan-food."""

    @pytest.mark.asyncio
    async def test_successful_scan(self, client: AsyncClient, engine_factory):
        """Test a Coca-Cola scan returns explicit zero protein and fat."""
        nutritionix = FakeNutrition(
            "nutritionix",
            {
                "coca-cola": make_record(
                    "Coca-Cola",
                    NutritionSource.NUTRITIONIX,
                    calories=140,
                    sugars=39,
                    sodium=45,
                    protein=None,
                    total_fat=None,
                )
            },
        )
        engine = engine_factory(
            FakeVision(make_concepts(("coca-cola", 0.93), ("soda", 0.88))),
            [nutritionix],
            FakeLLM(synthesis="Coca-Cola", analysis=VALID_ANALYSIS),
        )
        app.dependency_overrides[get_fusion_engine] = lambda: engine

        response = await client.post("/food/scan-food", files=upload())

        assert response.status_code == 200
        data = response.json()
        assert data["identified_dish"]["name"] == "Coca-Cola"
        assert data["identified_dish"]["source"] == "FusionSynthesis"
        nutrition = data["nutrition"][0]
        assert nutrition["protein"] == 0
        assert nutrition["total_fat"] == 0
        assert data["ai_analysis"]["health_score"] == 55
        assert data["pathway"]["source"] == "FusionSynthesis"

    @pytest.mark.asyncio
    async def test_vision_unavailable_payload(self, client: AsyncClient, engine_factory):
        """Test a quota-gated vision provider returns 429 with remediation."""
        reset = datetime(2026, 11, 1, tzinfo=timezone.utc)
        vision = FakeVision(
            error=FoodRecognitionError("quota", error_code="QUOTA_EXHAUSTED", details={"reset_date": reset})
        )
        app.dependency_overrides[get_fusion_engine] = lambda: engine_factory(vision, [], FakeLLM())

        response = await client.post("/food/scan-food", files=upload())

        assert response.status_code == 429
        data = response.json()
        assert data["error_code"] == "VisionUnavailable"
        assert data["remediation"]
        assert data["details"]["reset_date"] == reset.isoformat()

    @pytest.mark.asyncio
    async def test_no_nutrition_is_502(self, client: AsyncClient, engine_factory):
        """Test exhausting every nutrition fallback returns 502."""
        engine = engine_factory(
            FakeVision(make_concepts(("zzfood", 0.9))),
            [FakeNutrition("usda")],
            FakeLLM(synthesis="Zzfood"),
        )
        app.dependency_overrides[get_fusion_engine] = lambda: engine

        response = await client.post("/food/scan-food", files=upload())

        assert response.status_code == 502
        assert response.json()["error_code"] == "NoNutritionData"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_categorized(self, client: AsyncClient):
        """Test unexpected exceptions surface as the Unknown category."""
        engine = MagicMock()
        engine.scan = AsyncMock(side_effect=RuntimeError("kaboom"))
        app.dependency_overrides[get_fusion_engine] = lambda: engine

        response = await client.post("/food/scan-food", files=upload())

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "Unknown"
        assert data["remediation"]
        assert data["details"]["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_empty_upload_rejected(self, client: AsyncClient):
        """Test an empty image body is a validation error."""
        engine = MagicMock()
        engine.scan = AsyncMock()
        app.dependency_overrides[get_fusion_engine] = lambda: engine

        response = await client.post("/food/scan-food", files=upload(b""))

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        engine.scan.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_content_type_rejected(self, client: AsyncClient):
        """Test non-image uploads are rejected."""
        engine = MagicMock()
        engine.scan = AsyncMock()
        app.dependency_overrides[get_fusion_engine] = lambda: engine

        response = await client.post("/food/scan-food", files=upload(b"hello", "text/plain"))

        assert response.status_code == 422
        engine.scan.assert_not_called()


class TestQuotaAndHealthRoutes:
    """Tests for GET /quota/status and GET /health."""

    @pytest.mark.asyncio
    async def test_quota_status(self, client: AsyncClient):
        """Test quota status reports usage per provider."""
        tracker = QuotaTracker({"clarifai": QuotaLimit(2, QuotaPeriod.MONTH)})
        tracker.increment("clarifai")
        app.dependency_overrides[get_quota_tracker] = lambda: tracker

        response = await client.get("/quota/status")

        assert response.status_code == 200
        status = response.json()["providers"]["clarifai"]
        assert status["used"] == 1
        assert status["remaining"] == 1
        assert status["allowed"] is True

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        """Test health endpoint reports provider configuration."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert set(data["providers"]) == {"clarifai", "usda", "nutritionix"}
        assert "llm" in data
