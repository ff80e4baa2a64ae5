"""
Clarifai food-item-recognition provider.

Posts the base64 image to the Clarifai model outputs endpoint and maps
the returned concepts to ConceptObservation. Calls are gated by the
shared QuotaTracker (monthly free-tier operations).
"""

import base64
import logging
from typing import Any

import httpx

from food_scan_api.models.food_scan import ConceptObservation
from food_scan_api.services.quota import QuotaTracker

from .base import FoodRecognitionError, FoodRecognitionService

logger = logging.getLogger(__name__)

QUOTA_KEY = "clarifai"

# HTTP status -> error code for provider failures
STATUS_ERROR_CODES = {
    401: "AUTH_ERROR",
    403: "AUTH_ERROR",
    402: "CREDITS_EXHAUSTED",
    429: "RATE_LIMITED",
}


class ClarifaiConceptProvider(FoodRecognitionService):
    """
    Vision concept extraction using Clarifai's food-item-recognition model.
    """

    def __init__(
        self,
        api_key: str,
        model_url: str,
        timeout: float = 12.0,
        quota: QuotaTracker | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Clarifai provider.

        Args:
            api_key: Clarifai personal access token / API key
            model_url: Model outputs endpoint
            timeout: Request timeout in seconds
            quota: Tracker gating calls under the "clarifai" key
            client: Optional pre-built HTTP client (tests)
        """
        self.api_key = api_key
        self.model_url = model_url
        self.timeout = timeout
        self._quota = quota
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "clarifai"

    async def extract_concepts(self, image_data: bytes) -> list[ConceptObservation]:
        """Extract food concepts from an image via Clarifai."""
        if self._quota is not None:
            check = self._quota.check(QUOTA_KEY)
            if not check.allowed:
                raise FoodRecognitionError(
                    message="Vision quota exhausted for the current window",
                    error_code="QUOTA_EXHAUSTED",
                    provider=self.provider_name,
                    details={"reset_date": check.reset_date},
                )

        body = {
            "inputs": [
                {"data": {"image": {"base64": base64.b64encode(image_data).decode("utf-8")}}}
            ]
        }
        headers = {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            logger.info(f"Requesting vision concepts ({len(image_data)} bytes)")
            response = await self._client.post(
                self.model_url, json=body, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise FoodRecognitionError(
                message=f"Clarifai request timed out after {self.timeout}s",
                error_code="TIMEOUT",
                provider=self.provider_name,
            ) from e
        except httpx.RequestError as e:
            raise FoodRecognitionError(
                message=f"Failed to connect to Clarifai: {e}",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
            ) from e

        if self._quota is not None:
            self._quota.increment(QUOTA_KEY)

        if response.status_code != 200:
            raise FoodRecognitionError(
                message=f"Clarifai API error: {response.status_code}",
                error_code=STATUS_ERROR_CODES.get(response.status_code, "PROVIDER_ERROR"),
                provider=self.provider_name,
                details={"status_code": response.status_code, "body": response.text[:200]},
            )

        try:
            concepts = self._parse_concepts(response.json())
        except (ValueError, AttributeError, TypeError) as e:
            raise FoodRecognitionError(
                message=f"Invalid response from Clarifai: {e}",
                error_code="INVALID_RESPONSE",
                provider=self.provider_name,
                details={"body": response.text[:200]},
            ) from e

        if not concepts:
            raise FoodRecognitionError(
                message="Vision model returned no detectable concepts",
                error_code="NO_CONCEPTS",
                provider=self.provider_name,
            )

        logger.info(
            f"Clarifai returned {len(concepts)} concepts, top: "
            f"{concepts[0].name} ({concepts[0].confidence:.0%})"
        )
        return concepts

    def _parse_concepts(self, data: dict[str, Any]) -> list[ConceptObservation]:
        """Parse outputs[0].data.concepts into observations, highest first."""
        outputs = data.get("outputs") or []
        if not outputs:
            return []

        concepts = []
        for item in (outputs[0].get("data") or {}).get("concepts") or []:
            name = (item.get("name") or "").strip()
            if not name:
                continue
            try:
                confidence = min(1.0, max(0.0, float(item.get("value", 0))))
            except (TypeError, ValueError):
                continue
            concepts.append(ConceptObservation(name=name, confidence=confidence))

        return sorted(concepts, key=lambda c: c.confidence, reverse=True)

    async def health_check(self) -> bool:
        """Check the key is present and the quota is not exhausted."""
        if not self.api_key:
            return False
        if self._quota is not None and not self._quota.check(QUOTA_KEY).allowed:
            return False
        return True

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
