"""Pytest configuration and fixtures."""

from typing import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from food_scan_api.main import app
from food_scan_api.models.food_scan import ConceptObservation, NutritionRecord, NutritionSource
from food_scan_api.services.food_recognition.base import FoodRecognitionError, FoodRecognitionService
from food_scan_api.services.fusion import FusionEngine
from food_scan_api.services.llm import LLMErrorCategory, LLMProviderError
from food_scan_api.services.nutrition_lookup.base import NutritionLookupService

# Stand-in image bytes (JPEG magic number)
SAMPLE_IMAGE = b"\xff\xd8\xff\xe0" + b"\x00" * 64

VALID_ANALYSIS = (
    '{"description":"A balanced serving with moderate carbohydrates.",'
    '"healthScore":55,"suggestions":["Add a side salad"]}'
)


def make_concepts(*pairs: tuple[str, float]) -> list[ConceptObservation]:
    """Build concepts from (name, confidence) pairs."""
    return [ConceptObservation(name=name, confidence=conf) for name, conf in pairs]


def make_record(
    name: str,
    source: NutritionSource = NutritionSource.USDA,
    **nutrients,
) -> NutritionRecord:
    """Per-100g nutrition record."""
    return NutritionRecord(
        food_name=name,
        data_source=source,
        serving_qty=100,
        serving_unit="g",
        serving_weight_grams=100,
        **nutrients,
    )


class FakeVision(FoodRecognitionService):
    """Vision provider returning fixed concepts or raising a fixed error."""

    def __init__(self, concepts: list[ConceptObservation] | None = None, error: FoodRecognitionError | None = None):
        self.concepts = concepts or []
        self.error = error
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "fake-vision"

    async def extract_concepts(self, image_data: bytes) -> list[ConceptObservation]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.concepts

    async def health_check(self) -> bool:
        return True


class FakeNutrition(NutritionLookupService):
    """Nutrition provider backed by a name -> record dict (case-insensitive)."""

    def __init__(self, name: str, records: dict[str, NutritionRecord] | None = None):
        self._name = name
        self.records = {k.lower(): v for k, v in (records or {}).items()}
        self.queries: list[str] = []

    @property
    def provider_name(self) -> str:
        return self._name

    async def search_food(self, query: str) -> NutritionRecord | None:
        self.queries.append(query)
        return self.records.get(query.lower())

    async def health_check(self) -> bool:
        return True


class FakeLLM:
    """
    Scripted LLM client.

    Responses are keyed by prompt kind. A value may be a string, an
    exception to raise, or a list consumed one item per call. A kind with
    no scripted response raises a transient LLMProviderError.
    """

    # Checked in order; reformat prompts embed earlier model output
    KINDS = {
        "reformat": "previous response was not valid JSON",
        "synthesis": "Synthesize these into ONE precise dish name",
        "composition": "typical ingredient breakdown",
        "reidentify": "looking directly at a photo",
        "analysis": "professional nutritionist",
    }

    def __init__(self, **responses):
        self.responses = responses
        self.calls: list[tuple[str, str, bytes | None]] = []

    async def generate(self, prompt, *, image=None, max_tokens=None, temperature=None, retries=None):
        kind = next(k for k, marker in self.KINDS.items() if marker in prompt)
        self.calls.append((kind, prompt, image))

        value = self.responses.get(kind)
        if isinstance(value, list):
            value = value.pop(0) if value else None
        if value is None:
            raise LLMProviderError(f"No scripted response for {kind}", category=LLMErrorCategory.TRANSIENT)
        if isinstance(value, BaseException):
            raise value
        return value

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.calls]


@pytest.fixture
def engine_factory() -> Callable[..., FusionEngine]:
    """
    Build a FusionEngine from fakes.

    Usage:
        engine = engine_factory(vision, [usda], llm, reidentify=True)
    """

    def build(vision, providers, llm, **kwargs) -> FusionEngine:
        kwargs.setdefault("reidentify", False)
        return FusionEngine(vision=vision, nutrition_providers=providers, llm=llm, **kwargs)

    return build


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client.

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def burrito_concepts() -> list[ConceptObservation]:
    return make_concepts(
        ("tortilla", 0.96),
        ("rice", 0.90),
        ("beans", 0.88),
        ("cheese", 0.86),
        ("salsa", 0.82),
    )


@pytest.fixture
def pasta_concepts() -> list[ConceptObservation]:
    return make_concepts(
        ("pasta", 0.95),
        ("meat", 0.88),
        ("sauce", 0.86),
        ("cheese", 0.80),
    )
