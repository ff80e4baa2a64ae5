"""
Fusion & resolution engine.

Turns one image into a dish identification plus nutrition records:

- Stage A: vision concepts (the only fatal stage besides "no nutrition")
- Stage B: dish name via LLM synthesis -> food catalog -> top concept
- Stage C: nutrition via direct lookup -> recipe composite -> components
- Stage D: vision-LLM re-identification, replacing the result on success

Stages B and C are ordered strategy chains run by resolve_first.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from food_scan_api.core.exceptions import (
    NoNutritionDataError,
    ProviderAuthError,
    ProviderCreditsExhaustedError,
    ProviderQuotaExhaustedError,
    ScanPipelineError,
    VisionUnavailableError,
)
from food_scan_api.models.food_scan import (
    NUMERIC_NUTRITION_FIELDS,
    CompositeIngredient,
    ConceptObservation,
    DishIdentification,
    DishSource,
    NutritionRecord,
    NutritionSource,
    ScanPathway,
    ScanResponse,
)
from food_scan_api.services.ai_output import ModelOutputError, parse_model_json
from food_scan_api.services.dish_names import correct_dish_name, normalize_dish_name
from food_scan_api.services.food_catalog import FOOD_CATALOG, CatalogEntry, CatalogWeights, match_catalog
from food_scan_api.services.food_recognition.base import FoodRecognitionError, FoodRecognitionService
from food_scan_api.services.llm.client import LLMClient, LLMProviderError
from food_scan_api.services.nutrition_lookup.base import NutritionLookupService
from food_scan_api.services.nutrition_lookup.health_data import with_health_impact

from .analysis import NutritionAnalyst, analysis_unavailable_warning
from .prompts import (
    build_composition_prompt,
    build_dish_synthesis_prompt,
    build_reidentification_prompt,
)
from .resolution import Resolved, ResolutionExhausted, Strategy, Unresolved, resolve_first

logger = logging.getLogger(__name__)

MIN_DISH_NAME_LENGTH = 3
MAX_DISH_NAME_LENGTH = 100
FUSION_CONFIDENCE_NOTICE = 0.75

MIN_COMPOSITE_INGREDIENTS = 2
MAX_COMPOSITE_INGREDIENTS = 6
COMPOSITION_ATTEMPTS = 2

SYNTHESIS_MAX_TOKENS = 30
COMPOSITION_MAX_TOKENS = 300
REIDENTIFY_MAX_TOKENS = 40

# Per-serving nutrient fields; serving descriptors are excluded
NUTRIENT_FIELDS = tuple(
    f for f in NUMERIC_NUTRITION_FIELDS if f not in ("serving_qty", "serving_weight_grams")
)


@dataclass
class ScanContext:
    """Mutable per-request state shared by the strategies."""

    image: bytes
    concepts: list[ConceptObservation]
    top_confidence: float
    dish: DishIdentification | None = None
    food_items: list[str] = field(default_factory=list)
    llm_failure: LLMProviderError | None = None

    @property
    def concept_names(self) -> list[str]:
        return [c.name for c in self.concepts]


# =============================================================================
# Pure helpers
# =============================================================================


def select_top_concepts(
    concepts: list[ConceptObservation],
    min_confidence: float = 0.50,
    limit: int = 7,
) -> tuple[list[ConceptObservation], bool]:
    """
    Keep concepts at or above min_confidence, at most `limit` of them.

    If none clear the threshold, the raw top `limit` are used instead.

    Returns:
        Tuple of (selected concepts, True when the low-confidence fallback applied)
    """
    ranked = sorted(concepts, key=lambda c: c.confidence, reverse=True)
    selected = [c for c in ranked if c.confidence >= min_confidence][:limit]
    if selected:
        return selected, False
    return ranked[:limit], True


def clean_model_name(raw: str) -> str | None:
    """First line of a model's name answer with quotes and trailing punctuation removed."""
    for line in raw.splitlines():
        name = line.strip().strip("\"'`*").strip().rstrip(".!,;:").strip()
        if name:
            break
    else:
        return None
    if not is_valid_dish_name(name):
        return None
    if name.lower() == "unknown":
        return None
    return name


def is_valid_dish_name(name: str) -> bool:
    return MIN_DISH_NAME_LENGTH <= len(name) <= MAX_DISH_NAME_LENGTH


def normalize_composition(entries: list[dict]) -> list[CompositeIngredient]:
    """
    Turn a model's ingredient list into integer percents summing to 100.

    Entries without a name or with a non-positive percent are dropped and
    at most six are kept. Percents are rescaled and apportioned by largest
    remainder; every entry keeps at least 1%.

    Returns:
        Normalized ingredients, or [] when fewer than two usable entries remain
    """
    usable: list[tuple[str, float]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        percent = entry.get("percent")
        if not isinstance(name, str) or not name.strip():
            continue
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            continue
        if not math.isfinite(percent) or percent <= 0:
            continue
        usable.append((name.strip(), float(percent)))

    usable = usable[:MAX_COMPOSITE_INGREDIENTS]
    if len(usable) < MIN_COMPOSITE_INGREDIENTS:
        return []

    total = sum(p for _, p in usable)
    scaled = [p * 100 / total for _, p in usable]
    shares = [max(1, math.floor(s)) for s in scaled]

    diff = 100 - sum(shares)
    if diff > 0:
        order = sorted(range(len(scaled)), key=lambda i: scaled[i] - math.floor(scaled[i]), reverse=True)
        for i in range(diff):
            shares[order[i % len(order)]] += 1
    while diff < 0:
        largest = max(range(len(shares)), key=lambda i: shares[i])
        shares[largest] -= 1
        diff += 1

    return [CompositeIngredient(name=name, percent=share) for (name, _), share in zip(usable, shares)]


def build_composite_record(
    dish_name: str,
    parts: list[tuple[CompositeIngredient, NutritionRecord]],
) -> NutritionRecord:
    """
    Blend ingredient records into one record per 100 g of dish.

    Each nutrient is sum(per-gram amount x percent), rescaled by
    100 / sum(percents) so partially resolved recipes still describe 100 g.
    """
    total_percent = sum(part.percent for part, _ in parts) or 100
    scale = 100 / total_percent

    values = {
        name: sum(record.per_gram(name) * part.percent for part, record in parts) * scale
        for name in NUTRIENT_FIELDS
    }
    composite = NutritionRecord(
        food_name=f"{dish_name} (Estimated Composite)",
        data_source=NutritionSource.COMPOSITE,
        serving_qty=1,
        serving_unit="g",
        serving_weight_grams=100,
        **values,
    )
    return with_health_impact(composite, dish_name)


# =============================================================================
# Engine
# =============================================================================


def _vision_error(error: FoodRecognitionError) -> ScanPipelineError:
    details = {"provider": error.provider, "provider_error": error.error_code}
    match error.error_code:
        case "QUOTA_EXHAUSTED":
            return VisionUnavailableError(
                error.message,
                reset_date=error.details.get("reset_date"),
                details=details,
            )
        case "AUTH_ERROR":
            return ProviderAuthError(error.message, details=details)
        case "CREDITS_EXHAUSTED":
            return ProviderCreditsExhaustedError(error.message, details=details)
        case "RATE_LIMITED":
            return ProviderQuotaExhaustedError(error.message, details=details)
        case _:
            return VisionUnavailableError(error.message, details=details)


class FusionEngine:
    """
    Runs the full scan pipeline for one image.

    Usage:
        engine = FusionEngine(vision, [usda, nutritionix], llm)
        response = await engine.scan(image_bytes)
    """

    def __init__(
        self,
        vision: FoodRecognitionService,
        nutrition_providers: list[NutritionLookupService],
        llm: LLMClient | None,
        analyst: NutritionAnalyst | None = None,
        *,
        min_confidence: float = 0.50,
        max_concepts: int = 7,
        catalog: tuple[CatalogEntry, ...] = FOOD_CATALOG,
        catalog_weights: CatalogWeights = CatalogWeights(),
        reidentify: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._vision = vision
        self._providers = nutrition_providers
        self._llm = llm
        self._analyst = analyst if analyst is not None else (NutritionAnalyst(llm) if llm is not None else None)
        self._min_confidence = min_confidence
        self._max_concepts = max_concepts
        self._catalog = catalog
        self._weights = catalog_weights
        self._reidentify = reidentify
        self._clock = clock

        self._dish_chain: list[Strategy[ScanContext, tuple[DishIdentification, list[str]]]] = [
            Strategy("FusionSynthesis", self._synthesize_dish),
            Strategy("CatalogMatch", self._match_catalog),
            Strategy("VisionPrimary", self._vision_primary),
        ]
        self._nutrition_chain: list[Strategy[ScanContext, list[NutritionRecord]]] = [
            Strategy("DirectLookup", self._direct_lookup),
            Strategy("RecipeComposite", self._composite_lookup),
            Strategy("ComponentLookup", self._component_lookup),
        ]

    async def scan(self, image: bytes) -> ScanResponse:
        """
        Identify the dish in an image and resolve its nutrition.

        Args:
            image: Raw image bytes

        Returns:
            ScanResponse with at least one nutrition record

        Raises:
            ScanPipelineError: Vision unavailable, or no nutrition data at all
        """
        warnings: list[str] = []

        ctx = await self._extract_concepts(image, warnings)

        dish_resolution = await resolve_first(self._dish_chain, ctx)
        ctx.dish, ctx.food_items = dish_resolution.value
        warnings.extend(dish_resolution.warnings)
        logger.info(f"Dish resolved as '{ctx.dish.name}' via {dish_resolution.strategy}")

        try:
            nutrition_resolution = await resolve_first(self._nutrition_chain, ctx)
        except ResolutionExhausted as e:
            warnings.extend(e.warnings)
            raise NoNutritionDataError(
                f"Could not retrieve nutrition data for '{ctx.dish.name}'",
                details={"dish": ctx.dish.name, "food_items": ctx.food_items, "warnings": warnings},
            ) from e
        nutrition = nutrition_resolution.value
        warnings.extend(nutrition_resolution.warnings)

        override = await self._reidentify_from_image(ctx)
        if override is not None:
            ctx.dish, nutrition = override
            ctx.food_items = [ctx.dish.name]

        ai_analysis = None
        if ctx.llm_failure is not None:
            warnings.append(analysis_unavailable_warning(ctx.llm_failure.category))
        elif self._analyst is not None:
            ai_analysis = await self._analyst.analyze(ctx.dish.name, ctx.food_items, nutrition[0], warnings)
        else:
            warnings.append(analysis_unavailable_warning(None))

        return ScanResponse(
            identified_dish=ctx.dish,
            nutrition=nutrition,
            ai_analysis=ai_analysis,
            warnings=warnings,
            pathway=ScanPathway(
                source=ctx.dish.source,
                confidence=ctx.top_confidence,
                timestamp=self._clock(),
            ),
        )

    async def close(self) -> None:
        await self._vision.close()
        for provider in self._providers:
            await provider.close()

    # -------------------------------------------------------------------------
    # Stage A
    # -------------------------------------------------------------------------

    async def _extract_concepts(self, image: bytes, warnings: list[str]) -> ScanContext:
        try:
            raw = await self._vision.extract_concepts(image)
        except FoodRecognitionError as e:
            logger.error(f"Vision concept extraction failed: [{e.error_code}] {e.message}")
            raise _vision_error(e) from e

        if not raw:
            raise VisionUnavailableError("Vision provider returned no concepts")

        concepts, low_confidence = select_top_concepts(raw, self._min_confidence, self._max_concepts)
        top_confidence = concepts[0].confidence
        if low_confidence:
            warnings.append(f"Low vision confidence ({top_confidence:.0%}) - results may vary")

        logger.info(f"Selected concepts: {[c.name for c in concepts]}")
        return ScanContext(image=image, concepts=concepts, top_confidence=top_confidence)

    # -------------------------------------------------------------------------
    # Stage B
    # -------------------------------------------------------------------------

    def _llm_ready(self, ctx: ScanContext) -> bool:
        return self._llm is not None and ctx.llm_failure is None

    def _record_llm_failure(self, ctx: ScanContext, error: LLMProviderError) -> None:
        if error.fatal and ctx.llm_failure is None:
            logger.warning(f"LLM disabled for this request: [{error.error_code}] {error.message}")
            ctx.llm_failure = error

    def _identification(self, ctx: ScanContext, name: str, source: DishSource) -> DishIdentification:
        return DishIdentification(name=name, source=source, confidence=ctx.top_confidence)

    async def _synthesize_dish(self, ctx: ScanContext):
        if not self._llm_ready(ctx):
            return Unresolved("LLM unavailable")
        try:
            raw = await self._llm.generate(
                build_dish_synthesis_prompt(ctx.concepts),
                max_tokens=SYNTHESIS_MAX_TOKENS,
            )
        except LLMProviderError as e:
            self._record_llm_failure(ctx, e)
            return Unresolved(f"LLM error: {e.message}")

        name = clean_model_name(raw)
        if name is None:
            return Unresolved(f"Invalid dish name from LLM: {raw[:80]!r}")

        name = correct_dish_name(normalize_dish_name(name), ctx.concept_names)
        if not is_valid_dish_name(name):
            return Unresolved(f"Dish name from LLM unusable after normalization: {raw[:80]!r}")

        warnings = ()
        if ctx.top_confidence < FUSION_CONFIDENCE_NOTICE:
            warnings = (f"Multi-concept fusion used (primary vision confidence: {ctx.top_confidence:.0%})",)
        return Resolved(
            (self._identification(ctx, name, DishSource.FUSION_SYNTHESIS), ctx.concept_names),
            warnings,
        )

    async def _match_catalog(self, ctx: ScanContext):
        match = match_catalog(ctx.concepts, self._catalog, self._weights)
        if match is None:
            return Unresolved("No catalog entry above threshold")

        logger.info(f"Catalog match '{match.entry.name}' (score: {match.score:.1f})")
        name = correct_dish_name(normalize_dish_name(match.entry.name), ctx.concept_names)
        if not is_valid_dish_name(name):
            return Unresolved(f"Catalog name '{match.entry.name}' unusable after normalization")
        return Resolved(
            (self._identification(ctx, name, DishSource.HEURISTIC_FALLBACK), list(match.entry.ingredients))
        )

    async def _vision_primary(self, ctx: ScanContext):
        top = ctx.concepts[0].name
        name = correct_dish_name(normalize_dish_name(top), ctx.concept_names)
        if not is_valid_dish_name(name):
            name = top
        return Resolved(
            (self._identification(ctx, name, DishSource.VISION_PRIMARY), [top]),
            (f'AI fusion unavailable - using vision primary: "{name}"',),
        )

    # -------------------------------------------------------------------------
    # Stage C
    # -------------------------------------------------------------------------

    async def lookup_nutrition(self, query: str) -> NutritionRecord | None:
        """Look a food up in each provider in order; first hit wins."""
        for provider in self._providers:
            record = await provider.lookup(query)
            if record is not None:
                logger.info(f"{provider.provider_name}: found nutrition for '{query}'")
                return record
        return None

    async def _direct_lookup(self, ctx: ScanContext):
        record = await self.lookup_nutrition(ctx.dish.name)
        if record is None:
            return Unresolved(f"No direct match for '{ctx.dish.name}'")
        return Resolved([record])

    async def _estimate_composition(self, ctx: ScanContext) -> list[CompositeIngredient]:
        prompt = build_composition_prompt(ctx.dish.name, ctx.concept_names)
        for attempt in range(1, COMPOSITION_ATTEMPTS + 1):
            try:
                raw = await self._llm.generate(prompt, max_tokens=COMPOSITION_MAX_TOKENS)
            except LLMProviderError as e:
                self._record_llm_failure(ctx, e)
                return []

            try:
                data = parse_model_json(raw)
            except ModelOutputError as e:
                logger.warning(f"Composition attempt {attempt} unparseable: {e}")
                continue

            entries = data.get("ingredients") if isinstance(data, dict) else None
            parts = normalize_composition(entries if isinstance(entries, list) else [])
            if parts:
                return parts
            logger.warning(f"Composition attempt {attempt} returned fewer than 2 usable ingredients")
        return []

    async def _composite_lookup(self, ctx: ScanContext):
        if not self._llm_ready(ctx):
            return Unresolved("LLM unavailable")

        parts = await self._estimate_composition(ctx)
        if not parts:
            return Unresolved("No usable recipe composition")

        records = await asyncio.gather(*(self.lookup_nutrition(part.name) for part in parts))
        usable = [(part, record) for part, record in zip(parts, records) if record is not None]
        if len(usable) < MIN_COMPOSITE_INGREDIENTS:
            return Unresolved(f"Only {len(usable)}/{len(parts)} composite ingredients resolved")

        composite = build_composite_record(ctx.dish.name, usable)
        return Resolved(
            [composite],
            (f"Nutrition estimated from AI recipe composition ({len(usable)}/{len(parts)} ingredients resolved)",),
        )

    async def _component_lookup(self, ctx: ScanContext):
        items = ctx.concept_names
        records = await asyncio.gather(*(self.lookup_nutrition(item) for item in items))

        found = [record for record in records if record is not None]
        if not found:
            return Unresolved(f"No nutrition found for any of {len(items)} components")

        warnings = [
            f"Nutrition lookup failed for component: {item}"
            for item, record in zip(items, records)
            if record is None
        ]
        warnings.append(f"Using component nutrition ({len(found)}/{len(items)} found) - may underestimate total")
        return Resolved(found, tuple(warnings))

    # -------------------------------------------------------------------------
    # Stage D
    # -------------------------------------------------------------------------

    async def _reidentify_from_image(
        self, ctx: ScanContext
    ) -> tuple[DishIdentification, list[NutritionRecord]] | None:
        if not self._reidentify or not self._llm_ready(ctx):
            return None

        try:
            raw = await self._llm.generate(
                build_reidentification_prompt(ctx.dish.name),
                image=ctx.image,
                max_tokens=REIDENTIFY_MAX_TOKENS,
            )
        except LLMProviderError as e:
            self._record_llm_failure(ctx, e)
            logger.warning(f"Vision re-identification failed: {e.message}")
            return None

        name = clean_model_name(raw)
        if name is None:
            return None
        name = normalize_dish_name(name)
        if not is_valid_dish_name(name) or name.lower() == ctx.dish.name.lower():
            return None

        record = await self.lookup_nutrition(name)
        if record is None:
            logger.info(f"Re-identified '{name}' has no nutrition match; keeping '{ctx.dish.name}'")
            return None

        logger.info(f"Vision override: '{ctx.dish.name}' -> '{name}'")
        return self._identification(ctx, name, DishSource.VISION_OVERRIDE), [record]
