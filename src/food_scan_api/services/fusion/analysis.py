"""
AI nutrition analysis stage.

Prompts the LLM with the authoritative nutrition record, parses the
answer into AIAnalysis (parse -> validate -> one reformat -> coerce) and
runs the accuracy validator over the result.
"""

import logging
from typing import Any

from food_scan_api.models.food_scan import AIAnalysis, NutritionRecord
from food_scan_api.services.accuracy_validator import validate_analysis
from food_scan_api.services.ai_output import (
    ModelOutputError,
    coerce_ai_analysis,
    parse_model_json,
    validate_ai_analysis,
)
from food_scan_api.services.llm.client import LLMClient, LLMErrorCategory, LLMProviderError

from .prompts import build_analysis_prompt, build_reformat_prompt

logger = logging.getLogger(__name__)

ANALYSIS_MAX_TOKENS = 512
REFORMAT_MAX_TOKENS = 384

UNAVAILABLE_WARNINGS = {
    LLMErrorCategory.AUTH: "AI analysis unavailable: API key issue. Contact administrator.",
    LLMErrorCategory.CREDITS: "AI analysis unavailable: Provider credits exhausted. Showing nutrition facts only.",
    LLMErrorCategory.QUOTA: "AI analysis temporarily unavailable: Rate limit reached. Showing nutrition facts.",
}
DEFAULT_UNAVAILABLE_WARNING = "AI analysis temporarily unavailable. Showing nutrition facts only."

REFORMATTED_WARNING = "AI analysis reformatted into JSON from model output."
NORMALIZED_WARNING = "AI analysis normalized from non-standard format."


def analysis_unavailable_warning(category: LLMErrorCategory | None) -> str:
    return UNAVAILABLE_WARNINGS.get(category, DEFAULT_UNAVAILABLE_WARNING)


def _parse_and_validate(raw: str) -> AIAnalysis:
    return validate_ai_analysis(parse_model_json(raw))


class NutritionAnalyst:
    """
    Produces a validated AIAnalysis for a nutrition record.

    Never raises for model misbehaviour: LLM failures yield None plus a
    warning, malformed output is reformatted or coerced.
    """

    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def analyze(
        self,
        dish_name: str,
        food_items: list[str],
        record: NutritionRecord,
        warnings: list[str],
    ) -> AIAnalysis | None:
        """
        Analyze a dish against its nutrition record.

        Args:
            dish_name: Resolved dish name
            food_items: Ingredients or components of the dish
            record: Ground-truth nutrition record
            warnings: Response warnings, appended to in place

        Returns:
            Validated AIAnalysis, or None if the LLM call failed
        """
        prompt = build_analysis_prompt(dish_name, food_items, record)
        try:
            raw = await self._llm.generate(prompt, max_tokens=ANALYSIS_MAX_TOKENS)
        except LLMProviderError as e:
            logger.warning(f"AI analysis failed: [{e.error_code}] {e.message}")
            warnings.append(analysis_unavailable_warning(e.category))
            return None

        try:
            analysis = _parse_and_validate(raw)
        except ModelOutputError as e:
            logger.warning(f"AI analysis did not match schema ({e}); requesting reformat")
            analysis = await self._reformat_or_coerce(raw, warnings)

        report = validate_analysis(analysis, record)
        if report.calories_corrected:
            count = len(report.issues)
            warnings.append(
                f"AI analysis validated and corrected ({count} accuracy improvement{'s' if count > 1 else ''})"
            )
        return report.analysis

    async def _reformat_or_coerce(self, raw: str, warnings: list[str]) -> AIAnalysis:
        try:
            reformatted = await self._llm.generate(
                build_reformat_prompt(raw), max_tokens=REFORMAT_MAX_TOKENS, retries=0
            )
            analysis = _parse_and_validate(reformatted)
            warnings.append(REFORMATTED_WARNING)
            return analysis
        except (LLMProviderError, ModelOutputError) as e:
            logger.warning(f"Reformat failed ({e}); coercing original output")

        source: Any
        try:
            source = parse_model_json(raw)
        except ModelOutputError:
            source = raw
        warnings.append(NORMALIZED_WARNING)
        return coerce_ai_analysis(source)
