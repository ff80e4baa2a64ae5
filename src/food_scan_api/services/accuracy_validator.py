"""
Accuracy and plausibility checks for AI nutrition analysis.

Cross-checks the LLM's description, health score and suggestions against
the authoritative nutrition record. Calorie claims outside tolerance are
rewritten in place; every other finding is recorded as an issue and
logged without changing the analysis.
"""

import logging
import re
from dataclasses import dataclass, field

from food_scan_api.models.food_scan import AIAnalysis, NutritionRecord, NutritionSource

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.10
HIGH_FIDELITY_TOLERANCE = 0.05
SUGAR_ABSOLUTE_TOLERANCE_G = 1.0

_NUMBER = r"(\d+(?:\.\d+)?)"
_GROUPED_NUMBER = r"\b(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

CALORIE_CLAIM = re.compile(_GROUPED_NUMBER + r"\s*-?\s*(?:kcal|calories|calorie|cals?)\b", re.I)
PROTEIN_CLAIM = re.compile(_NUMBER + r"\s*g(?:rams?)?\s+(?:of\s+)?protein", re.I)
FAT_CLAIM = re.compile(_NUMBER + r"\s*g(?:rams?)?\s+(?:of\s+)?(?:total\s+)?fat", re.I)
SUGAR_CLAIM = re.compile(_NUMBER + r"\s*g(?:rams?)?\s+(?:of\s+)?(?:total\s+)?sugars?", re.I)

HEALTH_HALO_PATTERNS = (
    re.compile(r"rich in vitamins", re.I),
    re.compile(r"good source of minerals", re.I),
    re.compile(r"contains antioxidants", re.I),
    re.compile(r"heart.?healthy", re.I),
    re.compile(r"immune.?boosting", re.I),
    re.compile(r"anti.?inflammatory", re.I),
)


@dataclass
class ValidationReport:
    """Outcome of validating one analysis."""

    analysis: AIAnalysis
    issues: list[str] = field(default_factory=list)
    calories_corrected: bool = False


@dataclass(frozen=True)
class ScoreBand:
    floor: int
    ceiling: int

    def contains(self, score: int) -> bool:
        return self.floor <= score <= self.ceiling


def claim_tolerance(record: NutritionRecord) -> float:
    """Relative tolerance for numeric claims; tighter for label-sourced data."""
    if record.data_source == NutritionSource.OCR:
        return HIGH_FIDELITY_TOLERANCE
    return DEFAULT_TOLERANCE


def expected_score_band(record: NutritionRecord) -> ScoreBand:
    """Health-score band implied by the nutrition numbers."""
    cals = record.calories
    protein = record.protein
    fat = record.total_fat
    sugar = record.sugars
    fiber = record.dietary_fiber
    sodium = record.sodium

    floor, ceiling = 40, 70

    if cals < 200 and fat < 10 and sugar < 10 and fiber > 3:
        floor = 60
    if cals < 150 and protein > 10 and fat < 5:
        floor = 70

    if cals > 500 or fat > 30 or sugar > 20 or sodium > 800:
        ceiling = 55
    if cals > 700 or fat > 40 or sugar > 30 or sodium > 1200:
        ceiling = 45

    return ScoreBand(floor=floor, ceiling=ceiling)


def _outside(claimed: float, actual: float, tolerance: float, absolute_floor: float = 0.0) -> bool:
    allowed = max(actual * tolerance, absolute_floor)
    return abs(claimed - actual) > allowed


def correct_calorie_claims(
    description: str, actual_calories: float, tolerance: float
) -> tuple[str, list[str]]:
    """
    Rewrite calorie numbers that fall outside tolerance.

    Only the number is replaced; surrounding text and the unit are kept.

    Returns:
        Tuple of (corrected description, issues)
    """
    issues: list[str] = []
    corrected_value = str(round(actual_calories))

    def replace(match: re.Match[str]) -> str:
        claimed = float(match.group(1).replace(",", ""))
        if not _outside(claimed, actual_calories, tolerance):
            return match.group(0)
        issues.append(f"Calorie claim {match.group(1)} corrected to {corrected_value}")
        start = match.start(1) - match.start(0)
        end = match.end(1) - match.start(0)
        text = match.group(0)
        return text[:start] + corrected_value + text[end:]

    return CALORIE_CLAIM.sub(replace, description), issues


def _check_macro_claims(description: str, record: NutritionRecord, tolerance: float) -> list[str]:
    issues = []
    checks = (
        ("protein", PROTEIN_CLAIM, record.protein, 0.0),
        ("fat", FAT_CLAIM, record.total_fat, 0.0),
        ("sugar", SUGAR_CLAIM, record.sugars, SUGAR_ABSOLUTE_TOLERANCE_G),
    )
    for label, pattern, actual, absolute_floor in checks:
        for match in pattern.finditer(description):
            claimed = float(match.group(1))
            if _outside(claimed, actual, tolerance, absolute_floor):
                issues.append(f"{label.capitalize()} claim {claimed:g}g does not match data ({actual:g}g)")
    return issues


def _check_omissions(description: str, record: NutritionRecord) -> list[str]:
    text = description.lower()
    issues = []
    if record.protein > 20 and "protein" not in text:
        issues.append(f"High protein ({record.protein:g}g) not mentioned")
    if record.sugars > 20 and "sugar" not in text:
        issues.append(f"High sugar ({record.sugars:g}g) not mentioned")
    if record.total_fat > 30 and "fat" not in text:
        issues.append(f"High fat ({record.total_fat:g}g) not mentioned")
    if record.sodium > 1000 and "sodium" not in text and "salt" not in text:
        issues.append(f"High sodium ({record.sodium:g}mg) not mentioned")
    return issues


def validate_analysis(analysis: AIAnalysis, record: NutritionRecord) -> ValidationReport:
    """
    Validate an AI analysis against its nutrition record.

    Args:
        analysis: Parsed AI analysis
        record: Ground-truth nutrition record

    Returns:
        ValidationReport with the (possibly calorie-corrected) analysis and
        every issue found
    """
    tolerance = claim_tolerance(record)

    description, issues = correct_calorie_claims(analysis.description, record.calories, tolerance)
    calories_corrected = bool(issues)

    issues.extend(_check_macro_claims(description, record, tolerance))

    band = expected_score_band(record)
    if not band.contains(analysis.health_score):
        issues.append(
            f"Health score {analysis.health_score} outside expected range "
            f"{band.floor}-{band.ceiling} for nutrition profile"
        )

    issues.extend(_check_omissions(description, record))

    if analysis.health_score > 70 and any(
        "limit" in s.lower() or "reduce" in s.lower() for s in analysis.suggestions
    ):
        issues.append("High health score conflicts with limit/reduce suggestions")

    texts = [description, *analysis.suggestions]
    for pattern in HEALTH_HALO_PATTERNS:
        if any(pattern.search(t) for t in texts):
            issues.append(f"Unverifiable health claim: '{pattern.pattern}'")

    if issues:
        logger.warning(f"AI analysis validation found {len(issues)} issue(s): {'; '.join(issues)}")

    corrected = analysis.model_copy(update={"description": description}) if calories_corrected else analysis
    return ValidationReport(analysis=corrected, issues=issues, calories_corrected=calories_corrected)
