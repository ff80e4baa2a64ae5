"""
Glycemic and inflammatory reference data.

Approximate glycemic index values (glucose = 100) from published GI
tables, and a coarse dietary inflammatory score (negative values are
anti-inflammatory). Lookups match the longest keyword contained in the
food name.
"""

from food_scan_api.models.food_scan import HealthImpact, NutritionRecord

# keyword -> (glycemic index, inflammatory score)
HEALTH_DATA: dict[str, tuple[int | None, float]] = {
    # Grains and starches
    "white rice": (73, 0.5),
    "brown rice": (68, -0.2),
    "fried rice": (73, 1.0),
    "rice": (73, 0.3),
    "white bread": (75, 0.8),
    "whole wheat bread": (74, 0.0),
    "bread": (75, 0.6),
    "bagel": (72, 0.7),
    "croissant": (67, 1.2),
    "spaghetti": (49, 0.3),
    "pasta": (49, 0.3),
    "macaroni": (50, 0.6),
    "noodles": (53, 0.4),
    "ramen": (55, 1.0),
    "oatmeal": (55, -0.5),
    "cornflakes": (81, 0.8),
    "flour tortilla": (30, 0.5),
    "corn tortilla": (46, 0.2),
    "tortilla": (30, 0.5),
    "burrito": (39, 0.6),
    "taco": (45, 0.6),
    "pizza": (60, 1.2),
    "hamburger": (61, 1.4),
    "sandwich": (60, 0.6),
    "sushi": (55, -0.3),
    "pancake": (66, 0.9),
    "waffle": (76, 0.9),
    "donut": (76, 1.8),
    "doughnut": (76, 1.8),
    "muffin": (60, 1.0),
    "cake": (67, 1.5),
    "cookie": (55, 1.4),
    # Vegetables and legumes
    "potato": (78, 0.4),
    "french fries": (63, 1.6),
    "fries": (63, 1.6),
    "sweet potato": (63, -0.4),
    "chickpea": (28, -0.6),
    "lentil": (32, -0.7),
    "kidney beans": (24, -0.6),
    "black beans": (30, -0.6),
    "beans": (30, -0.5),
    "carrot": (39, -0.8),
    "salad": (15, -1.2),
    "lettuce": (15, -1.0),
    "broccoli": (15, -1.5),
    "spinach": (15, -1.5),
    "avocado": (15, -1.0),
    # Fruit
    "apple": (36, -0.8),
    "banana": (51, -0.4),
    "orange": (43, -0.9),
    "watermelon": (76, -0.5),
    "grapes": (59, -0.6),
    "blueberr": (53, -1.4),
    "strawberr": (40, -1.2),
    "blackberr": (25, -1.3),
    "smoothie": (45, -0.4),
    # Dairy
    "milk": (39, 0.1),
    "yogurt": (41, -0.3),
    "ice cream": (51, 1.3),
    "cheese": (None, 0.8),
    # Proteins (negligible carbohydrate)
    "chicken": (None, 0.2),
    "beef": (None, 0.9),
    "steak": (None, 0.9),
    "pork": (None, 0.8),
    "bacon": (None, 1.5),
    "salmon": (None, -1.0),
    "fish": (None, -0.6),
    "egg": (None, 0.2),
    "tofu": (15, -0.5),
    # Drinks and sweets
    "cola": (63, 1.5),
    "coca-cola": (63, 1.5),
    "soda": (63, 1.5),
    "orange juice": (50, 0.2),
    "coffee": (None, -0.6),
    "honey": (61, 0.5),
    "sugar": (65, 1.6),
    "chocolate": (40, 0.7),
}


def get_health_data(food_name: str) -> tuple[int | None, float | None]:
    """
    Look up glycemic index and inflammatory score for a food name.

    Args:
        food_name: Free-text food or dish name

    Returns:
        Tuple of (glycemic index, inflammatory score); (None, None) when unknown
    """
    name = food_name.lower()
    best: str | None = None
    for keyword in HEALTH_DATA:
        if keyword in name and (best is None or len(keyword) > len(best)):
            best = keyword
    if best is None:
        return None, None
    return HEALTH_DATA[best]


def calculate_glycemic_load(glycemic_index: int, carbs_g: float) -> int:
    """Glycemic load = round(GI x available carbs / 100)."""
    return round(glycemic_index * carbs_g / 100)


def build_health_impact(food_name: str, carbs_g: float) -> HealthImpact | None:
    """Derive health indicators for a food, or None when it is not in the table."""
    glycemic_index, inflammatory_score = get_health_data(food_name)
    if glycemic_index is None and inflammatory_score is None:
        return None
    return HealthImpact(
        glycemic_index=glycemic_index,
        glycemic_load=(
            calculate_glycemic_load(glycemic_index, carbs_g)
            if glycemic_index is not None
            else None
        ),
        inflammatory_score=inflammatory_score,
    )


def with_health_impact(record: NutritionRecord, name: str | None = None) -> NutritionRecord:
    """Return a copy of the record with derived health indicators attached."""
    impact = build_health_impact(name or record.food_name, record.total_carbohydrate)
    return record.model_copy(update={"health_impact": impact})
