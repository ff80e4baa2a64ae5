"""Prompt templates for the food scan pipeline."""

import json

from food_scan_api.models.food_scan import ConceptObservation, NutritionRecord

DISH_SYNTHESIS_PROMPT = """You are a food identification expert analyzing vision system output.

Vision detected these {count} food concepts:
{ranked_concepts}

TASK: Synthesize these into ONE precise dish name.

RULES:
- Multi-ingredient dish (pasta+meat+sauce) -> specific recipe (Spaghetti Bolognese)
- Single dominant concept (apple) -> use it directly (Apple)
- Composite meal (rice+chicken+curry) -> full dish name (Chicken Curry with Rice)
- Beverage components (blackberry+yogurt+smoothie) -> complete drink (Blackberry Yogurt Smoothie)
- Branded product visible in the concepts -> include the brand (Coca-Cola)
- Prefer specific over generic; at most 6 words
- Ambiguous mix -> best-fit common dish based on concept weights

CRITICAL: Return ONLY the dish name. No explanation. No quotes. No punctuation.

EXAMPLES:
["pasta", "meat", "sauce", "cheese"] -> Spaghetti Bolognese
["apple"] -> Apple
["blackberry", "yogurt", "drink"] -> Blackberry Smoothie
["baked pasta", "casserole", "cheese", "tomato"] -> Baked Pasta Casserole
["rice", "chicken", "vegetables"] -> Chicken Fried Rice

INPUT CONCEPTS: {concept_names}
OUTPUT DISH NAME:"""


RECIPE_COMPOSITION_PROMPT = """You are a culinary expert. Estimate a typical ingredient breakdown for the dish: "{dish_name}".
Vision concepts observed: {concept_names}
Return STRICT JSON only with this schema: {{"ingredients":[{{"name":"string","percent":number}}, ...]}}.
Rules:
- Provide 3 to 6 ingredients
- Percents must be integers and sum to 100
- Use common names recognized by nutrition databases (e.g., "spaghetti", "ground beef", "tomato sauce", "olive oil", "cheddar cheese")
- Avoid brand names or regional variants unless essential
Examples:
Dish: Spaghetti Bolognese -> {{"ingredients":[{{"name":"spaghetti","percent":45}},{{"name":"ground beef","percent":25}},{{"name":"tomato sauce","percent":20}},{{"name":"olive oil","percent":5}},{{"name":"parmesan cheese","percent":5}}]}}
Dish: Blackberry Yogurt Smoothie -> {{"ingredients":[{{"name":"blackberries","percent":35}},{{"name":"plain yogurt","percent":45}},{{"name":"milk","percent":15}},{{"name":"honey","percent":5}}]}}
OUTPUT: JSON only."""


VISION_REIDENTIFICATION_PROMPT = """You are a food identification expert looking directly at a photo of food.

A concept-based pipeline identified this as: "{current_name}".
Work through the image in stages:
1. PACKAGING: read any visible brand names, product names, logos or label text.
2. PREPARATION: note cooking state (raw, fried, baked, grilled), frozen or thawed, sliced or whole.
3. OBSCURED ITEMS: if food is wrapped, frozen, partially hidden or in a container, infer the most likely product from shape, color and packaging.
4. DISH: name the single most specific identification supported by the image.

Rules:
- Include the brand when it is legible (e.g., "Coca-Cola Classic", "Ben & Jerry's Cookie Dough Ice Cream").
- At most 8 words. No explanation. No quotes. No trailing punctuation.
- If the image shows nothing more specific than the current identification, repeat it exactly.

OUTPUT DISH NAME:"""


ANALYSIS_PROMPT = """You are a professional nutritionist analyzing food using ONLY the provided nutrition data. CRITICAL RULES:
1. DO NOT invent, estimate, or assume ANY nutritional values not present in the data below
2. DO NOT mention nutrients or values that are not explicitly provided
3. ONLY cite exact numbers from the data - never round significantly or extrapolate
4. If a nutrient value is 0 or missing, DO NOT guess a different value
5. Base your health score EXCLUSIVELY on the metrics provided, using the formula below

Food Being Analyzed: "{dish_name}"
{composition_line}

NUTRITION DATA (THE ONLY SOURCE OF TRUTH):
{nutrition_json}

HEALTH SCORE CALCULATION FORMULA (apply strictly):
Base score = 50
+ Calories: <200cal=+20, 200-400=+10, 400-600=0, >600=-10
+ Protein: >20g=+20, 10-20g=+10, <10g=-5
+ Fat: <10g=+15, 10-20g=+10, 20-35g=0, >35g=-15
+ Fiber: >5g=+15, 2-5g=+10, <2g=0
+ Sugars: <5g=+15, 5-15g=+5, >15g=-15
+ Sodium: <200mg=+10, 200-500mg=+5, >500mg=-10
Final score = CLAMP(calculated value, 1, 100)

REQUIRED OUTPUT FORMAT (valid JSON only, no markdown, no code blocks):
{{"description":"<1-2 sentences citing ONLY the nutrient values from the data above{ingredient_hint}>","healthScore":<number 1-100 calculated using formula>,"suggestions":["<actionable tip 1, max 10 words>","<actionable tip 2, max 10 words>"]}}

ANTI-HALLUCINATION EXAMPLES:
CORRECT: "Contains 245 calories with 8g protein and 42g carbs; moderate sodium at 480mg."
WRONG: "Rich in vitamins and minerals" (not in data)
WRONG: "Approximately 250 calories" (must use exact value: 245)
WRONG: "Good source of iron" (iron not provided in data)

Ensure every claim is traceable to a specific value in the JSON data above."""


REFORMAT_PROMPT = """The previous response was not valid JSON. Extract or reformat it into EXACTLY this schema: {{"description":"<evidence-based 1-sentence summary>","healthScore":<1-100>,"suggestions":["<tip 1>","<tip 2>"]}}. Return ONLY the JSON object with no extra text.

Previous output:
{raw_output}"""


def build_dish_synthesis_prompt(concepts: list[ConceptObservation]) -> str:
    ranked = "\n".join(
        f"  {i}. {c.name} ({c.confidence:.0%} confidence)" for i, c in enumerate(concepts, start=1)
    )
    return DISH_SYNTHESIS_PROMPT.format(
        count=len(concepts),
        ranked_concepts=ranked,
        concept_names=", ".join(c.name for c in concepts),
    )


def build_composition_prompt(dish_name: str, concept_names: list[str]) -> str:
    return RECIPE_COMPOSITION_PROMPT.format(
        dish_name=dish_name,
        concept_names=", ".join(concept_names),
    )


def build_reidentification_prompt(current_name: str) -> str:
    return VISION_REIDENTIFICATION_PROMPT.format(current_name=current_name)


def build_analysis_prompt(dish_name: str, food_items: list[str], record: NutritionRecord) -> str:
    """Analysis prompt grounded on the first nutrition record."""
    is_composite = len(food_items) > 1
    concise = {
        "name": record.food_name,
        "serving": {
            "qty": record.serving_qty,
            "unit": record.serving_unit,
            "grams": record.serving_weight_grams,
        },
        "macros": {
            "calories": record.calories,
            "protein": record.protein,
            "carbs": record.total_carbohydrate,
            "fat": record.total_fat,
            "fiber": record.dietary_fiber,
            "sugars": record.sugars,
            "sodium_mg": record.sodium,
        },
    }
    return ANALYSIS_PROMPT.format(
        dish_name=dish_name,
        composition_line=(
            f"This is a composite dish with ingredients: {', '.join(food_items)}"
            if is_composite
            else "This is a single food item"
        ),
        nutrition_json=json.dumps(concise, indent=2),
        ingredient_hint=", mentioning key ingredients" if is_composite else "",
    )


def build_reformat_prompt(raw_output: str) -> str:
    return REFORMAT_PROMPT.format(raw_output=raw_output)
