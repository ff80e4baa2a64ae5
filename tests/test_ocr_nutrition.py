"""Tests for nutrition label text parsing."""

from food_scan_api.models.food_scan import NutritionSource
from food_scan_api.services import OCRNutritionFacts, parse_nutrition_text

LABEL = """
NUTRITION INFORMATION  Per 100g
Energy: 1046 kJ
Protein: 6.2g
Fat, total: 3.1g
  - saturated: 1.0g
Carbohydrate: 48g
  - sugars: 12.5g
Dietary fibre: 4g
Sodium: 0.4g
"""


class TestParseNutritionText:
    """Tests for parse_nutrition_text."""

    def test_full_label(self):
        facts = parse_nutrition_text(LABEL)

        assert isinstance(facts, OCRNutritionFacts)
        assert facts.energy_kj == 1046
        assert facts.energy_kcal is None
        assert facts.calories == 250.0
        assert facts.protein_g == 6.2
        assert facts.fat_total_g == 3.1
        assert facts.fat_saturated_g == 1.0
        assert facts.carbohydrate_g == 48
        assert facts.sugars_g == 12.5
        assert facts.fiber_g == 4
        assert facts.sodium_mg == 400
        assert facts.confidence == 0.7

    def test_kcal_preferred_over_kj(self):
        facts = parse_nutrition_text("Energy: 420 kJ / 100 kcal\nProtein: 2g")

        assert facts.calories == 100

    def test_sodium_in_milligrams(self):
        facts = parse_nutrition_text("Calories: 90\nSodium: 140mg")

        assert facts.sodium_mg == 140
        assert facts.confidence == 0.25

    def test_too_few_values(self):
        assert parse_nutrition_text("Protein: 5g") is None
        assert parse_nutrition_text("no numbers here") is None

    def test_to_nutrition_record(self):
        record = parse_nutrition_text(LABEL).to_nutrition_record("Granola", brand_name="Acme")

        assert record.data_source == NutritionSource.OCR
        assert record.brand_name == "Acme"
        assert record.calories == 250.0
        assert record.sodium == 400
        assert record.serving_weight_grams == 100
        assert record.cholesterol == 0
