"""Tests for dish name normalization and heuristic correction."""

import pytest

from food_scan_api.services.dish_names import correct_dish_name, normalize_dish_name


class TestNormalizeDishName:
    """Tests for normalize_dish_name."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("spaghetti with meat sauce", "Spaghetti Bolognese"),
            ("Spaghetti Bolognese", "Spaghetti Bolognese"),
            ("cheeseburger meal", "Hamburger"),
            ("mac n cheese", "Macaroni and Cheese"),
            ("blueberry smoothie", "Blueberry Yogurt Smoothie"),
            ("strawberry yogurt smoothie", "Strawberry Yogurt Smoothie"),
            ("chicken and rice dish", "Chicken and Rice"),
            ("BBQ chicken wings", "BBQ Chicken Wings"),
            ("coca-cola", "Coca-Cola"),
        ],
    )
    def test_canonical_labels(self, raw, expected):
        assert normalize_dish_name(raw) == expected

    def test_empty_input_unchanged(self):
        assert normalize_dish_name("") == ""

    def test_first_synonym_wins(self):
        """Test only one synonym rewrite is applied."""
        assert normalize_dish_name("burger and waffle") == "Hamburger and Waffle"

    def test_long_names_keep_case(self):
        name = "grilled chicken with roasted vegetables, quinoa and a lemon tahini drizzle"

        assert normalize_dish_name(name) == name


class TestCorrectDishName:
    """Tests for correct_dish_name."""

    def test_sandwich_with_tortilla_signals_is_not_a_sandwich(self):
        assert correct_dish_name("Sandwich", ["tortilla", "salsa"]) == "Tacos"

    def test_sandwich_with_burrito_signals(self):
        concepts = ["tortilla", "rice", "salsa", "chicken"]

        assert correct_dish_name("Chicken Sandwich", concepts) == "Chicken Burrito"

    def test_tacos_rule(self):
        concepts = ["flour tortilla", "grilled chicken", "salsa", "lettuce"]

        assert correct_dish_name("Wrap", concepts) == "Chicken Tacos"

    def test_quesadilla_rule(self):
        assert correct_dish_name("Flatbread", ["tortilla", "cheese"]) == "Quesadilla"

    def test_protein_priority(self):
        """Test chicken outranks beef when both are present."""
        concepts = ["tortilla", "beef", "chicken", "rice", "cheese"]

        assert correct_dish_name("Wrap", concepts) == "Chicken Burrito"

    def test_specific_tortilla_dish_is_kept(self):
        concepts = ["tortilla", "rice", "salsa", "chicken"]

        assert correct_dish_name("Beef Burrito", concepts) == "Beef Burrito"

    def test_no_signals_keeps_name(self):
        assert correct_dish_name("Pad Thai", ["noodles", "shrimp"]) == "Pad Thai"
