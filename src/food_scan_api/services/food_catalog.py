"""
Static food catalog and keyword scoring.

Used when LLM dish synthesis fails: vision concepts are scored against
each entry's keywords and the best entry above a threshold is accepted.
"""

from dataclasses import dataclass

from food_scan_api.models.food_scan import ConceptObservation


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    ingredients: tuple[str, ...]
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class CatalogWeights:
    """Scoring tunables."""

    exact: float = 10.0
    substring: float = 5.0
    multi_match_bonus: float = 3.0
    min_score: float = 5.0
    min_substring_length: int = 4


@dataclass(frozen=True)
class CatalogMatch:
    entry: CatalogEntry
    score: float
    matched_concepts: tuple[str, ...]


FOOD_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        "Sushi",
        ("Sushi Rice", "Nori", "Tuna", "Salmon", "Avocado", "Cucumber"),
        ("sushi", "maki", "nigiri", "japanese", "fish", "rice", "roll"),
    ),
    CatalogEntry(
        "Almond Tart",
        ("Almond", "Tart Shell", "Butter", "Sugar", "Egg"),
        ("almond", "tart", "torte", "pastry", "dessert", "bakewell", "nut"),
    ),
    CatalogEntry("Red Onion", ("Red Onion",), ("onion", "red onion", "vegetable", "allium")),
    CatalogEntry(
        "Caliburrito",
        ("Flour Tortilla", "Chicken", "White Rice", "Black Beans", "Cheese", "Sour Cream", "Guacamole", "Salsa"),
        ("burrito", "mexican", "wrap", "caliburrito", "chicken"),
    ),
    CatalogEntry(
        "Cookies and Cream Ice Cream",
        ("Ice Cream", "Oreo Cookie"),
        ("ice cream", "dessert", "oreo", "cookies and cream", "cookie"),
    ),
    CatalogEntry(
        "Barramundi Fillet",
        ("Barramundi Fish", "Lemon", "Herbs"),
        ("fish", "barramundi", "seafood", "fillet", "lemon"),
    ),
    CatalogEntry(
        "Rasmalai Cake",
        ("Rasmalai", "Cake", "Pistachio", "Saffron", "Milk"),
        ("dessert", "cake", "indian", "rasmalai", "pistachio"),
    ),
    CatalogEntry(
        "Pizza",
        ("Pizza Dough", "Tomato Sauce", "Mozzarella Cheese", "Pepperoni"),
        ("pizza", "pepperoni", "cheese", "italian", "pie"),
    ),
    CatalogEntry(
        "Caesar Salad",
        ("Lettuce", "Croutons", "Parmesan Cheese", "Caesar Dressing"),
        ("salad", "caesar salad", "lettuce", "croutons", "romaine"),
    ),
    CatalogEntry(
        "Hamburger",
        ("Ground Beef", "Bun", "Lettuce", "Tomato", "Cheese", "Pickles"),
        ("burger", "hamburger", "beef", "cheeseburger", "patty"),
    ),
    CatalogEntry("French Fries", ("Potato", "Oil", "Salt"), ("fries", "french fries", "potato", "chips", "fried")),
    CatalogEntry(
        "Fried Chicken",
        ("Chicken", "Breading", "Oil"),
        ("chicken", "fried chicken", "drumstick", "wing", "breast"),
    ),
    CatalogEntry(
        "Pasta with Marinara",
        ("Pasta", "Tomato Sauce", "Garlic", "Olive Oil", "Basil"),
        ("pasta", "spaghetti", "marinara", "tomato", "italian", "noodles"),
    ),
    CatalogEntry(
        "Chocolate Cake",
        ("Flour", "Cocoa Powder", "Sugar", "Butter", "Eggs"),
        ("cake", "chocolate", "dessert", "brownie", "cocoa"),
    ),
    CatalogEntry("Apple", ("Apple",), ("apple", "fruit", "fresh")),
    CatalogEntry("Banana", ("Banana",), ("banana", "fruit", "fresh")),
    CatalogEntry("Orange", ("Orange",), ("orange", "citrus", "fruit", "fresh")),
    CatalogEntry(
        "Grilled Chicken Breast",
        ("Chicken Breast", "Olive Oil", "Herbs"),
        ("chicken", "grilled", "breast", "poultry", "lean"),
    ),
    CatalogEntry(
        "Steak",
        ("Beef Steak", "Salt", "Pepper"),
        ("steak", "beef", "meat", "ribeye", "sirloin", "filet"),
    ),
    CatalogEntry("Salmon Fillet", ("Salmon", "Lemon", "Dill"), ("salmon", "fish", "seafood", "fillet", "omega")),
    CatalogEntry(
        "Egg Omelette",
        ("Eggs", "Milk", "Cheese", "Vegetables"),
        ("egg", "omelette", "omelet", "breakfast", "scrambled"),
    ),
    CatalogEntry(
        "Avocado Toast",
        ("Bread", "Avocado", "Salt", "Pepper"),
        ("avocado", "toast", "bread", "breakfast", "brunch"),
    ),
    CatalogEntry("Greek Yogurt", ("Greek Yogurt",), ("yogurt", "greek", "dairy", "protein", "yoghurt")),
    CatalogEntry(
        "Smoothie Bowl",
        ("Banana", "Berries", "Yogurt", "Granola"),
        ("smoothie", "bowl", "acai", "berries", "breakfast"),
    ),
    CatalogEntry(
        "Tacos",
        ("Tortilla", "Ground Beef", "Lettuce", "Cheese", "Salsa"),
        ("taco", "mexican", "tortilla", "beef", "shell"),
    ),
    CatalogEntry(
        "Pad Thai",
        ("Rice Noodles", "Shrimp", "Peanuts", "Bean Sprouts", "Lime"),
        ("pad thai", "thai", "noodles", "asian", "shrimp"),
    ),
    CatalogEntry(
        "Fried Rice",
        ("Rice", "Egg", "Vegetables", "Soy Sauce"),
        ("fried rice", "rice", "chinese", "asian", "egg"),
    ),
    CatalogEntry(
        "Ramen",
        ("Noodles", "Broth", "Pork", "Egg", "Scallions"),
        ("ramen", "noodles", "japanese", "soup", "broth"),
    ),
    CatalogEntry(
        "Pho",
        ("Rice Noodles", "Beef Broth", "Beef", "Herbs", "Lime"),
        ("pho", "vietnamese", "soup", "noodles", "broth"),
    ),
    CatalogEntry(
        "Biryani",
        ("Rice", "Chicken", "Spices", "Yogurt", "Onions"),
        ("biryani", "rice", "indian", "chicken", "curry"),
    ),
    CatalogEntry(
        "Sandwich",
        ("Bread", "Turkey", "Cheese", "Lettuce", "Tomato"),
        ("sandwich", "sub", "deli", "bread", "turkey"),
    ),
    CatalogEntry(
        "Donut",
        ("Flour", "Sugar", "Yeast", "Oil", "Glaze"),
        ("donut", "doughnut", "pastry", "dessert", "glazed"),
    ),
    CatalogEntry(
        "Pancakes",
        ("Flour", "Milk", "Eggs", "Butter", "Maple Syrup"),
        ("pancake", "breakfast", "syrup", "hotcake", "flapjack"),
    ),
    CatalogEntry("Waffles", ("Flour", "Milk", "Eggs", "Butter"), ("waffle", "breakfast", "syrup", "belgian")),
    CatalogEntry(
        "Bagel with Cream Cheese",
        ("Bagel", "Cream Cheese"),
        ("bagel", "cream cheese", "breakfast", "bread"),
    ),
    CatalogEntry(
        "Croissant",
        ("Flour", "Butter", "Yeast"),
        ("croissant", "pastry", "french", "breakfast", "bakery"),
    ),
    CatalogEntry(
        "Muffin",
        ("Flour", "Sugar", "Eggs", "Blueberries"),
        ("muffin", "blueberry", "bakery", "breakfast", "cake"),
    ),
    CatalogEntry(
        "Coffee",
        ("Coffee Beans", "Water"),
        ("coffee", "espresso", "latte", "cappuccino", "caffeine"),
    ),
)


def score_entry(
    entry: CatalogEntry,
    concepts: list[ConceptObservation],
    weights: CatalogWeights = CatalogWeights(),
) -> tuple[float, tuple[str, ...]]:
    """
    Score one catalog entry against the vision concepts.

    Per concept: exact keyword match adds exact x confidence; otherwise a
    concept of at least min_substring_length characters contained in a
    keyword adds substring x confidence. When more than one concept
    matched, each matched concept adds multi_match_bonus.

    Returns:
        Tuple of (score, matched concept names)
    """
    keywords = [k.lower() for k in entry.keywords]
    score = 0.0
    matched: list[str] = []

    for concept in concepts:
        name = concept.name.lower()
        if name in matched:
            continue
        if name in keywords:
            score += weights.exact * concept.confidence
            matched.append(name)
        elif len(name) >= weights.min_substring_length and any(name in k for k in keywords):
            score += weights.substring * concept.confidence
            matched.append(name)

    if len(matched) > 1:
        score += len(matched) * weights.multi_match_bonus

    return score, tuple(matched)


def match_catalog(
    concepts: list[ConceptObservation],
    catalog: tuple[CatalogEntry, ...] = FOOD_CATALOG,
    weights: CatalogWeights = CatalogWeights(),
) -> CatalogMatch | None:
    """
    Find the best-scoring catalog entry for the concepts.

    Ties keep the earlier entry. Returns None if the best score is below
    weights.min_score.
    """
    best: CatalogMatch | None = None
    for entry in catalog:
        score, matched = score_entry(entry, concepts, weights)
        if best is None or score > best.score:
            best = CatalogMatch(entry=entry, score=score, matched_concepts=matched)

    if best is None or best.score < weights.min_score:
        return None
    return best
