"""
Dish name normalization and heuristic correction.

normalize_dish_name maps noisy free-text names onto canonical culinary
labels. correct_dish_name renames commonly mis-named tortilla dishes
based on the vision concepts. Both are pure functions.
"""

import re

# (pattern, canonical label) - first match wins
SYNONYMS: list[tuple[re.Pattern[str], str]] = [
    # Pasta and Italian dishes
    (re.compile(r"spaghetti\s+(with\s+)?meat\s+sauce", re.I), "Spaghetti Bolognese"),
    (re.compile(r"bolognese", re.I), "Spaghetti Bolognese"),
    (re.compile(r"mac(\s+and\s+|\s*&\s*|\s*n\s*)cheese|mac\s*'?n\s*'?cheese", re.I), "Macaroni and Cheese"),
    (re.compile(r"lasagne?", re.I), "Lasagna"),
    (re.compile(r"carbonara", re.I), "Spaghetti Carbonara"),
    (re.compile(r"alfredo", re.I), "Fettuccine Alfredo"),
    # Burgers and fries
    (re.compile(r"cheeseburger", re.I), "Hamburger"),
    (re.compile(r"burger", re.I), "Hamburger"),
    (re.compile(r"fries|french\s*fried\s*potatoes", re.I), "French Fries"),
    # Rice dishes
    (re.compile(r"chicken\s+fried\s+rice", re.I), "Chicken Fried Rice"),
    (re.compile(r"beef\s+fried\s+rice", re.I), "Beef Fried Rice"),
    (re.compile(r"egg\s+fried\s+rice", re.I), "Egg Fried Rice"),
    # Tacos
    (re.compile(r"beef\s+tacos?", re.I), "Beef Tacos"),
    (re.compile(r"chicken\s+tacos?", re.I), "Chicken Tacos"),
    (re.compile(r"fish\s+tacos?", re.I), "Fish Tacos"),
    # Breakfast
    (re.compile(r"(egg\s+)?omelet+e?", re.I), "Egg Omelette"),
    (re.compile(r"pancakes?", re.I), "Pancakes"),
    (re.compile(r"waffles?", re.I), "Waffles"),
]

BERRY_SMOOTHIE = re.compile(r"(blackberry|blueberry|strawberry)\s*(yogurt\s*)?smoothie", re.I)
GENERIC_WORDS = re.compile(r"\b(dish|meal|food)\b", re.I)
MINOR_WORDS = {"and", "with", "of", "in", "on", "the", "a", "an"}
TITLE_CASE_MAX_LENGTH = 60


def _capitalize(word: str) -> str:
    # Keep acronyms and tokens with digits ("BBQ", "7UP") as written
    if len(word) > 1 and (word.isupper() or any(ch.isdigit() for ch in word)):
        return word
    return "-".join(part[:1].upper() + part[1:].lower() for part in word.split("-"))


def _title_case(name: str) -> str:
    words = name.split(" ")
    return " ".join(
        w.lower() if i > 0 and w.lower() in MINOR_WORDS else _capitalize(w)
        for i, w in enumerate(words)
    )


def normalize_dish_name(name: str) -> str:
    """
    Map a free-text dish name to its canonical label.

    Applies the first matching synonym (skipped when the canonical label
    is already present), strips generic words and title-cases short names.

    Args:
        name: Dish name as produced by a model or catalog

    Returns:
        Normalized name (empty input is returned unchanged)
    """
    if not name:
        return name

    out = name.strip()

    smoothie = BERRY_SMOOTHIE.search(out)
    if smoothie:
        label = f"{smoothie.group(1).capitalize()} Yogurt Smoothie"
        out = out[: smoothie.start()] + label + out[smoothie.end():]
    else:
        for pattern, label in SYNONYMS:
            match = pattern.search(out)
            if not match:
                continue
            if label.lower() not in out.lower():
                out = out[: match.start()] + label + out[match.end():]
            break

    out = GENERIC_WORDS.sub("", out)
    out = re.sub(r"\s{2,}", " ", out).strip()

    if len(out) < TITLE_CASE_MAX_LENGTH:
        out = _title_case(out)
    return out


# =============================================================================
# Heuristic ingredient correction
# =============================================================================

SIGNAL_TERMS: dict[str, tuple[str, ...]] = {
    "tortilla": ("tortilla",),
    "rice": ("rice",),
    "beans": ("bean",),
    "salsa": ("salsa", "pico de gallo"),
    "guacamole": ("guacamole", "guac"),
    "cheese": ("cheese",),
    "lettuce": ("lettuce",),
}

# Checked in priority order
PROTEIN_TERMS: list[tuple[str, tuple[str, ...]]] = [
    ("Chicken", ("chicken",)),
    ("Beef", ("beef", "steak", "carne asada", "ground meat")),
    ("Pork", ("pork", "carnitas", "al pastor", "chorizo")),
    ("Fish", ("fish", "shrimp", "prawn", "salmon", "tuna")),
]

# Names that already denote a specific tortilla dish are left alone
TORTILLA_DISH_NAMES = re.compile(
    r"burrito|taco|quesadilla|enchilada|fajita|nachos|chimichanga|tostada|tamale", re.I
)


def _has(concepts: list[str], terms: tuple[str, ...]) -> bool:
    return any(term in concept for concept in concepts for term in terms)


def _protein_prefix(concepts: list[str]) -> str:
    for label, terms in PROTEIN_TERMS:
        if _has(concepts, terms):
            return f"{label} "
    return ""


def correct_dish_name(name: str, concepts: list[str]) -> str:
    """
    Rename commonly mis-named tortilla dishes from concept signals.

    Rules, first match wins:
    - tortilla + (rice or beans) + (salsa, guacamole or cheese) -> "<Protein> Burrito"
    - tortilla + protein + (salsa or lettuce), not both rice and beans -> "<Protein> Tacos"
    - tortilla + cheese, no rice or beans -> "<Protein> Quesadilla"
    - a "sandwich" name with tortilla/salsa/guacamole signals is re-routed to
      Burrito (rice or beans present) or Tacos

    Args:
        name: Resolved dish name
        concepts: Vision concept names

    Returns:
        Corrected name, or the input name when no rule applies
    """
    lowered = [c.lower() for c in concepts]
    signals = {key: _has(lowered, terms) for key, terms in SIGNAL_TERMS.items()}
    protein = _protein_prefix(lowered)
    is_sandwich = "sandwich" in name.lower()

    if TORTILLA_DISH_NAMES.search(name) and not is_sandwich:
        return name

    tortilla = signals["tortilla"]
    rice_or_beans = signals["rice"] or signals["beans"]

    if tortilla and rice_or_beans and (signals["salsa"] or signals["guacamole"] or signals["cheese"]):
        return f"{protein}Burrito"

    if (
        tortilla
        and protein
        and (signals["salsa"] or signals["lettuce"])
        and not (signals["rice"] and signals["beans"])
    ):
        return f"{protein}Tacos"

    if tortilla and signals["cheese"] and not rice_or_beans:
        return f"{protein}Quesadilla"

    if is_sandwich and (tortilla or signals["salsa"] or signals["guacamole"]):
        return f"{protein}Burrito" if rice_or_beans else f"{protein}Tacos"

    return name
