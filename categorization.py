"""Expense categories, synonym tables and description-based assignment."""

from __future__ import annotations

from types import MappingProxyType

import pandas as pd

EXPENSE_CATEGORIES = (
    "Food",
    "Travel",
    "Transport",
    "Shopping",
    "Bills",
    "Entertainment",
    "Healthcare",
    "Education",
    "Other",
)

# Scanned in this order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS = MappingProxyType(
    {
        "Food": (
            "food",
            "restaurant",
            "grocery",
            "groceries",
            "eat",
            "eating",
            "dining",
            "lunch",
            "dinner",
            "breakfast",
            "meal",
            "snack",
        ),
        "Travel": (
            "travel",
            "flight",
            "flights",
            "hotel",
            "hotels",
            "trip",
            "vacation",
            "holiday",
        ),
        "Transport": (
            "transport",
            "transportation",
            "taxi",
            "uber",
            "ola",
            "bus",
            "train",
            "metro",
            "petrol",
            "fuel",
            "gas",
        ),
        "Shopping": (
            "shop",
            "shopping",
            "mall",
            "store",
            "clothes",
            "clothing",
            "fashion",
            "purchase",
        ),
        "Bills": (
            "bill",
            "bills",
            "electricity",
            "water",
            "internet",
            "utility",
            "utilities",
            "rent",
        ),
        "Entertainment": (
            "movie",
            "movies",
            "cinema",
            "game",
            "games",
            "entertainment",
            "concert",
            "show",
            "netflix",
            "spotify",
        ),
        "Healthcare": (
            "health",
            "healthcare",
            "medical",
            "doctor",
            "hospital",
            "medicine",
            "pharmacy",
            "clinic",
        ),
        "Education": (
            "education",
            "school",
            "college",
            "university",
            "course",
            "courses",
            "book",
            "books",
            "tuition",
            "class",
            "classes",
        ),
    }
)

# Single words a chat question may use to name a category.
CHAT_CATEGORY_ALIASES = MappingProxyType(
    {
        "food": "Food",
        "travel": "Travel",
        "shopping": "Shopping",
        "bills": "Bills",
        "entertainment": "Entertainment",
        "healthcare": "Healthcare",
        "education": "Education",
        "transport": "Transport",
        "transportation": "Transport",
    }
)


def keyword_map_from_json(raw: dict) -> dict[str, tuple[str, ...]]:
    """Normalize a user-edited keyword map, keeping only known categories."""
    normalized: dict[str, tuple[str, ...]] = {}
    for category, keywords in (raw or {}).items():
        if str(category) not in EXPENSE_CATEGORIES or not isinstance(keywords, (list, tuple)):
            continue
        cleaned = tuple(str(item).strip().lower() for item in keywords if str(item).strip())
        if cleaned:
            normalized[str(category)] = cleaned
    return normalized


def match_category(text: str, keyword_map=CATEGORY_KEYWORDS) -> str | None:
    """Return the first category whose keyword occurs anywhere in ``text``."""
    lowered = str(text or "").lower()
    if not lowered:
        return None
    for category, keywords in keyword_map.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return None


def assign_categories(df: pd.DataFrame, keyword_map=CATEGORY_KEYWORDS) -> pd.DataFrame:
    """Fill missing or unknown expense categories from the description."""
    out = df.copy()
    if "description" not in out.columns:
        out["description"] = ""
    if "category" not in out.columns:
        out["category"] = None

    def assign(row: pd.Series) -> str:
        current = row.get("category")
        if isinstance(current, str) and current in EXPENSE_CATEGORIES:
            return current
        return match_category(str(row.get("description") or ""), keyword_map) or "Other"

    out["category"] = out.apply(assign, axis=1) if not out.empty else out["category"]
    return out
