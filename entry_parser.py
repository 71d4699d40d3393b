"""Turn a spoken or typed sentence like "spent ₹250 on lunch" into an expense draft."""

from __future__ import annotations

import re
from types import MappingProxyType

from categorization import CATEGORY_KEYWORDS
from errors import ValidationError
from transactions import MAX_AMOUNT

MAX_ENTRY_LENGTH = 1000

_NUMBER = r"(\d+(?:[,\s]\d+)*(?:\.\d{1,2})?)"
_CURRENCY_AMOUNT = re.compile(r"[₹$€£]\s*" + _NUMBER)
_PLAIN_AMOUNT = re.compile(r"\b" + _NUMBER + r"\b")
_CURRENCY_WORDS = re.compile(r"\b(?:rupees?|rs|inr|dollars?|usd|euros?|eur|pounds?|gbp)\b")
_CURRENCY_SYMBOLS = re.compile(r"[₹$€£]")
_LEADING_COMMAND = re.compile(r"^(?:add|spent|paid|expense|for)\s+")
_TRAILING_COMMAND = re.compile(r"\s+(?:expense|spent|paid)$")
_SPACES = re.compile(r"\s+")

# Scanned in this order; the first word present is the amount.
WRITTEN_NUMBERS = MappingProxyType(
    {
        "one": 1,
        "two": 2,
        "three": 3,
        "four": 4,
        "five": 5,
        "six": 6,
        "seven": 7,
        "eight": 8,
        "nine": 9,
        "ten": 10,
        "twenty": 20,
        "thirty": 30,
        "forty": 40,
        "fifty": 50,
        "sixty": 60,
        "seventy": 70,
        "eighty": 80,
        "ninety": 90,
        "hundred": 100,
        "thousand": 1000,
    }
)
_WRITTEN_NUMBER_PATTERNS = tuple(
    (re.compile(rf"\b{word}\b"), value) for word, value in WRITTEN_NUMBERS.items()
)


def _to_number(raw: str) -> float:
    return float(re.sub(r"[,\s]", "", raw))


def extract_amount(text: str) -> float | None:
    """Currency-marked number first, then any number, then a written number."""
    for pattern in (_CURRENCY_AMOUNT, _PLAIN_AMOUNT):
        match = pattern.search(text)
        if match:
            return _to_number(match.group(1))
    for pattern, value in _WRITTEN_NUMBER_PATTERNS:
        if pattern.search(text):
            return float(value)
    return None


def extract_category(text: str, keyword_map=CATEGORY_KEYWORDS) -> str | None:
    """Category with the most keyword hits; ties go to the earlier category."""
    best, best_hits = None, 0
    for category, keywords in keyword_map.items():
        hits = sum(1 for keyword in keywords if keyword in text)
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def extract_description(text: str, amount: float | None, category: str | None) -> str:
    description = text
    if amount:
        description = _CURRENCY_AMOUNT.sub(" ", description)
        description = _PLAIN_AMOUNT.sub(" ", description)
        description = _CURRENCY_SYMBOLS.sub(" ", description)
        description = _CURRENCY_WORDS.sub(" ", description)

    description = _SPACES.sub(" ", description).strip()
    description = _LEADING_COMMAND.sub("", description)
    description = _TRAILING_COMMAND.sub("", description).strip()
    if not description:
        return f"{category or 'Other'} expense"
    return description[0].upper() + description[1:]


def entry_confidence(amount: float | None, category: str | None, description: str) -> float:
    score = 0.0
    if amount and amount > 0:
        score += 0.5
    if category and category != "Other":
        score += 0.3
    if description and len(description) > 3:
        score += 0.2
    return round(min(score, 1.0), 2)


def parse_expense_entry(text: str, keyword_map=CATEGORY_KEYWORDS) -> dict:
    """Draft an expense from free text.

    ``needsReview`` is set when either the amount or the category could not
    be found; the draft then falls back to ``Other`` and a null amount.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Invalid entry: must be a non-empty string")
    if len(text) > MAX_ENTRY_LENGTH:
        raise ValidationError(f"Entry too long: maximum {MAX_ENTRY_LENGTH} characters")

    lowered = text.lower().strip()
    amount = extract_amount(lowered)
    category = extract_category(lowered, keyword_map)
    description = extract_description(lowered, amount, category)
    return {
        "amount": amount or None,
        "category": category or "Other",
        "description": description or text.strip(),
        "confidence": entry_confidence(amount, category, description),
        "needsReview": not amount or not category,
    }


def validate_expense_draft(draft: dict) -> dict:
    """List what still blocks saving a parsed draft."""
    errors = []
    amount = draft.get("amount")
    if not amount or amount <= 0:
        errors.append("Amount is required and must be greater than 0")
    elif amount > MAX_AMOUNT:
        errors.append("Amount seems unusually high")
    if not draft.get("category"):
        errors.append("Category is required")
    return {"isValid": not errors, "errors": errors}
