"""Natural-language search: turn a free-text query into structured filters."""

from __future__ import annotations

import datetime
import logging
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType

import pandas as pd

from categorization import CATEGORY_KEYWORDS, match_category
from errors import ValidationError
from periods import end_of_day, month_bounds, previous_month_bounds, start_of_day, year_bounds
from transactions import coerce_amount, records_frame, resolve_now

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500

_YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")

# Scanned in this order; the first token present in the query wins.
MONTH_TOKENS = MappingProxyType(
    {
        "january": 1,
        "jan": 1,
        "february": 2,
        "feb": 2,
        "march": 3,
        "mar": 3,
        "april": 4,
        "apr": 4,
        "may": 5,
        "june": 6,
        "jun": 6,
        "july": 7,
        "jul": 7,
        "august": 8,
        "aug": 8,
        "september": 9,
        "sep": 9,
        "sept": 9,
        "october": 10,
        "oct": 10,
        "november": 11,
        "nov": 11,
        "december": 12,
        "dec": 12,
    }
)
_MONTH_TOKEN_PATTERNS = tuple(
    (token, month, re.compile(rf"\b{token}\b")) for token, month in MONTH_TOKENS.items()
)

_AMOUNT = r"\s*[₹$]?\s*([\d,]+)"
AMOUNT_PATTERNS = (
    (re.compile(r"over" + _AMOUNT), "min"),
    (re.compile(r"more\s+than" + _AMOUNT), "min"),
    (re.compile(r"above" + _AMOUNT), "min"),
    (re.compile(r"greater\s+than" + _AMOUNT), "min"),
    (re.compile(r"under" + _AMOUNT), "max"),
    (re.compile(r"less\s+than" + _AMOUNT), "max"),
    (re.compile(r"below" + _AMOUNT), "max"),
    (re.compile(r"between" + _AMOUNT + r"\s*and" + _AMOUNT), "range"),
)

_FUNCTION_WORDS = {
    "show", "find", "list", "get", "fetch", "display", "search",
    "expense", "expenses", "spending", "spent", "spend", "total", "all",
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "last", "this", "year", "month", "week", "day", "my", "me", "i",
    "what", "when", "where", "how", "much", "many", "did", "was", "were",
    "matching", "related", "regarding", "that", "than", "have", "there",
    "over", "under", "above", "below", "between", "more", "less", "greater",
    "today", "yesterday",
}
STOPWORDS = frozenset(
    _FUNCTION_WORDS
    | {category.lower() for category in CATEGORY_KEYWORDS}
    | {keyword for keywords in CATEGORY_KEYWORDS.values() for keyword in keywords}
    | set(MONTH_TOKENS)
)

_NON_WORD = re.compile(r"[^\w]", re.ASCII)
_DIGITS = re.compile(r"^\d+$")
_YEAR_TOKEN = re.compile(r"^20\d{2}$")


@dataclass
class QueryFilter:
    """Structured search filters extracted from one query.

    When ``category`` is set, consumers must not apply ``description_keywords``.
    """

    category: str | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    start_date: datetime.datetime | None = None
    end_date: datetime.datetime | None = None
    time_period: str | None = None
    description_keywords: list[str] = field(default_factory=list)
    year: int | None = None
    month: int | None = None

    @property
    def label(self) -> str:
        return self.time_period or self.category or "custom"

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "minAmount": self.min_amount,
            "maxAmount": self.max_amount,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "timePeriod": self.time_period,
            "descriptionKeywords": list(self.description_keywords),
            "year": self.year,
            "month": self.month,
        }


def _bind(filters: QueryFilter, bounds: tuple[datetime.datetime, datetime.datetime], label: str) -> None:
    filters.start_date, filters.end_date = bounds
    filters.time_period = label


def _amount_spans(text: str) -> list[tuple[int, int]]:
    return [match.span() for pattern, _ in AMOUNT_PATTERNS for match in pattern.finditer(text)]


def _find_year(text: str) -> int | None:
    """First 20xx token that is not an amount ("over 2000", "₹2024")."""
    amount_spans = _amount_spans(text)
    for match in _YEAR_PATTERN.finditer(text):
        start, end = match.span(1)
        if start > 0 and text[start - 1] in "₹$":
            continue
        if any(span_start <= start and end <= span_end for span_start, span_end in amount_spans):
            continue
        return int(match.group(1))
    return None


def _explicit_year(filters: QueryFilter, text: str, now: datetime.datetime, keyword_map) -> None:
    year = _find_year(text)
    if year is None:
        return
    filters.year = year
    for token, month, pattern in _MONTH_TOKEN_PATTERNS:
        if pattern.search(text):
            filters.month = month
            _bind(filters, month_bounds(year, month), f"{token} {year}")
            return
    _bind(filters, year_bounds(year), f"year {year}")


def _relative_time(filters: QueryFilter, text: str, now: datetime.datetime, keyword_map) -> None:
    if filters.start_date or filters.end_date:
        return

    week_ago = now - datetime.timedelta(days=7)
    if "last year" in text:
        filters.year = now.year - 1
        _bind(filters, year_bounds(now.year - 1), "last year")
    elif "this year" in text:
        filters.year = now.year
        _bind(filters, (datetime.datetime(now.year, 1, 1), now), "this year")
    elif "last month" in text:
        _bind(filters, previous_month_bounds(now), "last month")
    elif "this month" in text:
        _bind(filters, (datetime.datetime(now.year, now.month, 1), now), "this month")
    elif "last week" in text:
        _bind(filters, (week_ago, now), "last week")
    elif "this week" in text or "week" in text:
        _bind(filters, (week_ago, now), "this week")
    elif "today" in text:
        _bind(filters, (start_of_day(now), now), "today")
    elif "yesterday" in text:
        yesterday = now - datetime.timedelta(days=1)
        _bind(filters, (start_of_day(yesterday), end_of_day(yesterday)), "yesterday")


def _category(filters: QueryFilter, text: str, now: datetime.datetime, keyword_map) -> None:
    filters.category = match_category(text, keyword_map)


def _parse_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def _amount_range(filters: QueryFilter, text: str, now: datetime.datetime, keyword_map) -> None:
    for pattern, kind in AMOUNT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if kind == "min":
            filters.min_amount = _parse_number(match.group(1))
        elif kind == "max":
            filters.max_amount = _parse_number(match.group(1))
        else:
            filters.min_amount = _parse_number(match.group(1))
            filters.max_amount = _parse_number(match.group(2))
        return


def _keywords(filters: QueryFilter, text: str, now: datetime.datetime, keyword_map) -> None:
    for word in text.split():
        token = _NON_WORD.sub("", word)
        if len(token) <= 3 or token in STOPWORDS:
            continue
        if _DIGITS.match(token) or _YEAR_TOKEN.match(token):
            continue
        filters.description_keywords.append(token)


_STAGES = (_explicit_year, _relative_time, _category, _amount_range, _keywords)


def parse_search_query(
    query: str,
    now: datetime.datetime | None = None,
    keyword_map=CATEGORY_KEYWORDS,
) -> QueryFilter:
    """Extract time range, category, amount bounds and keywords from a query.

    Stages run in a fixed order and within each stage the first match wins.
    A failing stage is logged and the fields filled so far are returned.
    """
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Invalid query: must be a non-empty string")
    if len(query) > MAX_QUERY_LENGTH:
        raise ValidationError(f"Query too long: maximum {MAX_QUERY_LENGTH} characters")

    now = resolve_now(now)
    text = query.lower().strip()
    filters = QueryFilter()
    for stage in _STAGES:
        try:
            stage(filters, text, now, keyword_map)
        except Exception:
            logger.exception("Query parsing stopped at %s for %r", stage.__name__, query)
            break
    return filters


def _keyword_mask(frame: pd.DataFrame, keywords: list[str]) -> pd.Series:
    haystack = frame["description"].fillna("") + " " + frame["category"].fillna("")
    mask = pd.Series(False, index=frame.index)
    for keyword in keywords:
        mask |= haystack.str.contains(re.escape(keyword), case=False, regex=True)
    return mask


def apply_query_filter(expenses: list[dict], filters: QueryFilter) -> list[dict]:
    """Return the expenses matching ``filters``, newest first. Non-dict entries never match."""
    frame = records_frame(expenses)
    mask = pd.Series(True, index=frame.index)
    if filters.category:
        mask &= frame["category"] == filters.category
    if filters.min_amount is not None:
        mask &= frame["amount"] >= filters.min_amount
    if filters.max_amount is not None:
        mask &= frame["amount"] <= filters.max_amount
    if filters.start_date is not None:
        mask &= frame["date"] >= filters.start_date
    if filters.end_date is not None:
        mask &= frame["date"] <= filters.end_date
    if filters.description_keywords and not filters.category:
        mask &= _keyword_mask(frame, filters.description_keywords)

    matched = frame[mask].sort_values(["date", "position"], ascending=[False, True], na_position="last")
    records = (expenses[int(position)] for position in matched["position"])
    return [record for record in records if isinstance(record, dict)]


def search_transactions(
    expenses: list[dict],
    query: str,
    now: datetime.datetime | None = None,
    keyword_map=CATEGORY_KEYWORDS,
) -> dict:
    """Parse ``query`` and run it against an in-memory expense list."""
    filters = parse_search_query(query, now=now, keyword_map=keyword_map)
    results = apply_query_filter(expenses, filters)
    amounts = (coerce_amount(record.get("amount")) for record in results)
    total = sum(amount for amount in amounts if not math.isnan(amount))
    return {
        "query": query,
        "count": len(results),
        "total": round(total, 2),
        "filters": filters.label,
        "results": results,
    }
