"""Analytics helpers for the dashboard: health score, patterns, forecast, calendar and budgets."""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass
from typing import Callable

import pandas as pd

from errors import fail_soft
from periods import MONTH_NAMES, days_in_month, month_bounds, month_key, shift_month
from transactions import coerce_amount, records_frame, resolve_now, with_amount, with_amount_and_date

DEFAULT_SCORE = 80
BASE_SCORE = 70
FALLBACK_SCORE = 70
MAX_SCORE = 100
RECENT_WINDOW_DAYS = 7
HIGH_VALUE_AMOUNT = 5000

SCORE_BANDS = (
    (80, "Excellent", "#10b981"),
    (60, "Good", "#3b82f6"),
    (40, "Fair", "#f59e0b"),
)
LOWEST_SCORE_BAND = ("Needs Improvement", "#ef4444")

WEEKEND_SAMPLE_SIZE = 30
WEEKEND_RATIO = 1.5
SMALL_PURCHASE_AMOUNT = 500
SMALL_PURCHASE_LIMIT = 8
SPIKE_FACTOR = 2

FORECAST_WEIGHTS = (0.1, 0.2, 0.3, 0.4)
FORECAST_DRIFT = 1.05
FORECAST_HISTORY_MONTHS = 6
MIN_FORECAST_RECORDS = 10
MIN_FORECAST_MONTHS = 3

BUDGET_BUFFER = 0.15
MIN_BUDGET_HISTORY_MONTHS = 3
HIGH_CONFIDENCE_CV = 0.3
MEDIUM_CONFIDENCE_CV = 0.6
_CONFIDENCE_NOTES = {
    "high": "Your spending is consistent, so this budget should work well.",
    "medium": "Your spending varies moderately, so a 15% buffer has been added.",
    "low": "Your spending varies significantly, so review this category closely.",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _month_labels(dates: pd.Series) -> pd.Series:
    return dates.dt.to_period("M").astype(str)


# --- Spending score -------------------------------------------------------


@dataclass(frozen=True)
class ScoreFeatures:
    """Inputs the score rules look at. ``std_dev`` is None below two records."""

    std_dev: float | None
    category_count: int
    recent_count: int
    high_value_count: int


@dataclass(frozen=True)
class ScoreRule:
    name: str
    applies: Callable[[ScoreFeatures], bool]
    delta: int


SCORE_RULES = (
    ScoreRule("steady_amounts", lambda f: f.std_dev is not None and f.std_dev < 1000, 5),
    ScoreRule("volatile_amounts", lambda f: f.std_dev is not None and f.std_dev > 5000, -10),
    ScoreRule("diverse_categories", lambda f: f.category_count >= 3, 5),
    ScoreRule("single_category", lambda f: f.category_count == 1, -5),
    ScoreRule("frequent_recent_spending", lambda f: f.recent_count > 10, -8),
    ScoreRule("many_high_value", lambda f: f.high_value_count > 3, -7),
)


def score_features(expenses: list[dict], now: datetime.datetime | None = None) -> ScoreFeatures | None:
    """Compute score inputs from expenses with a numeric amount, or None if there are none."""
    now = resolve_now(now)
    valid = with_amount(records_frame(expenses))
    if valid.empty:
        return None

    amounts = valid["amount"]
    cutoff = now - datetime.timedelta(days=RECENT_WINDOW_DAYS)
    return ScoreFeatures(
        std_dev=float(amounts.std(ddof=0)) if len(valid) >= 2 else None,
        category_count=int(valid["category"].dropna().nunique()),
        recent_count=int((valid["date"] >= cutoff).sum()),
        high_value_count=int((amounts > HIGH_VALUE_AMOUNT).sum()),
    )


def matched_score_rules(features: ScoreFeatures) -> list[ScoreRule]:
    return [rule for rule in SCORE_RULES if rule.applies(features)]


@fail_soft(default=FALLBACK_SCORE)
def calculate_spending_score(expenses: list[dict], now: datetime.datetime | None = None) -> int:
    """Financial health score in 0..100 built from additive rule deltas."""
    features = score_features(expenses, now=now)
    if features is None:
        return DEFAULT_SCORE

    score = BASE_SCORE + sum(rule.delta for rule in matched_score_rules(features))
    return int(round(min(max(score, 0), MAX_SCORE)))


def score_payload(score: int) -> dict:
    """Attach the rating label and display colour to a score."""
    rating, color = LOWEST_SCORE_BAND
    for floor, band_rating, band_color in SCORE_BANDS:
        if score >= floor:
            rating, color = band_rating, band_color
            break
    return {"score": score, "rating": rating, "color": color, "maxScore": MAX_SCORE}


# --- Behavioral patterns --------------------------------------------------


def _pattern(pattern_type: str, description: str, suggestion: str) -> dict:
    return {
        "type": pattern_type,
        "description": description,
        "impact": "Medium",
        "suggestion": suggestion,
    }


@fail_soft(default=[])
def _weekend_splurging(frame: pd.DataFrame) -> list[dict]:
    sample = with_amount_and_date(frame.head(WEEKEND_SAMPLE_SIZE))
    weekend = sample["date"].dt.dayofweek >= 5
    weekend_total = float(sample.loc[weekend, "amount"].sum())
    weekday_total = float(sample.loc[~weekend, "amount"].sum())
    if weekday_total > 0 and weekend_total > WEEKEND_RATIO * weekday_total:
        return [
            _pattern(
                "weekend_splurging",
                "You spend significantly more on weekends",
                "Plan weekend activities with budget in mind",
            )
        ]
    return []


@fail_soft(default=[])
def _impulse_buying(frame: pd.DataFrame) -> list[dict]:
    valid = with_amount(frame)
    count = int((valid["amount"] < SMALL_PURCHASE_AMOUNT).sum())
    if count > SMALL_PURCHASE_LIMIT:
        return [
            _pattern(
                "impulse_buying",
                f"Many small purchases ({count} under ₹{SMALL_PURCHASE_AMOUNT})",
                f"Use 24-hour rule for non-essential purchases under ₹{SMALL_PURCHASE_AMOUNT}",
            )
        ]
    return []


@fail_soft(default=[])
def _category_spikes(frame: pd.DataFrame, now: datetime.datetime) -> list[dict]:
    dated = with_amount_and_date(frame)
    in_month = dated[_month_labels(dated["date"]) == month_key(now)]
    if in_month.empty:
        return []

    totals = in_month.groupby(in_month["category"].fillna("Other"), sort=False)["amount"].sum()
    mean = float(totals.mean())
    return [
        _pattern(
            "category_spike",
            f"High spending on {category} this month",
            f"Review {category} expenses for optimization",
        )
        for category, total in totals.items()
        if float(total) > SPIKE_FACTOR * mean
    ]


@fail_soft(default=[])
def detect_behavioral_patterns(expenses: list[dict], now: datetime.datetime | None = None) -> list[dict]:
    """Weekend skew, small-purchase and category-spike patterns over recent expenses.

    ``expenses`` is the caller's recent window, newest first. Each detector
    degrades on its own, so one failing check never hides the others.
    """
    now = resolve_now(now)
    frame = records_frame(expenses)
    return _weekend_splurging(frame) + _impulse_buying(frame) + _category_spikes(frame, now)


# --- Forecast -------------------------------------------------------------


def monthly_totals(expenses: list[dict]) -> pd.Series:
    """Spending per ``YYYY-MM`` month, oldest first."""
    dated = with_amount_and_date(records_frame(expenses))
    if dated.empty:
        return pd.Series(dtype=float)
    return dated.groupby(_month_labels(dated["date"]))["amount"].sum().sort_index()


def forecast_weights(history_length: int) -> list[float]:
    """Right end of the weight template, renormalized to sum to 1."""
    template = FORECAST_WEIGHTS[-min(history_length, len(FORECAST_WEIGHTS)):]
    total = sum(template)
    return [weight / total for weight in template]


def weighted_monthly_base(amounts: list[float]) -> float:
    weights = forecast_weights(len(amounts))
    return sum(amounts[-1 - offset] * weights[-1 - offset] for offset in range(len(weights)))


@fail_soft(default=None)
def _forecast_step(base: float, step: int, history_length: int, now: datetime.datetime) -> dict:
    year, month = shift_month(now.year, now.month, step)
    return {
        "month": f"{year}-{month:02d}",
        "predictedAmount": round(base * FORECAST_DRIFT**step, 2),
        "confidence": "medium" if history_length >= 4 else "low",
    }


@fail_soft(default=[])
def predict_future_expenses(
    expenses: list[dict],
    months: int = 3,
    now: datetime.datetime | None = None,
) -> list[dict]:
    """Weighted trailing-average monthly forecast with 5% compounding drift."""
    now = resolve_now(now)
    dated = with_amount_and_date(records_frame(expenses))
    if len(dated) < MIN_FORECAST_RECORDS:
        return []

    totals = monthly_totals(expenses).tail(FORECAST_HISTORY_MONTHS)
    if len(totals) < MIN_FORECAST_MONTHS:
        return []

    amounts = [float(value) for value in totals.tolist()]
    base = weighted_monthly_base(amounts)

    predictions: list[dict] = []
    for step in range(1, int(months) + 1):
        prediction = _forecast_step(base, step, len(amounts), now)
        if prediction is None:
            break
        predictions.append(prediction)
    return predictions


# --- Calendar heatmap -----------------------------------------------------


def _blank_cell() -> dict:
    return {"day": None, "amount": 0, "hasData": False}


def _empty_heatmap(expenses: list[dict], year: int, month: int) -> dict:
    return {"year": year, "month": month, "monthName": "", "weeks": [], "maxAmount": 0}


@fail_soft(factory=_empty_heatmap)
def build_calendar_heatmap(expenses: list[dict], year: int, month: int) -> dict:
    """Sunday-first calendar grid of daily spending for one month."""
    year, month = int(year), int(month)
    total_days = days_in_month(year, month)

    dated = with_amount_and_date(records_frame(expenses))
    in_month = dated[(dated["date"].dt.year == year) & (dated["date"].dt.month == month)]
    daily = in_month.groupby(in_month["date"].dt.day)["amount"].sum()

    leading_blanks = (datetime.date(year, month, 1).weekday() + 1) % 7
    weeks: list[list[dict]] = []
    week = [_blank_cell() for _ in range(leading_blanks)]
    for day in range(1, total_days + 1):
        amount = round(float(daily.get(day, 0.0)), 2)
        week.append({"day": day, "amount": amount, "hasData": amount > 0})
        if len(week) == 7:
            weeks.append(week)
            week = []

    if week:
        week.extend(_blank_cell() for _ in range(7 - len(week)))
        weeks.append(week)

    max_amount = round(float(daily.max()), 2) if not daily.empty else 0
    return {
        "year": year,
        "month": month,
        "monthName": MONTH_NAMES[month - 1],
        "weeks": weeks,
        "maxAmount": max(max_amount, 0),
    }


# --- Budgets --------------------------------------------------------------


def budget_confidence(coefficient_of_variation: float) -> str:
    if coefficient_of_variation < HIGH_CONFIDENCE_CV:
        return "high"
    if coefficient_of_variation < MEDIUM_CONFIDENCE_CV:
        return "medium"
    return "low"


def _no_budget_data(message: str) -> dict:
    return {"hasData": False, "message": message, "recommendations": []}


def _budget_failure(*args, **kwargs) -> dict:
    return _no_budget_data("Unable to generate budget recommendations right now. Please try again later.")


def _recommend_category(category: str, group: pd.DataFrame, avg_monthly_income: float) -> dict:
    amounts = group["amount"]
    active_months = int(group["month"].nunique())
    avg_monthly = float(amounts.sum()) / active_months

    # Spread of individual transactions around the monthly average.
    variance = float(((amounts - avg_monthly) ** 2).mean())
    std_dev = math.sqrt(variance)
    cv = std_dev / avg_monthly if avg_monthly > 0 else 0.0
    confidence = budget_confidence(cv)

    recommended = round_half_up(avg_monthly * (1 + BUDGET_BUFFER))
    current_average = round_half_up(avg_monthly)
    month_word = "month" if active_months == 1 else "months"
    reasoning = (
        f"Based on {active_months} {month_word} of data, you spend an average of "
        f"₹{current_average:,} per month on {category}. {_CONFIDENCE_NOTES[confidence]}"
    )
    if avg_monthly_income > 0:
        share = recommended / avg_monthly_income * 100
        reasoning += f" This represents {share:.1f}% of your average monthly income."

    return {
        "category": category,
        "recommendedAmount": recommended,
        "currentAverage": current_average,
        "confidence": confidence,
        "reasoning": reasoning,
        "dataPoints": int(len(amounts)),
        "monthsAnalyzed": active_months,
    }


@fail_soft(factory=_budget_failure)
def recommend_budgets(
    expenses: list[dict],
    incomes: list[dict] | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Per-category monthly budgets from history, with confidence and reasoning."""
    now = resolve_now(now)
    spend = with_amount_and_date(records_frame(expenses))
    if spend.empty:
        return _no_budget_data(
            "No expense data available. Start tracking expenses to get personalized budget recommendations."
        )

    months_of_data = max(int((pd.Timestamp(now) - spend["date"].min()).days // 30), 0)
    if months_of_data < MIN_BUDGET_HISTORY_MONTHS:
        return _no_budget_data(
            f"Budget recommendations need at least {MIN_BUDGET_HISTORY_MONTHS} months of expense history. "
            f"You have {months_of_data} month(s) of data so far."
        )

    earned = with_amount(records_frame(incomes, label_field="source"))
    avg_monthly_income = float(earned["amount"].sum()) / months_of_data

    spend["month"] = _month_labels(spend["date"])
    spend["category"] = spend["category"].fillna("Other")
    recommendations = [
        _recommend_category(category, group, avg_monthly_income)
        for category, group in spend.groupby("category", sort=False)
    ]
    recommendations.sort(key=lambda rec: rec["recommendedAmount"], reverse=True)

    return {
        "hasData": True,
        "monthsAnalyzed": months_of_data,
        "totalRecommendedBudget": sum(rec["recommendedAmount"] for rec in recommendations),
        "avgMonthlyIncome": round(avg_monthly_income, 2),
        "recommendations": recommendations,
    }


def budget_status(
    expenses: list[dict],
    budgets: list[dict],
    now: datetime.datetime | None = None,
) -> list[dict]:
    """Current-month spend against each category budget."""
    now = resolve_now(now)
    dated = with_amount_and_date(records_frame(expenses))
    start, end = month_bounds(now.year, now.month)
    month_spend = dated[(dated["date"] >= start) & (dated["date"] <= end)]
    spent_by_category = month_spend.groupby(month_spend["category"].fillna("Other"))["amount"].sum()

    rows = []
    for budget in budgets or []:
        category = budget.get("category") if isinstance(budget, dict) else None
        limit = coerce_amount(budget.get("monthlyBudget")) if category else float("nan")
        if not category or math.isnan(limit):
            continue
        spent = float(spent_by_category.get(category, 0.0))
        rows.append(
            {
                "category": category,
                "monthlyBudget": limit,
                "spent": round(spent, 2),
                "remaining": round(limit - spent, 2),
                "percentage": round_half_up(spent / limit * 100) if limit > 0 else 0,
            }
        )
    return rows


# --- Dashboard summary ----------------------------------------------------


def dashboard_summary(
    expenses: list[dict],
    incomes: list[dict] | None = None,
    now: datetime.datetime | None = None,
) -> dict[str, float]:
    """Headline totals for the dashboard home view."""
    now = resolve_now(now)
    spend = with_amount(records_frame(expenses))
    earned = with_amount(records_frame(incomes, label_field="source"))
    month_start = datetime.datetime(now.year, now.month, 1)
    week_ago = now - datetime.timedelta(days=RECENT_WINDOW_DAYS)

    total_expenses = float(spend["amount"].sum())
    total_income = float(earned["amount"].sum())
    month_expenses = float(spend.loc[spend["date"] >= month_start, "amount"].sum())
    month_income = float(earned.loc[earned["date"] >= month_start, "amount"].sum())

    return {
        "totalExpenses": round(total_expenses, 2),
        "totalIncome": round(total_income, 2),
        "netBalance": round(total_income - total_expenses, 2),
        "monthExpenses": round(month_expenses, 2),
        "monthIncome": round(month_income, 2),
        "monthNetBalance": round(month_income - month_expenses, 2),
        "categoryCount": int(spend["category"].dropna().nunique()),
        "recentExpenseCount": int((spend["date"] >= week_ago).sum()),
        "recentIncomeCount": int((earned["date"] >= week_ago).sum()),
    }
