"""Finance chat helpers: answer common questions straight from the data."""

from __future__ import annotations

import datetime
import math
import re
from typing import Tuple

import pandas as pd

from categorization import CHAT_CATEGORY_ALIASES
from periods import MONTH_NAMES, days_in_month, previous_month_bounds, start_of_day
from transactions import coerce_amount, records_frame, resolve_now, with_amount

_SPENDING_PATTERNS = (
    re.compile(r"how much.*spend.*on\s+(\w+)"),
    re.compile(r"(\w+)\s+spending"),
    re.compile(r"(\w+)\s+expense"),
    re.compile(r"spent.*on\s+(\w+)"),
    re.compile(r"current\s+(\w+)\s+expense"),
)
_AFFORD_PATTERNS = (
    re.compile(r"can i afford.*?[₹$]?\s*([\d,]+)"),
    re.compile(r"afford.*?[₹$]?\s*([\d,]+)"),
)
MAX_LISTED_TRANSACTIONS = 5
TOP_CATEGORY_COUNT = 5
BUDGET_WARNING_SHARE = 0.8


def _money(value: float) -> str:
    return f"₹{value:,.2f}"


def _day(value: pd.Timestamp) -> str:
    return value.strftime("%Y-%m-%d") if pd.notna(value) else "unknown date"


def _direct(answer: str) -> dict:
    return {"canAnswerDirectly": True, "directAnswer": answer, "relevantData": None}


def _category_period(text: str, now: datetime.datetime) -> tuple[str, datetime.datetime | None, datetime.datetime | None, str]:
    """Return (period key, start, end, description) for a category question."""
    if "today" in text:
        return "today", start_of_day(now), None, "today"
    if "last month" in text:
        start, end = previous_month_bounds(now)
        return "last month", start, end, f"last month ({MONTH_NAMES[start.month - 1]} {start.year})"
    if "this month" in text or "current month" in text or "these month" in text:
        start = datetime.datetime(now.year, now.month, 1)
        return "this month", start, None, f"this month ({MONTH_NAMES[now.month - 1]} {now.year})"
    if "this week" in text or "last week" in text:
        return "this week", now - datetime.timedelta(days=7), None, "this week"
    return "total", None, None, "all time"


def budget_limits(budgets: list[dict] | None) -> dict[str, float]:
    """Numeric monthly limit per category; malformed budget entries are skipped."""
    limits: dict[str, float] = {}
    for item in budgets or []:
        if not isinstance(item, dict) or not item.get("category"):
            continue
        limit = coerce_amount(item.get("monthlyBudget"))
        if not math.isnan(limit):
            limits.setdefault(str(item["category"]), limit)
    return limits


def _budget_lines(category: str, total: float, budgets: list[dict]) -> list[str]:
    limit = budget_limits(budgets).get(category, 0.0)
    if limit <= 0:
        return []
    used = total / limit * 100
    lines = [
        "📊 Budget Status:",
        f"• Budget: {_money(limit)}",
        f"• Used: {used:.1f}%",
        f"• Remaining: {_money(limit - total)}",
    ]
    if total > limit:
        lines.append(f"\n⚠️ You're over budget by {_money(total - limit)}!")
    elif total > limit * BUDGET_WARNING_SHARE:
        lines.append(f"\n⚠️ Warning: You've used {used:.1f}% of your budget!")
    return lines


def category_spending_answer(
    category: str,
    text: str,
    expenses: pd.DataFrame,
    budgets: list[dict],
    now: datetime.datetime,
) -> str:
    """Spending in one category for the period named in the question."""
    period, start, end, description = _category_period(text, now)
    matched = expenses[expenses["category"] == category]
    if start is not None:
        matched = matched[matched["date"] >= start]
    if end is not None:
        matched = matched[matched["date"] <= end]

    count = int(len(matched))
    if count == 0:
        return f"📊 You haven't spent anything on {category} {description}."

    total = float(matched["amount"].sum())
    lines = [
        f"💰 **{category} Spending - {description[0].upper() + description[1:]}**",
        "",
        f"Total: {_money(total)}",
        f"Transactions: {count}",
        f"Average: {_money(total / count)} per transaction",
        "",
    ]
    if period == "this month":
        lines.extend(_budget_lines(category, total, budgets))

    if count <= MAX_LISTED_TRANSACTIONS:
        lines.append("\n📝 Transactions:")
        for _, row in matched.sort_values("date", ascending=False).iterrows():
            lines.append(f"• {_day(row['date'])}: {_money(row['amount'])} - {row['description'] or 'No description'}")
    return "\n".join(lines)


def affordability_analysis(
    amount: float,
    expenses: list[dict],
    incomes: list[dict],
    budgets: list[dict] | None = None,
    now: datetime.datetime | None = None,
) -> dict[str, float]:
    """Compare a planned purchase with this month's running balance."""
    now = resolve_now(now)
    month_start = datetime.datetime(now.year, now.month, 1)
    spend = with_amount(records_frame(expenses))
    earned = with_amount(records_frame(incomes, label_field="source"))

    month_expenses = float(spend.loc[spend["date"] >= month_start, "amount"].sum())
    month_income = float(earned.loc[earned["date"] >= month_start, "amount"].sum())
    balance = month_income - month_expenses
    days_remaining = days_in_month(now.year, now.month) - now.day
    avg_daily_spending = month_expenses / now.day
    after_purchase = balance - amount
    daily_budget_after = after_purchase / days_remaining if days_remaining > 0 else 0.0
    total_budget = float(sum(budget_limits(budgets).values()))

    return {
        "amount": float(amount),
        "monthIncome": month_income,
        "monthExpenses": month_expenses,
        "currentBalance": balance,
        "daysRemaining": days_remaining,
        "afterPurchase": after_purchase,
        "dailyBudgetAfter": daily_budget_after,
        "avgDailySpending": avg_daily_spending,
        "affordable": after_purchase > 0,
        "needsSpendingCut": after_purchase > 0 and daily_budget_after < avg_daily_spending,
        "percentOfIncome": (amount / month_income * 100) if month_income > 0 else None,
        "totalBudget": total_budget,
        "budgetRemaining": total_budget - month_expenses,
    }


def format_affordability(analysis: dict) -> str:
    """Render an affordability analysis as a chat reply."""
    lines = [
        f"💰 Affordability Analysis for {_money(analysis['amount'])}:",
        "",
        "📊 Current Month Status:",
        f"• Income: {_money(analysis['monthIncome'])}",
        f"• Expenses: {_money(analysis['monthExpenses'])}",
        f"• Current Balance: {_money(analysis['currentBalance'])}",
        f"• Days Remaining: {analysis['daysRemaining']}",
        "",
    ]
    if analysis["affordable"]:
        lines.extend(
            [
                "✅ YES, you can afford it!",
                "",
                "💡 After Purchase:",
                f"• Remaining Balance: {_money(analysis['afterPurchase'])}",
                f"• Daily Budget: {_money(analysis['dailyBudgetAfter'])} for {analysis['daysRemaining']} days",
            ]
        )
        if analysis["needsSpendingCut"]:
            lines.append(
                f"\n⚠️ Note: You'll need to reduce daily spending to {_money(analysis['dailyBudgetAfter'])} "
                f"(currently {_money(analysis['avgDailySpending'])})"
            )
    else:
        lines.extend(
            [
                "❌ NOT RECOMMENDED",
                "",
                f"⚠️ This purchase would exceed your current balance by {_money(abs(analysis['afterPurchase']))}",
                "",
            ]
        )
        if analysis["percentOfIncome"] is not None:
            lines.append(f"📊 This represents {analysis['percentOfIncome']:.1f}% of your monthly income.\n")
        lines.append("💡 Suggestion: Wait until next month or consider a smaller amount.")

    if analysis["totalBudget"] > 0:
        lines.append(
            f"\n📋 Budget Status: {_money(analysis['budgetRemaining'])} remaining of "
            f"{_money(analysis['totalBudget'])} total budget"
        )
    return "\n".join(lines)


def _match_category_question(text: str) -> str | None:
    for pattern in _SPENDING_PATTERNS:
        match = pattern.search(text)
        if match:
            return CHAT_CATEGORY_ALIASES.get(match.group(1).lower())
    return None


def _match_affordability(text: str) -> float | None:
    for pattern in _AFFORD_PATTERNS:
        match = pattern.search(text)
        if match:
            digits = match.group(1).replace(",", "")
            return float(digits) if digits else None
    return None


def answer_finance_question(
    question: str,
    expenses: list[dict],
    incomes: list[dict],
    budgets: list[dict] | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Answer a known question shape from the data, else describe the context.

    Returns ``canAnswerDirectly``, ``directAnswer`` and, when no shape
    matched, ``relevantData`` for a general-purpose assistant.
    """
    now = resolve_now(now)
    budgets = budgets or []
    text = str(question or "").lower()
    spend = with_amount(records_frame(expenses))
    earned = with_amount(records_frame(incomes, label_field="source"))

    if spend.empty and earned.empty:
        return _direct(
            "📊 You haven't added any financial data yet. "
            "Start tracking your income and expenses to get personalized insights!"
        )

    if "net balance" in text or "balance" in text or "net worth" in text:
        total_income = float(earned["amount"].sum())
        total_expenses = float(spend["amount"].sum())
        net = total_income - total_expenses
        verdict = "✅ You're in the positive!" if net >= 0 else "⚠️ You're spending more than earning."
        return _direct(
            f"💰 Your Net Balance: {_money(net)}\n\n📊 Breakdown:\n"
            f"• Total Income: {_money(total_income)}\n• Total Expenses: {_money(total_expenses)}\n\n{verdict}"
        )

    category = _match_category_question(text)
    if category:
        return _direct(category_spending_answer(category, text, spend, budgets, now))

    amount = _match_affordability(text)
    if amount is not None:
        analysis = affordability_analysis(amount, expenses, incomes, budgets, now=now)
        return _direct(format_affordability(analysis))

    if "top" in text and ("categor" in text or "spending" in text):
        totals = (
            spend.groupby(spend["category"].fillna("Other"))["amount"]
            .sum()
            .sort_values(ascending=False, kind="mergesort")
            .head(TOP_CATEGORY_COUNT)
        )
        ranked = [f"{idx}. {name}: {_money(value)}" for idx, (name, value) in enumerate(totals.items(), start=1)]
        return _direct("📊 Your Top Spending Categories:\n\n" + "\n".join(ranked))

    if "recent" in text or "latest" in text:
        recent = spend.sort_values("date", ascending=False, na_position="last").head(MAX_LISTED_TRANSACTIONS)
        entries = [
            f"• {_day(row['date'])}: {row['category'] or 'Other'} - {_money(row['amount'])}\n"
            f"  {row['description'] or 'No description'}"
            for _, row in recent.iterrows()
        ]
        return _direct("📝 Your Recent Expenses:\n\n" + "\n\n".join(entries))

    if "total" in text and "month" in text:
        month_start = datetime.datetime(now.year, now.month, 1)
        month_spend = spend[spend["date"] >= month_start]
        month_earned = earned[earned["date"] >= month_start]
        total_spend = float(month_spend["amount"].sum())
        total_earned = float(month_earned["amount"].sum())
        return _direct(
            f"💰 This Month's Summary:\n\n• Income: {_money(total_earned)}\n• Expenses: {_money(total_spend)}\n"
            f"• Net: {_money(total_earned - total_spend)}\n\n"
            f"📊 Transactions: {len(month_spend)} expenses, {len(month_earned)} income"
        )

    return {
        "canAnswerDirectly": False,
        "directAnswer": None,
        "relevantData": (
            "Query Type: General financial question\n"
            f"User has {len(spend)} expenses and {len(earned)} income records."
        ),
    }


def build_offline_reply(relevant_data: str) -> str:
    """Deterministic reply for questions no canned answer covers."""
    lines = [
        "I can answer these directly from your data:",
        "",
        "- What's my net balance?",
        "- How much did I spend on food this month?",
        "- Can I afford ₹5,000?",
        "- What are my top spending categories?",
        "- Show my recent expenses",
        "- What's my total this month?",
    ]
    if relevant_data:
        lines.extend(["", relevant_data])
    return "\n".join(lines)


def generate_chat_reply(
    question: str,
    expenses: list[dict],
    incomes: list[dict],
    budgets: list[dict] | None = None,
    now: datetime.datetime | None = None,
) -> Tuple[str, str]:
    """Return (mode, reply_text): ``direct`` when answered from data, else ``offline``."""
    result = answer_finance_question(question, expenses, incomes, budgets, now=now)
    if result["canAnswerDirectly"]:
        return "direct", result["directAnswer"]
    return "offline", build_offline_reply(result["relevantData"] or "")
