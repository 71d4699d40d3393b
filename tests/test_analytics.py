import datetime

import pytest

from analytics import (
    budget_confidence,
    budget_status,
    build_calendar_heatmap,
    calculate_spending_score,
    dashboard_summary,
    detect_behavioral_patterns,
    forecast_weights,
    predict_future_expenses,
    recommend_budgets,
    score_payload,
)

NOW = datetime.datetime(2026, 3, 18, 12, 0)


def _expense(date: datetime.datetime, amount, category: str = "Food", description: str = "") -> dict:
    return {"date": date, "amount": amount, "category": category, "description": description}


def test_spending_score_defaults_to_80_without_expenses() -> None:
    assert calculate_spending_score([], now=NOW) == 80


def test_spending_score_rewards_steady_diverse_spending() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 1, 5), 100, "Food"),
        _expense(datetime.datetime(2026, 1, 6), 200, "Transport"),
        _expense(datetime.datetime(2026, 1, 7), 300, "Shopping"),
    ]
    assert calculate_spending_score(expenses, now=NOW) == 80


def test_spending_score_penalizes_volatile_single_category() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 1, 5), 100, "Bills"),
        _expense(datetime.datetime(2026, 1, 6), 20000, "Bills"),
    ]
    # 70 - 10 (volatile) - 5 (single category)
    assert calculate_spending_score(expenses, now=NOW) == 55


def test_spending_score_penalizes_frequent_recent_and_high_value_spending() -> None:
    recent = [_expense(NOW - datetime.timedelta(days=1), 6000, "Food") for _ in range(11)]
    score = calculate_spending_score(recent, now=NOW)
    # std 0 (+5), single category (-5), 11 recent (-8), 11 high value (-7)
    assert score == 55
    assert 0 <= score <= 100


def test_spending_score_ignores_malformed_records() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 1, 5), "abc", "Food"),
        {"category": "Food"},
        None,
    ]
    assert calculate_spending_score(expenses, now=NOW) == 80


def test_spending_score_falls_back_when_computation_fails() -> None:
    expenses = [_expense(datetime.datetime(2026, 1, 5), 100)]
    assert calculate_spending_score(expenses, now="not a date") == 70


def test_score_payload_bands() -> None:
    assert score_payload(80)["rating"] == "Excellent"
    assert score_payload(80)["color"] == "#10b981"
    assert score_payload(79)["rating"] == "Good"
    assert score_payload(40)["rating"] == "Fair"
    assert score_payload(39) == {
        "score": 39,
        "rating": "Needs Improvement",
        "color": "#ef4444",
        "maxScore": 100,
    }


def test_impulse_buying_needs_more_than_eight_small_purchases() -> None:
    monday = datetime.datetime(2026, 3, 16)
    eight = [_expense(monday, 100) for _ in range(8)]
    nine = [_expense(monday, 100) for _ in range(9)]

    assert detect_behavioral_patterns(eight, now=NOW) == []
    patterns = detect_behavioral_patterns(nine, now=NOW)
    assert [p["type"] for p in patterns] == ["impulse_buying"]
    assert patterns[0]["description"] == "Many small purchases (9 under ₹500)"
    assert patterns[0]["impact"] == "Medium"


def test_weekend_splurging_detected() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 3, 14), 1000, "Entertainment"),
        _expense(datetime.datetime(2026, 3, 16), 100, "Food"),
    ]
    patterns = detect_behavioral_patterns(expenses, now=NOW)
    assert [p["type"] for p in patterns] == ["weekend_splurging"]
    assert patterns[0]["suggestion"] == "Plan weekend activities with budget in mind"


def test_weekend_splurging_needs_weekday_spending() -> None:
    expenses = [_expense(datetime.datetime(2026, 3, 14), 1000, "Entertainment")]
    assert detect_behavioral_patterns(expenses, now=NOW) == []


def test_category_spike_in_current_month() -> None:
    monday = datetime.datetime(2026, 3, 16)
    expenses = [
        _expense(monday, 600, "Food"),
        _expense(monday, 600, "Transport"),
        _expense(monday, 600, "Bills"),
        _expense(monday, 5000, "Shopping"),
        _expense(datetime.datetime(2026, 2, 16), 90000, "Travel"),
    ]
    patterns = detect_behavioral_patterns(expenses, now=NOW)
    assert patterns == [
        {
            "type": "category_spike",
            "description": "High spending on Shopping this month",
            "impact": "Medium",
            "suggestion": "Review Shopping expenses for optimization",
        }
    ]


def test_forecast_weights_renormalize_short_history() -> None:
    assert forecast_weights(4) == pytest.approx([0.1, 0.2, 0.3, 0.4])
    assert forecast_weights(3) == pytest.approx([0.2 / 0.9, 0.3 / 0.9, 0.4 / 0.9])
    assert sum(forecast_weights(2)) == pytest.approx(1.0)


def _monthly_history(months: list[tuple[int, int, list[float]]]) -> list[dict]:
    expenses = []
    for year, month, amounts in months:
        for day, amount in enumerate(amounts, start=1):
            expenses.append(_expense(datetime.datetime(year, month, day * 3), amount))
    return expenses


def test_forecast_needs_ten_records() -> None:
    expenses = _monthly_history([(2025, 12, [100, 100, 100]), (2026, 1, [100, 100, 100]), (2026, 2, [100, 100, 100])])
    assert len(expenses) == 9
    assert predict_future_expenses(expenses, months=3, now=NOW) == []


def test_forecast_needs_three_months() -> None:
    expenses = _monthly_history([(2026, 1, [100] * 5), (2026, 2, [100] * 5)])
    assert predict_future_expenses(expenses, months=3, now=NOW) == []


def test_forecast_weighted_average_with_drift() -> None:
    expenses = _monthly_history(
        [
            (2025, 11, [300, 300, 400]),
            (2025, 12, [400, 400, 400]),
            (2026, 1, [300, 400, 400]),
            (2026, 2, [400, 400, 500]),
        ]
    )
    predictions = predict_future_expenses(expenses, months=3, now=NOW)

    assert [p["month"] for p in predictions] == ["2026-04", "2026-05", "2026-06"]
    assert predictions[0]["predictedAmount"] == pytest.approx(1249.50)
    assert predictions[1]["predictedAmount"] == pytest.approx(1311.975, abs=0.01)
    assert all(p["confidence"] == "medium" for p in predictions)


def test_forecast_low_confidence_with_three_months() -> None:
    expenses = _monthly_history(
        [(2025, 12, [250, 250, 250, 250]), (2026, 1, [250, 250, 250, 250]), (2026, 2, [400, 300, 300])]
    )
    predictions = predict_future_expenses(expenses, months=1, now=NOW)
    assert predictions == [{"month": "2026-04", "predictedAmount": 1050.0, "confidence": "low"}]


def test_forecast_zero_months_is_empty() -> None:
    expenses = _monthly_history([(2025, 12, [100] * 4), (2026, 1, [100] * 4), (2026, 2, [100] * 4)])
    assert predict_future_expenses(expenses, months=0, now=NOW) == []


def _assert_grid_shape(heatmap: dict, days: int) -> None:
    assert all(len(week) == 7 for week in heatmap["weeks"])
    numbered = [cell["day"] for week in heatmap["weeks"] for cell in week if cell["day"] is not None]
    assert numbered == list(range(1, days + 1))


def test_heatmap_sums_daily_spending() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 3, 3, 9), 100),
        _expense(datetime.datetime(2026, 3, 3, 18), 50.5),
        _expense(datetime.datetime(2026, 3, 20), 300),
        _expense(datetime.datetime(2026, 4, 1), 999),
    ]
    heatmap = build_calendar_heatmap(expenses, 2026, 3)

    assert heatmap["monthName"] == "March"
    assert heatmap["maxAmount"] == 300
    _assert_grid_shape(heatmap, 31)
    # 1 March 2026 is a Sunday, so the grid has no leading blanks.
    first_week = heatmap["weeks"][0]
    assert first_week[0]["day"] == 1
    assert first_week[2] == {"day": 3, "amount": 150.5, "hasData": True}
    assert first_week[3] == {"day": 4, "amount": 0, "hasData": False}


def test_heatmap_pads_leading_and_trailing_blanks() -> None:
    # 1 August 2026 is a Saturday.
    heatmap = build_calendar_heatmap([], 2026, 8)
    assert len(heatmap["weeks"]) == 6
    assert heatmap["weeks"][0][:6] == [{"day": None, "amount": 0, "hasData": False}] * 6
    assert heatmap["weeks"][0][6]["day"] == 1
    assert heatmap["maxAmount"] == 0
    _assert_grid_shape(heatmap, 31)


def test_heatmap_february_fills_exact_weeks() -> None:
    heatmap = build_calendar_heatmap([], 2026, 2)
    assert len(heatmap["weeks"]) == 4
    _assert_grid_shape(heatmap, 28)


def test_heatmap_invalid_month_returns_empty_grid() -> None:
    heatmap = build_calendar_heatmap([], 2026, 13)
    assert heatmap["weeks"] == []
    assert heatmap["maxAmount"] == 0


def test_budget_confidence_boundaries() -> None:
    assert budget_confidence(0.299) == "high"
    assert budget_confidence(0.3) == "medium"
    assert budget_confidence(0.599) == "medium"
    assert budget_confidence(0.6) == "low"


def _three_month_history(amounts: list[float], category: str = "Food") -> list[dict]:
    dates = [datetime.datetime(2025, 12, 10), datetime.datetime(2026, 1, 10), datetime.datetime(2026, 2, 10)]
    return [_expense(date, amount, category) for date, amount in zip(dates, amounts)]


@pytest.mark.parametrize(
    ("amounts", "expected"),
    [
        ([65, 100, 135], "high"),
        ([63, 100, 137], "medium"),
        ([27, 100, 173], "medium"),
        ([26, 100, 174], "low"),
    ],
)
def test_budget_confidence_from_history(amounts: list[float], expected: str) -> None:
    result = recommend_budgets(_three_month_history(amounts), now=NOW)
    assert result["hasData"] is True
    (rec,) = result["recommendations"]
    assert rec["confidence"] == expected
    assert rec["recommendedAmount"] == 115
    assert rec["currentAverage"] == 100
    assert rec["monthsAnalyzed"] == 3
    assert rec["dataPoints"] == 3


def test_budget_recommendations_need_three_months() -> None:
    expenses = [_expense(datetime.datetime(2026, 1, 20), 500)]
    result = recommend_budgets(expenses, now=NOW)
    assert result["hasData"] is False
    assert result["recommendations"] == []
    assert "You have 1 month(s) of data so far." in result["message"]


def test_budget_recommendations_without_expenses() -> None:
    result = recommend_budgets([], now=NOW)
    assert result["hasData"] is False
    assert "No expense data available" in result["message"]


def test_budget_recommendations_sorted_and_reference_income() -> None:
    expenses = _three_month_history([100, 100, 100], "Food") + _three_month_history([1000, 1000, 1000], "Bills")
    incomes = [{"date": datetime.datetime(2026, 1, 1), "source": "Salary", "amount": 30000}]
    result = recommend_budgets(expenses, incomes, now=NOW)

    assert [rec["category"] for rec in result["recommendations"]] == ["Bills", "Food"]
    assert result["totalRecommendedBudget"] == 1150 + 115
    assert result["avgMonthlyIncome"] == 10000
    bills = result["recommendations"][0]
    assert bills["reasoning"].startswith("Based on 3 months of data, you spend an average of ₹1,000 per month on Bills.")
    assert bills["reasoning"].endswith("of your average monthly income.")


def test_budget_recommendations_are_deterministic() -> None:
    expenses = _three_month_history([63, 100, 137])
    assert recommend_budgets(expenses, now=NOW) == recommend_budgets(expenses, now=NOW)


def test_budget_status_tracks_current_month() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 3, 2), 400, "Food"),
        _expense(datetime.datetime(2026, 3, 9), 200, "Food"),
        _expense(datetime.datetime(2026, 2, 9), 5000, "Food"),
    ]
    rows = budget_status(expenses, [{"category": "Food", "monthlyBudget": 1000}], now=NOW)
    assert rows == [
        {"category": "Food", "monthlyBudget": 1000.0, "spent": 600.0, "remaining": 400.0, "percentage": 60}
    ]


def test_dashboard_summary_totals() -> None:
    expenses = [
        _expense(datetime.datetime(2026, 3, 15), 300, "Food"),
        _expense(datetime.datetime(2026, 1, 15), 700, "Bills"),
    ]
    incomes = [{"date": datetime.datetime(2026, 3, 1), "source": "Salary", "amount": 5000}]
    summary = dashboard_summary(expenses, incomes, now=NOW)

    assert summary["totalExpenses"] == 1000
    assert summary["totalIncome"] == 5000
    assert summary["netBalance"] == 4000
    assert summary["monthExpenses"] == 300
    assert summary["monthNetBalance"] == 4700
    assert summary["categoryCount"] == 2
    assert summary["recentExpenseCount"] == 1
    assert summary["recentIncomeCount"] == 0


def _spread(records: int, date: datetime.datetime, amount: float) -> list[dict]:
    categories = ["Food", "Transport", "Shopping"]
    return [_expense(date, amount, categories[i % 3]) for i in range(records)]


def test_recent_spending_penalty_starts_above_ten() -> None:
    yesterday = NOW - datetime.timedelta(days=1)
    assert calculate_spending_score(_spread(10, yesterday, 100), now=NOW) == 80
    assert calculate_spending_score(_spread(11, yesterday, 100), now=NOW) == 72


def test_high_value_penalty_starts_above_three() -> None:
    january = datetime.datetime(2026, 1, 10)
    assert calculate_spending_score(_spread(3, january, 6000), now=NOW) == 80
    assert calculate_spending_score(_spread(4, january, 6000), now=NOW) == 73


def test_several_category_spikes_in_one_call() -> None:
    monday = datetime.datetime(2026, 3, 16)
    expenses = [
        _expense(monday, 100, "Food"),
        _expense(monday, 100, "Transport"),
        _expense(monday, 1000, "Shopping"),
        _expense(monday, 100, "Bills"),
        _expense(monday, 100, "Healthcare"),
        _expense(monday, 1000, "Travel"),
    ]
    patterns = detect_behavioral_patterns(expenses, now=NOW)
    assert [p["description"] for p in patterns] == [
        "High spending on Shopping this month",
        "High spending on Travel this month",
    ]


def test_weekend_check_only_reads_first_thirty_records() -> None:
    weekdays = [_expense(datetime.datetime(2026, 3, 16), 600) for _ in range(30)]
    saturday = _expense(datetime.datetime(2026, 3, 14), 100000)

    assert detect_behavioral_patterns(weekdays + [saturday], now=NOW) == []
    patterns = detect_behavioral_patterns([saturday] + weekdays, now=NOW)
    assert [p["type"] for p in patterns] == ["weekend_splurging"]


def test_analytics_are_deterministic_for_fixed_now() -> None:
    expenses = _monthly_history(
        [
            (2025, 11, [300, 300, 400]),
            (2025, 12, [400, 400, 400]),
            (2026, 1, [300, 400, 400]),
            (2026, 3, [100, 200, 300, 450]),
        ]
    )
    assert calculate_spending_score(expenses, now=NOW) == calculate_spending_score(expenses, now=NOW)
    assert detect_behavioral_patterns(expenses, now=NOW) == detect_behavioral_patterns(expenses, now=NOW)
    assert predict_future_expenses(expenses, now=NOW) == predict_future_expenses(expenses, now=NOW)
    assert build_calendar_heatmap(expenses, 2026, 3) == build_calendar_heatmap(expenses, 2026, 3)
