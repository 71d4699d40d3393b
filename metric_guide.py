"""Human-readable definitions of the dashboard's scores, patterns and forecasts."""

METRIC_GUIDE = [
    {
        "Metric": "Financial health score",
        "Meaning": "Heuristic 0-100 rating of recent spending habits. 80 when there is no data yet.",
        "Formula": "clamp(70 + sum(rule deltas), 0, 100)",
    },
    {
        "Metric": "Steady amounts (+5)",
        "Meaning": "Transaction amounts stay close together.",
        "Formula": "population stdDev(amount) < 1000",
    },
    {
        "Metric": "Volatile amounts (-10)",
        "Meaning": "Transaction amounts swing widely.",
        "Formula": "population stdDev(amount) > 5000",
    },
    {
        "Metric": "Category diversity (+5 / -5)",
        "Meaning": "Spending spread over several categories, or concentrated in one.",
        "Formula": "distinct categories >= 3, or == 1",
    },
    {
        "Metric": "Frequent recent spending (-8)",
        "Meaning": "Many purchases in the last week, a proxy for impulsive spending.",
        "Formula": "count(date >= now - 7 days) > 10",
    },
    {
        "Metric": "High-value purchases (-7)",
        "Meaning": "Several very large transactions.",
        "Formula": "count(amount > 5000) > 3",
    },
    {
        "Metric": "Weekend splurging",
        "Meaning": "Weekend spend outweighs weekday spend among the 30 latest expenses.",
        "Formula": "weekend total > 1.5 * weekday total",
    },
    {
        "Metric": "Impulse buying",
        "Meaning": "Many small purchases in the recent window.",
        "Formula": "count(amount < 500) > 8",
    },
    {
        "Metric": "Category spike",
        "Meaning": "A category this month far above the average category this month.",
        "Formula": "category total > 2 * mean(category totals)",
    },
    {
        "Metric": "Predicted spending",
        "Meaning": "Next months' spend from recent monthly totals, newest weighted most.",
        "Formula": "sum(total_k * weight_k) * 1.05^step, weights 0.1/0.2/0.3/0.4",
    },
    {
        "Metric": "Forecast confidence",
        "Meaning": "medium with at least 4 months of history, otherwise low.",
        "Formula": "months >= 4",
    },
    {
        "Metric": "Recommended budget",
        "Meaning": "Average monthly category spend plus a 15% buffer.",
        "Formula": "round(total / active months * 1.15)",
    },
    {
        "Metric": "Budget confidence",
        "Meaning": "How predictable a category's transactions are around its monthly average.",
        "Formula": "CV < 0.3 high, CV < 0.6 medium, else low",
    },
]
