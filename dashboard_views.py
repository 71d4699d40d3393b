"""Modular Streamlit page renderers."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from metric_guide import METRIC_GUIDE
from periods import MONTH_NAMES

WEEKDAY_HEADERS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _fmt_inr(value: float) -> str:
    return f"₹{value:,.2f}"


def render_score(payload: dict) -> None:
    st.markdown(
        f"""
        <div class="score-card" style="border-color: {payload['color']};">
          <span class="score-value" style="color: {payload['color']};">{payload['score']}</span>
          <span class="score-rating">{payload['rating']}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_home(summary: dict[str, float], score: dict, recent: pd.DataFrame) -> None:
    st.header("Home")

    left, right = st.columns([1, 3])
    with left:
        st.markdown("### Financial health")
        render_score(score)
    with right:
        st.markdown("### Snapshot")
        rows = [
            [
                ("Total income", _fmt_inr(summary["totalIncome"])),
                ("Total expenses", _fmt_inr(summary["totalExpenses"])),
                ("Net balance", _fmt_inr(summary["netBalance"])),
            ],
            [
                ("Income this month", _fmt_inr(summary["monthIncome"])),
                ("Expenses this month", _fmt_inr(summary["monthExpenses"])),
                ("Net this month", _fmt_inr(summary["monthNetBalance"])),
            ],
            [
                ("Categories used", f"{summary['categoryCount']:,}"),
                ("Expenses last 7 days", f"{summary['recentExpenseCount']:,}"),
                ("Income last 7 days", f"{summary['recentIncomeCount']:,}"),
            ],
        ]
        for row in rows:
            cols = st.columns(3)
            for idx, (label, value) in enumerate(row):
                cols[idx].metric(label, value)

    st.markdown("### Latest expenses")
    if recent.empty:
        st.info("No expenses recorded yet.")
    else:
        st.dataframe(recent, use_container_width=True, hide_index=True)


def render_insights(patterns: list[dict], predictions: list[dict]) -> None:
    st.header("Insights")
    st.caption("Behavioral patterns in recent spending and a short monthly forecast.")

    st.markdown("### Spending patterns")
    if not patterns:
        st.success("No unusual spending patterns detected.")
    for pattern in patterns:
        with st.container(border=True):
            st.markdown(f"**{pattern['description']}**")
            st.caption(pattern["suggestion"])

    st.markdown("### Predicted monthly spending")
    if not predictions:
        st.info("Forecasts need at least 10 expenses spread over 3 or more months.")
        return
    table = pd.DataFrame(predictions)
    st.dataframe(table, use_container_width=True, hide_index=True)
    st.bar_chart(table.set_index("month")[["predictedAmount"]])


def _heatmap_frame(heatmap: dict) -> pd.DataFrame:
    rows = [[cell["amount"] if cell["day"] is not None else None for cell in week] for week in heatmap["weeks"]]
    return pd.DataFrame(rows, columns=WEEKDAY_HEADERS)


def render_calendar(heatmap: dict) -> None:
    st.header("Calendar")
    if not heatmap["weeks"]:
        st.warning("Could not build the calendar for this month.")
        return

    st.caption(f"{heatmap['monthName']} {heatmap['year']}: daily spending, peak {_fmt_inr(heatmap['maxAmount'])}.")
    st.dataframe(_heatmap_frame(heatmap), use_container_width=True, hide_index=True)

    daily = pd.DataFrame(
        [cell for week in heatmap["weeks"] for cell in week if cell["day"] is not None]
    ).set_index("day")
    st.bar_chart(daily[["amount"]])
    with st.expander("Day numbers", expanded=False):
        day_labels = pd.DataFrame(
            [[cell["day"] for cell in week] for week in heatmap["weeks"]], columns=WEEKDAY_HEADERS
        )
        st.dataframe(day_labels, use_container_width=True, hide_index=True)


def render_budgets(recommendations: dict, status: list[dict]) -> None:
    st.header("Budgets")

    st.markdown("### Recommended monthly budgets")
    if not recommendations["hasData"]:
        st.info(recommendations["message"])
    else:
        c1, c2 = st.columns(2)
        c1.metric("Total recommended", _fmt_inr(recommendations["totalRecommendedBudget"]))
        c2.metric("Months analyzed", f"{recommendations['monthsAnalyzed']}")
        for rec in recommendations["recommendations"]:
            with st.expander(f"{rec['category']}: {_fmt_inr(rec['recommendedAmount'])} ({rec['confidence']})"):
                st.write(rec["reasoning"])
                st.caption(f"{rec['dataPoints']} transactions over {rec['monthsAnalyzed']} month(s).")

    st.markdown("### This month against budget")
    if not status:
        st.info("No budgets configured. Add them in the sidebar.")
        return
    for row in status:
        st.progress(
            min(max(row["percentage"], 0), 100) / 100,
            text=f"{row['category']}: {_fmt_inr(row['spent'])} of {_fmt_inr(row['monthlyBudget'])} ({row['percentage']}%)",
        )
    st.dataframe(pd.DataFrame(status), use_container_width=True, hide_index=True)


def render_search_results(response: dict) -> None:
    c1, c2, c3 = st.columns(3)
    c1.metric("Matches", f"{response['count']:,}")
    c2.metric("Total", _fmt_inr(response["total"]))
    c3.metric("Filter", response["filters"])
    if not response["results"]:
        st.info("No expenses match this search.")
        return
    st.dataframe(pd.DataFrame(response["results"]), use_container_width=True, hide_index=True)


def render_assistant_reply(mode: str, reply: str) -> None:
    if mode == "direct":
        st.success("Answered from your data")
    else:
        st.info("No direct answer for this question")
    st.text(reply)


def render_metric_guide() -> None:
    st.header("Metric Guide")
    st.caption("Definitions and formulas behind each score, pattern and forecast.")
    st.dataframe(pd.DataFrame(METRIC_GUIDE), use_container_width=True, height=520)


def month_options() -> list[tuple[int, str]]:
    return list(enumerate(MONTH_NAMES, start=1))
