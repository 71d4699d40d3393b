"""SpendLens Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import datetime
import json
import logging

import pandas as pd
import streamlit as st

from ai_assistant import affordability_analysis, format_affordability, generate_chat_reply
from analytics import (
    build_calendar_heatmap,
    budget_status,
    calculate_spending_score,
    dashboard_summary,
    detect_behavioral_patterns,
    predict_future_expenses,
    recommend_budgets,
    score_payload,
)
from categorization import CATEGORY_KEYWORDS, EXPENSE_CATEGORIES, keyword_map_from_json
from dashboard_views import (
    month_options,
    render_assistant_reply,
    render_budgets,
    render_calendar,
    render_home,
    render_insights,
    render_metric_guide,
    render_search_results,
)
from entry_parser import parse_expense_entry
from errors import ValidationError
from periods import PRESET_NAMES, preset_date_range
from query_parser import MAX_QUERY_LENGTH, search_transactions
from saved_searches import (
    DEFAULT_SAVED_SEARCHES_PATH,
    default_search,
    delete_search,
    load_saved_searches,
    save_search,
)
from transactions import SUPPORTED_EXTENSIONS, load_transactions, validate_amount

logger = logging.getLogger(__name__)

st.set_page_config(page_title="SpendLens", page_icon="\U0001f4b8", layout="wide")


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .hero {
            margin-bottom: 0.6rem;
            padding: 1rem 1.2rem;
            border: 1px solid rgba(30, 80, 145, 0.23);
            border-radius: 14px;
            background: rgba(255,255,255,0.82);
        }
        .hero h1 { margin: 0; }
        .hero p { margin: 0.35rem 0 0 0; color: #244674; }
        .score-card {
            display: flex;
            flex-direction: column;
            align-items: center;
            padding: 1rem;
            border: 3px solid;
            border-radius: 50%;
            width: 160px;
            height: 160px;
            justify-content: center;
        }
        .score-value { font-size: 3rem; font-weight: 700; line-height: 1; }
        .score-rating { margin-top: 0.3rem; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _render_header() -> None:
    st.markdown(
        """
        <div class="hero">
          <h1>SpendLens</h1>
          <p>Personal finance insights from your expense and income history.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def _parse_json(json_text: str, fallback):
    try:
        return json.loads(json_text)
    except json.JSONDecodeError:
        logger.warning("Ignoring invalid JSON in sidebar input")
        return fallback


def _load_uploads(kind: str, label: str) -> list[dict]:
    uploaded = st.sidebar.file_uploader(
        label,
        type=[ext.replace(".", "") for ext in SUPPORTED_EXTENSIONS],
        key=f"upload_{kind}",
        help="Columns: date, amount, category (or source), description, isRecurring.",
    )
    if uploaded is None:
        return []
    try:
        records = load_transactions(uploaded, kind=kind)
    except ValidationError as exc:
        st.sidebar.error(str(exc))
        return []
    except Exception as exc:
        logger.exception("Could not read %s export", kind)
        st.sidebar.error(f"Could not read file: {exc}")
        return []
    st.sidebar.success(f"Loaded {len(records):,} {kind} rows.")
    return records


def _quick_add_expense() -> None:
    manual = st.session_state.setdefault("manual_expenses", [])
    with st.sidebar.expander("Quick add expense", expanded=False):
        draft = {"amount": None, "category": "Other", "description": ""}
        entry_text = st.text_input("Describe it", placeholder="spent ₹250 on lunch", key="entry_text")
        if entry_text.strip():
            try:
                draft = parse_expense_entry(entry_text)
            except ValidationError as exc:
                st.error(str(exc))
            if draft.get("needsReview"):
                st.warning("Check the amount and category before adding.")

        with st.form(key="manual_form"):
            m_date = st.date_input("Date", value=datetime.date.today())
            m_category = st.selectbox(
                "Category", EXPENSE_CATEGORIES, index=EXPENSE_CATEGORIES.index(draft["category"])
            )
            m_amount = st.text_input("Amount (₹)", value=f"{draft['amount']:.2f}" if draft["amount"] else "")
            m_desc = st.text_input("Description", value=draft["description"])
            submit = st.form_submit_button("Add")

        if not submit:
            return
        try:
            amount = validate_amount(m_amount)
        except ValidationError as exc:
            st.error(str(exc))
            return
        manual.append(
            {
                "date": datetime.datetime.combine(m_date, datetime.time()),
                "category": m_category,
                "amount": amount,
                "description": m_desc.strip(),
            }
        )
        st.success(f"Added {m_category} expense of ₹{amount:,.2f}.")


def _sidebar_settings() -> tuple[dict, list[dict]]:
    with st.sidebar.expander("Category keywords (JSON)", expanded=False):
        default_map = {category: list(words) for category, words in CATEGORY_KEYWORDS.items()}
        cat_json = st.text_area("Keyword map", value=json.dumps(default_map, indent=2), key="cat_json", height=240)
    keyword_map = keyword_map_from_json(_parse_json(cat_json, default_map)) or dict(CATEGORY_KEYWORDS)

    with st.sidebar.expander("Monthly budgets (JSON)", expanded=False):
        default_budgets = {"Food": 8000, "Transport": 3000}
        budget_json = st.text_area("Budget by category", value=json.dumps(default_budgets, indent=2), key="budget_json")
    raw_budgets = _parse_json(budget_json, default_budgets)
    if not isinstance(raw_budgets, dict):
        raw_budgets = default_budgets
    budgets = [{"category": str(category), "monthlyBudget": limit} for category, limit in raw_budgets.items()]
    return keyword_map, budgets


def _render_search(expenses: list[dict], keyword_map: dict, now: datetime.datetime) -> None:
    st.header("Search")
    st.caption('Try "food expenses over 2000 last month" or "shopping in march 2025".')

    saved = load_saved_searches(DEFAULT_SAVED_SEARCHES_PATH)
    preferred = default_search(DEFAULT_SAVED_SEARCHES_PATH)
    names = ["(none)"] + [entry["name"] for entry in saved]
    picked = st.selectbox(
        "Saved searches",
        names,
        index=names.index(preferred["name"]) if preferred else 0,
    )
    initial = next((entry["query"] for entry in saved if entry["name"] == picked), "")
    query = st.text_input("Search expenses", value=initial, max_chars=MAX_QUERY_LENGTH)

    with st.expander("Date presets", expanded=False):
        preset = st.selectbox("Preset", PRESET_NAMES)
        start, end = preset_date_range(preset, now)
        st.caption(f"{preset}: {start:%Y-%m-%d %H:%M} -> {end:%Y-%m-%d %H:%M}")

    if query.strip():
        try:
            render_search_results(search_transactions(expenses, query, now=now, keyword_map=keyword_map))
        except ValidationError as exc:
            st.error(str(exc))

    with st.form(key="save_search_form"):
        name = st.text_input("Save this search as")
        make_default = st.checkbox("Use as default")
        c1, c2 = st.columns(2)
        save_clicked = c1.form_submit_button("Save")
        delete_clicked = c2.form_submit_button("Delete selected")
    if save_clicked:
        try:
            save_search(DEFAULT_SAVED_SEARCHES_PATH, name, query, is_default=make_default)
            st.success(f"Saved search '{name.strip()}'.")
        except ValidationError as exc:
            st.error(str(exc))
    if delete_clicked and picked != "(none)":
        delete_search(DEFAULT_SAVED_SEARCHES_PATH, picked)
        st.rerun()


def _render_assistant(
    expenses: list[dict], incomes: list[dict], budgets: list[dict], now: datetime.datetime
) -> None:
    st.header("Assistant")
    question = st.text_input("Ask about your finances", value="What's my net balance?")
    if st.button("Ask") and question.strip():
        mode, reply = generate_chat_reply(question, expenses, incomes, budgets, now=now)
        render_assistant_reply(mode, reply)

    st.markdown("### Affordability check")
    amount_text = st.text_input("Planned purchase (₹)", value="")
    if amount_text.strip():
        try:
            amount = validate_amount(amount_text)
        except ValidationError as exc:
            st.error(str(exc))
            return
        st.text(format_affordability(affordability_analysis(amount, expenses, incomes, budgets, now=now)))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    _inject_styles()
    _render_header()

    view = st.sidebar.radio(
        "Navigate",
        ["Home", "Insights", "Calendar", "Budgets", "Search", "Assistant", "Metric Guide"],
    )

    st.sidebar.header("Data Setup")
    expenses = _load_uploads("expense", "Upload expenses")
    incomes = _load_uploads("income", "Upload income")
    _quick_add_expense()
    expenses = expenses + st.session_state.get("manual_expenses", [])
    keyword_map, budgets = _sidebar_settings()

    now = datetime.datetime.now()

    if view == "Home":
        recent = pd.DataFrame(sorted(expenses, key=lambda record: record["date"], reverse=True)[:10])
        render_home(
            dashboard_summary(expenses, incomes, now=now),
            score_payload(calculate_spending_score(expenses, now=now)),
            recent,
        )
    elif view == "Insights":
        render_insights(
            detect_behavioral_patterns(expenses, now=now),
            predict_future_expenses(expenses, months=3, now=now),
        )
    elif view == "Calendar":
        months = month_options()
        c1, c2 = st.columns(2)
        year = c1.number_input("Year", min_value=2000, max_value=2100, value=now.year, step=1)
        month = c2.selectbox("Month", months, index=now.month - 1, format_func=lambda item: item[1])
        render_calendar(build_calendar_heatmap(expenses, int(year), month[0]))
    elif view == "Budgets":
        render_budgets(recommend_budgets(expenses, incomes, now=now), budget_status(expenses, budgets, now=now))
    elif view == "Search":
        _render_search(expenses, keyword_map, now)
    elif view == "Assistant":
        _render_assistant(expenses, incomes, budgets, now)
    elif view == "Metric Guide":
        render_metric_guide()


if __name__ == "__main__":
    main()
