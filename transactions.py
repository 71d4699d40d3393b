"""Transaction record normalization, validation and export loading."""

from __future__ import annotations

import datetime
import numbers
from typing import Any

import pandas as pd

from categorization import assign_categories
from errors import ValidationError

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")
MAX_AMOUNT = 10_000_000

_HEADER_ALIASES = {
    "date": "date",
    "category": "category",
    "source": "source",
    "amount": "amount",
    "description": "description",
    "isrecurring": "isRecurring",
    "is_recurring": "isRecurring",
    "recurring": "isRecurring",
}
_TRUE_TEXT = {"true", "yes", "y", "1"}


def resolve_now(now: datetime.datetime | None = None) -> datetime.datetime:
    """Pin the clock: explicit ``now`` wins, otherwise the local wall clock."""
    if now is None:
        return datetime.datetime.now()
    stamp = pd.Timestamp(now)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp.to_pydatetime()


def coerce_amount(value: Any) -> float:
    """Return the amount as float, or NaN when it is missing or not numeric."""
    if isinstance(value, bool) or not isinstance(value, numbers.Number):
        return float("nan")
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return float("nan")


def coerce_date(value: Any) -> pd.Timestamp:
    """Return a naive timestamp, or NaT when the value is not a usable date."""
    if value is None or isinstance(value, (bool, numbers.Number)):
        return pd.NaT
    try:
        stamp = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if not isinstance(stamp, pd.Timestamp) or pd.isna(stamp):
        return pd.NaT
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp


def records_frame(records: list[dict] | None, label_field: str = "category") -> pd.DataFrame:
    """Build a frame of the fields the engine reads, one row per input record.

    ``position`` keeps the input order so callers can map rows back to the
    original records. Bad amounts and dates become NaN/NaT rather than
    raising; each computation drops what it cannot use.
    """
    rows = []
    for position, record in enumerate(records or []):
        if not isinstance(record, dict):
            record = {}
        label = record.get(label_field)
        rows.append(
            {
                "position": position,
                "date": coerce_date(record.get("date")),
                label_field: label if isinstance(label, str) and label.strip() else None,
                "amount": coerce_amount(record.get("amount")),
                "description": str(record.get("description") or ""),
                "isRecurring": bool(record.get("isRecurring", False)),
            }
        )

    df = pd.DataFrame(rows, columns=["position", "date", label_field, "amount", "description", "isRecurring"])
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").astype(float)
    return df


def with_amount(df: pd.DataFrame) -> pd.DataFrame:
    return df[df["amount"].notna()].copy()


def with_amount_and_date(df: pd.DataFrame) -> pd.DataFrame:
    return df[df["amount"].notna() & df["date"].notna()].copy()


def validate_amount(value: Any) -> float:
    """Parse a user-entered amount, rounded to cents."""
    try:
        amount = float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a valid number") from None
    if amount != amount:
        raise ValidationError("Amount must be a valid number")
    if amount < 0:
        raise ValidationError("Amount cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError("Amount exceeds maximum limit")
    return round(amount, 2)


def _load_raw_export(uploaded_file: Any) -> pd.DataFrame:
    name = str(getattr(uploaded_file, "name", "")).lower()
    if name.endswith(".xlsx"):
        return pd.read_excel(uploaded_file, sheet_name=0)
    if name.endswith(".csv"):
        return pd.read_csv(uploaded_file)
    raise ValidationError(
        f"Unsupported file type: {name or '<unknown>'}. Supported: csv, xlsx."
    )


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_TEXT


def load_transactions(uploaded_file: Any, kind: str = "expense") -> list[dict]:
    """Load an expense or income export into engine records.

    Headers are matched case-insensitively. Expense rows without a known
    category get one suggested from their description.
    """
    label_field = "source" if kind == "income" else "category"
    raw = _load_raw_export(uploaded_file)
    raw = raw.rename(columns={col: _HEADER_ALIASES.get(str(col).strip().lower(), col) for col in raw.columns})
    if "date" not in raw.columns or "amount" not in raw.columns:
        raise ValidationError("Export must contain 'date' and 'amount' columns")

    for col in [label_field, "description", "isRecurring"]:
        if col not in raw.columns:
            raw[col] = None

    raw["date"] = pd.to_datetime(raw["date"], errors="coerce")
    raw["amount"] = pd.to_numeric(
        raw["amount"].astype(str).str.replace(",", "", regex=False).str.strip(), errors="coerce"
    )
    raw["description"] = raw["description"].fillna("").astype(str).str.strip()
    raw["isRecurring"] = raw["isRecurring"].apply(_parse_flag)
    raw = raw[raw["date"].notna() & raw["amount"].notna()]

    if kind != "income":
        raw = assign_categories(raw)

    records = []
    for _, row in raw.iterrows():
        label = row.get(label_field)
        records.append(
            {
                "date": row["date"].to_pydatetime(),
                label_field: str(label).strip() if pd.notna(label) and str(label).strip() else None,
                "amount": float(row["amount"]),
                "description": row["description"],
                "isRecurring": bool(row["isRecurring"]),
            }
        )
    return sorted(records, key=lambda record: record["date"])
