"""Calendar helpers shared by the analytics and query modules."""

from __future__ import annotations

import calendar
import datetime
import re

import pandas as pd

from errors import ValidationError

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

PRESET_NAMES = (
    "today",
    "yesterday",
    "last7days",
    "last30days",
    "thisMonth",
    "lastMonth",
    "thisYear",
)

_MONTH_PARAM_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def month_key(value) -> str:
    """Return the ``YYYY-MM`` bucket key of a date-like value."""
    return pd.Timestamp(value).strftime("%Y-%m")


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move ``offset`` calendar months from (year, month), rolling years."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def start_of_day(value: datetime.datetime) -> datetime.datetime:
    return datetime.datetime(value.year, value.month, value.day)


def end_of_day(value: datetime.datetime) -> datetime.datetime:
    return start_of_day(value) + datetime.timedelta(days=1) - datetime.timedelta(microseconds=1)


def month_bounds(year: int, month: int) -> tuple[datetime.datetime, datetime.datetime]:
    """First and last instant of a calendar month."""
    start = datetime.datetime(year, month, 1)
    end = end_of_day(datetime.datetime(year, month, days_in_month(year, month)))
    return start, end


def year_bounds(year: int) -> tuple[datetime.datetime, datetime.datetime]:
    return datetime.datetime(year, 1, 1), end_of_day(datetime.datetime(year, 12, 31))


def previous_month_bounds(now: datetime.datetime) -> tuple[datetime.datetime, datetime.datetime]:
    year, month = shift_month(now.year, now.month, -1)
    return month_bounds(year, month)


def preset_date_range(preset: str, now: datetime.datetime) -> tuple[datetime.datetime, datetime.datetime]:
    """Resolve a named preset to an inclusive (start, end) range."""
    if preset == "today":
        return start_of_day(now), end_of_day(now)
    if preset == "yesterday":
        yesterday = now - datetime.timedelta(days=1)
        return start_of_day(yesterday), end_of_day(yesterday)
    if preset == "last7days":
        return now - datetime.timedelta(days=7), now
    if preset == "last30days":
        return now - datetime.timedelta(days=30), now
    if preset == "thisMonth":
        return month_bounds(now.year, now.month)
    if preset == "lastMonth":
        return previous_month_bounds(now)
    if preset == "thisYear":
        return year_bounds(now.year)
    raise ValidationError(f"Invalid preset: {preset!r}. Supported: {', '.join(PRESET_NAMES)}.")


def _parse_date_param(value: str, label: str) -> pd.Timestamp:
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        raise ValidationError(f"Invalid {label} date format")
    return parsed


def validate_date_params(start_date: str | None = None, end_date: str | None = None, month: str | None = None) -> dict:
    """Check free-form date filter parameters before they reach a query."""
    start = _parse_date_param(start_date, "start") if start_date else None
    end = _parse_date_param(end_date, "end") if end_date else None

    if month and not _MONTH_PARAM_PATTERN.match(str(month)):
        raise ValidationError("Invalid month format. Use YYYY-MM")
    if month and not 1 <= int(str(month)[5:7]) <= 12:
        raise ValidationError("Invalid month format. Use YYYY-MM")

    if start is not None and end is not None and start > end:
        raise ValidationError("Start date must be before end date")

    return {"startDate": start_date, "endDate": end_date, "month": month}
