import datetime

import pytest

from errors import ValidationError
from periods import month_bounds, preset_date_range, shift_month, validate_date_params

NOW = datetime.datetime(2026, 3, 18, 12, 0)


def test_shift_month_rolls_years() -> None:
    assert shift_month(2026, 1, -1) == (2025, 12)
    assert shift_month(2025, 11, 3) == (2026, 2)


def test_month_bounds_end_at_last_instant() -> None:
    start, end = month_bounds(2024, 2)
    assert start == datetime.datetime(2024, 2, 1)
    assert end == datetime.datetime(2024, 2, 29, 23, 59, 59, 999999)


def test_presets() -> None:
    assert preset_date_range("today", NOW) == (
        datetime.datetime(2026, 3, 18),
        datetime.datetime(2026, 3, 18, 23, 59, 59, 999999),
    )
    assert preset_date_range("last7days", NOW) == (datetime.datetime(2026, 3, 11, 12, 0), NOW)
    assert preset_date_range("lastMonth", NOW)[0] == datetime.datetime(2026, 2, 1)
    assert preset_date_range("thisYear", NOW)[1] == datetime.datetime(2026, 12, 31, 23, 59, 59, 999999)


def test_unknown_preset_rejected() -> None:
    with pytest.raises(ValidationError, match="Invalid preset"):
        preset_date_range("fortnight", NOW)


def test_validate_date_params() -> None:
    assert validate_date_params("2026-01-01", "2026-01-31", "2026-01") == {
        "startDate": "2026-01-01",
        "endDate": "2026-01-31",
        "month": "2026-01",
    }
    with pytest.raises(ValidationError, match="Invalid start date"):
        validate_date_params(start_date="someday")
    with pytest.raises(ValidationError, match="YYYY-MM"):
        validate_date_params(month="2026-13")
    with pytest.raises(ValidationError, match="YYYY-MM"):
        validate_date_params(month="2026/01")
    with pytest.raises(ValidationError, match="before end date"):
        validate_date_params("2026-02-01", "2026-01-01")
