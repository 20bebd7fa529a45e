"""Tests for quarter validation and bounds (profit_engines.quarter)."""

from datetime import datetime, timedelta, timezone

import pytest

from profit_engines.quarter import QUARTER_PERIOD_TYPE, validate_quarter
from profit_kernel.exceptions import (
    InvalidPeriodTypeError,
    InvalidPeriodValueError,
    ValidationError,
)


class TestValidateQuarter:

    @pytest.mark.parametrize(
        "value, start_month, end_month, end_day",
        [
            ("2025-Q1", 1, 3, 31),
            ("2025-Q2", 4, 6, 30),
            ("2025-Q3", 7, 9, 30),
            ("2025-Q4", 10, 12, 31),
        ],
    )
    def test_bounds(self, value, start_month, end_month, end_day):
        bounds = validate_quarter("quarter", value)

        assert bounds.start == datetime(2025, start_month, 1, tzinfo=timezone.utc)
        assert bounds.end == datetime(
            2025, end_month, end_day, 23, 59, 59, 999999, tzinfo=timezone.utc
        )

    def test_unpacks_as_start_end(self):
        start, end = validate_quarter(QUARTER_PERIOD_TYPE, "2024-Q1")
        assert start.month == 1
        assert end.month == 3

    def test_leap_year_q1_ends_on_31_march(self):
        bounds = validate_quarter("quarter", "2024-Q1")
        assert bounds.end.day == 31
        assert bounds.year == 2024
        assert bounds.quarter == 1

    def test_contains_is_inclusive(self):
        bounds = validate_quarter("quarter", "2025-Q2")

        assert bounds.contains(bounds.start)
        assert bounds.contains(bounds.end)
        assert not bounds.contains(bounds.start - timedelta(microseconds=1))
        assert not bounds.contains(bounds.end + timedelta(microseconds=1))

    @pytest.mark.parametrize("period_type", ["month", "Quarter", "", "year"])
    def test_rejects_other_period_types(self, period_type):
        with pytest.raises(InvalidPeriodTypeError) as exc_info:
            validate_quarter(period_type, "2025-Q1")
        assert exc_info.value.code == "INVALID_PERIOD_TYPE"

    @pytest.mark.parametrize(
        "value",
        ["2025-Q5", "2025-Q0", "2025-q1", "25-Q1", "2025Q1", "2025-Q1 ", "2025-Q12", "", "0000-Q1"],
    )
    def test_rejects_malformed_values(self, value):
        with pytest.raises(InvalidPeriodValueError) as exc_info:
            validate_quarter("quarter", value)
        assert exc_info.value.period_value == value

    def test_validation_errors_share_a_base(self):
        with pytest.raises(ValidationError):
            validate_quarter("quarter", "nonsense")
