"""
Module: profit_engines.quarter
Responsibility:
    Validate a (period_type, period_value) pair and turn it into inclusive
    UTC instant bounds for the quarter.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only the "quarter" period type is accepted.
    - period_value must match ``YYYY-Qn`` exactly, n in 1..4.  No trailing
      characters, no lowercase "q".
    - start is the first instant of the quarter's first month; end is the
      last microsecond of its third month.  Both are UTC.

Failure modes:
    - InvalidPeriodTypeError for any period type other than "quarter".
    - InvalidPeriodValueError for malformed values (including year 0000).
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from profit_kernel.exceptions import InvalidPeriodTypeError, InvalidPeriodValueError

QUARTER_PERIOD_TYPE = "quarter"

_QUARTER_RE = re.compile(r"(\d{4})-Q([1-4])")


@dataclass(frozen=True)
class QuarterBounds:
    """Inclusive UTC bounds of a calendar quarter.

    Unpacks as ``start, end = bounds``.
    """

    period_value: str
    year: int
    quarter: int
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def __iter__(self):
        return iter((self.start, self.end))


def validate_quarter(period_type: str, period_value: str) -> QuarterBounds:
    """
    Validate a quarterly period key and return its bounds.

    Raises:
        InvalidPeriodTypeError: period_type is not "quarter".
        InvalidPeriodValueError: period_value is not ``YYYY-Q[1-4]``.
    """
    if period_type != QUARTER_PERIOD_TYPE:
        raise InvalidPeriodTypeError(period_type)

    match = _QUARTER_RE.fullmatch(period_value) if isinstance(period_value, str) else None
    if match is None:
        raise InvalidPeriodValueError(period_value)

    year = int(match.group(1))
    quarter = int(match.group(2))
    if year < 1:
        raise InvalidPeriodValueError(period_value)

    first_month = (quarter - 1) * 3 + 1
    last_month = first_month + 2
    last_day = calendar.monthrange(year, last_month)[1]

    return QuarterBounds(
        period_value=period_value,
        year=year,
        quarter=quarter,
        start=datetime(year, first_month, 1, tzinfo=timezone.utc),
        end=datetime(year, last_month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc),
    )
