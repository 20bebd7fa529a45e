"""
Injectable time source.

Services never call ``datetime.now()`` themselves: ``processed_at``,
``paid_at``, ledger ``occurred_at`` and audit timestamps all come from the
Clock they were constructed with.  The cumulative payout snapshot taken at
the start of a run is also "as of" this clock, so a run over fixed data and
a DeterministicClock always produces the same distribution.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# First instant after 2025-Q2; the default for DeterministicClock.
DEFAULT_TEST_INSTANT = datetime(2025, 7, 1, 9, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC instants."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Guarantees:
        - ``now()`` returns the same instant until ``advance()`` is called.
        - Naive start times are taken as UTC.
    """

    def __init__(self, start: datetime | None = None):
        start = start or DEFAULT_TEST_INSTANT
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._current = start.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new instant."""
        step = timedelta(**delta)
        if step < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self._current += step
        return self._current
