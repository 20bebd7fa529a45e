"""
Module: profit_engines.profit
Responsibility:
    Derive a quarter's revenue, expenses, net profit, corporate tax and
    distributable pool from its ledger movements.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Movements are read by the
    calling service and passed in.

Invariants enforced:
    - Only finalized (approved/paid) income and expense movements whose
      occurred_at falls inside the quarter bounds are counted.
    - Tax and profit-share rates are applied with ROUND_HALF_UP to whole
      minor units, tax first, then the share rate on the after-tax figure.
    - A loss or break-even quarter has zero tax and a zero pool.

Failure modes:
    - NoProfitToDistributeError from ``calculate_pool`` when net profit is
      not strictly positive.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from profit_engines.quarter import QuarterBounds
from profit_engines.tracer import traced_engine
from profit_kernel.domain.dtos import EntryType, LedgerMovement, QuarterlyProfit
from profit_kernel.domain.money import apply_rate, to_decimal
from profit_kernel.exceptions import NoProfitToDistributeError
from profit_kernel.logging_config import get_logger

logger = get_logger("engines.profit")


@dataclass(frozen=True)
class ProfitRates:
    """Corporate tax rate and the share of after-tax profit that is distributed."""

    corporate_tax_rate: Decimal = Decimal("0.20")
    profit_share_rate: Decimal = Decimal("0.49")

    def __post_init__(self) -> None:
        for name in ("corporate_tax_rate", "profit_share_rate"):
            rate = to_decimal(getattr(self, name))
            if not Decimal("0") <= rate <= Decimal("1"):
                raise ValueError(f"{name} must be between 0 and 1, got {rate}")
            object.__setattr__(self, name, rate)


class QuarterlyProfitCalculator:
    """
    Computes quarterly profit figures from ledger movements.

    Contract:
        Pure: identical movements and bounds always yield identical figures.

    Non-goals:
        - Does not read the ledger; see ProfitSharingService.
    """

    def __init__(self, rates: ProfitRates | None = None):
        self._rates = rates or ProfitRates()

    @property
    def rates(self) -> ProfitRates:
        return self._rates

    @traced_engine("quarterly_profit", "1.0", fingerprint_fields=("bounds",))
    def summarize(
        self,
        bounds: QuarterBounds,
        movements: Iterable[LedgerMovement],
    ) -> QuarterlyProfit:
        revenue = 0
        expenses = 0
        for movement in movements:
            if not movement.is_finalized or not bounds.contains(movement.occurred_at):
                continue
            if movement.entry_type == EntryType.INCOME:
                revenue += movement.amount
            elif movement.entry_type == EntryType.EXPENSE:
                expenses += movement.amount

        profit = revenue - expenses
        if profit > 0:
            corporate_tax = apply_rate(profit, self._rates.corporate_tax_rate)
            after_tax = profit - corporate_tax
            pool = apply_rate(after_tax, self._rates.profit_share_rate)
        else:
            corporate_tax = 0
            after_tax = profit
            pool = 0

        return QuarterlyProfit(
            period_value=bounds.period_value,
            revenue=revenue,
            expenses=expenses,
            profit=profit,
            corporate_tax=corporate_tax,
            net_profit_after_tax=after_tax,
            distributable_pool=pool,
        )

    def calculate_pool(
        self,
        bounds: QuarterBounds,
        movements: Iterable[LedgerMovement],
    ) -> QuarterlyProfit:
        """Same figures as ``summarize`` but refuses a non-positive profit."""
        figures = self.summarize(bounds, movements)
        if figures.profit <= 0:
            logger.warning(
                "no_profit_to_distribute",
                extra={"period_value": bounds.period_value, "net_profit": figures.profit},
            )
            raise NoProfitToDistributeError(bounds.period_value, figures.profit)
        return figures
