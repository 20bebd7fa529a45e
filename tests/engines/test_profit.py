"""Tests for the quarterly profit calculator (profit_engines.profit)."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from profit_engines.profit import ProfitRates, QuarterlyProfitCalculator
from profit_engines.quarter import validate_quarter
from profit_kernel.domain.dtos import EntryStatus, EntryType, LedgerMovement
from profit_kernel.exceptions import NoProfitToDistributeError, StateError

Q2 = validate_quarter("quarter", "2025-Q2")
IN_Q2 = datetime(2025, 5, 1, tzinfo=timezone.utc)


def _movement(entry_type, amount, status=EntryStatus.APPROVED, at=IN_Q2):
    return LedgerMovement(entry_type=entry_type, amount=amount, status=status, occurred_at=at)


class TestSummarize:

    def test_reference_quarter(self):
        calc = QuarterlyProfitCalculator()
        figures = calc.summarize(
            Q2,
            [
                _movement(EntryType.INCOME, 20_000_000),
                _movement(EntryType.EXPENSE, 7_500_000),
            ],
        )

        assert figures.revenue == 20_000_000
        assert figures.expenses == 7_500_000
        assert figures.profit == 12_500_000
        assert figures.corporate_tax == 2_500_000
        assert figures.net_profit_after_tax == 10_000_000
        assert figures.distributable_pool == 4_900_000
        assert figures.period_value == "2025-Q2"

    def test_only_finalized_movements_count(self):
        calc = QuarterlyProfitCalculator()
        figures = calc.summarize(
            Q2,
            [
                _movement(EntryType.INCOME, 1_000, EntryStatus.APPROVED),
                _movement(EntryType.INCOME, 2_000, EntryStatus.PAID),
                _movement(EntryType.INCOME, 4_000, EntryStatus.PENDING),
                _movement(EntryType.EXPENSE, 8_000, EntryStatus.REJECTED),
            ],
        )
        assert figures.revenue == 3_000
        assert figures.expenses == 0

    def test_movements_outside_quarter_ignored(self):
        calc = QuarterlyProfitCalculator()
        figures = calc.summarize(
            Q2,
            [
                _movement(EntryType.INCOME, 100, at=Q2.start),
                _movement(EntryType.INCOME, 100, at=Q2.end),
                _movement(EntryType.INCOME, 9_999, at=datetime(2025, 3, 31, 23, 59, tzinfo=timezone.utc)),
                _movement(EntryType.INCOME, 9_999, at=datetime(2025, 7, 1, tzinfo=timezone.utc)),
            ],
        )
        assert figures.revenue == 200

    def test_other_channels_ignored(self):
        calc = QuarterlyProfitCalculator()
        figures = calc.summarize(
            Q2,
            [
                _movement(EntryType.INCOME, 500),
                _movement(EntryType.WITHDRAWAL, 300),
                _movement(EntryType.TREASURY_ROLLOVER, 50),
            ],
        )
        assert figures.profit == 500

    def test_loss_has_zero_tax_and_pool(self):
        calc = QuarterlyProfitCalculator()
        figures = calc.summarize(
            Q2,
            [_movement(EntryType.INCOME, 100), _movement(EntryType.EXPENSE, 400)],
        )
        assert figures.profit == -300
        assert figures.corporate_tax == 0
        assert figures.distributable_pool == 0

    def test_rates_round_half_up(self):
        calc = QuarterlyProfitCalculator(ProfitRates(Decimal("0.5"), Decimal("0.5")))
        figures = calc.summarize(Q2, [_movement(EntryType.INCOME, 5)])

        # 2.5 rounds up to 3; 2 * 0.5 = 1
        assert figures.corporate_tax == 3
        assert figures.net_profit_after_tax == 2
        assert figures.distributable_pool == 1

    def test_tiny_profit_rounds_pool_to_zero(self):
        figures = QuarterlyProfitCalculator().summarize(Q2, [_movement(EntryType.INCOME, 1)])
        assert figures.corporate_tax == 0
        assert figures.net_profit_after_tax == 1
        assert figures.distributable_pool == 0


class TestCalculatePool:

    @pytest.mark.parametrize("income, expense", [(100, 100), (100, 250), (0, 0)])
    def test_non_positive_profit_rejected(self, income, expense):
        calc = QuarterlyProfitCalculator()
        movements = [_movement(EntryType.INCOME, income), _movement(EntryType.EXPENSE, expense)]

        with pytest.raises(NoProfitToDistributeError) as exc_info:
            calc.calculate_pool(Q2, movements)

        assert isinstance(exc_info.value, StateError)
        assert exc_info.value.net_profit == income - expense
        assert exc_info.value.period_value == "2025-Q2"

    def test_positive_profit_returns_figures(self):
        figures = QuarterlyProfitCalculator().calculate_pool(
            Q2, [_movement(EntryType.INCOME, 12_500_000)]
        )
        assert figures.distributable_pool == 4_900_000


class TestProfitRates:

    def test_defaults(self):
        rates = ProfitRates()
        assert rates.corporate_tax_rate == Decimal("0.20")
        assert rates.profit_share_rate == Decimal("0.49")

    def test_string_rates_coerced(self):
        rates = ProfitRates("0.25", "0.5")
        assert rates.corporate_tax_rate == Decimal("0.25")

    @pytest.mark.parametrize("rate", [Decimal("-0.1"), Decimal("1.01")])
    def test_out_of_range_rejected(self, rate):
        with pytest.raises(ValueError):
            ProfitRates(corporate_tax_rate=rate)

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            ProfitRates(corporate_tax_rate=0.2)
