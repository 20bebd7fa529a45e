"""Tests for minor-unit money arithmetic (profit_kernel.domain.money)."""

from decimal import Decimal

import pytest

from profit_kernel.domain.money import (
    apply_rate,
    floor_multiply,
    per_share_rate,
    prorata_floor,
    to_decimal,
)


class TestToDecimal:

    def test_accepts_str_int_decimal(self):
        assert to_decimal("0.49") == Decimal("0.49")
        assert to_decimal(5) == Decimal("5")
        assert to_decimal(Decimal("1.5")) == Decimal("1.5")

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            to_decimal(0.49)


class TestApplyRate:

    @pytest.mark.parametrize(
        "amount, rate, expected",
        [
            (12_500_000, "0.20", 2_500_000),
            (10_000_000, "0.49", 4_900_000),
            (5, "0.5", 3),      # 2.5 rounds up
            (3, "0.5", 2),      # 1.5 rounds up
            (1, "0.49", 0),     # 0.49 rounds down
            (0, "0.20", 0),
        ],
    )
    def test_half_up(self, amount, rate, expected):
        assert apply_rate(amount, rate) == expected


class TestFloorMultiply:

    def test_floors(self):
        assert floor_multiply(3, "2.5") == 7
        assert floor_multiply(333, "2.1") == 699
        assert floor_multiply(100, "5") == 500


class TestProrataFloor:

    def test_exact_integer_arithmetic(self):
        assert prorata_floor(100, 4_900_000, 400) == 1_225_000
        assert prorata_floor(1, 100, 3) == 33

    def test_large_values_do_not_lose_precision(self):
        assert prorata_floor(10**15 + 1, 10**15, 10**15 + 1) == 10**15

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            prorata_floor(1, 100, 0)
        with pytest.raises(ValueError):
            prorata_floor(-1, 100, 3)


class TestPerShareRate:

    def test_rounded_to_four_places(self):
        assert per_share_rate(100, 3) == Decimal("33.3333")
        assert per_share_rate(200, 3) == Decimal("66.6667")

    def test_zero_shares(self):
        assert per_share_rate(100, 0) == Decimal("0")
