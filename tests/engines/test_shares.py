"""Tests for share award calculation (profit_engines.shares)."""

from decimal import Decimal

import pytest

from profit_engines.shares import DEFAULT_SHARE_UNIT, calculate_share_award
from profit_kernel.domain.dtos import MaxoutKind, MaxoutRule, TierPolicy
from profit_kernel.exceptions import InvalidAmountError

NONE_RULE = MaxoutRule(kind=MaxoutKind.NONE)


def _policy(tier="founder", multiplier="1", max_shares=None, exempt=False):
    return TierPolicy(
        tier=tier,
        maxout=NONE_RULE,
        share_multiplier=Decimal(multiplier),
        max_shares=max_shares,
        share_exempt=exempt,
    )


class TestCalculateShareAward:

    def test_one_share_per_unit(self):
        award = calculate_share_award(5_500_000, _policy())

        assert award.base_units == 5
        assert award.awarded == 5
        assert award.new_total == 5
        assert not award.capped

    def test_below_one_unit_awards_nothing(self):
        award = calculate_share_award(DEFAULT_SHARE_UNIT - 1, _policy())
        assert award.awarded == 0

    def test_multiplier_floors(self):
        award = calculate_share_award(3 * DEFAULT_SHARE_UNIT, _policy(multiplier="1.5"))
        # 3 * 1.5 = 4.5
        assert award.awarded == 4

    def test_adds_to_current_total(self):
        award = calculate_share_award(2 * DEFAULT_SHARE_UNIT, _policy(), current_shares=10)
        assert award.new_total == 12

    def test_share_exempt_tier(self):
        award = calculate_share_award(
            50 * DEFAULT_SHARE_UNIT, _policy("affiliate", multiplier="0", max_shares=0, exempt=True)
        )
        assert award.awarded == 0
        assert award.base_units == 50
        assert not award.capped

    def test_max_shares_caps_award(self):
        award = calculate_share_award(
            30 * DEFAULT_SHARE_UNIT,
            _policy("branch", multiplier="1.5", max_shares=200),
            current_shares=190,
        )
        assert award.awarded == 10
        assert award.new_total == 200
        assert award.capped

    def test_already_at_max_shares(self):
        award = calculate_share_award(
            DEFAULT_SHARE_UNIT, _policy(max_shares=200), current_shares=200
        )
        assert award.awarded == 0
        assert award.capped

    def test_custom_share_unit(self):
        award = calculate_share_award(1_000, _policy(), share_unit=100)
        assert award.awarded == 10

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            calculate_share_award(-1, _policy())
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_non_positive_share_unit_rejected(self):
        with pytest.raises(ValueError):
            calculate_share_award(1_000, _policy(), share_unit=0)
