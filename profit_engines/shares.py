"""
Module: profit_engines.shares
Responsibility:
    Convert a qualifying purchase or investment amount into profit-sharing
    shares for a business tier.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - awarded = floor(floor(amount / share_unit) * share_multiplier).
    - Share-exempt tiers are awarded nothing.
    - A tier with max_shares never holds more than max_shares in total.

Failure modes:
    - InvalidAmountError for a negative amount.
    - ValueError for a non-positive share unit.
"""

from __future__ import annotations

from dataclasses import dataclass

from profit_engines.tracer import traced_engine
from profit_kernel.domain.dtos import TierPolicy
from profit_kernel.domain.money import floor_multiply
from profit_kernel.exceptions import InvalidAmountError

DEFAULT_SHARE_UNIT = 1_000_000


@dataclass(frozen=True)
class ShareAward:
    tier: str
    base_units: int
    awarded: int
    capped: bool
    new_total: int


@traced_engine("share_award", "1.0", fingerprint_fields=("amount", "current_shares", "share_unit"))
def calculate_share_award(
    amount: int,
    policy: TierPolicy,
    current_shares: int = 0,
    share_unit: int = DEFAULT_SHARE_UNIT,
) -> ShareAward:
    if amount < 0:
        raise InvalidAmountError(amount, "share award amount cannot be negative")
    if share_unit <= 0:
        raise ValueError("share_unit must be positive")

    base_units = amount // share_unit
    if policy.share_exempt:
        return ShareAward(policy.tier, base_units, 0, False, current_shares)

    awarded = max(0, floor_multiply(base_units, policy.share_multiplier))
    capped = False
    if policy.max_shares is not None:
        awarded = min(awarded, max(0, policy.max_shares - current_shares))
        capped = current_shares + awarded >= policy.max_shares

    return ShareAward(
        tier=policy.tier,
        base_units=base_units,
        awarded=awarded,
        capped=capped,
        new_total=current_shares + awarded,
    )
