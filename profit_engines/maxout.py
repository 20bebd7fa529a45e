"""
Module: profit_engines.maxout
Responsibility:
    Map a business tier's maxout rule and an account's investment and owned
    asset value to a payout ceiling, and report tiers whose policy table
    entry leaves enforcement undefined.

Architecture position:
    Engines -- pure calculation layer.  ``MaxoutPolicyResolver`` consults a
    ``TierPolicySource`` port for the policy itself; the ceiling formula in
    ``resolve_ceiling`` has no dependencies at all.

Invariants enforced:
    - investment_multiple     -> floor(factor * investment_amount)
    - asset_value_percentage  -> floor(owned_asset_value * factor / 100)
    - unlimited and none      -> no ceiling
    - Ceilings are never negative.

Failure modes:
    - UnknownTierError (from the policy source) for unconfigured tiers.

Audit relevance:
    A tier with rule ``none`` that still advertises a nominal multiplier is
    paid without a cap.  Each such resolution logs ``tier_maxout_unenforced``
    so the gap is visible in operations.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from profit_engines.tracer import traced_engine
from profit_kernel.domain.dtos import MaxoutKind, MaxoutStatus, ShareholderAccount, TierPolicy
from profit_kernel.domain.money import floor_multiply
from profit_kernel.domain.ports import TierPolicySource
from profit_kernel.logging_config import get_logger

logger = get_logger("engines.maxout")

_PERCENT = Decimal("100")


@dataclass(frozen=True)
class Ceiling:
    """A payout ceiling.  ``limit`` is None when the account is uncapped."""

    limit: int | None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("Ceiling cannot be negative")

    @classmethod
    def unlimited(cls) -> Ceiling:
        return cls(limit=None)

    @classmethod
    def of(cls, limit: int) -> Ceiling:
        return cls(limit=limit)

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    def headroom(self, used: int) -> int | None:
        """Amount still payable after ``used``; None when uncapped."""
        if self.limit is None:
            return None
        return max(0, self.limit - used)


def resolve_ceiling(
    policy: TierPolicy,
    investment_amount: int,
    owned_asset_value: int,
) -> Ceiling:
    """Ceiling for one account under ``policy``.  Pure."""
    rule = policy.maxout
    if rule.kind == MaxoutKind.INVESTMENT_MULTIPLE:
        return Ceiling.of(max(0, floor_multiply(investment_amount, rule.factor)))
    if rule.kind == MaxoutKind.ASSET_VALUE_PERCENTAGE:
        return Ceiling.of(max(0, floor_multiply(owned_asset_value, rule.factor / _PERCENT)))
    if rule.kind == MaxoutKind.NONE and policy.has_policy_gap:
        logger.warning(
            "tier_maxout_unenforced",
            extra={
                "tier": policy.tier,
                "nominal_maxout_multiplier": policy.nominal_maxout_multiplier,
            },
        )
    return Ceiling.unlimited()


class MaxoutPolicyResolver:
    """
    Resolves ceilings by tier through a ``TierPolicySource``.

    Contract:
        Stateless between calls; policies are re-read on every resolution so
        a new deployment's table applies to the next processing run.
    """

    def __init__(self, policies: TierPolicySource):
        self._policies = policies

    def policy_for(self, tier: str) -> TierPolicy:
        return self._policies.get_policy(tier)

    def resolve(
        self,
        tier: str,
        investment_amount: int,
        owned_asset_value: int,
    ) -> Ceiling:
        return resolve_ceiling(self._policies.get_policy(tier), investment_amount, owned_asset_value)

    def resolve_account(self, account: ShareholderAccount) -> Ceiling:
        return self.resolve(
            account.business_tier,
            account.investment_amount,
            account.owned_asset_value,
        )

    def status(self, account: ShareholderAccount, cumulative_payout: int) -> MaxoutStatus:
        """Ceiling usage of one account given its cumulative payout."""
        ceiling = self.resolve_account(account)
        return MaxoutStatus(
            account_id=account.account_id,
            business_tier=account.business_tier,
            limit=ceiling.limit,
            current=cumulative_payout,
        )


@dataclass(frozen=True)
class PolicyGap:
    tier: str
    nominal_maxout_multiplier: Decimal
    description: str = ""


@dataclass(frozen=True)
class PolicyGapReport:
    """Tiers whose nominal multiplier is not backed by an enforced rule."""

    gaps: tuple[PolicyGap, ...]

    @property
    def has_gaps(self) -> bool:
        return len(self.gaps) > 0

    @property
    def tiers(self) -> tuple[str, ...]:
        return tuple(g.tier for g in self.gaps)


@traced_engine("maxout_policy_gaps", "1.0")
def find_policy_gaps(policies: Iterable[TierPolicy]) -> PolicyGapReport:
    gaps = tuple(
        PolicyGap(
            tier=p.tier,
            nominal_maxout_multiplier=p.nominal_maxout_multiplier,
            description=p.description,
        )
        for p in sorted(policies, key=lambda p: p.tier)
        if p.has_policy_gap
    )
    return PolicyGapReport(gaps=gaps)
