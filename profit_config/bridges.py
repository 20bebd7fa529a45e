"""
Config -> Kernel Bridges.

Functions that convert ``ProfitSharingConfig`` into kernel and engine
inputs.  These live in profit_config (the producer) because the kernel
must NEVER import profit_config.

Usage:
    config = get_active_config()
    policies = ConfigTierPolicySource(config)
    engine = DistributionEngine(build_distribution_bounds(config))
"""

from __future__ import annotations

from profit_config.schema import ProfitSharingConfig, TierPolicyDef
from profit_engines.distribution import DistributionBounds
from profit_engines.profit import ProfitRates
from profit_kernel.domain.dtos import MaxoutKind, MaxoutRule, TierPolicy
from profit_kernel.domain.ports import TierPolicySource
from profit_kernel.exceptions import UnknownTierError


def build_tier_policy(definition: TierPolicyDef) -> TierPolicy:
    return TierPolicy(
        tier=definition.tier,
        maxout=MaxoutRule(
            kind=MaxoutKind(definition.maxout.kind),
            factor=definition.maxout.factor,
        ),
        share_multiplier=definition.share_multiplier,
        max_shares=definition.max_shares,
        share_exempt=definition.share_exempt,
        nominal_maxout_multiplier=definition.nominal_maxout_multiplier,
        description=definition.description,
    )


def build_profit_rates(config: ProfitSharingConfig) -> ProfitRates:
    return ProfitRates(
        corporate_tax_rate=config.rates.corporate_tax_rate,
        profit_share_rate=config.rates.profit_share_rate,
    )


def build_distribution_bounds(config: ProfitSharingConfig) -> DistributionBounds:
    return DistributionBounds(
        max_rounds=config.distribution.max_rounds,
        min_round_allocation=config.distribution.min_round_allocation,
        min_round_fraction=config.distribution.min_round_fraction,
    )


class ConfigTierPolicySource(TierPolicySource):
    """Tier Policy Source backed by the configuration's tier table."""

    def __init__(self, config: ProfitSharingConfig):
        self._policies = {t.tier: build_tier_policy(t) for t in config.tiers}

    def get_policy(self, tier: str) -> TierPolicy:
        policy = self._policies.get(tier)
        if policy is None:
            raise UnknownTierError(tier)
        return policy

    def list_policies(self) -> list[TierPolicy]:
        return [self._policies[name] for name in sorted(self._policies)]
