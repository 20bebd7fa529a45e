"""
ProfitSharingConfig schema.

Defines the human-authored, reviewable configuration for profit sharing:
rates, redistribution bounds, share award unit and the business tier policy
table.  YAML files are parsed into these types by the loader and turned into
kernel/engine inputs by ``profit_config.bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

MAXOUT_KINDS = frozenset(
    {"unlimited", "investment_multiple", "asset_value_percentage", "none"}
)


@dataclass(frozen=True)
class RatesDef:
    """Corporate tax rate and the distributed share of after-tax profit."""

    corporate_tax_rate: Decimal = Decimal("0.20")
    profit_share_rate: Decimal = Decimal("0.49")


@dataclass(frozen=True)
class DistributionDef:
    """Redistribution loop bounds and where undistributed remainders go."""

    max_rounds: int = 10
    min_round_allocation: int = 10
    min_round_fraction: Decimal = Decimal("0.01")
    treasury_account_id: str = "system"


@dataclass(frozen=True)
class SharesDef:
    """Minor units of qualifying amount per base share unit."""

    share_unit: int = 1_000_000


@dataclass(frozen=True)
class MaxoutRuleDef:
    kind: str
    factor: Decimal | None = None


@dataclass(frozen=True)
class TierPolicyDef:
    """One row of the business tier policy table."""

    tier: str
    maxout: MaxoutRuleDef
    share_multiplier: Decimal = Decimal("1")
    max_shares: int | None = None
    share_exempt: bool = False
    nominal_maxout_multiplier: Decimal | None = None
    description: str = ""


@dataclass(frozen=True)
class ProfitSharingConfig:
    """Complete profit sharing configuration.

    Attributes:
        config_id: Identifier of the configuration set (e.g. "VN-DEFAULT").
        version: Configuration version number.
        checksum: SHA-256 of the canonical source data.
        currency: ISO 4217 code of the single minor-unit currency.
        tiers: One entry per business tier, unique by name.
    """

    config_id: str
    version: int
    checksum: str
    currency: str
    rates: RatesDef
    distribution: DistributionDef
    shares: SharesDef
    tiers: tuple[TierPolicyDef, ...]

    def tier(self, name: str) -> TierPolicyDef | None:
        for tier in self.tiers:
            if tier.tier == name:
                return tier
        return None
