"""
Configuration Loader (``profit_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into typed
``profit_config.schema`` dataclass instances.  Runtime callers use
``profit_config.get_active_config()`` rather than calling this directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Rates and factors are parsed through ``str`` into ``Decimal``, never kept
  as floats.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown maxout kind, duplicate tier, rate out of range  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from profit_config.schema import (
    MAXOUT_KINDS,
    DistributionDef,
    MaxoutRuleDef,
    ProfitSharingConfig,
    RatesDef,
    SharesDef,
    TierPolicyDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: cannot parse {value!r} as a decimal") from exc


def _parse_rate(value: Any, field: str) -> Decimal:
    rate = parse_decimal(value, field)
    if not Decimal("0") <= rate <= Decimal("1"):
        raise ValueError(f"{field} must be between 0 and 1, got {rate}")
    return rate


def parse_rates(data: dict[str, Any]) -> RatesDef:
    return RatesDef(
        corporate_tax_rate=_parse_rate(data["corporate_tax_rate"], "corporate_tax_rate"),
        profit_share_rate=_parse_rate(data["profit_share_rate"], "profit_share_rate"),
    )


def parse_distribution(data: dict[str, Any]) -> DistributionDef:
    defaults = DistributionDef()
    return DistributionDef(
        max_rounds=int(data.get("max_rounds", defaults.max_rounds)),
        min_round_allocation=int(data.get("min_round_allocation", defaults.min_round_allocation)),
        min_round_fraction=_parse_rate(
            data.get("min_round_fraction", defaults.min_round_fraction), "min_round_fraction"
        ),
        treasury_account_id=str(data.get("treasury_account_id", defaults.treasury_account_id)),
    )


def parse_shares(data: dict[str, Any]) -> SharesDef:
    share_unit = int(data.get("share_unit", SharesDef().share_unit))
    if share_unit <= 0:
        raise ValueError(f"share_unit must be positive, got {share_unit}")
    return SharesDef(share_unit=share_unit)


def parse_maxout_rule(data: dict[str, Any], tier: str) -> MaxoutRuleDef:
    kind = data["kind"]
    if kind not in MAXOUT_KINDS:
        raise ValueError(f"Tier {tier!r}: unknown maxout kind {kind!r}")
    factor = data.get("factor")
    if kind in ("investment_multiple", "asset_value_percentage") and factor is None:
        raise ValueError(f"Tier {tier!r}: maxout kind {kind!r} requires a factor")
    return MaxoutRuleDef(
        kind=kind,
        factor=parse_decimal(factor, f"{tier}.maxout.factor") if factor is not None else None,
    )


def parse_tier(data: dict[str, Any]) -> TierPolicyDef:
    """
    Parse one tier policy row.

    Raises:
        KeyError: if ``tier`` or ``maxout.kind`` is missing.
        ValueError: on an unknown maxout kind or a missing factor.
    """
    tier = data["tier"]
    nominal = data.get("nominal_maxout_multiplier")
    max_shares = data.get("max_shares")
    return TierPolicyDef(
        tier=tier,
        maxout=parse_maxout_rule(data["maxout"], tier),
        share_multiplier=parse_decimal(data.get("share_multiplier", "1"), f"{tier}.share_multiplier"),
        max_shares=int(max_shares) if max_shares is not None else None,
        share_exempt=bool(data.get("share_exempt", False)),
        nominal_maxout_multiplier=(
            parse_decimal(nominal, f"{tier}.nominal_maxout_multiplier")
            if nominal is not None
            else None
        ),
        description=data.get("description", ""),
    )


def parse_config(data: dict[str, Any]) -> ProfitSharingConfig:
    """Parse a complete configuration document."""
    tiers = tuple(parse_tier(t) for t in data["tiers"])
    seen: set[str] = set()
    for tier in tiers:
        if tier.tier in seen:
            raise ValueError(f"Duplicate tier policy: {tier.tier!r}")
        seen.add(tier.tier)

    return ProfitSharingConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        currency=data.get("currency", "VND"),
        rates=parse_rates(data["rates"]),
        distribution=parse_distribution(data.get("distribution", {})),
        shares=parse_shares(data.get("shares", {})),
        tiers=tiers,
    )


def load_config(path: Path) -> ProfitSharingConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization.  Deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
