"""
profit_config -- single public entrypoint for profit sharing configuration.

Responsibility:
    ``get_active_config()`` is the way runtime code obtains configuration.
    It resolves the file to load (explicit path, then the
    ``PROFIT_SHARING_CONFIG`` environment variable, then the shipped
    ``sets/default.yaml``), parses it and emits a PROFIT_CONFIG_TRACE record.

Architecture position:
    Configuration -- sits above profit_kernel and profit_engines and below
    profit_services.  The kernel MUST NEVER import profit_config; the
    bridges module translates configuration into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the resolved file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema violations.
"""

from __future__ import annotations

import os
from pathlib import Path

from profit_config.bridges import (
    ConfigTierPolicySource,
    build_distribution_bounds,
    build_profit_rates,
    build_tier_policy,
)
from profit_config.loader import load_config
from profit_config.schema import ProfitSharingConfig
from profit_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_ENV_VAR = "PROFIT_SHARING_CONFIG"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> ProfitSharingConfig:
    """Load the active profit sharing configuration."""
    resolved = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    config = load_config(resolved)

    _logger.info(
        "PROFIT_CONFIG_TRACE",
        extra={
            "trace_type": "PROFIT_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(resolved),
            "tier_count": len(config.tiers),
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigTierPolicySource",
    "DEFAULT_CONFIG_PATH",
    "ProfitSharingConfig",
    "build_distribution_bounds",
    "build_profit_rates",
    "build_tier_policy",
    "get_active_config",
]
