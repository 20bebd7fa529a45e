"""
Module: profit_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by
    profit_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import profit_kernel.domain, profit_kernel.exceptions and
    profit_kernel.logging_config (and sibling engine modules).
    MUST NOT import profit_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  Instants are passed in.
    - Integer minor-unit money; Decimal rates; no floats.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped with ``@traced_engine`` and emit
    PROFIT_ENGINE_TRACE records carrying an input fingerprint.
"""

from profit_engines.distribution import (
    DistributionBounds,
    DistributionCandidate,
    DistributionEngine,
    DistributionLine,
    DistributionPlan,
)
from profit_engines.maxout import (
    Ceiling,
    MaxoutPolicyResolver,
    PolicyGap,
    PolicyGapReport,
    find_policy_gaps,
    resolve_ceiling,
)
from profit_engines.profit import ProfitRates, QuarterlyProfitCalculator
from profit_engines.quarter import QUARTER_PERIOD_TYPE, QuarterBounds, validate_quarter
from profit_engines.reconciliation import ReconciliationResult, reconcile_amounts
from profit_engines.shares import DEFAULT_SHARE_UNIT, ShareAward, calculate_share_award
from profit_engines.tracer import traced_engine

__all__ = [
    "Ceiling",
    "DEFAULT_SHARE_UNIT",
    "DistributionBounds",
    "DistributionCandidate",
    "DistributionEngine",
    "DistributionLine",
    "DistributionPlan",
    "MaxoutPolicyResolver",
    "PolicyGap",
    "PolicyGapReport",
    "ProfitRates",
    "QUARTER_PERIOD_TYPE",
    "QuarterBounds",
    "QuarterlyProfitCalculator",
    "ReconciliationResult",
    "ShareAward",
    "calculate_share_award",
    "find_policy_gaps",
    "reconcile_amounts",
    "resolve_ceiling",
    "traced_engine",
    "validate_quarter",
]
