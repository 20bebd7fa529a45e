"""
Module: profit_engines.reconciliation
Responsibility:
    Check that a distribution accounts for its pool to the minor unit.

Architecture position:
    Engines -- pure calculation layer.  Booking the remainder and recording
    audit events is ReconciliationService's job.

Invariants enforced:
    - accounted_for = distributed + remainder; difference = expected -
      accounted_for.  A plan produced by DistributionEngine always has a zero
      difference; a non-zero one means the persisted records drifted from
      the plan.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from profit_engines.tracer import traced_engine


@dataclass(frozen=True)
class ReconciliationResult:
    expected: int
    distributed: int
    remainder: int
    accounted_for: int
    difference: int

    @property
    def is_balanced(self) -> bool:
        return self.difference == 0


@traced_engine("reconciliation", "1.0", fingerprint_fields=("pool", "amounts", "remainder"))
def reconcile_amounts(pool: int, amounts: Iterable[int], remainder: int) -> ReconciliationResult:
    distributed = sum(amounts)
    accounted_for = distributed + remainder
    return ReconciliationResult(
        expected=pool,
        distributed=distributed,
        remainder=remainder,
        accounted_for=accounted_for,
        difference=pool - accounted_for,
    )
