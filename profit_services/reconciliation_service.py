"""
profit_services.reconciliation_service -- Remainder booking and pool reconciliation.

Responsibility:
    Books the undistributed remainder of a quarterly pool to the treasury
    account as a ``treasury_rollover`` ledger movement, and reconciles the
    persisted distribution amounts plus that remainder against the pool.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes the pure ``profit_engines.reconciliation`` check with the
    Persistence Port (ledger write) and the Audit Sink.

Invariants enforced:
    - Pool conservation: sum(distribution amounts) + remainder == pool.
      Checked against what was actually persisted, not against the plan.
    - A remainder is booked at most once per period (the lifecycle manager
      deletes the prior rollover before a forced rerun).

Failure modes:
    - A non-zero difference is NEVER raised.  It produces a
      PROFIT_SHARING_RECONCILIATION_ERROR audit event and an ERROR log
      record carrying a PoolReconciliationError, and processing continues.

Audit relevance:
    - PROFIT_SHARING_REMAINDER: amount and redistribution rounds, one per
      period with a positive remainder.
    - PROFIT_SHARING_RECONCILIATION_ERROR: expected, accounted-for and
      difference figures.
"""

from __future__ import annotations

from collections.abc import Sequence

from profit_engines.distribution import DistributionPlan
from profit_engines.reconciliation import ReconciliationResult, reconcile_amounts
from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.dtos import (
    AuditAction,
    DistributionInfo,
    EntryStatus,
    EntryType,
    LedgerMovement,
    ProfitSharingPeriodInfo,
)
from profit_kernel.domain.ports import AuditSink, PersistencePort
from profit_kernel.exceptions import PoolReconciliationError
from profit_kernel.logging_config import get_logger

logger = get_logger("services.reconciliation")

DEFAULT_TREASURY_ACCOUNT = "system"
PERIOD_ENTITY = "profit_sharing_period"


class ReconciliationService:
    """
    Books remainders and checks pool conservation for a processed period.

    Contract:
        ``settle`` is called once per processing run, after the run's
        distributions have been persisted.

    Guarantees:
        - Returns the ReconciliationResult whether or not it balances.
        - Never raises on a reconciliation mismatch.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT redistribute the remainder.
    """

    def __init__(
        self,
        persistence: PersistencePort,
        audit: AuditSink,
        clock: Clock | None = None,
        treasury_account_id: str = DEFAULT_TREASURY_ACCOUNT,
    ):
        self._persistence = persistence
        self._audit = audit
        self._clock = clock or SystemClock()
        self._treasury_account_id = treasury_account_id

    @property
    def treasury_account_id(self) -> str:
        return self._treasury_account_id

    def book_remainder(
        self,
        period: ProfitSharingPeriodInfo,
        remainder: int,
        rounds: int,
    ) -> LedgerMovement | None:
        """Record the treasury rollover for ``remainder``; None when zero."""
        if remainder <= 0:
            return None

        movement = self._persistence.record_movement(
            LedgerMovement(
                entry_type=EntryType.TREASURY_ROLLOVER,
                amount=remainder,
                status=EntryStatus.APPROVED,
                occurred_at=self._clock.now(),
                account_id=self._treasury_account_id,
                reference_id=period.id,
                description=(
                    f"Profit sharing {period.period_value} remainder: {remainder} "
                    f"after {rounds} redistribution rounds"
                ),
            )
        )
        self._audit.record(
            AuditAction.PROFIT_SHARING_REMAINDER,
            PERIOD_ENTITY,
            period.id,
            {
                "period_value": period.period_value,
                "amount": remainder,
                "rounds": rounds,
                "treasury_account_id": self._treasury_account_id,
            },
        )
        logger.info(
            "remainder_booked",
            extra={
                "period_id": period.id,
                "amount": remainder,
                "rounds": rounds,
                "movement_id": movement.id,
            },
        )
        return movement

    def settle(
        self,
        period: ProfitSharingPeriodInfo,
        plan: DistributionPlan,
        distributions: Sequence[DistributionInfo],
    ) -> ReconciliationResult:
        """
        Book the plan's remainder, then reconcile persisted amounts.

        Args:
            period: The period being processed (already persisted).
            plan: The engine's plan for the period's pool.
            distributions: Distribution records as persisted for this run.

        Returns:
            ReconciliationResult of pool vs. persisted amounts + remainder.
        """
        self.book_remainder(period, plan.remainder, plan.rounds)

        result = reconcile_amounts(
            plan.pool, [d.amount for d in distributions], plan.remainder
        )
        if not result.is_balanced:
            self._report_mismatch(period, result)
        else:
            logger.info(
                "pool_reconciled",
                extra={
                    "period_id": period.id,
                    "expected": result.expected,
                    "distributed": result.distributed,
                    "remainder": result.remainder,
                },
            )
        return result

    def _report_mismatch(
        self,
        period: ProfitSharingPeriodInfo,
        result: ReconciliationResult,
    ) -> None:
        error = PoolReconciliationError(
            period.period_value, result.expected, result.accounted_for
        )
        self._audit.record(
            AuditAction.PROFIT_SHARING_RECONCILIATION_ERROR,
            PERIOD_ENTITY,
            period.id,
            {
                "period_value": period.period_value,
                "expected": result.expected,
                "accounted_for": result.accounted_for,
                "difference": result.difference,
            },
        )
        logger.error(
            "pool_reconciliation_failed",
            exc_info=error,
            extra={
                "period_id": period.id,
                "expected": result.expected,
                "accounted_for": result.accounted_for,
                "difference": result.difference,
            },
        )
