"""
profit_services.commission_service -- Referral commission payouts.

Responsibility:
    Pays referral commissions in full or in part.  Each payment raises
    ``commission_paid`` by compare-and-set and writes a paid ``commission``
    ledger movement, which counts toward the referrer's cumulative payout
    and therefore toward their maxout ceiling.

Architecture position:
    Services -- stateful orchestration over kernel ports.

Invariants enforced:
    - 0 <= commission_paid <= commission_amount at all times.
    - commission_paid never decreases.
    - Status becomes PAID exactly when the commission is fully settled.

Failure modes:
    - InvalidAmountError: payment amount not strictly positive.
    - CommissionOverpaymentError: payment exceeds the outstanding balance.
    - CommissionNotFoundError: unknown commission id.
    - ConflictError: the row kept changing under us across every retry.
      Batch payment reports it per commission instead of raising.

Audit relevance:
    - COMMISSION_PAID per payment with amount, new paid total and status.
"""

from __future__ import annotations

from dataclasses import dataclass

from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.dtos import (
    AuditAction,
    CommissionRecord,
    CommissionStatus,
    EntryStatus,
    EntryType,
    LedgerMovement,
)
from profit_kernel.domain.ports import AuditSink, PersistencePort
from profit_kernel.exceptions import (
    CommissionNotFoundError,
    CommissionOverpaymentError,
    ConflictError,
    InvalidAmountError,
)
from profit_kernel.logging_config import get_logger
from profit_kernel.services.locks import KeyedLock

logger = get_logger("services.commission")

COMMISSION_ENTITY = "referral_commission"

# Attempts at the compare-and-set before giving up on a contended row.
MAX_UPDATE_ATTEMPTS = 3

_COMMISSION_LOCKS = KeyedLock()


@dataclass(frozen=True)
class CommissionFailure:
    commission_id: str
    code: str
    message: str


@dataclass(frozen=True)
class CommissionBatchResult:
    """Outcome of paying every completed commission of a referrer."""

    referrer_id: str
    paid: tuple[CommissionRecord, ...]
    failures: tuple[CommissionFailure, ...]
    total_paid: int

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


class CommissionService:
    """
    Partial and full payment of referral commissions.

    Contract:
        ``mark_commission_paid`` either applies the whole payment or raises;
        it never pays part of the requested amount.

    Non-goals:
        - Does NOT create commissions; referral accounting does.
    """

    def __init__(
        self,
        persistence: PersistencePort,
        audit: AuditSink,
        clock: Clock | None = None,
        locks: KeyedLock | None = None,
    ):
        self._persistence = persistence
        self._audit = audit
        self._clock = clock or SystemClock()
        self._locks = locks if locks is not None else _COMMISSION_LOCKS

    def mark_commission_paid(self, commission_id: str, amount: int) -> CommissionRecord:
        """
        Pay ``amount`` against a commission.

        Args:
            commission_id: Commission to pay.
            amount: Minor units to pay, 0 < amount <= outstanding.

        Returns:
            The updated CommissionRecord.
        """
        if amount <= 0:
            raise InvalidAmountError(amount, "commission payment must be positive")

        with self._locks.hold(f"commission:{commission_id}"):
            updated = self._apply_payment(commission_id, amount)
            now = updated.paid_at or self._clock.now()
            self._persistence.record_movement(
                LedgerMovement(
                    entry_type=EntryType.COMMISSION,
                    amount=amount,
                    status=EntryStatus.PAID,
                    occurred_at=now,
                    account_id=updated.referrer_id,
                    reference_id=updated.id,
                    description=f"Referral commission {updated.id}",
                )
            )
            self._audit.record(
                AuditAction.COMMISSION_PAID,
                COMMISSION_ENTITY,
                updated.id,
                {
                    "referrer_id": updated.referrer_id,
                    "amount": amount,
                    "commission_paid": updated.commission_paid,
                    "status": updated.status.value,
                },
            )

        logger.info(
            "commission_paid",
            extra={
                "commission_id": updated.id,
                "referrer_id": updated.referrer_id,
                "amount": amount,
                "outstanding": updated.outstanding,
            },
        )
        return updated

    def _apply_payment(self, commission_id: str, amount: int) -> CommissionRecord:
        for attempt in range(1, MAX_UPDATE_ATTEMPTS + 1):
            current = self._persistence.get_commission(commission_id)
            if current is None:
                logger.warning("commission_not_found", extra={"commission_id": commission_id})
                raise CommissionNotFoundError(commission_id)
            if amount > current.outstanding:
                logger.warning(
                    "commission_overpayment_rejected",
                    extra={
                        "commission_id": commission_id,
                        "requested": amount,
                        "outstanding": current.outstanding,
                    },
                )
                raise CommissionOverpaymentError(commission_id, amount, current.outstanding)

            new_paid = current.commission_paid + amount
            status = (
                CommissionStatus.PAID
                if new_paid == current.commission_amount
                else current.status
            )
            updated = self._persistence.update_commission_paid(
                commission_id,
                expected_paid=current.commission_paid,
                new_paid=new_paid,
                new_status=status,
                at=self._clock.now(),
            )
            if updated is not None:
                return updated
            logger.debug(
                "commission_update_retry",
                extra={"commission_id": commission_id, "attempt": attempt},
            )

        logger.warning(
            "commission_update_contended",
            extra={"commission_id": commission_id, "attempts": MAX_UPDATE_ATTEMPTS},
        )
        raise ConflictError(
            f"Commission {commission_id} changed concurrently; payment not applied"
        )

    def process_commission_payments(self, referrer_id: str) -> CommissionBatchResult:
        """
        Pay the outstanding balance of every completed commission of a
        referrer.

        A commission whose payment fails is recorded in ``failures`` and the
        batch moves on to the next one.
        """
        paid: list[CommissionRecord] = []
        failures: list[CommissionFailure] = []
        total = 0
        for commission in self._persistence.list_commissions(referrer_id):
            if commission.status != CommissionStatus.COMPLETED or commission.outstanding <= 0:
                continue
            try:
                updated = self.mark_commission_paid(commission.id, commission.outstanding)
            except ConflictError as exc:
                logger.warning(
                    "commission_payment_skipped",
                    exc_info=exc,
                    extra={"commission_id": commission.id, "referrer_id": referrer_id},
                )
                failures.append(CommissionFailure(commission.id, exc.code, str(exc)))
                continue
            paid.append(updated)
            total += commission.outstanding

        logger.info(
            "commission_batch_completed",
            extra={
                "referrer_id": referrer_id,
                "total_paid": total,
                "paid_count": len(paid),
                "failed_count": len(failures),
            },
        )
        return CommissionBatchResult(
            referrer_id=referrer_id,
            paid=tuple(paid),
            failures=tuple(failures),
            total_paid=total,
        )
