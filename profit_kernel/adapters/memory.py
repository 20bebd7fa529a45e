"""
In-memory adapters for the profit kernel ports.

Responsibility:
    Thread-safe, dictionary-backed implementations of ``LedgerReader``,
    ``ShareholderRegistry``, ``PersistencePort`` and ``AuditSink``.  Used by
    the test suite and by callers that embed the engine without a database.

Architecture position:
    Kernel > Adapters -- imperative shell.  Implements ``domain.ports``.

Concurrency:
    Every read and write happens under one re-entrant store lock, so the
    compare-and-set and atomic-increment contracts of the ports hold under
    concurrent threads.
"""

from __future__ import annotations

import threading
from collections.abc import Collection, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.dtos import (
    AuditAction,
    AuditRecord,
    CommissionRecord,
    CommissionStatus,
    DistributionInfo,
    EntryType,
    LedgerMovement,
    PaymentStatus,
    ProfitSharingPeriodInfo,
    ShareholderAccount,
)
from profit_kernel.domain.ports import (
    AuditSink,
    LedgerReader,
    PersistencePort,
    ShareholderRegistry,
)
from profit_kernel.exceptions import AccountNotFoundError, PeriodKeyConflictError
from profit_kernel.logging_config import get_logger
from profit_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("adapters.memory")


class InMemoryStore(LedgerReader, ShareholderRegistry, PersistencePort):
    """Single in-process store implementing the ledger, registry and
    persistence ports."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[str, ShareholderAccount] = {}
        self._movements: dict[str, LedgerMovement] = {}
        self._periods: dict[str, ProfitSharingPeriodInfo] = {}
        self._distributions: dict[str, DistributionInfo] = {}
        self._commissions: dict[str, CommissionRecord] = {}

    # -- seeding -----------------------------------------------------------

    def add_account(self, account: ShareholderAccount) -> ShareholderAccount:
        with self._lock:
            self._accounts[account.account_id] = account
        return account

    # -- LedgerReader ------------------------------------------------------

    def list_movements(
        self,
        start: datetime,
        end: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        with self._lock:
            return [
                m for m in self._movements.values()
                if start <= m.occurred_at <= end
                and (entry_types is None or m.entry_type in entry_types)
            ]

    def list_account_movements(
        self,
        account_id: str,
        as_of: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        with self._lock:
            return [
                m for m in self._movements.values()
                if m.account_id == account_id
                and m.occurred_at <= as_of
                and (entry_types is None or m.entry_type in entry_types)
            ]

    # -- ShareholderRegistry -----------------------------------------------

    def list_shareholders(self) -> list[ShareholderAccount]:
        with self._lock:
            return [a for a in self._accounts.values() if a.total_shares > 0]

    def get_account(self, account_id: str) -> ShareholderAccount | None:
        with self._lock:
            return self._accounts.get(account_id)

    def set_total_shares(self, account_id: str, total_shares: int) -> ShareholderAccount:
        with self._lock:
            account = self._require_account(account_id)
            updated = replace(account, total_shares=total_shares)
            self._accounts[account_id] = updated
            return updated

    def set_maxout_reached(self, account_id: str, reached: bool = True) -> None:
        with self._lock:
            account = self._require_account(account_id)
            self._accounts[account_id] = replace(account, maxout_reached=reached)

    def _require_account(self, account_id: str) -> ShareholderAccount:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    # -- periods -----------------------------------------------------------

    def get_period(self, period_id: str) -> ProfitSharingPeriodInfo | None:
        with self._lock:
            return self._periods.get(period_id)

    def get_period_by_key(
        self, period_type: str, period_value: str
    ) -> ProfitSharingPeriodInfo | None:
        with self._lock:
            for period in self._periods.values():
                if (period.period_type, period.period_value) == (period_type, period_value):
                    return period
            return None

    def save_period(self, period: ProfitSharingPeriodInfo) -> ProfitSharingPeriodInfo:
        with self._lock:
            existing = self.get_period_by_key(period.period_type, period.period_value)
            if existing is not None and existing.id != period.id:
                raise PeriodKeyConflictError(period.period_type, period.period_value)
            self._periods[period.id] = period
            return period

    # -- distributions -----------------------------------------------------

    def get_distribution(self, distribution_id: str) -> DistributionInfo | None:
        with self._lock:
            return self._distributions.get(distribution_id)

    def list_distributions(self, period_id: str) -> list[DistributionInfo]:
        with self._lock:
            return [d for d in self._distributions.values() if d.period_id == period_id]

    def add_distributions(self, distributions: Sequence[DistributionInfo]) -> None:
        with self._lock:
            for distribution in distributions:
                self._distributions[distribution.id] = distribution

    def delete_distributions(self, period_id: str) -> int:
        with self._lock:
            doomed = [d.id for d in self._distributions.values() if d.period_id == period_id]
            for distribution_id in doomed:
                del self._distributions[distribution_id]
            return len(doomed)

    def transition_payment_status(
        self,
        distribution_id: str,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        at: datetime,
    ) -> DistributionInfo | None:
        with self._lock:
            current = self._distributions.get(distribution_id)
            if current is None or current.payment_status != expected:
                return None
            if new_status == PaymentStatus.PAID:
                updated = replace(current, payment_status=new_status, paid_at=at)
            elif new_status == PaymentStatus.CANCELLED:
                updated = replace(current, payment_status=new_status, cancelled_at=at)
            else:
                updated = replace(current, payment_status=new_status)
            self._distributions[distribution_id] = updated
            return updated

    # -- ledger writes and balances ----------------------------------------

    def record_movement(self, movement: LedgerMovement) -> LedgerMovement:
        with self._lock:
            self._movements[movement.id] = movement
        return movement

    def delete_movements(self, reference_id: str, entry_type: EntryType) -> int:
        with self._lock:
            doomed = [
                m.id for m in self._movements.values()
                if m.reference_id == reference_id and m.entry_type == entry_type
            ]
            for movement_id in doomed:
                del self._movements[movement_id]
            return len(doomed)

    def adjust_balance(self, account_id: str, delta: int) -> None:
        with self._lock:
            account = self._require_account(account_id)
            self._accounts[account_id] = replace(
                account, available_balance=account.available_balance + delta
            )

    # -- commissions -------------------------------------------------------

    def get_commission(self, commission_id: str) -> CommissionRecord | None:
        with self._lock:
            return self._commissions.get(commission_id)

    def list_commissions(self, referrer_id: str) -> list[CommissionRecord]:
        with self._lock:
            return [c for c in self._commissions.values() if c.referrer_id == referrer_id]

    def add_commission(self, commission: CommissionRecord) -> CommissionRecord:
        with self._lock:
            self._commissions[commission.id] = commission
        return commission

    def update_commission_paid(
        self,
        commission_id: str,
        expected_paid: int,
        new_paid: int,
        new_status: CommissionStatus,
        at: datetime,
    ) -> CommissionRecord | None:
        with self._lock:
            current = self._commissions.get(commission_id)
            if current is None or current.commission_paid != expected_paid:
                return None
            updated = replace(
                current, commission_paid=new_paid, status=new_status, paid_at=at
            )
            self._commissions[commission_id] = updated
            return updated


class InMemoryAuditSink(AuditSink):
    """Append-only, hash-chained audit trail held in a list."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._records: list[AuditRecord] = []

    def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditRecord:
        payload_data = dict(payload or {})
        with self._lock:
            prev_hash = self._records[-1].hash if self._records else None
            event_hash = hash_audit_event(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action.value,
                payload_hash=hash_payload(payload_data),
                prev_hash=prev_hash,
            )
            record = AuditRecord(
                seq=len(self._records) + 1,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                payload=payload_data,
                occurred_at=self._clock.now(),
                hash=event_hash,
                prev_hash=prev_hash,
            )
            self._records.append(record)

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action.value,
                "seq": record.seq,
            },
        )
        return record

    def list_records(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> list[AuditRecord]:
        with self._lock:
            return [
                r for r in self._records
                if (entity_type is None or r.entity_type == entity_type)
                and (entity_id is None or r.entity_id == entity_id)
            ]
