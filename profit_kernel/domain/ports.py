"""
Ports -- the engine's view of its external collaborators.

Responsibility:
    Abstract interfaces for everything the distribution engine reads from or
    writes to: the ledger, the shareholder registry, the tier policy table,
    period/distribution persistence and the audit trail.  Services receive
    implementations by constructor injection, so the algorithm is
    storage-agnostic and testable against the in-memory adapter.

Architecture position:
    Kernel > Domain -- interface definitions only, zero I/O.

Implementations:
    - ``profit_kernel.adapters.memory`` -- in-memory, thread-safe fakes.
    - ``profit_kernel.adapters.sqlalchemy_store`` -- SQLAlchemy session backed.
    - ``profit_kernel.services.auditor_service`` -- hash-chained SQL audit sink.
    - ``profit_config.ConfigTierPolicySource`` -- YAML tier policy table.

Concurrency contract:
    - ``transition_payment_status`` is a compare-and-set: it applies the new
      status only if the stored status equals ``expected``.
    - ``adjust_balance`` is an atomic increment, never read-modify-write.
    - ``update_commission_paid`` is a compare-and-set on ``commission_paid``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

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
    TierPolicy,
)
from profit_kernel.exceptions import AuditChainBrokenError
from profit_kernel.utils.hashing import GENESIS, hash_audit_event, hash_payload


class LedgerReader(ABC):
    """Read access to dated, typed money movements."""

    @abstractmethod
    def list_movements(
        self,
        start: datetime,
        end: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        """Movements with ``start <= occurred_at <= end``, any account."""
        ...

    @abstractmethod
    def list_account_movements(
        self,
        account_id: str,
        as_of: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        """Movements of one account with ``occurred_at <= as_of``."""
        ...


class ShareholderRegistry(ABC):
    """Per-account tier, shares, investment and asset value."""

    @abstractmethod
    def list_shareholders(self) -> list[ShareholderAccount]:
        """All accounts holding a positive number of shares."""
        ...

    @abstractmethod
    def get_account(self, account_id: str) -> ShareholderAccount | None:
        ...

    @abstractmethod
    def set_total_shares(self, account_id: str, total_shares: int) -> ShareholderAccount:
        ...

    @abstractmethod
    def set_maxout_reached(self, account_id: str, reached: bool = True) -> None:
        ...


class TierPolicySource(ABC):
    """Maxout and share rules per business tier."""

    @abstractmethod
    def get_policy(self, tier: str) -> TierPolicy:
        """Raises UnknownTierError when the tier is not configured."""
        ...

    @abstractmethod
    def list_policies(self) -> list[TierPolicy]:
        ...


class PersistencePort(ABC):
    """Period, distribution, ledger-write, balance and commission storage."""

    # -- periods -----------------------------------------------------------

    @abstractmethod
    def get_period(self, period_id: str) -> ProfitSharingPeriodInfo | None:
        ...

    @abstractmethod
    def get_period_by_key(
        self, period_type: str, period_value: str
    ) -> ProfitSharingPeriodInfo | None:
        ...

    @abstractmethod
    def save_period(self, period: ProfitSharingPeriodInfo) -> ProfitSharingPeriodInfo:
        """
        Insert or update (by id).

        Raises:
            PeriodKeyConflictError: A new period whose (period_type,
                period_value) already belongs to another row.
        """
        ...

    # -- distributions -----------------------------------------------------

    @abstractmethod
    def get_distribution(self, distribution_id: str) -> DistributionInfo | None:
        ...

    @abstractmethod
    def list_distributions(self, period_id: str) -> list[DistributionInfo]:
        ...

    @abstractmethod
    def add_distributions(self, distributions: Sequence[DistributionInfo]) -> None:
        ...

    @abstractmethod
    def delete_distributions(self, period_id: str) -> int:
        """Delete every distribution of a period; returns the count deleted."""
        ...

    @abstractmethod
    def transition_payment_status(
        self,
        distribution_id: str,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        at: datetime,
    ) -> DistributionInfo | None:
        """Compare-and-set.  Returns the updated DTO, or None if the stored
        status was not ``expected`` (or the distribution does not exist)."""
        ...

    # -- ledger writes and balances ----------------------------------------

    @abstractmethod
    def record_movement(self, movement: LedgerMovement) -> LedgerMovement:
        ...

    @abstractmethod
    def delete_movements(self, reference_id: str, entry_type: EntryType) -> int:
        ...

    @abstractmethod
    def adjust_balance(self, account_id: str, delta: int) -> None:
        """Atomically add ``delta`` (may be negative) to an account balance."""
        ...

    # -- commissions -------------------------------------------------------

    @abstractmethod
    def get_commission(self, commission_id: str) -> CommissionRecord | None:
        ...

    @abstractmethod
    def list_commissions(self, referrer_id: str) -> list[CommissionRecord]:
        ...

    @abstractmethod
    def add_commission(self, commission: CommissionRecord) -> CommissionRecord:
        ...

    @abstractmethod
    def update_commission_paid(
        self,
        commission_id: str,
        expected_paid: int,
        new_paid: int,
        new_status: CommissionStatus,
        at: datetime,
    ) -> CommissionRecord | None:
        """Compare-and-set on ``commission_paid``; None when it moved."""
        ...


class AuditSink(ABC):
    """Structured, append-only audit event recording."""

    @abstractmethod
    def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditRecord:
        ...

    @abstractmethod
    def list_records(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> list[AuditRecord]:
        ...

    def validate_chain(self) -> bool:
        """
        Recompute every record's hash and check each prev_hash link.

        Raises:
            AuditChainBrokenError: At the first record that does not verify.
        """
        previous: str | None = None
        for record in sorted(self.list_records(), key=lambda r: r.seq):
            if record.prev_hash != previous:
                raise AuditChainBrokenError(
                    record.seq, previous or GENESIS, record.prev_hash or GENESIS
                )
            expected = hash_audit_event(
                entity_type=record.entity_type,
                entity_id=record.entity_id,
                action=record.action.value,
                payload_hash=hash_payload(record.payload),
                prev_hash=record.prev_hash,
            )
            if record.hash != expected:
                raise AuditChainBrokenError(record.seq, expected, record.hash)
            previous = record.hash
        return True
