"""
Domain DTOs -- frozen value objects passed between kernel layers.

Responsibility:
    Pure domain representations of shareholder accounts, ledger movements,
    profit sharing periods, distributions, commissions and tier policies.
    Services and adapters return these DTOs, never ORM entities.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All money fields are ``int`` minor units; rates are ``Decimal``.
    - DTOs are frozen; state changes produce new instances via
      ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4


def new_id() -> str:
    """Generate a new string identifier for a persisted record."""
    return str(uuid4())


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class PeriodStatus(str, Enum):
    """Lifecycle status of a profit sharing period.

    Transitions are PENDING -> PROCESSING -> COMPLETED.  COMPLETED is
    terminal unless reprocessing is explicitly forced.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment status of a distribution.  PAID and CANCELLED are terminal."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class EntryType(str, Enum):
    """Channel tag of a ledger movement."""

    INCOME = "income"
    EXPENSE = "expense"
    PROFIT_DISTRIBUTION = "profit_distribution"
    WITHDRAWAL = "withdrawal"
    COMMISSION = "commission"
    VIP_SUPPORT = "vip_support"
    BONUS = "bonus"
    TREASURY_ROLLOVER = "treasury_rollover"


class EntryStatus(str, Enum):
    """Approval status of a ledger movement."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


# Only finalized movements count toward profit figures and cumulative payouts.
FINALIZED_STATUSES: frozenset[EntryStatus] = frozenset(
    {EntryStatus.APPROVED, EntryStatus.PAID}
)

# Every channel through which money is paid out to an account.
PAYOUT_CHANNELS: frozenset[EntryType] = frozenset(
    {
        EntryType.PROFIT_DISTRIBUTION,
        EntryType.WITHDRAWAL,
        EntryType.COMMISSION,
        EntryType.VIP_SUPPORT,
        EntryType.BONUS,
    }
)


class CommissionStatus(str, Enum):
    """Status of a referral commission."""

    PENDING = "pending"
    COMPLETED = "completed"
    PAID = "paid"


class MaxoutKind(str, Enum):
    """How a tier's payout ceiling is derived."""

    UNLIMITED = "unlimited"
    INVESTMENT_MULTIPLE = "investment_multiple"
    ASSET_VALUE_PERCENTAGE = "asset_value_percentage"
    NONE = "none"


class AuditAction(str, Enum):
    """Types of auditable actions.

    Every member is one class of state change recorded through the Audit Sink.
    """

    # Period lifecycle
    PERIOD_PROCESSING_STARTED = "period_processing_started"
    PERIOD_COMPLETED = "period_completed"
    PERIOD_REPROCESSED = "period_reprocessed"

    # Reconciliation
    PROFIT_SHARING_REMAINDER = "profit_sharing_remainder"
    PROFIT_SHARING_RECONCILIATION_ERROR = "profit_sharing_reconciliation_error"

    # Payments
    DISTRIBUTION_PAID = "distribution_paid"
    DISTRIBUTION_CANCELLED = "distribution_cancelled"
    PAYMENT_BATCH_COMPLETED = "payment_batch_completed"
    COMMISSION_PAID = "commission_paid"

    # Accounts
    SHARES_AWARDED = "shares_awarded"
    MAXOUT_REACHED = "maxout_reached"


# ---------------------------------------------------------------------------
# Tier policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MaxoutRule:
    """Ceiling formula for a tier.

    ``factor`` is the investment multiple (e.g. 5 for 5x) for
    INVESTMENT_MULTIPLE, or the percentage (e.g. 210 for 210%) for
    ASSET_VALUE_PERCENTAGE.  Ignored for UNLIMITED and NONE.
    """

    kind: MaxoutKind
    factor: Decimal | None = None

    def __post_init__(self) -> None:
        needs_factor = self.kind in (
            MaxoutKind.INVESTMENT_MULTIPLE,
            MaxoutKind.ASSET_VALUE_PERCENTAGE,
        )
        if needs_factor and self.factor is None:
            raise ValueError(f"Maxout rule {self.kind.value} requires a factor")
        if self.factor is not None and self.factor < 0:
            raise ValueError("Maxout factor cannot be negative")


@dataclass(frozen=True)
class TierPolicy:
    """
    Business tier policy, immutable per deployment.

    ``nominal_maxout_multiplier`` is the descriptive, report-facing figure.
    It is never used for enforcement; a tier whose ``maxout.kind`` is NONE
    but which lists a nominal multiplier is a policy gap awaiting product
    clarification.
    """

    tier: str
    maxout: MaxoutRule
    share_multiplier: Decimal = Decimal("1")
    max_shares: int | None = None
    share_exempt: bool = False
    nominal_maxout_multiplier: Decimal | None = None
    description: str = ""

    @property
    def has_policy_gap(self) -> bool:
        return (
            self.maxout.kind == MaxoutKind.NONE
            and self.nominal_maxout_multiplier is not None
        )


# ---------------------------------------------------------------------------
# Accounts and ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShareholderAccount:
    """Shareholding account as supplied by the Shareholder Registry."""

    account_id: str
    business_tier: str
    total_shares: int = 0
    investment_amount: int = 0
    owned_asset_value: int = 0
    maxout_reached: bool = False
    available_balance: int = 0

    def __post_init__(self) -> None:
        if self.total_shares < 0:
            raise ValueError(f"Account {self.account_id}: shares cannot be negative")


@dataclass(frozen=True)
class LedgerMovement:
    """A dated, typed money movement."""

    entry_type: EntryType
    amount: int
    status: EntryStatus
    occurred_at: datetime
    account_id: str | None = None
    reference_id: str | None = None
    description: str = ""
    id: str = field(default_factory=new_id)

    @property
    def is_finalized(self) -> bool:
        return self.status in FINALIZED_STATUSES


# ---------------------------------------------------------------------------
# Periods and distributions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuarterlyProfit:
    """Profit figures for one quarter, all in minor units."""

    period_value: str
    revenue: int
    expenses: int
    profit: int
    corporate_tax: int
    net_profit_after_tax: int
    distributable_pool: int


@dataclass(frozen=True)
class ProfitSharingPeriodInfo:
    """Immutable snapshot of a profit sharing period record."""

    id: str
    period_type: str
    period_value: str
    status: PeriodStatus
    created_at: datetime
    total_revenue: int = 0
    total_expenses: int = 0
    net_profit: int = 0
    corporate_tax: int = 0
    net_profit_after_tax: int = 0
    distributable_pool: int = 0
    total_eligible_shares: int = 0
    profit_per_share: Decimal = Decimal("0")
    redistribution_rounds: int = 0
    remainder_booked: int = 0
    processed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == PeriodStatus.COMPLETED


@dataclass(frozen=True)
class DistributionInfo:
    """Immutable snapshot of one account's allocation in a period."""

    id: str
    period_id: str
    account_id: str
    shares_owned: int
    amount: int
    maxout_applied: bool
    payment_status: PaymentStatus
    created_at: datetime
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None


@dataclass(frozen=True)
class CommissionRecord:
    """Referral commission owed to (and partially paid to) a referrer."""

    id: str
    referrer_id: str
    commission_amount: int
    commission_paid: int = 0
    status: CommissionStatus = CommissionStatus.PENDING
    paid_at: datetime | None = None

    @property
    def outstanding(self) -> int:
        return self.commission_amount - self.commission_paid


@dataclass(frozen=True)
class MaxoutStatus:
    """Payout ceiling usage of one account.  ``limit`` is None when unlimited."""

    account_id: str
    business_tier: str
    limit: int | None
    current: int

    @property
    def headroom(self) -> int | None:
        if self.limit is None:
            return None
        return max(0, self.limit - self.current)

    @property
    def reached(self) -> bool:
        return self.limit is not None and self.current >= self.limit


@dataclass(frozen=True)
class AuditRecord:
    """A recorded audit event as returned by the Audit Sink."""

    seq: int
    action: AuditAction
    entity_type: str
    entity_id: str
    payload: dict[str, Any]
    occurred_at: datetime
    hash: str
    prev_hash: str | None = None
