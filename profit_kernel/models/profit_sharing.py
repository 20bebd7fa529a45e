"""
Module: profit_kernel.models.profit_sharing
Responsibility: ORM persistence for profit sharing periods and the
    per-account distributions they produce.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (period_type, period_value) is unique: one period row per quarter.
    - (period_id, account_id) is unique: one distribution per account per run.
    - payment_status moves pending -> paid or pending -> cancelled only,
      through conditional UPDATEs in the SQL adapter.

Audit relevance:
    Period completion, remainder booking and every payment transition
    produce audit events; these rows are the state those events describe.
"""

from datetime import datetime
from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from profit_kernel.db.base import TrackedBase
from profit_kernel.domain.dtos import PaymentStatus, PeriodStatus


class ProfitSharingPeriodModel(TrackedBase):
    """
    One quarterly profit sharing run.

    Guarantees:
        - The figures stored are the ones the distribution was computed from.
        - processed_at is set when status becomes COMPLETED.
    """

    __tablename__ = "profit_sharing_periods"

    __table_args__ = (
        UniqueConstraint("period_type", "period_value", name="uq_profit_period_key"),
        Index("idx_profit_period_status", "status"),
    )

    period_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # e.g. "2025-Q2"
    period_value: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(20), default=PeriodStatus.PENDING, nullable=False
    )

    total_revenue: Mapped[int] = mapped_column(default=0, nullable=False)
    total_expenses: Mapped[int] = mapped_column(default=0, nullable=False)
    net_profit: Mapped[int] = mapped_column(default=0, nullable=False)
    corporate_tax: Mapped[int] = mapped_column(default=0, nullable=False)
    net_profit_after_tax: Mapped[int] = mapped_column(default=0, nullable=False)
    distributable_pool: Mapped[int] = mapped_column(default=0, nullable=False)
    total_eligible_shares: Mapped[int] = mapped_column(default=0, nullable=False)

    # Informational only; allocation uses exact integer arithmetic.  Stored as
    # the Decimal string so SQLite round-trips it exactly.
    profit_per_share: Mapped[str] = mapped_column(String(40), default="0", nullable=False)

    redistribution_rounds: Mapped[int] = mapped_column(default=0, nullable=False)
    remainder_booked: Mapped[int] = mapped_column(default=0, nullable=False)

    # Clock-injected creation time (created_at is the server row timestamp)
    opened_at: Mapped[datetime] = mapped_column(nullable=False)

    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ProfitSharingPeriod {self.period_type} {self.period_value}: {self.status}>"


class DistributionModel(TrackedBase):
    """One account's allocation within a profit sharing period."""

    __tablename__ = "profit_distributions"

    __table_args__ = (
        UniqueConstraint("period_id", "account_id", name="uq_distribution_period_account"),
        Index("idx_distribution_status", "payment_status"),
    )

    period_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profit_sharing_periods.id"),
        nullable=False,
    )

    account_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # Share count snapshotted at run time
    shares_owned: Mapped[int] = mapped_column(nullable=False)

    amount: Mapped[int] = mapped_column(nullable=False)

    maxout_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    payment_status: Mapped[PaymentStatus] = mapped_column(
        String(20), default=PaymentStatus.PENDING, nullable=False
    )

    allocated_at: Mapped[datetime] = mapped_column(nullable=False)

    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Distribution {self.account_id} {self.amount} ({self.payment_status})>"
