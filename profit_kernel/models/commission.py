"""
Module: profit_kernel.models.commission
Responsibility: ORM persistence for referral commissions and how much of
    each has been paid out.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - 0 <= commission_paid <= commission_amount (check constraint).
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from profit_kernel.db.base import TrackedBase
from profit_kernel.domain.dtos import CommissionStatus


class CommissionModel(TrackedBase):
    """A commission owed to a referrer."""

    __tablename__ = "referral_commissions"

    __table_args__ = (
        CheckConstraint(
            "commission_paid >= 0 AND commission_paid <= commission_amount",
            name="ck_commission_paid_range",
        ),
        Index("idx_commission_referrer", "referrer_id"),
    )

    referrer_id: Mapped[str] = mapped_column(String(36), nullable=False)

    commission_amount: Mapped[int] = mapped_column(nullable=False)

    commission_paid: Mapped[int] = mapped_column(default=0, nullable=False)

    status: Mapped[CommissionStatus] = mapped_column(
        String(20), default=CommissionStatus.PENDING, nullable=False
    )

    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Commission {self.referrer_id} {self.commission_paid}/{self.commission_amount}>"
