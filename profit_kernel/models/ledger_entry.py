"""
Module: profit_kernel.models.ledger_entry
Responsibility: ORM persistence for dated, typed money movements.
Architecture position: Kernel > Models.  May import from db/base.py only.

Income and expense rows feed the quarterly profit figure.  Payout-channel
rows (profit_distribution, withdrawal, commission, vip_support, bonus) feed
cumulative payouts.  treasury_rollover rows carry undistributed remainders.
"""

from datetime import datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from profit_kernel.db.base import TrackedBase
from profit_kernel.domain.dtos import EntryStatus, EntryType


class LedgerEntryModel(TrackedBase):
    """A single money movement.  amount is a non-negative VND figure."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_type_occurred", "entry_type", "occurred_at"),
        Index("idx_ledger_account_occurred", "account_id", "occurred_at"),
        Index("idx_ledger_reference", "reference_id"),
    )

    entry_type: Mapped[EntryType] = mapped_column(String(30), nullable=False)

    status: Mapped[EntryStatus] = mapped_column(String(20), nullable=False)

    amount: Mapped[int] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    # Null for company-level income/expense rows
    account_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Period id, distribution id or commission id that produced the row
    reference_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.entry_type} {self.amount} ({self.status})>"
