"""
Module: profit_kernel.models.shareholder
Responsibility: ORM persistence for shareholding accounts -- tier, share count,
    investment and asset value, maxout flag and available balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - total_shares >= 0 (check constraint).
    - available_balance only changes through atomic ``balance + delta``
      UPDATEs issued by the SQL adapter, never read-modify-write.
"""

from sqlalchemy import Boolean, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from profit_kernel.db.base import TrackedBase


class ShareholderAccountModel(TrackedBase):
    """
    A shareholding account.

    Contract:
        Rows are created by onboarding code outside this package.  The profit
        sharing services only mutate total_shares, maxout_reached and
        available_balance.
    """

    __tablename__ = "shareholder_accounts"

    __table_args__ = (
        CheckConstraint("total_shares >= 0", name="ck_shareholder_shares_nonneg"),
        Index("idx_shareholder_tier", "business_tier"),
    )

    business_tier: Mapped[str] = mapped_column(String(50), nullable=False)

    total_shares: Mapped[int] = mapped_column(default=0, nullable=False)

    # Cash invested, in VND
    investment_amount: Mapped[int] = mapped_column(default=0, nullable=False)

    # Value of the asset (e.g. card) the account owns, in VND
    owned_asset_value: Mapped[int] = mapped_column(default=0, nullable=False)

    maxout_reached: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    available_balance: Mapped[int] = mapped_column(default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ShareholderAccount {self.id} {self.business_tier}: {self.total_shares} shares>"
