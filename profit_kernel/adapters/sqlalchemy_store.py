"""
SQLAlchemy-backed implementation of the ledger, registry and persistence ports.

Responsibility:
    Translates port calls into ORM queries on the caller's ``Session`` and
    converts ORM rows into frozen domain DTOs.  ORM entities never leave
    this module.

Architecture position:
    Kernel > Adapters -- imperative shell.  Implements ``domain.ports``.

Invariants enforced:
    - Payment status and commission-paid changes are conditional UPDATEs
      (``... WHERE payment_status = :expected``) checked by rowcount, so two
      sessions racing on the same row cannot both succeed.
    - Balance changes are ``SET available_balance = available_balance + :delta``.
    - Datetimes are stored in UTC and read back timezone-aware.

Non-goals:
    - Does NOT call ``session.commit()`` -- the caller controls boundaries.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from profit_kernel.db.base import as_utc
from profit_kernel.domain.dtos import (
    CommissionRecord,
    CommissionStatus,
    DistributionInfo,
    EntryStatus,
    EntryType,
    LedgerMovement,
    PaymentStatus,
    PeriodStatus,
    ProfitSharingPeriodInfo,
    ShareholderAccount,
)
from profit_kernel.domain.ports import LedgerReader, PersistencePort, ShareholderRegistry
from profit_kernel.exceptions import AccountNotFoundError, PeriodKeyConflictError
from profit_kernel.logging_config import get_logger
from profit_kernel.models.commission import CommissionModel
from profit_kernel.models.ledger_entry import LedgerEntryModel
from profit_kernel.models.profit_sharing import DistributionModel, ProfitSharingPeriodModel
from profit_kernel.models.shareholder import ShareholderAccountModel
from profit_kernel.services.base import BaseService

logger = get_logger("adapters.sqlalchemy")

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_CONFLICT_AWARE_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _type_values(entry_types: Collection[EntryType]) -> list[str]:
    return [t.value for t in entry_types]


class SqlAlchemyStore(BaseService, LedgerReader, ShareholderRegistry, PersistencePort):
    """Session-backed store implementing the ledger, registry and persistence ports."""

    # -- seeding -----------------------------------------------------------

    def add_account(self, account: ShareholderAccount) -> ShareholderAccount:
        self.session.add(
            ShareholderAccountModel(
                id=account.account_id,
                business_tier=account.business_tier,
                total_shares=account.total_shares,
                investment_amount=account.investment_amount,
                owned_asset_value=account.owned_asset_value,
                maxout_reached=account.maxout_reached,
                available_balance=account.available_balance,
            )
        )
        self.session.flush()
        return account

    # -- LedgerReader ------------------------------------------------------

    def list_movements(
        self,
        start: datetime,
        end: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        query = select(LedgerEntryModel).where(
            LedgerEntryModel.occurred_at >= _utc(start),
            LedgerEntryModel.occurred_at <= _utc(end),
        )
        if entry_types is not None:
            query = query.where(LedgerEntryModel.entry_type.in_(_type_values(entry_types)))
        return [_movement(row) for row in self.session.execute(query).scalars()]

    def list_account_movements(
        self,
        account_id: str,
        as_of: datetime,
        entry_types: Collection[EntryType] | None = None,
    ) -> list[LedgerMovement]:
        query = select(LedgerEntryModel).where(
            LedgerEntryModel.account_id == account_id,
            LedgerEntryModel.occurred_at <= _utc(as_of),
        )
        if entry_types is not None:
            query = query.where(LedgerEntryModel.entry_type.in_(_type_values(entry_types)))
        return [_movement(row) for row in self.session.execute(query).scalars()]

    # -- ShareholderRegistry -----------------------------------------------

    def list_shareholders(self) -> list[ShareholderAccount]:
        rows = self.session.execute(
            select(ShareholderAccountModel)
            .where(ShareholderAccountModel.total_shares > 0)
            .order_by(ShareholderAccountModel.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [_account(row) for row in rows]

    def get_account(self, account_id: str) -> ShareholderAccount | None:
        row = self._fresh(ShareholderAccountModel, account_id)
        return _account(row) if row else None

    def set_total_shares(self, account_id: str, total_shares: int) -> ShareholderAccount:
        row = self._fresh(ShareholderAccountModel, account_id)
        if row is None:
            raise AccountNotFoundError(account_id)
        row.total_shares = total_shares
        self.session.flush()
        return _account(row)

    def set_maxout_reached(self, account_id: str, reached: bool = True) -> None:
        result = self.session.execute(
            update(ShareholderAccountModel)
            .where(ShareholderAccountModel.id == account_id)
            .values(maxout_reached=reached)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(account_id)

    # -- periods -----------------------------------------------------------

    def get_period(self, period_id: str) -> ProfitSharingPeriodInfo | None:
        row = self._fresh(ProfitSharingPeriodModel, period_id)
        return _period(row) if row else None

    def get_period_by_key(
        self, period_type: str, period_value: str
    ) -> ProfitSharingPeriodInfo | None:
        row = self.session.execute(
            select(ProfitSharingPeriodModel)
            .where(
                ProfitSharingPeriodModel.period_type == period_type,
                ProfitSharingPeriodModel.period_value == period_value,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _period(row) if row else None

    def save_period(self, period: ProfitSharingPeriodInfo) -> ProfitSharingPeriodInfo:
        row = self.session.get(ProfitSharingPeriodModel, period.id)
        if row is None:
            self._claim_period_key(period)
            row = self._fresh(ProfitSharingPeriodModel, period.id)
        row.period_type = period.period_type
        row.period_value = period.period_value
        row.status = period.status.value
        row.total_revenue = period.total_revenue
        row.total_expenses = period.total_expenses
        row.net_profit = period.net_profit
        row.corporate_tax = period.corporate_tax
        row.net_profit_after_tax = period.net_profit_after_tax
        row.distributable_pool = period.distributable_pool
        row.total_eligible_shares = period.total_eligible_shares
        row.profit_per_share = str(period.profit_per_share)
        row.redistribution_rounds = period.redistribution_rounds
        row.remainder_booked = period.remainder_booked
        row.processed_at = _utc(period.processed_at)
        self.session.flush()
        return period

    def _claim_period_key(self, period: ProfitSharingPeriodInfo) -> None:
        """
        Insert the period row unless its (period_type, period_value) is taken.

        A concurrent run that inserted the same key first makes this INSERT
        wait for that run to commit and then do nothing, instead of failing
        the session with an IntegrityError.

        Raises:
            PeriodKeyConflictError: The key belongs to another period row.
        """
        insert = _CONFLICT_AWARE_INSERTS[self.session.get_bind().dialect.name]
        result = self.session.execute(
            insert(ProfitSharingPeriodModel.__table__)
            .values(
                id=period.id,
                period_type=period.period_type,
                period_value=period.period_value,
                status=period.status.value,
                opened_at=_utc(period.created_at),
            )
            .on_conflict_do_nothing(index_elements=["period_type", "period_value"])
        )
        if result.rowcount == 0:
            logger.warning(
                "period_key_taken",
                extra={"period_type": period.period_type, "period_value": period.period_value},
            )
            raise PeriodKeyConflictError(period.period_type, period.period_value)

    # -- distributions -----------------------------------------------------

    def get_distribution(self, distribution_id: str) -> DistributionInfo | None:
        row = self._fresh(DistributionModel, distribution_id)
        return _distribution(row) if row else None

    def list_distributions(self, period_id: str) -> list[DistributionInfo]:
        rows = self.session.execute(
            select(DistributionModel)
            .where(DistributionModel.period_id == period_id)
            .order_by(DistributionModel.account_id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [_distribution(row) for row in rows]

    def add_distributions(self, distributions: Sequence[DistributionInfo]) -> None:
        self.session.add_all(
            DistributionModel(
                id=d.id,
                period_id=d.period_id,
                account_id=d.account_id,
                shares_owned=d.shares_owned,
                amount=d.amount,
                maxout_applied=d.maxout_applied,
                payment_status=d.payment_status.value,
                allocated_at=_utc(d.created_at),
                paid_at=_utc(d.paid_at),
                cancelled_at=_utc(d.cancelled_at),
            )
            for d in distributions
        )
        self.session.flush()

    def delete_distributions(self, period_id: str) -> int:
        result = self.session.execute(
            delete(DistributionModel)
            .where(DistributionModel.period_id == period_id)
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        logger.debug(
            "distributions_deleted",
            extra={"period_id": period_id, "count": result.rowcount},
        )
        return result.rowcount

    def transition_payment_status(
        self,
        distribution_id: str,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        at: datetime,
    ) -> DistributionInfo | None:
        values: dict = {"payment_status": new_status.value}
        if new_status == PaymentStatus.PAID:
            values["paid_at"] = _utc(at)
        elif new_status == PaymentStatus.CANCELLED:
            values["cancelled_at"] = _utc(at)

        result = self.session.execute(
            update(DistributionModel)
            .where(
                DistributionModel.id == distribution_id,
                DistributionModel.payment_status == expected.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.get_distribution(distribution_id)

    # -- ledger writes and balances ----------------------------------------

    def record_movement(self, movement: LedgerMovement) -> LedgerMovement:
        self.session.add(
            LedgerEntryModel(
                id=movement.id,
                entry_type=movement.entry_type.value,
                status=movement.status.value,
                amount=movement.amount,
                occurred_at=_utc(movement.occurred_at),
                account_id=movement.account_id,
                reference_id=movement.reference_id,
                description=movement.description,
            )
        )
        self.session.flush()
        return movement

    def delete_movements(self, reference_id: str, entry_type: EntryType) -> int:
        result = self.session.execute(
            delete(LedgerEntryModel)
            .where(
                LedgerEntryModel.reference_id == reference_id,
                LedgerEntryModel.entry_type == entry_type.value,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def adjust_balance(self, account_id: str, delta: int) -> None:
        result = self.session.execute(
            update(ShareholderAccountModel)
            .where(ShareholderAccountModel.id == account_id)
            .values(available_balance=ShareholderAccountModel.available_balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(account_id)

    # -- commissions -------------------------------------------------------

    def get_commission(self, commission_id: str) -> CommissionRecord | None:
        row = self._fresh(CommissionModel, commission_id)
        return _commission(row) if row else None

    def list_commissions(self, referrer_id: str) -> list[CommissionRecord]:
        rows = self.session.execute(
            select(CommissionModel)
            .where(CommissionModel.referrer_id == referrer_id)
            .order_by(CommissionModel.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [_commission(row) for row in rows]

    def add_commission(self, commission: CommissionRecord) -> CommissionRecord:
        self.session.add(
            CommissionModel(
                id=commission.id,
                referrer_id=commission.referrer_id,
                commission_amount=commission.commission_amount,
                commission_paid=commission.commission_paid,
                status=commission.status.value,
                paid_at=_utc(commission.paid_at),
            )
        )
        self.session.flush()
        return commission

    def update_commission_paid(
        self,
        commission_id: str,
        expected_paid: int,
        new_paid: int,
        new_status: CommissionStatus,
        at: datetime,
    ) -> CommissionRecord | None:
        result = self.session.execute(
            update(CommissionModel)
            .where(
                CommissionModel.id == commission_id,
                CommissionModel.commission_paid == expected_paid,
            )
            .values(commission_paid=new_paid, status=new_status.value, paid_at=_utc(at))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.get_commission(commission_id)

    # -- helpers -----------------------------------------------------------

    def _fresh(self, model, row_id: str):
        return self.session.execute(
            select(model)
            .where(model.id == row_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()


def _account(row: ShareholderAccountModel) -> ShareholderAccount:
    return ShareholderAccount(
        account_id=row.id,
        business_tier=row.business_tier,
        total_shares=row.total_shares,
        investment_amount=row.investment_amount,
        owned_asset_value=row.owned_asset_value,
        maxout_reached=row.maxout_reached,
        available_balance=row.available_balance,
    )


def _movement(row: LedgerEntryModel) -> LedgerMovement:
    return LedgerMovement(
        id=row.id,
        entry_type=EntryType(row.entry_type),
        amount=row.amount,
        status=EntryStatus(row.status),
        occurred_at=as_utc(row.occurred_at),
        account_id=row.account_id,
        reference_id=row.reference_id,
        description=row.description,
    )


def _period(row: ProfitSharingPeriodModel) -> ProfitSharingPeriodInfo:
    return ProfitSharingPeriodInfo(
        id=row.id,
        period_type=row.period_type,
        period_value=row.period_value,
        status=PeriodStatus(row.status),
        created_at=as_utc(row.opened_at),
        total_revenue=row.total_revenue,
        total_expenses=row.total_expenses,
        net_profit=row.net_profit,
        corporate_tax=row.corporate_tax,
        net_profit_after_tax=row.net_profit_after_tax,
        distributable_pool=row.distributable_pool,
        total_eligible_shares=row.total_eligible_shares,
        profit_per_share=Decimal(row.profit_per_share),
        redistribution_rounds=row.redistribution_rounds,
        remainder_booked=row.remainder_booked,
        processed_at=as_utc(row.processed_at),
    )


def _distribution(row: DistributionModel) -> DistributionInfo:
    return DistributionInfo(
        id=row.id,
        period_id=row.period_id,
        account_id=row.account_id,
        shares_owned=row.shares_owned,
        amount=row.amount,
        maxout_applied=row.maxout_applied,
        payment_status=PaymentStatus(row.payment_status),
        created_at=as_utc(row.allocated_at),
        paid_at=as_utc(row.paid_at),
        cancelled_at=as_utc(row.cancelled_at),
    )


def _commission(row: CommissionModel) -> CommissionRecord:
    return CommissionRecord(
        id=row.id,
        referrer_id=row.referrer_id,
        commission_amount=row.commission_amount,
        commission_paid=row.commission_paid,
        status=CommissionStatus(row.status),
        paid_at=as_utc(row.paid_at),
    )
