"""Tests for referral commission payments (CommissionService)."""

from datetime import datetime, timezone

import pytest

from profit_kernel.domain.dtos import (
    AuditAction,
    CommissionRecord,
    CommissionStatus,
    EntryType,
)
from profit_kernel.exceptions import (
    CommissionNotFoundError,
    CommissionOverpaymentError,
    ConflictError,
    InvalidAmountError,
)
from profit_services.commission_service import MAX_UPDATE_ATTEMPTS

FAR_FUTURE = datetime(2100, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def add_commission(store):
    def _add(commission_id, amount, paid=0, referrer="R", status=CommissionStatus.COMPLETED):
        return store.add_commission(
            CommissionRecord(
                id=commission_id,
                referrer_id=referrer,
                commission_amount=amount,
                commission_paid=paid,
                status=status,
            )
        )

    return _add


class TestMarkCommissionPaid:

    def test_partial_payment(self, services, add_commission):
        add_commission("c1", 1_000)

        updated = services.commissions.mark_commission_paid("c1", 400)

        assert updated.commission_paid == 400
        assert updated.outstanding == 600
        assert updated.status == CommissionStatus.COMPLETED

    def test_full_payment_marks_paid(self, services, add_commission):
        add_commission("c1", 1_000, paid=400)

        updated = services.commissions.mark_commission_paid("c1", 600)

        assert updated.commission_paid == 1_000
        assert updated.status == CommissionStatus.PAID

    def test_overpayment_rejected(self, services, store, add_commission):
        add_commission("c1", 1_000, paid=900)

        with pytest.raises(CommissionOverpaymentError) as exc_info:
            services.commissions.mark_commission_paid("c1", 101)

        assert exc_info.value.outstanding == 100
        assert store.get_commission("c1").commission_paid == 900

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, services, add_commission, amount):
        add_commission("c1", 1_000)
        with pytest.raises(InvalidAmountError):
            services.commissions.mark_commission_paid("c1", amount)

    def test_unknown_commission(self, services):
        with pytest.raises(CommissionNotFoundError):
            services.commissions.mark_commission_paid("nope", 1)

    def test_payment_counts_toward_cumulative(self, services, store, add_account, add_commission):
        add_account("R", tier="angel", shares=10, investment=1_000)
        add_commission("c1", 1_000)

        services.commissions.mark_commission_paid("c1", 700)

        movements = store.list_account_movements(
            "R", FAR_FUTURE, entry_types=[EntryType.COMMISSION]
        )
        assert [m.amount for m in movements] == [700]
        assert services.profit_sharing.get_maxout_status("R").current == 700

    def test_audited(self, services, audit_sink, add_commission):
        add_commission("c1", 1_000)
        services.commissions.mark_commission_paid("c1", 1_000)

        record = audit_sink.list_records(entity_id="c1")[0]
        assert record.action == AuditAction.COMMISSION_PAID
        assert record.payload["status"] == "paid"

    def test_retries_lost_compare_and_set(self, services, store, monkeypatch, add_commission):
        add_commission("c1", 1_000)
        original = store.update_commission_paid
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                return None
            return original(*args, **kwargs)

        monkeypatch.setattr(store, "update_commission_paid", flaky)

        updated = services.commissions.mark_commission_paid("c1", 100)
        assert updated.commission_paid == 100
        assert len(calls) == 2

    def test_gives_up_after_max_attempts(self, services, store, monkeypatch, add_commission):
        add_commission("c1", 1_000)
        monkeypatch.setattr(store, "update_commission_paid", lambda *a, **k: None)

        with pytest.raises(ConflictError):
            services.commissions.mark_commission_paid("c1", 100)
        assert store.get_commission("c1").commission_paid == 0
        assert MAX_UPDATE_ATTEMPTS == 3


class TestProcessCommissionPayments:

    def test_pays_completed_commissions(self, services, store, add_commission):
        add_commission("c1", 1_000)
        add_commission("c2", 500, paid=200)
        add_commission("c3", 800, status=CommissionStatus.PENDING)
        add_commission("c4", 300, referrer="other")

        result = services.commissions.process_commission_payments("R")

        assert result.total_paid == 1_300
        assert result.all_succeeded
        assert sorted(c.id for c in result.paid) == ["c1", "c2"]
        assert store.get_commission("c1").status == CommissionStatus.PAID
        assert store.get_commission("c2").commission_paid == 500
        assert store.get_commission("c3").commission_paid == 0
        assert store.get_commission("c4").commission_paid == 0

    def test_nothing_to_pay(self, services):
        result = services.commissions.process_commission_payments("R")
        assert result.total_paid == 0
        assert result.paid == ()
        assert result.failures == ()

    def test_contended_commission_skipped(
        self, services, store, monkeypatch, captured_logs, add_commission
    ):
        add_commission("c1", 1_000)
        add_commission("c2", 500)
        original = store.update_commission_paid

        def contended_c1(commission_id, *args, **kwargs):
            if commission_id == "c1":
                return None
            return original(commission_id, *args, **kwargs)

        monkeypatch.setattr(store, "update_commission_paid", contended_c1)

        result = services.commissions.process_commission_payments("R")

        assert result.total_paid == 500
        assert [c.id for c in result.paid] == ["c2"]
        assert not result.all_succeeded
        (failure,) = result.failures
        assert failure.commission_id == "c1"
        assert failure.code == ConflictError.code
        assert "c1" in failure.message
        assert store.get_commission("c1").commission_paid == 0
        skipped = [r for r in captured_logs() if r["message"] == "commission_payment_skipped"]
        assert [r["commission_id"] for r in skipped] == ["c1"]
