"""Tests for distribution payment, cancellation and batch payment."""

from datetime import datetime, timezone

import pytest

from profit_kernel.domain.dtos import AuditAction, EntryType, PaymentStatus
from profit_kernel.exceptions import (
    ConflictError,
    DistributionAlreadyPaidError,
    DistributionCancelledError,
    DistributionNotFoundError,
    PeriodNotFoundError,
)

FAR_FUTURE = datetime(2100, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def processed(services, book_profit, add_account):
    """Completed 2025-Q2 run: A (100 shares) and B (300 shares) founders."""
    book_profit(12_500_000)
    add_account("A", shares=100)
    add_account("B", shares=300)
    return services.profit_sharing.process_quarterly_distribution("quarter", "2025-Q2")


def _distribution_for(result, account_id):
    return next(d for d in result.distributions if d.account_id == account_id)


class TestMarkDistributionPaid:

    def test_marks_paid(self, services, store, deterministic_clock, processed):
        a = _distribution_for(processed, "A")

        paid = services.profit_sharing.mark_distribution_paid(a.id)

        assert paid.payment_status == PaymentStatus.PAID
        assert paid.paid_at == deterministic_clock.now()
        assert store.get_distribution(a.id).payment_status == PaymentStatus.PAID

    def test_records_paid_ledger_movement(self, services, store, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.mark_distribution_paid(a.id)

        movements = store.list_account_movements(
            "A", FAR_FUTURE, entry_types=[EntryType.PROFIT_DISTRIBUTION]
        )
        assert len(movements) == 1
        assert movements[0].amount == 1_225_000
        assert movements[0].reference_id == a.id

    def test_paid_amount_counts_toward_cumulative(self, services, processed):
        services.profit_sharing.mark_distribution_paid(_distribution_for(processed, "B").id)
        assert services.profit_sharing.get_maxout_status("B").current == 3_675_000

    def test_balance_is_not_credited_twice(self, services, store, processed):
        services.profit_sharing.mark_distribution_paid(_distribution_for(processed, "A").id)
        assert store.get_account("A").available_balance == 1_225_000

    def test_double_payment_rejected(self, services, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.mark_distribution_paid(a.id)

        with pytest.raises(DistributionAlreadyPaidError) as exc_info:
            services.profit_sharing.mark_distribution_paid(a.id)

        assert exc_info.value.distribution_id == a.id
        assert exc_info.value.paid_at == "2025-07-01T09:00:00+00:00"
        assert isinstance(exc_info.value, ConflictError)

    def test_double_payment_writes_one_ledger_movement(self, services, store, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.mark_distribution_paid(a.id)
        with pytest.raises(DistributionAlreadyPaidError):
            services.profit_sharing.mark_distribution_paid(a.id)

        movements = store.list_account_movements(
            "A", FAR_FUTURE, entry_types=[EntryType.PROFIT_DISTRIBUTION]
        )
        assert len(movements) == 1

    def test_unknown_distribution(self, services, captured_logs):
        with pytest.raises(DistributionNotFoundError):
            services.profit_sharing.mark_distribution_paid("missing")
        assert any(r["message"] == "distribution_not_found" for r in captured_logs())

    def test_zero_amount_writes_no_movement(
        self, services, store, book_profit, add_account, record_movement
    ):
        book_profit(12_500_000)
        add_account("A", tier="angel", shares=100, investment=100_000)
        add_account("B", shares=300)
        record_movement(EntryType.BONUS, 500_000, account_id="A")
        result = services.profit_sharing.process_quarterly_distribution("quarter", "2025-Q2")

        a = _distribution_for(result, "A")
        paid = services.profit_sharing.mark_distribution_paid(a.id)

        assert paid.payment_status == PaymentStatus.PAID
        assert store.list_account_movements(
            "A", FAR_FUTURE, entry_types=[EntryType.PROFIT_DISTRIBUTION]
        ) == []

    def test_audited(self, services, audit_sink, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.mark_distribution_paid(a.id)

        records = audit_sink.list_records(entity_id=a.id)
        assert [r.action for r in records] == [AuditAction.DISTRIBUTION_PAID]
        assert records[0].payload == {"account_id": "A", "amount": 1_225_000}


class TestCancelDistribution:

    def test_cancel_reverses_credit(self, services, store, processed):
        a = _distribution_for(processed, "A")

        cancelled = services.profit_sharing.cancel_distribution(a.id)

        assert cancelled.payment_status == PaymentStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert store.get_account("A").available_balance == 0

    def test_cancelled_cannot_be_paid(self, services, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.cancel_distribution(a.id)

        with pytest.raises(DistributionCancelledError):
            services.profit_sharing.mark_distribution_paid(a.id)

    def test_cancel_twice_rejected(self, services, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.cancel_distribution(a.id)

        with pytest.raises(DistributionCancelledError):
            services.profit_sharing.cancel_distribution(a.id)

    def test_paid_cannot_be_cancelled(self, services, store, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.mark_distribution_paid(a.id)

        with pytest.raises(DistributionAlreadyPaidError):
            services.profit_sharing.cancel_distribution(a.id)
        assert store.get_account("A").available_balance == 1_225_000

    def test_unknown_distribution(self, services):
        with pytest.raises(DistributionNotFoundError):
            services.profit_sharing.cancel_distribution("missing")

    def test_audited(self, services, audit_sink, processed):
        a = _distribution_for(processed, "A")
        services.profit_sharing.cancel_distribution(a.id)

        assert [r.action for r in audit_sink.list_records(entity_id=a.id)] == [
            AuditAction.DISTRIBUTION_CANCELLED
        ]


class TestProcessAllDistributionPayments:

    def test_pays_every_pending_distribution(self, services, store, processed):
        batch = services.profit_sharing.process_all_distribution_payments(processed.period.id)

        assert batch.all_succeeded
        assert batch.total_paid == 4_900_000
        assert len(batch.paid) == 2
        assert all(
            d.payment_status == PaymentStatus.PAID
            for d in store.list_distributions(processed.period.id)
        )

    def test_skips_settled_distributions(self, services, processed):
        services.profit_sharing.mark_distribution_paid(_distribution_for(processed, "A").id)
        services.profit_sharing.cancel_distribution(_distribution_for(processed, "B").id)

        batch = services.profit_sharing.process_all_distribution_payments(processed.period.id)

        assert batch.paid == ()
        assert batch.total_paid == 0
        assert batch.all_succeeded

    def test_second_batch_pays_nothing(self, services, processed):
        services.profit_sharing.process_all_distribution_payments(processed.period.id)
        again = services.profit_sharing.process_all_distribution_payments(processed.period.id)
        assert again.total_paid == 0

    def test_item_failures_are_collected(self, services, store, monkeypatch, processed):
        a = _distribution_for(processed, "A")
        original = store.transition_payment_status

        def lose_race_for_a(distribution_id, expected, new_status, at):
            if distribution_id == a.id:
                return None
            return original(distribution_id, expected, new_status, at)

        monkeypatch.setattr(store, "transition_payment_status", lose_race_for_a)

        batch = services.profit_sharing.process_all_distribution_payments(processed.period.id)

        assert not batch.all_succeeded
        assert batch.total_paid == 3_675_000
        assert [f.distribution_id for f in batch.failures] == [a.id]
        assert batch.failures[0].code == "DISTRIBUTION_ALREADY_PAID"

    def test_batch_audited_and_logged(self, services, audit_sink, captured_logs, processed):
        services.profit_sharing.process_all_distribution_payments(processed.period.id)

        batch_records = [
            r for r in audit_sink.list_records()
            if r.action == AuditAction.PAYMENT_BATCH_COMPLETED
        ]
        assert len(batch_records) == 1
        assert batch_records[0].payload["total_paid"] == 4_900_000
        assert batch_records[0].payload["failed"] == 0

        log = next(r for r in captured_logs() if r["message"] == "payment_batch_completed")
        assert log["level"] == "INFO"
        assert log["paid"] == 2

    def test_unknown_period(self, services):
        with pytest.raises(PeriodNotFoundError):
            services.profit_sharing.process_all_distribution_payments("missing")
