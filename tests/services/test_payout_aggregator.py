"""Tests for CumulativePayoutAggregator."""

from datetime import datetime, timezone

from profit_kernel.domain.dtos import EntryStatus, EntryType
from profit_kernel.services.payout_aggregator import CumulativePayoutAggregator

AS_OF = datetime(2025, 7, 1, tzinfo=timezone.utc)


class TestCumulativePayout:

    def test_sums_every_payout_channel(self, store, record_movement):
        for entry_type in (
            EntryType.PROFIT_DISTRIBUTION,
            EntryType.WITHDRAWAL,
            EntryType.COMMISSION,
            EntryType.VIP_SUPPORT,
            EntryType.BONUS,
        ):
            record_movement(entry_type, 100, account_id="A")

        assert CumulativePayoutAggregator(store).cumulative_payout("A", AS_OF) == 500

    def test_ignores_non_payout_channels(self, store, record_movement):
        record_movement(EntryType.INCOME, 1_000, account_id="A")
        record_movement(EntryType.TREASURY_ROLLOVER, 1_000, account_id="A")

        assert CumulativePayoutAggregator(store).cumulative_payout("A", AS_OF) == 0

    def test_only_finalized_movements(self, store, record_movement):
        record_movement(EntryType.WITHDRAWAL, 100, account_id="A", status=EntryStatus.APPROVED)
        record_movement(EntryType.WITHDRAWAL, 200, account_id="A", status=EntryStatus.PAID)
        record_movement(EntryType.WITHDRAWAL, 400, account_id="A", status=EntryStatus.PENDING)
        record_movement(EntryType.WITHDRAWAL, 800, account_id="A", status=EntryStatus.REJECTED)

        assert CumulativePayoutAggregator(store).cumulative_payout("A", AS_OF) == 300

    def test_as_of_is_inclusive(self, store, record_movement):
        record_movement(EntryType.BONUS, 10, account_id="A", occurred_at=AS_OF)
        record_movement(
            EntryType.BONUS, 20, account_id="A", occurred_at=datetime(2025, 7, 2, tzinfo=timezone.utc)
        )

        assert CumulativePayoutAggregator(store).cumulative_payout("A", AS_OF) == 10

    def test_other_accounts_ignored(self, store, record_movement):
        record_movement(EntryType.BONUS, 10, account_id="B")
        assert CumulativePayoutAggregator(store).cumulative_payout("A", AS_OF) == 0

    def test_snapshot(self, store, record_movement):
        record_movement(EntryType.BONUS, 10, account_id="A")
        record_movement(EntryType.BONUS, 20, account_id="B")

        snapshot = CumulativePayoutAggregator(store).snapshot(["A", "B", "C"], AS_OF)
        assert snapshot == {"A": 10, "B": 20, "C": 0}
