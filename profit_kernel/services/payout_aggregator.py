"""
CumulativePayoutAggregator -- lifetime payouts per account.

Responsibility:
    Sums every finalized payout-channel movement (profit distributions,
    approved withdrawals, commissions, VIP support, bonuses) an account has
    received up to a point in time.  The distribution engine compares this
    figure against the account's ceiling to find its headroom.

Architecture position:
    Kernel > Services -- read-only, depends on the ``LedgerReader`` port.

Invariants enforced:
    - Only APPROVED or PAID movements count.  Pending distributions from the
      current run are tracked by the engine itself, not re-read here.
"""

from collections.abc import Iterable
from datetime import datetime

from profit_kernel.domain.dtos import FINALIZED_STATUSES, PAYOUT_CHANNELS
from profit_kernel.domain.ports import LedgerReader
from profit_kernel.logging_config import get_logger

logger = get_logger("services.payout_aggregator")


class CumulativePayoutAggregator:
    """Read-side service computing cumulative payouts from the ledger."""

    def __init__(self, ledger: LedgerReader):
        self._ledger = ledger

    def cumulative_payout(self, account_id: str, as_of: datetime) -> int:
        movements = self._ledger.list_account_movements(
            account_id, as_of, entry_types=PAYOUT_CHANNELS
        )
        return sum(m.amount for m in movements if m.status in FINALIZED_STATUSES)

    def snapshot(self, account_ids: Iterable[str], as_of: datetime) -> dict[str, int]:
        """Cumulative payout of every given account, taken once per run."""
        totals = {
            account_id: self.cumulative_payout(account_id, as_of)
            for account_id in account_ids
        }
        logger.debug(
            "cumulative_payout_snapshot",
            extra={"account_count": len(totals), "as_of": as_of},
        )
        return totals
