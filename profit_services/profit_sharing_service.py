"""
profit_services.profit_sharing_service -- Quarterly period lifecycle.

Responsibility:
    Drives a profit sharing period through pending -> processing ->
    completed: validates the quarter, computes its distributable pool,
    allocates the pool across shareholders under their payout ceilings,
    persists the distributions, credits balances, books the remainder and
    records the audit trail.  Also owns the payment side of distributions
    (mark paid, batch pay, cancel) and the per-account maxout query.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Reads through the LedgerReader / ShareholderRegistry ports, writes
    through the PersistencePort and AuditSink.  Calculation is delegated to
    profit_engines; this module never does allocation arithmetic itself.

Invariants enforced:
    - One processing run per (period_type, period_value) at a time within a
      process (KeyedLock).  Across sessions the period key is claimed with a
      conflict-aware INSERT; a run that loses the claim re-reads the period
      once and goes through the completed/force checks again.
    - A completed period is never reprocessed without ``force``.
    - Every rejection (ValidationError, StateError) happens before the
      first mutation of the run.
    - Forced reprocessing never discards a paid distribution.  Pending ones
      are deleted and their balance credits reversed.
    - Payment status moves only pending -> paid or pending -> cancelled,
      by compare-and-set.

Failure modes:
    - InvalidPeriodTypeError / InvalidPeriodValueError: bad period key.
    - UnknownTierError: a shareholder's tier is not in the policy table.
    - NoProfitToDistributeError: quarter not strictly profitable.
    - NoEligibleSharesError: nobody holds eligible shares.
    - PeriodAlreadyCompletedError: completed and not forced.
    - PaidDistributionsExistError: forced over already-paid distributions.
    - DistributionAlreadyPaidError / DistributionCancelledError: payment
      race lost or terminal state.
    - DistributionNotFoundError / PeriodNotFoundError / AccountNotFoundError.

Audit relevance:
    - PERIOD_PROCESSING_STARTED, PERIOD_REPROCESSED, PERIOD_COMPLETED.
    - MAXOUT_REACHED per account that hit its ceiling in the run.
    - DISTRIBUTION_PAID, DISTRIBUTION_CANCELLED, PAYMENT_BATCH_COMPLETED.
    - Remainder / reconciliation events via ReconciliationService.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from profit_engines.distribution import (
    DistributionBounds,
    DistributionCandidate,
    DistributionEngine,
    DistributionPlan,
)
from profit_engines.maxout import MaxoutPolicyResolver, PolicyGapReport, find_policy_gaps
from profit_engines.profit import ProfitRates, QuarterlyProfitCalculator
from profit_engines.quarter import QuarterBounds, validate_quarter
from profit_engines.reconciliation import ReconciliationResult
from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.dtos import (
    AuditAction,
    DistributionInfo,
    EntryStatus,
    EntryType,
    LedgerMovement,
    MaxoutStatus,
    PaymentStatus,
    PeriodStatus,
    ProfitSharingPeriodInfo,
    QuarterlyProfit,
    ShareholderAccount,
    new_id,
)
from profit_kernel.domain.money import per_share_rate
from profit_kernel.domain.ports import (
    AuditSink,
    LedgerReader,
    PersistencePort,
    ShareholderRegistry,
    TierPolicySource,
)
from profit_kernel.exceptions import (
    AccountNotFoundError,
    ConflictError,
    DistributionAlreadyPaidError,
    DistributionCancelledError,
    DistributionNotFoundError,
    NotFoundError,
    PaidDistributionsExistError,
    PeriodAlreadyCompletedError,
    PeriodKeyConflictError,
    PeriodNotFoundError,
)
from profit_kernel.logging_config import LogContext, get_logger
from profit_kernel.services.locks import KeyedLock
from profit_kernel.services.payout_aggregator import CumulativePayoutAggregator
from profit_services.reconciliation_service import (
    DEFAULT_TREASURY_ACCOUNT,
    PERIOD_ENTITY,
    ReconciliationService,
)

logger = get_logger("services.profit_sharing")

DISTRIBUTION_ENTITY = "profit_distribution"
ACCOUNT_ENTITY = "shareholder_account"

_PROFIT_ENTRY_TYPES = (EntryType.INCOME, EntryType.EXPENSE)

# Process-wide so that services built per session still serialize.
_PERIOD_LOCKS = KeyedLock()
_PAYMENT_LOCKS = KeyedLock()


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one quarterly processing run."""

    period: ProfitSharingPeriodInfo
    distributions: tuple[DistributionInfo, ...]
    reconciliation: ReconciliationResult

    @property
    def total_distributed(self) -> int:
        return sum(d.amount for d in self.distributions)


@dataclass(frozen=True)
class PaymentFailure:
    distribution_id: str
    code: str
    message: str


@dataclass(frozen=True)
class PaymentBatchResult:
    """Outcome of paying every pending distribution of a period."""

    period_id: str
    total_paid: int
    paid: tuple[DistributionInfo, ...]
    failures: tuple[PaymentFailure, ...]

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


def period_key(period_type: str, period_value: str) -> str:
    return f"{period_type}:{period_value}"


class ProfitSharingService:
    """
    Period lifecycle manager for quarterly profit sharing.

    Contract:
        Collaborators are injected; the service holds no state of its own
        beyond them.  Every public method either completes its mutation or
        raises a typed ProfitSharingError.

    Guarantees:
        - ``process_quarterly_distribution`` is idempotent without force:
          a second call for a completed period raises and writes nothing.
        - sum(distribution amounts) + remainder == pool for every
          completed run (checked and audited by ReconciliationService).
        - ``mark_distribution_paid`` succeeds at most once per distribution.

    Non-goals:
        - Does NOT commit; SQL callers wrap calls in ``session_scope``.
        - Does NOT schedule runs or enforce a calendar.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        registry: ShareholderRegistry,
        persistence: PersistencePort,
        policies: TierPolicySource,
        audit: AuditSink,
        clock: Clock | None = None,
        rates: ProfitRates | None = None,
        bounds: DistributionBounds | None = None,
        treasury_account_id: str = DEFAULT_TREASURY_ACCOUNT,
        period_locks: KeyedLock | None = None,
        payment_locks: KeyedLock | None = None,
    ):
        self._ledger = ledger
        self._registry = registry
        self._persistence = persistence
        self._policies = policies
        self._audit = audit
        self._clock = clock or SystemClock()
        self._period_locks = period_locks if period_locks is not None else _PERIOD_LOCKS
        self._payment_locks = payment_locks if payment_locks is not None else _PAYMENT_LOCKS

        self._calculator = QuarterlyProfitCalculator(rates)
        self._engine = DistributionEngine(bounds)
        self._resolver = MaxoutPolicyResolver(policies)
        self._aggregator = CumulativePayoutAggregator(ledger)
        self._reconciliation = ReconciliationService(
            persistence, audit, self._clock, treasury_account_id
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def validate_quarter(self, period_type: str, period_value: str) -> QuarterBounds:
        return validate_quarter(period_type, period_value)

    def calculate_quarterly_profit(
        self, period_type: str, period_value: str
    ) -> QuarterlyProfit:
        """Profit figures for a quarter, without requiring a profit."""
        bounds = validate_quarter(period_type, period_value)
        return self._calculator.summarize(bounds, self._quarter_movements(bounds))

    def get_maxout_status(self, account_id: str) -> MaxoutStatus:
        account = self._registry.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        cumulative = self._aggregator.cumulative_payout(account_id, self._clock.now())
        return self._resolver.status(account, cumulative)

    def policy_gaps(self) -> PolicyGapReport:
        """Tiers listing a nominal multiplier that nothing enforces."""
        return find_policy_gaps(self._policies.list_policies())

    def _quarter_movements(self, bounds: QuarterBounds) -> list[LedgerMovement]:
        return self._ledger.list_movements(
            bounds.start, bounds.end, entry_types=_PROFIT_ENTRY_TYPES
        )

    # =========================================================================
    # Processing
    # =========================================================================

    def process_quarterly_distribution(
        self,
        period_type: str,
        period_value: str,
        force: bool = False,
    ) -> ProcessingResult:
        """
        Compute and persist the distributions of one quarter.

        Args:
            period_type: Must be ``"quarter"``.
            period_value: ``YYYY-Qn``.
            force: Reprocess a completed period, replacing its pending
                distributions.

        Returns:
            ProcessingResult with the completed period, its distributions
            and the reconciliation outcome.
        """
        bounds = validate_quarter(period_type, period_value)
        key = period_key(period_type, period_value)

        with LogContext.bind(period_key=key, run_id=new_id()):
            with self._period_locks.hold(key):
                logger.info(
                    "distribution_started",
                    extra={"period_type": period_type, "period_value": period_value, "force": force},
                )
                return self._process(period_type, bounds, force)

    def _process(
        self,
        period_type: str,
        bounds: QuarterBounds,
        force: bool,
        retry_on_conflict: bool = True,
    ) -> ProcessingResult:
        period_value = bounds.period_value
        existing = self._persistence.get_period_by_key(period_type, period_value)
        prior: list[DistributionInfo] = []

        if existing is not None:
            if existing.is_completed and not force:
                logger.warning(
                    "period_already_completed",
                    extra={"period_id": existing.id, "period_value": period_value},
                )
                raise PeriodAlreadyCompletedError(period_type, period_value)
            prior = self._persistence.list_distributions(existing.id)
            paid_count = sum(1 for d in prior if d.payment_status == PaymentStatus.PAID)
            if paid_count:
                logger.warning(
                    "reprocess_blocked_by_paid_distributions",
                    extra={"period_id": existing.id, "paid_count": paid_count},
                )
                raise PaidDistributionsExistError(period_value, paid_count)

        # Everything that can reject the run happens before the first write.
        figures = self._calculator.calculate_pool(bounds, self._quarter_movements(bounds))
        now = self._clock.now()
        accounts = {a.account_id: a for a in self._eligible_accounts()}
        plan = self._engine.distribute(
            figures.distributable_pool,
            self._build_candidates(list(accounts.values()), now),
            period_value=period_value,
        )

        if existing is None:
            period = ProfitSharingPeriodInfo(
                id=new_id(),
                period_type=period_type,
                period_value=period_value,
                status=PeriodStatus.PROCESSING,
                created_at=now,
            )
        else:
            period = replace(existing, status=PeriodStatus.PROCESSING, processed_at=None)
        try:
            period = self._persistence.save_period(period)
        except PeriodKeyConflictError:
            if not retry_on_conflict:
                raise
            # A run in another session committed this quarter after our read.
            logger.warning("period_created_concurrently", extra={"period_value": period_value})
            return self._process(period_type, bounds, force, retry_on_conflict=False)
        self._audit.record(
            AuditAction.PERIOD_PROCESSING_STARTED,
            PERIOD_ENTITY,
            period.id,
            {"period_value": period_value, "force": force},
        )

        if existing is not None:
            self._discard_prior_run(period, prior)

        distributions = self._persist_plan(period, plan, now)
        self._flag_maxouts(period, plan, accounts)
        reconciliation = self._reconciliation.settle(period, plan, distributions)

        period = self._persistence.save_period(
            replace(
                period,
                status=PeriodStatus.COMPLETED,
                total_revenue=figures.revenue,
                total_expenses=figures.expenses,
                net_profit=figures.profit,
                corporate_tax=figures.corporate_tax,
                net_profit_after_tax=figures.net_profit_after_tax,
                distributable_pool=figures.distributable_pool,
                total_eligible_shares=plan.total_shares,
                profit_per_share=per_share_rate(plan.pool, plan.total_shares),
                redistribution_rounds=plan.rounds,
                remainder_booked=plan.remainder,
                processed_at=self._clock.now(),
            )
        )
        self._audit.record(
            AuditAction.PERIOD_COMPLETED,
            PERIOD_ENTITY,
            period.id,
            {
                "period_value": period_value,
                "pool": plan.pool,
                "distributed": plan.distributed,
                "remainder": plan.remainder,
                "rounds": plan.rounds,
                "accounts": len(distributions),
            },
        )
        logger.info(
            "distribution_completed",
            extra={
                "period_id": period.id,
                "pool": plan.pool,
                "distributed": plan.distributed,
                "remainder": plan.remainder,
                "rounds": plan.rounds,
                "balanced": reconciliation.is_balanced,
            },
        )
        return ProcessingResult(
            period=period,
            distributions=tuple(distributions),
            reconciliation=reconciliation,
        )

    def _eligible_accounts(self) -> list[ShareholderAccount]:
        """Shareholders whose tier takes part in profit sharing."""
        eligible = []
        for account in self._registry.list_shareholders():
            policy = self._resolver.policy_for(account.business_tier)
            if policy.share_exempt:
                logger.debug(
                    "share_exempt_account_skipped",
                    extra={"account_id": account.account_id, "tier": account.business_tier},
                )
                continue
            eligible.append(account)
        return eligible

    def _build_candidates(
        self,
        accounts: list[ShareholderAccount],
        as_of: datetime,
    ) -> list[DistributionCandidate]:
        cumulative = self._aggregator.snapshot([a.account_id for a in accounts], as_of)
        return [
            DistributionCandidate(
                account_id=account.account_id,
                shares=account.total_shares,
                ceiling=self._resolver.resolve_account(account),
                cumulative_before=cumulative[account.account_id],
            )
            for account in accounts
        ]

    def _discard_prior_run(
        self,
        period: ProfitSharingPeriodInfo,
        prior: list[DistributionInfo],
    ) -> None:
        reversed_total = 0
        for distribution in prior:
            if distribution.payment_status == PaymentStatus.PENDING and distribution.amount:
                self._persistence.adjust_balance(distribution.account_id, -distribution.amount)
                reversed_total += distribution.amount
        deleted = self._persistence.delete_distributions(period.id)
        rollovers = self._persistence.delete_movements(period.id, EntryType.TREASURY_ROLLOVER)

        self._audit.record(
            AuditAction.PERIOD_REPROCESSED,
            PERIOD_ENTITY,
            period.id,
            {
                "period_value": period.period_value,
                "distributions_deleted": deleted,
                "balance_reversed": reversed_total,
                "rollovers_deleted": rollovers,
            },
        )
        logger.info(
            "prior_run_discarded",
            extra={
                "period_id": period.id,
                "distributions_deleted": deleted,
                "balance_reversed": reversed_total,
                "rollovers_deleted": rollovers,
            },
        )

    def _persist_plan(
        self,
        period: ProfitSharingPeriodInfo,
        plan: DistributionPlan,
        now: datetime,
    ) -> list[DistributionInfo]:
        distributions = [
            DistributionInfo(
                id=new_id(),
                period_id=period.id,
                account_id=line.account_id,
                shares_owned=line.shares,
                amount=line.final_amount,
                maxout_applied=line.maxout_applied,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
            )
            for line in plan.lines
        ]
        self._persistence.add_distributions(distributions)
        for distribution in distributions:
            if distribution.amount > 0:
                self._persistence.adjust_balance(distribution.account_id, distribution.amount)
        return distributions

    def _flag_maxouts(
        self,
        period: ProfitSharingPeriodInfo,
        plan: DistributionPlan,
        accounts: dict[str, ShareholderAccount],
    ) -> None:
        for line in plan.lines:
            if not line.reached_ceiling or accounts[line.account_id].maxout_reached:
                continue
            self._registry.set_maxout_reached(line.account_id, True)
            self._audit.record(
                AuditAction.MAXOUT_REACHED,
                ACCOUNT_ENTITY,
                line.account_id,
                {
                    "period_id": period.id,
                    "limit": line.ceiling.limit,
                    "cumulative": line.cumulative_after,
                },
            )
            logger.info(
                "maxout_reached",
                extra={
                    "account_id": line.account_id,
                    "limit": line.ceiling.limit,
                    "cumulative": line.cumulative_after,
                },
            )

    # =========================================================================
    # Payments
    # =========================================================================

    def mark_distribution_paid(self, distribution_id: str) -> DistributionInfo:
        """
        Move one distribution from pending to paid.

        Records a paid ``profit_distribution`` ledger movement so that the
        payout counts toward the account's cumulative total from now on.

        Raises:
            DistributionNotFoundError: Unknown id.
            DistributionAlreadyPaidError: Already paid (or lost the race).
            DistributionCancelledError: Cancelled.
        """
        with self._payment_locks.hold(f"distribution:{distribution_id}"):
            current = self._persistence.get_distribution(distribution_id)
            if current is None:
                logger.warning("distribution_not_found", extra={"distribution_id": distribution_id})
                raise DistributionNotFoundError(distribution_id)

            now = self._clock.now()
            updated = self._persistence.transition_payment_status(
                distribution_id, PaymentStatus.PENDING, PaymentStatus.PAID, now
            )
            if updated is None:
                raise self._terminal_state_error(distribution_id, current)

            if updated.amount > 0:
                self._persistence.record_movement(
                    LedgerMovement(
                        entry_type=EntryType.PROFIT_DISTRIBUTION,
                        amount=updated.amount,
                        status=EntryStatus.PAID,
                        occurred_at=now,
                        account_id=updated.account_id,
                        reference_id=updated.id,
                        description=f"Profit distribution {updated.period_id}",
                    )
                )
            self._audit.record(
                AuditAction.DISTRIBUTION_PAID,
                DISTRIBUTION_ENTITY,
                updated.id,
                {"account_id": updated.account_id, "amount": updated.amount},
            )

        logger.info(
            "distribution_paid",
            extra={
                "distribution_id": updated.id,
                "account_id": updated.account_id,
                "amount": updated.amount,
            },
        )
        return updated

    def cancel_distribution(self, distribution_id: str) -> DistributionInfo:
        """Move a pending distribution to cancelled and reverse its credit."""
        with self._payment_locks.hold(f"distribution:{distribution_id}"):
            current = self._persistence.get_distribution(distribution_id)
            if current is None:
                logger.warning("distribution_not_found", extra={"distribution_id": distribution_id})
                raise DistributionNotFoundError(distribution_id)

            updated = self._persistence.transition_payment_status(
                distribution_id,
                PaymentStatus.PENDING,
                PaymentStatus.CANCELLED,
                self._clock.now(),
            )
            if updated is None:
                raise self._terminal_state_error(distribution_id, current)

            if updated.amount > 0:
                self._persistence.adjust_balance(updated.account_id, -updated.amount)
            self._audit.record(
                AuditAction.DISTRIBUTION_CANCELLED,
                DISTRIBUTION_ENTITY,
                updated.id,
                {"account_id": updated.account_id, "amount": updated.amount},
            )

        logger.info(
            "distribution_cancelled",
            extra={"distribution_id": updated.id, "amount": updated.amount},
        )
        return updated

    def _terminal_state_error(
        self,
        distribution_id: str,
        before: DistributionInfo,
    ) -> ConflictError:
        latest = self._persistence.get_distribution(distribution_id) or before
        if latest.payment_status == PaymentStatus.CANCELLED:
            error: ConflictError = DistributionCancelledError(distribution_id)
        else:
            paid_at = latest.paid_at.isoformat() if latest.paid_at else None
            error = DistributionAlreadyPaidError(distribution_id, paid_at)
        logger.warning(
            "distribution_state_conflict",
            extra={
                "distribution_id": distribution_id,
                "payment_status": latest.payment_status.value,
            },
        )
        return error

    def process_all_distribution_payments(self, period_id: str) -> PaymentBatchResult:
        """
        Pay every pending distribution of a period.

        Per-item conflicts are collected in ``failures``; they never abort
        the batch and are never dropped.
        """
        period = self._persistence.get_period(period_id)
        if period is None:
            logger.warning("period_not_found", extra={"period_id": period_id})
            raise PeriodNotFoundError(period_id)

        pending = [
            d for d in self._persistence.list_distributions(period_id)
            if d.payment_status == PaymentStatus.PENDING
        ]
        paid: list[DistributionInfo] = []
        failures: list[PaymentFailure] = []
        for distribution in pending:
            try:
                paid.append(self.mark_distribution_paid(distribution.id))
            except (ConflictError, NotFoundError) as exc:
                failures.append(PaymentFailure(distribution.id, exc.code, str(exc)))

        total_paid = sum(d.amount for d in paid)
        self._audit.record(
            AuditAction.PAYMENT_BATCH_COMPLETED,
            PERIOD_ENTITY,
            period_id,
            {
                "period_value": period.period_value,
                "total_paid": total_paid,
                "paid": len(paid),
                "failed": len(failures),
            },
        )
        log = logger.warning if failures else logger.info
        log(
            "payment_batch_completed",
            extra={
                "period_id": period_id,
                "total_paid": total_paid,
                "paid": len(paid),
                "failed": len(failures),
            },
        )
        return PaymentBatchResult(
            period_id=period_id,
            total_paid=total_paid,
            paid=tuple(paid),
            failures=tuple(failures),
        )
