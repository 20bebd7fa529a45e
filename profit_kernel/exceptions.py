"""
Typed Exception Hierarchy for the Profit Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the distribution engine (HTTP handlers, CLI scripts, batch jobs)
must map failures to responses without parsing message strings.  Every error
therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        service.process_quarterly_distribution("quarter", "2025-Q1")
    except Exception as e:
        if "already been completed" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        service.process_quarterly_distribution("quarter", "2025-Q1")
    except PeriodAlreadyCompletedError as e:
        api_response(code=e.code, period=e.period_value)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProfitSharingError:

    ProfitSharingError (base)
    |
    +-- ValidationError            rejected before any computation
    |   +-- InvalidPeriodTypeError
    |   +-- InvalidPeriodValueError
    |   +-- UnknownTierError
    |   +-- InvalidAmountError
    |
    +-- StateError                 rejected before any mutation
    |   +-- NoProfitToDistributeError
    |   +-- PeriodAlreadyCompletedError
    |   +-- NoEligibleSharesError
    |   +-- PaidDistributionsExistError
    |
    +-- ConflictError              rejected at the point of mutation
    |   +-- DistributionAlreadyPaidError
    |   +-- DistributionCancelledError
    |   +-- CommissionOverpaymentError
    |   +-- PeriodKeyConflictError
    |
    +-- NotFoundError
    |   +-- DistributionNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- AccountNotFoundError
    |   +-- CommissionNotFoundError
    |
    +-- ReconciliationError        logged and audited, never raised to callers
    |   +-- PoolReconciliationError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                         | When Raised
--------------|------------------------------|----------------------------------------
Validation    | INVALID_PERIOD_TYPE          | Period type is not "quarter"
              | INVALID_PERIOD_VALUE         | Period value does not match YYYY-Q[1-4]
              | UNKNOWN_TIER                 | No policy configured for a business tier
              | INVALID_AMOUNT               | Non-positive or negative money amount
--------------|------------------------------|----------------------------------------
State         | NO_PROFIT_TO_DISTRIBUTE      | Net profit is zero or negative
              | PERIOD_ALREADY_COMPLETED     | Reprocessing without force
              | NO_ELIGIBLE_SHARES           | No shareholder holds eligible shares
              | PAID_DISTRIBUTIONS_EXIST     | Forced reprocess over paid distributions
--------------|------------------------------|----------------------------------------
Conflict      | DISTRIBUTION_ALREADY_PAID    | Double payment attempt
              | DISTRIBUTION_CANCELLED       | Paying or cancelling a cancelled item
              | COMMISSION_OVERPAYMENT       | Paying more than the outstanding balance
--------------|------------------------------|----------------------------------------
Not found     | DISTRIBUTION_NOT_FOUND       | Unknown distribution id
              | PERIOD_NOT_FOUND             | Unknown profit sharing period id
              | ACCOUNT_NOT_FOUND            | Unknown shareholder account id
              | COMMISSION_NOT_FOUND         | Unknown commission id
--------------|------------------------------|----------------------------------------
Reconciliation| POOL_RECONCILIATION_ERROR    | distributed + remainder != pool
--------------|------------------------------|----------------------------------------
Audit         | AUDIT_CHAIN_BROKEN           | Audit hash chain fails validation
"""


class ProfitSharingError(Exception):
    """
    Base exception for all profit kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROFIT_SHARING_ERROR"


# Validation errors


class ValidationError(ProfitSharingError):
    """Base exception for malformed input rejected before computation."""

    code: str = "VALIDATION_ERROR"


class InvalidPeriodTypeError(ValidationError):
    """Profit sharing only supports quarterly periods."""

    code: str = "INVALID_PERIOD_TYPE"

    def __init__(self, period_type: str):
        self.period_type = period_type
        super().__init__(
            f"Profit sharing is only supported for quarterly periods, got: {period_type!r}"
        )


class InvalidPeriodValueError(ValidationError):
    """Quarter identifier does not match YYYY-Q[1-4]."""

    code: str = "INVALID_PERIOD_VALUE"

    def __init__(self, period_value: str):
        self.period_value = period_value
        super().__init__(
            f"Invalid quarter format: {period_value!r}. Expected format: YYYY-Q[1-4]"
        )


class UnknownTierError(ValidationError):
    """No tier policy is configured for a business tier."""

    code: str = "UNKNOWN_TIER"

    def __init__(self, tier: str):
        self.tier = tier
        super().__init__(f"No tier policy configured for business tier: {tier!r}")


class InvalidAmountError(ValidationError):
    """Money amount is outside the accepted range for the operation."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: int, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


# State errors


class StateError(ProfitSharingError):
    """Base exception for operations rejected by current state."""

    code: str = "STATE_ERROR"


class NoProfitToDistributeError(StateError):
    """Quarter was loss-making or break-even."""

    code: str = "NO_PROFIT_TO_DISTRIBUTE"

    def __init__(self, period_value: str, net_profit: int):
        self.period_value = period_value
        self.net_profit = net_profit
        super().__init__(
            f"Nothing to distribute for {period_value}: net profit is {net_profit}"
        )


class PeriodAlreadyCompletedError(StateError):
    """Completed period reprocessed without force."""

    code: str = "PERIOD_ALREADY_COMPLETED"

    def __init__(self, period_type: str, period_value: str):
        self.period_type = period_type
        self.period_value = period_value
        super().__init__(
            f"Profit sharing for {period_type} {period_value} has already been "
            f"completed. Use force=True to reprocess."
        )


class NoEligibleSharesError(StateError):
    """No shareholder account holds eligible shares."""

    code: str = "NO_ELIGIBLE_SHARES"

    def __init__(self, period_value: str):
        self.period_value = period_value
        super().__init__(
            f"Cannot process profit sharing for {period_value}: no eligible shares outstanding"
        )


class PaidDistributionsExistError(StateError):
    """Forced reprocessing would discard distributions that were already paid."""

    code: str = "PAID_DISTRIBUTIONS_EXIST"

    def __init__(self, period_value: str, paid_count: int):
        self.period_value = period_value
        self.paid_count = paid_count
        super().__init__(
            f"Cannot reprocess {period_value}: {paid_count} distribution(s) already paid"
        )


# Conflict errors


class ConflictError(ProfitSharingError):
    """Base exception for mutations that lose a state race or break a guard."""

    code: str = "CONFLICT_ERROR"


class DistributionAlreadyPaidError(ConflictError):
    """Distribution has already been paid."""

    code: str = "DISTRIBUTION_ALREADY_PAID"

    def __init__(self, distribution_id: str, paid_at: str | None = None):
        self.distribution_id = distribution_id
        self.paid_at = paid_at
        super().__init__(
            f"Distribution {distribution_id} has already been paid"
            + (f" on {paid_at}" if paid_at else "")
        )


class DistributionCancelledError(ConflictError):
    """Distribution was cancelled and can no longer change state."""

    code: str = "DISTRIBUTION_CANCELLED"

    def __init__(self, distribution_id: str):
        self.distribution_id = distribution_id
        super().__init__(f"Distribution {distribution_id} has been cancelled")


class CommissionOverpaymentError(ConflictError):
    """Payment exceeds the outstanding commission balance."""

    code: str = "COMMISSION_OVERPAYMENT"

    def __init__(self, commission_id: str, requested: int, outstanding: int):
        self.commission_id = commission_id
        self.requested = requested
        self.outstanding = outstanding
        super().__init__(
            f"Cannot pay {requested} on commission {commission_id}: "
            f"only {outstanding} outstanding"
        )


class PeriodKeyConflictError(ConflictError):
    """Another run created the period row for this quarter first."""

    code: str = "PERIOD_KEY_CONFLICT"

    def __init__(self, period_type: str, period_value: str):
        self.period_type = period_type
        self.period_value = period_value
        super().__init__(
            f"Period {period_type} {period_value} was created by a concurrent run"
        )


# Not-found errors


class NotFoundError(ProfitSharingError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class DistributionNotFoundError(NotFoundError):
    """Distribution with given ID was not found."""

    code: str = "DISTRIBUTION_NOT_FOUND"

    def __init__(self, distribution_id: str):
        self.distribution_id = distribution_id
        super().__init__(f"Distribution not found: {distribution_id}")


class PeriodNotFoundError(NotFoundError):
    """Profit sharing period with given ID was not found."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Profit sharing period not found: {period_id}")


class AccountNotFoundError(NotFoundError):
    """Shareholder account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Shareholder account not found: {account_id}")


class CommissionNotFoundError(NotFoundError):
    """Commission record with given ID was not found."""

    code: str = "COMMISSION_NOT_FOUND"

    def __init__(self, commission_id: str):
        self.commission_id = commission_id
        super().__init__(f"Commission not found: {commission_id}")


# Reconciliation errors


class ReconciliationError(ProfitSharingError):
    """Base exception for accounting mismatches surfaced via the audit trail."""

    code: str = "RECONCILIATION_ERROR"


class PoolReconciliationError(ReconciliationError):
    """Distributed amounts plus remainder do not add up to the pool.

    Never raised to callers of the lifecycle manager; constructed so the
    mismatch is logged with structured fields and recorded for review.
    """

    code: str = "POOL_RECONCILIATION_ERROR"

    def __init__(self, period_value: str, expected: int, accounted_for: int):
        self.period_value = period_value
        self.expected = expected
        self.accounted_for = accounted_for
        self.difference = expected - accounted_for
        super().__init__(
            f"Reconciliation error for {period_value}: expected {expected}, "
            f"accounted {accounted_for}, difference {self.difference}"
        )


# Audit errors


class AuditError(ProfitSharingError):
    """Base exception for audit trail integrity failures."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """A recomputed audit hash or prev_hash link does not match the stored one."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at seq {seq}: expected {expected_hash}, got {actual_hash}"
        )
