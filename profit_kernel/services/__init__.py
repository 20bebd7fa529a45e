"""
Kernel services -- imperative shell infrastructure.

    sequence_service   -- locked-counter sequence allocation
    auditor_service    -- hash-chained SQL audit sink
    payout_aggregator  -- cumulative payout sums per account
    locks              -- in-process per-key mutual exclusion
"""
