"""
Profit Kernel - quarterly profit distribution with maxout enforcement.

A batch distribution kernel with:
- Quarter validation and profit pool derivation
- Proportional allocation under per-account payout ceilings
- Bounded iterative redistribution of capped-out remainders
- Minor-unit reconciliation with treasury rollover booking
- Idempotent period lifecycle and race-safe payment marking
"""

__version__ = "0.1.0"
