"""
Module: profit_engines.distribution
Responsibility:
    Allocate a distributable pool across shareholding accounts in proportion
    to their shares, capped by each account's payout ceiling, and iteratively
    redistribute what capped accounts could not take.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Candidates arrive with
    their ceiling and cumulative payout already resolved; this run's own
    allocations are tracked here, never re-read from storage.

Invariants enforced:
    - Conservation: sum(final_amount) + remainder == pool, exactly.
    - Ceiling respect: cumulative_before + final_amount <= ceiling for every
      capped account.
    - Floors only.  Each per-account share of a round is
      floor(shares * amount / total_shares) in exact integer arithmetic.
    - Termination: at most ``max_rounds`` redistribution rounds, and a round
      that allocates less than min(min_round_allocation,
      remaining * min_round_fraction) ends the loop.

Failure modes:
    - NoEligibleSharesError when no candidate holds shares.
    - ValueError for a negative pool.

Usage:
    engine = DistributionEngine()
    plan = engine.distribute(
        4_900_000,
        [
            DistributionCandidate("a", 100, Ceiling.of(500_000), 0),
            DistributionCandidate("b", 300, Ceiling.unlimited(), 0),
        ],
    )
    assert [l.final_amount for l in plan.lines] == [500_000, 4_400_000]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from profit_engines.maxout import Ceiling
from profit_engines.tracer import traced_engine
from profit_kernel.domain.money import prorata_floor, to_decimal
from profit_kernel.exceptions import NoEligibleSharesError
from profit_kernel.logging_config import get_logger

logger = get_logger("engines.distribution")


@dataclass(frozen=True)
class DistributionBounds:
    """Termination bounds of the redistribution loop."""

    max_rounds: int = 10
    min_round_allocation: int = 10
    min_round_fraction: Decimal = Decimal("0.01")

    def __post_init__(self) -> None:
        if self.max_rounds < 0:
            raise ValueError("max_rounds cannot be negative")
        if self.min_round_allocation < 0:
            raise ValueError("min_round_allocation cannot be negative")
        object.__setattr__(self, "min_round_fraction", to_decimal(self.min_round_fraction))


@dataclass(frozen=True)
class DistributionCandidate:
    """An account competing for the pool, with its ceiling pre-resolved."""

    account_id: str
    shares: int
    ceiling: Ceiling
    cumulative_before: int = 0

    def __post_init__(self) -> None:
        if self.shares < 0:
            raise ValueError(f"Candidate {self.account_id}: shares cannot be negative")


@dataclass(frozen=True)
class DistributionLine:
    """Outcome for one account."""

    account_id: str
    shares: int
    raw_amount: int
    final_amount: int
    ceiling: Ceiling
    cumulative_before: int
    maxout_applied: bool

    @property
    def cumulative_after(self) -> int:
        return self.cumulative_before + self.final_amount

    @property
    def reached_ceiling(self) -> bool:
        return self.ceiling.limit is not None and self.cumulative_after >= self.ceiling.limit


@dataclass(frozen=True)
class DistributionPlan:
    """
    Complete allocation of one pool.

    Guarantees:
        - ``distributed + remainder == pool``.
        - ``lines`` are in candidate order.
    """

    pool: int
    lines: tuple[DistributionLine, ...]
    remainder: int
    rounds: int
    total_shares: int

    @property
    def distributed(self) -> int:
        return sum(line.final_amount for line in self.lines)

    def line_for(self, account_id: str) -> DistributionLine | None:
        for line in self.lines:
            if line.account_id == account_id:
                return line
        return None


class DistributionEngine:
    """
    Proportional allocation with ceiling enforcement and bounded
    redistribution.

    Contract:
        Pure and deterministic.  The same pool and candidates always produce
        the same plan.
    """

    def __init__(self, bounds: DistributionBounds | None = None):
        self._bounds = bounds or DistributionBounds()

    @property
    def bounds(self) -> DistributionBounds:
        return self._bounds

    @traced_engine("distribution", "1.0", fingerprint_fields=("pool", "candidates"))
    def distribute(
        self,
        pool: int,
        candidates: Sequence[DistributionCandidate],
        period_value: str = "",
    ) -> DistributionPlan:
        if pool < 0:
            raise ValueError(f"Pool cannot be negative: {pool}")

        eligible = [c for c in candidates if c.shares > 0]
        total_shares = sum(c.shares for c in eligible)
        if total_shares == 0:
            raise NoEligibleSharesError(period_value)

        raw: dict[str, int] = {}
        final: dict[str, int] = {}
        capped: set[str] = set()

        def headroom(candidate: DistributionCandidate) -> int | None:
            return candidate.ceiling.headroom(
                candidate.cumulative_before + final[candidate.account_id]
            )

        # Pass 0: proportional allocation, capped at headroom
        for candidate in eligible:
            share = prorata_floor(candidate.shares, pool, total_shares)
            raw[candidate.account_id] = share
            final[candidate.account_id] = 0
            room = headroom(candidate)
            if room is not None and share > room:
                share = room
                capped.add(candidate.account_id)
            final[candidate.account_id] = share

        remaining = pool - sum(final.values())
        rounds = 0

        while remaining > 0 and rounds < self._bounds.max_rounds:
            receivers = [c for c in eligible if headroom(c) is None or headroom(c) > 0]
            if not receivers:
                break

            rounds += 1
            receiver_shares = sum(c.shares for c in receivers)
            round_total = 0
            for candidate in receivers:
                share = prorata_floor(candidate.shares, remaining, receiver_shares)
                room = headroom(candidate)
                if room is not None and share > room:
                    share = room
                    capped.add(candidate.account_id)
                final[candidate.account_id] += share
                round_total += share

            remaining -= round_total
            logger.debug(
                "redistribution_round",
                extra={
                    "round": rounds,
                    "receivers": len(receivers),
                    "round_total": round_total,
                    "remaining": remaining,
                },
            )

            threshold = min(
                Decimal(self._bounds.min_round_allocation),
                Decimal(remaining) * self._bounds.min_round_fraction,
            )
            if round_total < threshold:
                break

        lines = tuple(
            DistributionLine(
                account_id=c.account_id,
                shares=c.shares,
                raw_amount=raw[c.account_id],
                final_amount=final[c.account_id],
                ceiling=c.ceiling,
                cumulative_before=c.cumulative_before,
                maxout_applied=c.account_id in capped,
            )
            for c in eligible
        )

        logger.info(
            "distribution_computed",
            extra={
                "period_value": period_value,
                "pool": pool,
                "accounts": len(lines),
                "total_shares": total_shares,
                "rounds": rounds,
                "remainder": remaining,
                "capped_accounts": len(capped),
            },
        )
        return DistributionPlan(
            pool=pool,
            lines=lines,
            remainder=remaining,
            rounds=rounds,
            total_shares=total_shares,
        )
