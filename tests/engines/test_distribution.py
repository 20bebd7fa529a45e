"""
Tests for the distribution engine (profit_engines.distribution).

Covers proportional allocation, ceiling enforcement, bounded
redistribution, remainder handling and the early-stop rule.
"""

import pytest

from profit_engines.distribution import (
    DistributionBounds,
    DistributionCandidate,
    DistributionEngine,
)
from profit_engines.maxout import Ceiling
from profit_kernel.exceptions import NoEligibleSharesError, StateError

UNLIMITED = Ceiling.unlimited()


def _candidate(account_id, shares, limit=None, cumulative=0):
    ceiling = UNLIMITED if limit is None else Ceiling.of(limit)
    return DistributionCandidate(account_id, shares, ceiling, cumulative)


class TestWorkedExamples:

    def test_proportional_split_without_caps(self):
        plan = DistributionEngine().distribute(
            4_900_000, [_candidate("A", 100), _candidate("B", 300)]
        )

        assert plan.line_for("A").final_amount == 1_225_000
        assert plan.line_for("B").final_amount == 3_675_000
        assert plan.remainder == 0
        assert plan.rounds == 0
        assert plan.total_shares == 400
        assert not any(line.maxout_applied for line in plan.lines)

    def test_capped_account_share_flows_to_others(self):
        # A has 500,000 of headroom left: ceiling 800,000, 300,000 already paid.
        plan = DistributionEngine().distribute(
            4_900_000,
            [
                _candidate("A", 100, limit=800_000, cumulative=300_000),
                _candidate("B", 300),
            ],
        )

        a, b = plan.line_for("A"), plan.line_for("B")
        assert a.raw_amount == 1_225_000
        assert a.final_amount == 500_000
        assert a.maxout_applied
        assert a.reached_ceiling
        assert b.final_amount == 4_400_000
        assert not b.maxout_applied
        assert plan.rounds == 1
        assert plan.remainder == 0
        assert plan.distributed == 4_900_000


class TestAllocation:

    def test_floor_remainder_left_when_round_allocates_nothing(self):
        plan = DistributionEngine().distribute(
            100, [_candidate("A", 1), _candidate("B", 1), _candidate("C", 1)]
        )

        assert [line.final_amount for line in plan.lines] == [33, 33, 33]
        assert plan.remainder == 1
        assert plan.rounds == 1

    def test_everyone_capped_leaves_remainder(self):
        plan = DistributionEngine().distribute(1_000, [_candidate("A", 5, limit=100)])

        assert plan.line_for("A").final_amount == 100
        assert plan.remainder == 900
        assert plan.rounds == 0

    def test_exhausted_ceiling_receives_nothing(self):
        plan = DistributionEngine().distribute(
            1_000,
            [_candidate("A", 1, limit=500, cumulative=500), _candidate("B", 1)],
        )

        assert plan.line_for("A").final_amount == 0
        assert plan.line_for("A").maxout_applied
        assert plan.line_for("B").final_amount == 1_000
        assert plan.remainder == 0

    def test_cumulative_above_ceiling_treated_as_exhausted(self):
        plan = DistributionEngine().distribute(
            300, [_candidate("A", 1, limit=100, cumulative=250), _candidate("B", 2)]
        )
        assert plan.line_for("A").final_amount == 0
        assert plan.line_for("B").final_amount == 300

    def test_redistribution_respects_second_ceiling(self):
        plan = DistributionEngine().distribute(
            100,
            [
                _candidate("A", 1, limit=10),
                _candidate("B", 1, limit=30),
                _candidate("C", 2),
            ],
        )

        assert plan.line_for("A").final_amount == 10
        assert plan.line_for("B").final_amount == 30
        assert plan.line_for("C").final_amount == 60
        assert plan.remainder == 0
        assert plan.line_for("B").reached_ceiling

    def test_zero_share_candidates_are_skipped(self):
        plan = DistributionEngine().distribute(
            1_000, [_candidate("A", 0), _candidate("B", 4)]
        )
        assert [line.account_id for line in plan.lines] == ["B"]
        assert plan.line_for("B").final_amount == 1_000

    def test_zero_pool(self):
        plan = DistributionEngine().distribute(0, [_candidate("A", 1), _candidate("B", 1)])
        assert plan.distributed == 0
        assert plan.remainder == 0
        assert plan.rounds == 0

    def test_lines_keep_candidate_order(self):
        candidates = [_candidate(f"acc-{i}", i + 1) for i in range(5)]
        plan = DistributionEngine().distribute(10_000, candidates)
        assert [line.account_id for line in plan.lines] == [c.account_id for c in candidates]


class TestBounds:

    def test_max_rounds_zero_disables_redistribution(self):
        engine = DistributionEngine(DistributionBounds(max_rounds=0))
        plan = engine.distribute(
            4_900_000,
            [_candidate("A", 100, limit=500_000), _candidate("B", 300)],
        )

        assert plan.rounds == 0
        assert plan.line_for("B").final_amount == 3_675_000
        assert plan.remainder == 725_000

    def test_rounds_never_exceed_max_rounds(self):
        # Each round lets A take only a sliver of what remains.
        engine = DistributionEngine(
            DistributionBounds(max_rounds=3, min_round_allocation=0, min_round_fraction=0)
        )
        plan = engine.distribute(
            1_000_000,
            [_candidate("A", 1), _candidate("B", 999, limit=0)],
        )
        assert plan.rounds <= 3
        assert plan.distributed + plan.remainder == 1_000_000

    def test_early_stop_on_small_round(self):
        engine = DistributionEngine(
            DistributionBounds(min_round_allocation=1_000, min_round_fraction=1)
        )
        plan = engine.distribute(
            10_000,
            [_candidate("A", 1, limit=1_000), _candidate("B", 99, limit=0)],
        )

        # Round 1 adds 900, below min(1,000, 9,000), so the loop stops.
        assert plan.rounds == 1
        assert plan.line_for("A").final_amount == 1_000
        assert plan.remainder == 9_000

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            DistributionBounds(max_rounds=-1)
        with pytest.raises(ValueError):
            DistributionBounds(min_round_allocation=-5)


class TestFailures:

    def test_no_candidates(self):
        with pytest.raises(NoEligibleSharesError) as exc_info:
            DistributionEngine().distribute(1_000, [], period_value="2025-Q2")
        assert isinstance(exc_info.value, StateError)
        assert exc_info.value.period_value == "2025-Q2"

    def test_zero_total_shares(self):
        with pytest.raises(NoEligibleSharesError):
            DistributionEngine().distribute(1_000, [_candidate("A", 0)])

    def test_negative_pool(self):
        with pytest.raises(ValueError):
            DistributionEngine().distribute(-1, [_candidate("A", 1)])

    def test_negative_shares_rejected(self):
        with pytest.raises(ValueError):
            _candidate("A", -1)


class TestLogging:

    def test_emits_summary_and_trace(self, captured_logs):
        DistributionEngine().distribute(
            4_900_000,
            [_candidate("A", 100, limit=500_000), _candidate("B", 300)],
            period_value="2025-Q2",
        )
        logs = captured_logs()

        summary = next(r for r in logs if r["message"] == "distribution_computed")
        assert summary["pool"] == 4_900_000
        assert summary["rounds"] == 1
        assert summary["capped_accounts"] == 1
        assert summary["period_value"] == "2025-Q2"

        rounds = [r for r in logs if r["message"] == "redistribution_round"]
        assert len(rounds) == 1
        assert rounds[0]["round_total"] == 725_000

        traces = [r for r in logs if r.get("trace_type") == "PROFIT_ENGINE_TRACE"]
        assert any(t["engine_name"] == "distribution" for t in traces)
