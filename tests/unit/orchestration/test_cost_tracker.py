"""Unit tests for cost aggregation."""

from agentrail.gateway.models import CostEstimate
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.models import CostSnapshot


def _cost(total: float, input_cents: float = 0.0, output_cents: float = 0.0) -> CostEstimate:
    return CostEstimate(input_cents=input_cents, output_cents=output_cents, total_cents=total)


class TestCostTracker:

    def test_unknown_keys_read_as_zero(self):
        tracker = CostTracker()

        assert tracker.get_session_cost("s1") == CostSnapshot()
        assert tracker.get_run_cost("run_1") == CostSnapshot()
        assert tracker.get_total_cost().call_count == 0

    def test_session_accumulates(self):
        tracker = CostTracker()

        tracker.record("s1", "run_1", _cost(1.0, 0.5, 0.5))
        tracker.record("s1", "run_2", _cost(2.0, 1.0, 1.0))

        session = tracker.get_session_cost("s1")
        assert session.total_cents == 3.0
        assert session.input_cents == 1.5
        assert session.output_cents == 1.5
        assert session.call_count == 2
        assert session.currency == "USD"

    def test_run_and_total_scopes(self):
        tracker = CostTracker()

        tracker.record("s1", "run_1", _cost(1.0))
        tracker.record("s2", "run_2", _cost(2.0))
        tracker.record("s2", None, _cost(4.0))

        assert tracker.get_run_cost("run_1").total_cents == 1.0
        assert tracker.get_run_cost("run_2").total_cents == 2.0
        assert tracker.get_session_cost("s2").total_cents == 6.0
        assert tracker.get_total_cost().total_cents == 7.0
        assert tracker.get_total_cost().call_count == 3

    def test_missing_cost_is_ignored(self):
        tracker = CostTracker()

        tracker.record("s1", "run_1", None)

        assert tracker.get_session_cost("s1").call_count == 0
        assert tracker.get_total_cost().call_count == 0

    def test_sums_are_rounded_to_hundredths(self):
        tracker = CostTracker()

        tracker.record("s1", None, _cost(0.1))
        tracker.record("s1", None, _cost(0.2))

        assert tracker.get_session_cost("s1").total_cents == 0.3

    def test_getters_return_copies(self):
        tracker = CostTracker()
        tracker.record("s1", None, _cost(1.0))

        snapshot = tracker.get_session_cost("s1")
        snapshot.total_cents = 99.0

        assert tracker.get_session_cost("s1").total_cents == 1.0
