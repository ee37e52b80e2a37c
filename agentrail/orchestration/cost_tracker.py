"""Cost aggregation per session, per run and overall."""

from agentrail.gateway.cost import round_cents
from agentrail.gateway.models import CostEstimate
from agentrail.orchestration.models import CostSnapshot


def _add(snapshot: CostSnapshot, cost: CostEstimate) -> CostSnapshot:
    return CostSnapshot(
        total_cents=round_cents(snapshot.total_cents + cost.total_cents),
        currency=cost.currency,
        input_cents=round_cents(snapshot.input_cents + cost.input_cents),
        output_cents=round_cents(snapshot.output_cents + cost.output_cents),
        call_count=snapshot.call_count + 1,
    )


class CostTracker:
    """
    Accumulates ``CostEstimate``s. Amounts only grow; getters return copies,
    and unknown sessions or runs read as a zero snapshot.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, CostSnapshot] = {}
        self._by_run: dict[str, CostSnapshot] = {}
        self._total = CostSnapshot()

    def record(self, session_id: str, run_id: str | None, cost: CostEstimate | None) -> None:
        """Add one call's cost; a missing cost is ignored."""
        if cost is None:
            return
        self._by_session[session_id] = _add(self._by_session.get(session_id, CostSnapshot()), cost)
        if run_id:
            self._by_run[run_id] = _add(self._by_run.get(run_id, CostSnapshot()), cost)
        self._total = _add(self._total, cost)

    def get_session_cost(self, session_id: str) -> CostSnapshot:
        return self._by_session.get(session_id, CostSnapshot()).model_copy()

    def get_run_cost(self, run_id: str) -> CostSnapshot:
        return self._by_run.get(run_id, CostSnapshot()).model_copy()

    def get_total_cost(self) -> CostSnapshot:
        return self._total.model_copy()
