"""
Agent run state store.

The store holds one snapshot per run id and indexes runs by session. It is
the recovery and audit surface: a caller can list the runs of a session,
inspect the last state, and decide whether to start another run. Nothing
resumes automatically.

Only the agent runner writes a given run's state; other components read.
Readers must tolerate a transient ``running`` status.
"""

from abc import ABC, abstractmethod

from agentrail.agent.models import AgentRunState


class AgentStateStore(ABC):
    """
    Storage interface for run snapshots.

    The in-memory store below is the only backend shipped; a durable one
    (file, embedded database) implements the same four methods.
    """

    @abstractmethod
    def get(self, run_id: str) -> AgentRunState | None:
        pass

    @abstractmethod
    def set(self, state: AgentRunState) -> None:
        """Insert or replace the snapshot for ``state.run_id``."""
        pass

    @abstractmethod
    def delete(self, run_id: str) -> bool:
        """Remove a run from every index; returns whether it existed."""
        pass

    @abstractmethod
    def list_by_session(self, session_id: str) -> list[AgentRunState]:
        """Runs of a session, oldest ``started_at`` first."""
        pass


class InMemoryAgentStateStore(AgentStateStore):
    """Volatile store: two dicts, lost when the process exits."""

    def __init__(self) -> None:
        self._by_run_id: dict[str, AgentRunState] = {}
        # Session id -> run ids in insertion order (dict used as an ordered set)
        self._by_session_id: dict[str, dict[str, None]] = {}

    def get(self, run_id: str) -> AgentRunState | None:
        state = self._by_run_id.get(run_id)
        return state.model_copy() if state is not None else None

    def set(self, state: AgentRunState) -> None:
        previous = self._by_run_id.get(state.run_id)
        if previous is not None and previous.session_id != state.session_id:
            self._unindex(previous)

        self._by_run_id[state.run_id] = state.model_copy()
        self._by_session_id.setdefault(state.session_id, {})[state.run_id] = None

    def delete(self, run_id: str) -> bool:
        state = self._by_run_id.pop(run_id, None)
        if state is None:
            return False
        self._unindex(state)
        return True

    def _unindex(self, state: AgentRunState) -> None:
        run_ids = self._by_session_id.get(state.session_id)
        if run_ids is None:
            return
        run_ids.pop(state.run_id, None)
        if not run_ids:
            del self._by_session_id[state.session_id]

    def list_by_session(self, session_id: str) -> list[AgentRunState]:
        run_ids = self._by_session_id.get(session_id, {})
        states = [self._by_run_id[rid].model_copy() for rid in run_ids if rid in self._by_run_id]
        return sorted(states, key=lambda s: s.started_at)
