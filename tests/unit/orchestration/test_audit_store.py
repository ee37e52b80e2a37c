"""Unit tests for the in-memory audit log store."""

import pytest

from agentrail.orchestration.audit import InMemoryAuditLogStore
from agentrail.orchestration.models import AuditAction, AuditLogInput


def _entry(action: AuditAction, session_id: str = "s1", **kwargs) -> AuditLogInput:
    return AuditLogInput(session_id=session_id, actor="alice", action=action, **kwargs)


@pytest.fixture
def store():
    return InMemoryAuditLogStore()


class TestInMemoryAuditLogStore:

    def test_append_stamps_id_and_timestamp(self, store):
        stored = store.append(_entry(AuditAction.WORKFLOW_START, workflow_id="wf_1", details={"stepCount": 1}))

        assert stored.id.startswith("audit_")
        assert stored.timestamp.tzinfo is not None
        assert stored.details == {"stepCount": 1}
        assert store.get(stored.id) == stored

    def test_ids_are_unique(self, store):
        first = store.append(_entry(AuditAction.AGENT_RUN))
        second = store.append(_entry(AuditAction.AGENT_RUN))

        assert first.id != second.id

    def test_listings_by_scope(self, store):
        start = store.append(_entry(AuditAction.WORKFLOW_START, workflow_id="wf_1"))
        tool = store.append(_entry(AuditAction.TOOL_EXECUTION, workflow_id="wf_1", run_id="run_1"))
        other = store.append(_entry(AuditAction.AGENT_RUN, session_id="s2", run_id="run_2"))

        assert store.list_by_session("s1") == [start, tool]
        assert store.list_by_session("s2") == [other]
        assert store.list_by_workflow("wf_1") == [start, tool]
        assert store.list_by_run("run_1") == [tool]
        assert store.list_by_run("unknown") == []

    def test_entries_without_run_or_workflow_are_not_indexed_there(self, store):
        store.append(_entry(AuditAction.PERMISSION_CHECK))

        assert store.list_by_session("s1") != []
        assert store.list_by_run("") == []
        assert store.list_by_workflow("") == []

    def test_delete(self, store):
        stored = store.append(_entry(AuditAction.TOOL_EXECUTION, workflow_id="wf_1", run_id="run_1"))

        assert store.delete(stored.id) is True
        assert store.get(stored.id) is None
        assert store.list_by_session("s1") == []
        assert store.list_by_run("run_1") == []
        assert store.list_by_workflow("wf_1") == []
        assert store.delete(stored.id) is False
