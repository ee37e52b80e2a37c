"""
Audit log store.

Append-only from orchestration's point of view: entries are stamped with an
id and timestamp on ``append`` and indexed by session, run and workflow.
``delete`` exists for administrative cleanup and is never used by the
orchestrator.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime

from agentrail.orchestration.models import AuditLogEntry, AuditLogInput


class AuditLogStore(ABC):
    """Storage interface for audit entries."""

    @abstractmethod
    def append(self, entry: AuditLogInput) -> AuditLogEntry:
        """Stamp and store an entry; returns the stored entry."""
        pass

    @abstractmethod
    def get(self, entry_id: str) -> AuditLogEntry | None:
        pass

    @abstractmethod
    def list_by_session(self, session_id: str) -> list[AuditLogEntry]:
        pass

    @abstractmethod
    def list_by_run(self, run_id: str) -> list[AuditLogEntry]:
        pass

    @abstractmethod
    def list_by_workflow(self, workflow_id: str) -> list[AuditLogEntry]:
        pass

    @abstractmethod
    def delete(self, entry_id: str) -> bool:
        pass


class InMemoryAuditLogStore(AuditLogStore):
    """Audit entries in process memory; every listing is oldest first."""

    def __init__(self) -> None:
        self._by_id: dict[str, AuditLogEntry] = {}
        self._by_session: dict[str, list[str]] = {}
        self._by_run: dict[str, list[str]] = {}
        self._by_workflow: dict[str, list[str]] = {}

    def append(self, entry: AuditLogInput) -> AuditLogEntry:
        stored = AuditLogEntry(
            id=f"audit_{uuid.uuid4().hex[:16]}",
            timestamp=datetime.now(UTC),
            **entry.model_dump(),
        )
        self._by_id[stored.id] = stored
        self._by_session.setdefault(stored.session_id, []).append(stored.id)
        if stored.run_id:
            self._by_run.setdefault(stored.run_id, []).append(stored.id)
        if stored.workflow_id:
            self._by_workflow.setdefault(stored.workflow_id, []).append(stored.id)
        return stored

    def get(self, entry_id: str) -> AuditLogEntry | None:
        return self._by_id.get(entry_id)

    def _collect(self, ids: list[str]) -> list[AuditLogEntry]:
        entries = [self._by_id[i] for i in ids if i in self._by_id]
        return sorted(entries, key=lambda e: e.timestamp)

    def list_by_session(self, session_id: str) -> list[AuditLogEntry]:
        return self._collect(self._by_session.get(session_id, []))

    def list_by_run(self, run_id: str) -> list[AuditLogEntry]:
        return self._collect(self._by_run.get(run_id, []))

    def list_by_workflow(self, workflow_id: str) -> list[AuditLogEntry]:
        return self._collect(self._by_workflow.get(workflow_id, []))

    def delete(self, entry_id: str) -> bool:
        entry = self._by_id.pop(entry_id, None)
        if entry is None:
            return False
        for index, key in (
            (self._by_session, entry.session_id),
            (self._by_run, entry.run_id),
            (self._by_workflow, entry.workflow_id),
        ):
            if key and key in index:
                index[key] = [i for i in index[key] if i != entry_id]
                if not index[key]:
                    del index[key]
        return True
