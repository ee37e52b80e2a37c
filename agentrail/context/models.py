"""Session model, trim strategies and errors for the context store."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from agentrail.gateway.models import Message


class TrimStrategy(str, Enum):
    """How history is cut down to fit request limits."""

    # Drop oldest messages from the whole sequence, system messages included
    DROP_OLDEST = "drop_oldest"
    # Keep every system message; drop the oldest of the rest
    KEEP_SYSTEM_AND_RECENT = "keep_system_and_recent"


class Session(BaseModel):
    """
    Conversational state for one session.

    Owned by the ContextStore and mutated only through its methods; the
    message list is append-only.
    """

    id: str
    messages: list[Message] = Field(default_factory=list)
    summary: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SessionNotFoundError(LookupError):
    """Raised when an operation names a session that was never created."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id
