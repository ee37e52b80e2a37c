"""
Context Store: per-session message history, summary slot and trimming.

There is no real tokenizer here: token counts are estimated as
``ceil(chars / 4)`` plus a fixed per-message overhead of 4. The estimate
is only used to decide how much history fits into a request.

Trim policies (applied by ``get_messages_for_request``):

    keep_system_and_recent (default)
        system messages are kept untouched; the oldest non-system messages
        are dropped until the rest fits both the message and token ceilings.
        If the system messages alone still blow the token ceiling, the
        oldest messages of the combined sequence are dropped as well.
    drop_oldest
        oldest messages of the whole sequence are dropped, system included.

Both policies keep at least one message when trimming for tokens and are
no-ops when neither limit is set (``None`` or ``0``).

Concurrency: no locking. Separate sessions are independent; concurrent
writers to the same session must be serialized by the caller.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import UTC, datetime

from agentrail.config.settings import ContextSettings
from agentrail.context.models import Session, SessionNotFoundError, TrimStrategy
from agentrail.gateway.models import Message

logger = logging.getLogger(__name__)

MESSAGE_OVERHEAD_TOKENS = 4
SUMMARY_PREFIX = "Previous context summary:\n"


def estimate_tokens(text: str) -> int:
    """Approximate token count from character count."""
    return math.ceil(len(text) / 4)


def estimate_message_tokens(message: Message) -> int:
    return MESSAGE_OVERHEAD_TOKENS + estimate_tokens(message.content)


def total_tokens(messages: list[Message]) -> int:
    return sum(estimate_message_tokens(m) for m in messages)


def trim_drop_oldest(
    messages: list[Message],
    max_tokens: int | None,
    max_messages: int | None,
) -> list[Message]:
    """Drop oldest messages until both ceilings hold (keeping at least one for tokens)."""
    out = list(messages)
    if max_messages and len(out) > max_messages:
        out = out[-max_messages:]
    if max_tokens:
        # Running total avoids re-summing the list on every drop
        running = total_tokens(out)
        while len(out) > 1 and running > max_tokens:
            running -= estimate_message_tokens(out.pop(0))
    return out


def trim_keep_system_and_recent(
    messages: list[Message],
    max_tokens: int | None,
    max_messages: int | None,
) -> list[Message]:
    """Protect system messages; trim only the rest unless system alone is too large."""
    system_messages = [m for m in messages if m.role == "system"]
    rest = [m for m in messages if m.role != "system"]

    out = system_messages + trim_drop_oldest(rest, max_tokens, max_messages)
    if max_tokens and total_tokens(out) > max_tokens:
        return trim_drop_oldest(out, max_tokens, None)
    return out


def trim_messages(
    messages: list[Message],
    strategy: TrimStrategy,
    max_tokens: int | None,
    max_messages: int | None,
) -> list[Message]:
    if not max_tokens and not max_messages:
        return list(messages)
    if strategy == TrimStrategy.KEEP_SYSTEM_AND_RECENT:
        return trim_keep_system_and_recent(messages, max_tokens, max_messages)
    return trim_drop_oldest(messages, max_tokens, max_messages)


class ContextStore:
    """
    In-memory session store.

    Sessions live for the lifetime of the store. Every method except
    ``create_session``, ``get_session`` and ``get_summary`` raises
    ``SessionNotFoundError`` for an unknown session id.

    Args:
        max_tokens: Default token ceiling for ``get_messages_for_request``
        max_messages: Default message ceiling for ``get_messages_for_request``
        trim_strategy: Trim policy applied when history exceeds the ceilings
    """

    def __init__(
        self,
        max_tokens: int | None = 8000,
        max_messages: int | None = 50,
        trim_strategy: TrimStrategy = TrimStrategy.KEEP_SYSTEM_AND_RECENT,
    ):
        self._sessions: dict[str, Session] = {}
        self.max_tokens = max_tokens
        self.max_messages = max_messages
        self.trim_strategy = TrimStrategy(trim_strategy)

    @classmethod
    def from_settings(cls, settings: ContextSettings) -> ContextStore:
        return cls(
            max_tokens=settings.max_tokens,
            max_messages=settings.max_messages,
            trim_strategy=TrimStrategy(settings.trim_strategy),
        )

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def create_session(self, session_id: str | None = None) -> str:
        """
        Create a session, or return ``session_id`` untouched if it already exists.

        Returns:
            The session id (generated when not supplied)
        """
        sid = session_id if session_id is not None else f"sess_{uuid.uuid4().hex[:16]}"
        if sid in self._sessions:
            return sid
        self._sessions[sid] = Session(id=sid)
        logger.debug(f"Created session {sid}")
        return sid

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def add_message(self, session_id: str, message: Message) -> None:
        session = self._require(session_id)
        session.messages.append(message)
        session.updated_at = datetime.now(UTC)

    def get_messages_for_request(
        self,
        session_id: str,
        include_summary_as_system: bool = True,
        max_tokens: int | None = None,
        max_messages: int | None = None,
    ) -> list[Message]:
        """
        Assemble the messages to send for the next request.

        The stored summary, when present and requested, is prepended as a
        system message before trimming. Limits fall back to the store defaults.
        """
        session = self._require(session_id)

        messages = list(session.messages)
        if include_summary_as_system and session.summary:
            messages.insert(0, Message(role="system", content=f"{SUMMARY_PREFIX}{session.summary}"))

        return trim_messages(
            messages,
            self.trim_strategy,
            max_tokens if max_tokens is not None else self.max_tokens,
            max_messages if max_messages is not None else self.max_messages,
        )

    def set_summary(self, session_id: str, summary: str) -> None:
        """Replace the summary slot; the message log is left untouched."""
        session = self._require(session_id)
        session.summary = summary
        session.updated_at = datetime.now(UTC)

    def get_summary(self, session_id: str) -> str | None:
        session = self._sessions.get(session_id)
        return session.summary if session else None
