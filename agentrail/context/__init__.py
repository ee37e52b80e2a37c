"""
Context Store Layer.

Keeps an ordered, append-only message log and a summary slot per session,
and assembles trimmed message lists for chat requests.
"""

from agentrail.context.models import Session, SessionNotFoundError, TrimStrategy
from agentrail.context.store import ContextStore, estimate_tokens, trim_messages

__all__ = [
    "ContextStore",
    "Session",
    "SessionNotFoundError",
    "TrimStrategy",
    "estimate_tokens",
    "trim_messages",
]
