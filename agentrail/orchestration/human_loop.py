"""
Human-in-the-loop approval providers.

A provider is any object with ``async request_approval(request)``. The
console provider blocks on stdin in a worker thread so the event loop keeps
running; the auto provider answers immediately and is meant for tests and
unattended runs.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod

from agentrail.orchestration.models import HumanApprovalRequest, HumanApprovalResult

_COMMENT_RE = re.compile(r"\s+(.+)$")


class HumanApprovalProvider(ABC):
    @abstractmethod
    async def request_approval(self, request: HumanApprovalRequest) -> HumanApprovalResult:
        pass


def parse_approval_answer(answer: str) -> HumanApprovalResult:
    """
    Interpret a ``y/n [comment]`` answer.

    Anything starting with ``y`` or ``Y`` approves; the text after the first
    whitespace run, if any, is the comment.
    """
    answer = answer.strip()
    match = _COMMENT_RE.search(answer)
    return HumanApprovalResult(
        approved=answer[:1] in ("y", "Y"),
        comment=match.group(1) if match else None,
    )


class ConsoleApprovalProvider(HumanApprovalProvider):
    """Prints the request and reads the decision from stdin."""

    async def request_approval(self, request: HumanApprovalRequest) -> HumanApprovalResult:
        payload = json.dumps(request.payload or {}, ensure_ascii=False)
        print(f"[Human approval] {request.reason} {payload}")
        answer = await asyncio.to_thread(input, "Approve? (y/n) [comment]: ")
        return parse_approval_answer(answer)


class AutoApprovalProvider(HumanApprovalProvider):
    """Always returns the same decision."""

    def __init__(self, approved: bool = True, comment: str | None = None):
        self._approved = approved
        self._comment = comment

    async def request_approval(self, request: HumanApprovalRequest) -> HumanApprovalResult:
        return HumanApprovalResult(approved=self._approved, comment=self._comment)
