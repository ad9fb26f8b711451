"""In-flight tool call bookkeeping for one relay session."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from relay.schemas import PendingToolCall


@dataclass(frozen=True)
class CycleSummary:
    """What one response cycle did with its tool calls."""

    resolved: int = 0
    unresolved: tuple[PendingToolCall, ...] = field(default_factory=tuple)

    @property
    def needs_continuation(self) -> bool:
        return self.resolved > 0 or bool(self.unresolved)


class PendingCallTracker:
    """Maps call ids to the conversation item that requested them.

    Both read loops of a session share one tracker, so every access goes
    through the lock. Entries are removed either when their call completes
    (``resolve``) or when the response cycle ends (``drain``).
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._calls: dict[str, PendingToolCall] = {}
        self._resolved_in_cycle = 0

    async def add(self, call_id: str, previous_item_id: str | None) -> bool:
        """Track a new call. Returns False if the id is already tracked."""

        async with self._lock:
            if call_id in self._calls:
                return False
            self._calls[call_id] = PendingToolCall(call_id=call_id, previous_item_id=previous_item_id)
            return True

    async def resolve(self, call_id: str) -> PendingToolCall | None:
        async with self._lock:
            call = self._calls.pop(call_id, None)
            if call is not None:
                self._resolved_in_cycle += 1
            return call

    async def drain(self) -> CycleSummary:
        """Close the current response cycle and clear every entry."""

        async with self._lock:
            summary = CycleSummary(
                resolved=self._resolved_in_cycle,
                unresolved=tuple(self._calls.values()),
            )
            self._calls.clear()
            self._resolved_in_cycle = 0
            return summary

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._calls

    def __len__(self) -> int:
        return len(self._calls)
