"""Buffered trigger channel that wakes the reconciliation loop early."""

from __future__ import annotations

import asyncio


class TriggerChannel:
    """Producers call send(); the loop awaits receive() alongside its interval timer.
    A full buffer drops the new trigger, since a pending one already guarantees an iteration."""

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[None] = asyncio.Queue(maxsize=maxsize)

    def send(self) -> bool:
        """Request an immediate iteration. Never blocks. Returns False if coalesced into a pending one."""
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            return False
        return True

    async def receive(self) -> None:
        await self._queue.get()

    def drain(self) -> int:
        """Discard pending triggers; return how many were dropped."""
        n = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return n
            n += 1

    @property
    def pending(self) -> int:
        return self._queue.qsize()
