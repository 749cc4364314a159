"""Capability protocols for the chain node and the cancellation service."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol, TypeVar

from predindex.errors import TransientChainError
from predindex.models import EventPage, ObjectSnapshot

T = TypeVar("T")


class ChainReader(Protocol):
    """Read access to object snapshots and the module event log. Failures are transient."""

    async def get_object(self, object_id: str) -> ObjectSnapshot: ...

    async def query_events(
        self,
        module_filter: dict[str, Any],
        cursor: dict[str, Any] | None = None,
        ascending: bool = True,
    ) -> EventPage: ...

    async def get_gas_price(self) -> int: ...


class Canceller(Protocol):
    """External action that cancels a market on chain (refunds are on-chain)."""

    async def cancel_market(self, address: str) -> str:
        """Cancel the market object at address and return the transaction digest."""
        ...


async def call_with_timeout(coro: Awaitable[T], timeout: float | None, what: str) -> T:
    """Await a chain call, turning a timeout into TransientChainError."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TransientChainError(f"{what} timed out after {timeout}s") from e
