"""Sui full node JSON-RPC client - object snapshots, module events, gas price."""

from __future__ import annotations

import itertools
from typing import Any

import httpx
import structlog

from predindex.errors import TransientChainError
from predindex.ingestion.sui.decode import decode_event_page, decode_object
from predindex.models import EventPage, ObjectSnapshot

log = structlog.get_logger(__name__)


def module_filter(package_id: str, module: str = "market") -> dict[str, Any]:
    """suix_queryEvents filter for every event emitted by one Move module."""
    return {"MoveModule": {"package": package_id, "module": module}}


class SuiChainReader:
    """ChainReader over Sui JSON-RPC. Every transport or RPC error surfaces as TransientChainError."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 10.0,
        page_size: int = 50,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.page_size = page_size
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._get_client().post(self.rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientChainError(f"{method} failed: {e}") from e
        if not isinstance(body, dict):
            raise TransientChainError(f"{method}: unexpected response body")
        if body.get("error"):
            raise TransientChainError(f"{method} rpc error: {body['error']}")
        return body.get("result")

    async def get_object(self, object_id: str) -> ObjectSnapshot:
        result = await self._call("sui_getObject", [object_id, {"showContent": True}])
        return decode_object(object_id, result)

    async def query_events(
        self,
        module_filter: dict[str, Any],
        cursor: dict[str, Any] | None = None,
        ascending: bool = True,
    ) -> EventPage:
        result = await self._call(
            "suix_queryEvents",
            [module_filter, cursor, self.page_size, not ascending],
        )
        page = decode_event_page(result)
        log.debug("events_page", count=len(page.events), has_more=page.has_more)
        return page

    async def get_gas_price(self) -> int:
        result = await self._call("suix_getReferenceGasPrice", [])
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise TransientChainError(f"bad reference gas price: {result!r}") from e

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> SuiChainReader:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
