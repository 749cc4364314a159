"""Cancellation through an external signing service (POST /market/cancel)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from predindex.errors import CancellationError

log = structlog.get_logger(__name__)


class SignerServiceCanceller:
    """Canceller that delegates transaction building and signing to a signer service."""

    def __init__(self, signer_url: str, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None):
        self.signer_url = signer_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def cancel_market(self, address: str) -> str:
        url = f"{self.signer_url}/market/cancel"
        try:
            resp = await self._get_client().post(url, json={"market_id": address})
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CancellationError(f"cancel {address} failed: {e}") from e
        digest = body.get("digest") if isinstance(body, dict) else None
        if not digest:
            raise CancellationError(f"cancel {address}: signer returned no digest")
        log.debug("cancel_submitted", address=address, digest=digest)
        return str(digest)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> SignerServiceCanceller:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
