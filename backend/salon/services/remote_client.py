# Overview: HTTP client that saves transactions to a remote ledger API; used as the sync queue's persist call.

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class RemoteLedgerClient:
    """
    Thin async wrapper over POST /api/transactions.

    save() answers one question for the sync queue: did the ledger accept
    the record? Timeouts, connection errors and non-2xx responses all mean
    "try again later" and return False; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def save(self, record: dict) -> bool:
        try:
            response = await self._get_client().post("/api/transactions", json=record)
        except httpx.HTTPError as e:
            logger.info("Ledger unreachable while saving %s: %s", record.get("id"), e)
            return False

        if response.is_success:
            return True
        logger.warning(
            "Ledger rejected %s with HTTP %s: %s",
            record.get("id"), response.status_code, response.text[:200],
        )
        return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RemoteLedgerClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
