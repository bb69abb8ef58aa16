from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from washdesk.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


class StoreClient:
    """Async HTTP client for the hosted PostgREST-style data store."""

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 10.0,
        use_mock_data: bool = True,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._timeout = timeout
        self._transport = transport
        self.use_mock_data = use_mock_data or not self._base_url
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers.update(
                {
                    "apikey": api_key,
                    "Authorization": f"Bearer {api_key}",
                }
            )
        self._client: Optional[httpx.AsyncClient] = None
        if not self.use_mock_data and self._base_url:
            self._client = self._build_client()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.use_mock_data or not self._base_url:
            raise RuntimeError("HTTP client requested while running in mock mode")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def select(
        self, table: str, params: Dict[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        """Return the rows of ``table`` matching the PostgREST query ``params``."""

        if self.use_mock_data:
            raise RuntimeError("Real HTTP call requested while mock mode is enabled")
        client = await self._ensure_client()
        path = f"{REST_PREFIX}/{table}"
        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.exception("Data store returned error %s for %s", exc.response.status_code, table)
            raise DownstreamServiceError(
                "Data store returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach data store: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach data store", status_code=None, cause=exc
            ) from exc
        except ValueError as exc:
            logger.exception("Data store returned malformed JSON for %s", table)
            raise DownstreamServiceError(
                "Data store returned malformed JSON", status_code=response.status_code, cause=exc
            ) from exc

        if not isinstance(payload, list):
            raise DownstreamServiceError(
                f"Unexpected payload for table '{table}'", status_code=response.status_code
            )
        return payload

    async def simulate_latency(self) -> None:
        """Allow services to await for latency even when mocking responses."""

        await asyncio.sleep(0)
