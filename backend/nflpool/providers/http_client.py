"""
backend/nflpool/providers/http_client.py

Purpose:
    Thin httpx.AsyncClient wrapper shared by upstream providers. Retries are
    opt-in (default zero): a failed poll simply waits for the next scheduler
    tick, so there is no backoff curve and no circuit breaker here.

Dependencies:
    - httpx
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("nflpool.http_client")

_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
_NETWORK_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


def _safe_url(url: str) -> str:
    """Strip query params for logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ResilientClient:
    """httpx.AsyncClient with a bounded, fixed-delay retry on transient failures."""

    def __init__(
        self,
        name: str,
        timeout: float = 10.0,
        max_retries: int = 0,
        retry_delay: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._name = name
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute a request; returns the last response or re-raises the last network error."""
        attempts = self._max_retries + 1
        last_exc: Optional[Exception] = None
        last_resp: Optional[httpx.Response] = None

        for attempt in range(attempts):
            try:
                resp = await self._client.request(method, url, **kwargs)
            except _NETWORK_ERRORS as exc:
                last_exc = exc
                logger.warning(
                    "[%s] Network error on %s %s (attempt %d/%d): %s",
                    self._name, method, _safe_url(url), attempt + 1, attempts, exc,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(self._retry_delay)
                continue

            if resp.status_code not in _RETRYABLE_STATUSES:
                return resp

            last_resp = resp
            logger.warning(
                "[%s] HTTP %d on %s %s (attempt %d/%d)",
                self._name, resp.status_code, method, _safe_url(url), attempt + 1, attempts,
            )
            if attempt < self._max_retries:
                await asyncio.sleep(min(_retry_after(resp) or self._retry_delay, 30.0))

        if last_resp is not None:
            return last_resp
        raise last_exc  # type: ignore[misc]

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
