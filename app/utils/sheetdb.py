"""
SheetDB API client with rate limiting protection.

SheetDB exposes a Google Sheet as rows addressed by column value. Its free
tier is rate limited, so every call goes through one shared limiter (one call
in flight, a fixed minimum spacing) and transient failures or 429 answers are
retried with a linearly increasing backoff. There is no multi-row update on the
remote side; ``batch_update_rows`` applies single-row PATCHes in small batches.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable, List, Mapping, Optional
from urllib.parse import quote

import httpx

from app.core.exceptions import SheetDBError, SheetDBRateLimitError
from app.schemas.sheet import BatchResult, SheetRow, SheetUpdate

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforce a minimum delay between consecutive outbound calls"""

    def __init__(self, min_interval: float, clock: Callable[[], float] = time.monotonic):
        self._min_interval = min_interval
        self._clock = clock
        self._last_request: Optional[float] = None

    async def wait(self) -> None:
        if self._last_request is not None:
            elapsed = self._clock() - self._last_request
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
        self._last_request = self._clock()


class SheetDBClient:
    def __init__(
        self,
        api_url: str,
        rate_limit_delay: float = 1.0,
        max_retries: int = 3,
        batch_size: int = 5,
        batch_pause: float = 0.5,
        retry_backoff: float = 1.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self._max_retries = max_retries
        self._batch_size = batch_size
        self._batch_pause = batch_pause
        self._retry_backoff = retry_backoff
        self._limiter = RateLimiter(rate_limit_delay)
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _row_url(self, search_column: str, search_value: str) -> str:
        return f"{self.api_url}/{search_column}/{quote(str(search_value), safe='')}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send one request through the rate limiter, retrying transport errors
        (1s, 2s, 3s ...) and 429 answers (2s, 4s, 6s ...).
        Raises SheetDBError once retries are exhausted.
        """
        attempt = 0
        while True:
            error: Optional[Exception] = None
            response: Optional[httpx.Response] = None
            async with self._lock:
                await self._limiter.wait()
                try:
                    response = await self._client.request(method, url, **kwargs)
                except httpx.TransportError as e:
                    error = e

            if response is not None and response.status_code != 429:
                return response

            if attempt >= self._max_retries:
                if response is not None:
                    raise SheetDBRateLimitError(f"{method} {url} still rate limited after {attempt} retries", 429)
                raise SheetDBError(f"{method} {url} failed after {attempt} retries: {error}") from error

            attempt += 1
            step = 2.0 if response is not None else 1.0
            delay = attempt * step * self._retry_backoff
            reason = "rate limited" if response is not None else f"transport error: {error}"
            logger.warning(f"SheetDB {method} {reason}; retry {attempt}/{self._max_retries} in {delay:.1f}s")
            await asyncio.sleep(delay)

    async def get_all_rows(self) -> List[SheetRow]:
        response = await self._request("GET", self.api_url)
        if not response.is_success:
            raise SheetDBError(f"Failed to fetch sheet data: {response.status_code} {response.reason_phrase}", response.status_code)
        return [SheetRow.model_validate(row) for row in response.json()]

    async def update_row(self, search_column: str, search_value: str, data: Mapping[str, str]) -> bool:
        """PATCH the row(s) matching ``search_column == search_value``"""
        response = await self._request(
            "PATCH",
            self._row_url(search_column, search_value),
            json={"data": dict(data)},
        )
        if not response.is_success:
            logger.warning(f"SheetDB update {search_column}={search_value} rejected: {response.status_code}")
        return response.is_success

    async def batch_update_rows(self, updates: Iterable[SheetUpdate]) -> BatchResult:
        """
        Apply single-row updates sequentially, ``batch_size`` at a time with a
        pause between batches. A failing update is counted, never raised.
        """
        updates = list(updates)
        result = BatchResult()
        for start in range(0, len(updates), self._batch_size):
            for update in updates[start:start + self._batch_size]:
                try:
                    ok = await self.update_row(update.search_column, update.search_value, update.data)
                except SheetDBError as e:
                    logger.error(f"SheetDB update {update.search_column}={update.search_value} failed: {e}")
                    ok = False
                if ok:
                    result.success += 1
                else:
                    result.failed += 1

            if start + self._batch_size < len(updates):
                await asyncio.sleep(self._batch_pause)
        return result

    async def add_row(self, data: Mapping[str, str]) -> bool:
        response = await self._request("POST", self.api_url, json={"data": dict(data)})
        return response.is_success

    async def add_rows(self, rows: Iterable[Mapping[str, str]]) -> bool:
        response = await self._request("POST", self.api_url, json={"data": [dict(row) for row in rows]})
        return response.is_success

    async def delete_row(self, search_column: str, search_value: str) -> bool:
        response = await self._request("DELETE", self._row_url(search_column, search_value))
        return response.is_success
