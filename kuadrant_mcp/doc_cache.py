"""TTL cache for remote documentation shared by every resource read.

Each read goes through :meth:`DocumentCache.fetch`::

    read lock: fresh entry?  ──yes──►  cached content
        │ no
        ▼
    GET url (no lock held, bounded timeout)
        ├── ok       ──►  write lock: store entry  ──►  fetched content
        └── failure  ──►  fallback (if any)  or  FetchFailed

Two callers that both see the same stale entry will both fetch it and the
last one to finish wins.  Refreshes are not collapsed per URL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

import httpx

from kuadrant_mcp.config import DOC_CACHE_TTL_SECONDS, DOC_FETCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class FetchFailed(RuntimeError):
    """A document could not be fetched and no fallback was configured."""

    def __init__(self, url: str, cause: BaseException):
        super().__init__(f"failed to fetch {url}: {cause}")
        self.url = url
        self.cause = cause


@dataclass(frozen=True)
class CacheEntry:
    content: str
    fetched_at: float


class ReadWriteLock:
    """asyncio lock allowing many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writing = False

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writing)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writing and self._readers == 0
            )
            self._writing = True
        try:
            yield
        finally:
            async with self._cond:
                self._writing = False
                self._cond.notify_all()


class DocumentCache:
    """URL -> text cache with a fixed TTL and fallback on fetch failure.

    Parameters
    ----------
    ttl
        Seconds an entry stays fresh.  Fixed for the lifetime of the cache.
    timeout
        Upper bound in seconds for a single remote fetch.
    clock
        Returns the current time in seconds.  Tests inject a fake clock to
        move past the TTL without sleeping.
    _client
        Optional ``httpx.AsyncClient``.  When omitted the cache creates one
        on first use and owns it (see :meth:`close`).
    """

    def __init__(
        self,
        ttl: float = DOC_CACHE_TTL_SECONDS,
        timeout: float = DOC_FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
        _client: Optional[httpx.AsyncClient] = None,
    ):
        self.ttl = ttl
        self.timeout = timeout
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._client: Optional[httpx.AsyncClient] = _client
        self._injected = _client is not None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def get_entry(self, url: str) -> Optional[CacheEntry]:
        """Return the stored entry for *url*, fresh or not."""
        async with self._lock.read():
            return self._store.get(url)

    async def fetch(
        self,
        url: str,
        fallback: str = "",
        timeout: Optional[float] = None,
    ) -> str:
        """Return the document at *url*, from cache when still fresh.

        On any fetch failure *fallback* is returned instead, unless it is
        empty, in which case :class:`FetchFailed` is raised.  Failures never
        modify the cache, so a stale entry survives until a fetch succeeds.

        The timeout bounds the whole retrieval, body included, not just each
        network phase.  *timeout* lets the caller impose a tighter deadline
        than the cache-wide one.  Expiry is handled like any other transport
        failure.
        """
        if not url:
            raise ValueError("url must not be empty")

        async with self._lock.read():
            entry = self._store.get(url)
            if entry is not None and self._clock() - entry.fetched_at < self.ttl:
                logger.debug("Cache hit for %s", url)
                return entry.content

        effective_timeout = self.timeout
        if timeout is not None:
            effective_timeout = min(effective_timeout, timeout)

        try:
            content = await self._retrieve_within(url, effective_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            if fallback:
                logger.warning(
                    "Failed to fetch %s, serving fallback content: %s", url, exc
                )
                return fallback
            logger.error("Failed to fetch %s: %s", url, exc)
            raise FetchFailed(url, exc) from exc

        entry = CacheEntry(content=content, fetched_at=self._clock())
        async with self._lock.write():
            self._store[url] = entry
        return content

    async def _retrieve_within(self, url: str, timeout: float) -> str:
        # httpx timeouts apply per phase, so a slow trickling body needs an
        # overall deadline on top
        try:
            return await asyncio.wait_for(self._retrieve(url, timeout), timeout)
        except asyncio.TimeoutError:
            raise httpx.TimeoutException(
                f"no complete response within {timeout}s"
            ) from None

    async def _retrieve(self, url: str, timeout: float) -> str:
        logger.info("Fetching %s", url)
        response = await self._get_client().get(url, timeout=timeout)
        response.raise_for_status()
        return response.text

    async def close(self) -> None:
        """Close the HTTP client if the cache created it."""
        if self._client is not None and not self._injected:
            await self._client.aclose()
            self._client = None
