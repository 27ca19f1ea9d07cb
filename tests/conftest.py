"""
Shared fixtures for the kuadrant-mcp test suite

The document cache is always wired to a fake clock and an in-memory
httpx transport so that no test reaches the network or sleeps through a TTL
"""

import httpx
import pytest

from kuadrant_mcp.doc_cache import DocumentCache

TTL = 15 * 60


class FakeClock:
    """Manually advanced replacement for ``time.time``"""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemote:
    """In-memory documentation server behind an ``httpx.MockTransport``

    ``bodies`` maps URL -> response body, ``status`` maps URL -> status code,
    ``errors`` maps URL -> exception raised instead of responding and
    ``gates`` maps URL -> ``asyncio.Event`` the response waits on.
    Every request URL is recorded in ``calls``
    """

    def __init__(self):
        self.bodies = {}
        self.status = {}
        self.errors = {}
        self.calls = []
        self.requests = []
        self.gates = {}

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        self.requests.append(request)
        if url in self.gates:
            await self.gates[url].wait()
        if url in self.errors:
            raise self.errors[url]
        return httpx.Response(
            self.status.get(url, 200),
            text=self.bodies.get(url, ""),
            request=request,
        )

    def count(self, url: str) -> int:
        return self.calls.count(url)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def remote():
    return FakeRemote()


@pytest.fixture()
def http_client(remote):
    return httpx.AsyncClient(transport=httpx.MockTransport(remote))


@pytest.fixture()
def cache(clock, http_client):
    return DocumentCache(ttl=TTL, timeout=30, clock=clock, _client=http_client)
