"""Shared fixtures: a scripted upstream web, a controllable clock and an API client."""

import os

os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

from typing import Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from linkmeta.api.deps import get_client
from linkmeta.config import settings
from linkmeta.core.cache import build_caches
from linkmeta.core.rate_limiter import SlidingWindowLimiter
from linkmeta.main import app

HTML = {"content-type": "text/html; charset=utf-8"}


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeUpstream:
    """Scripted responses keyed by method and URL (query string ignored).

    Unregistered URLs answer 404. Every request is recorded.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _key(method: str, url: str | httpx.URL) -> tuple[str, str]:
        url = httpx.URL(url)
        return method.upper(), f"{url.scheme}://{url.netloc.decode()}{url.path}"

    def add(self, method: str, url: str, status_code: int = 200, **kwargs):
        self.routes[self._key(method, url)] = lambda request: httpx.Response(status_code, **kwargs)

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]):
        self.routes[self._key(method, url)] = handler

    def html(self, url: str, body: str, status_code: int = 200):
        self.add("GET", url, status_code, text=body, headers=HTML)

    def image(self, url: str, content_type: str = "image/png"):
        self.add("HEAD", url, headers={"content-type": content_type})

    def calls(self, method: str, url: str) -> int:
        key = self._key(method, url)
        return sum(1 for r in self.requests if self._key(r.method, r.url) == key)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(self._key(request.method, request.url))
        if route is None:
            return httpx.Response(404, text="Not Found")
        return route(request)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream: FakeUpstream):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(upstream.handler),
        follow_redirects=True,
        max_redirects=settings.FETCH_MAX_REDIRECTS,
    ) as c:
        yield c


@pytest.fixture
def caches():
    return build_caches("memory")


@pytest_asyncio.fixture
async def client(http_client: httpx.AsyncClient, caches):
    """API client over ASGI with fresh caches, a fresh limiter and the scripted upstream."""
    app.state.caches = caches
    app.state.rate_limiter = SlidingWindowLimiter(
        limit=settings.RATE_LIMIT_MAX, window=settings.RATE_LIMIT_WINDOW_SECONDS
    )
    app.dependency_overrides[get_client] = lambda: http_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
