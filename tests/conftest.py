"""Pytest fixtures for KeyGuard tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

import httpx
import pytest

from keyguard.http_client import HttpClient
from keyguard.models import Finding, ScanConfig
from keyguard.probes.base import BaseProbe
from keyguard.storage import InMemoryScanStore

SPA_SHELL = (
    "<!DOCTYPE html><html><head><title>Acme Dashboard</title></head>"
    '<body><div id="root"></div><script src="/static/app.js"></script></body></html>'
)


class FakeSite:
    """
    In-memory website served through httpx.MockTransport.

    Routes are keyed by method, scheme, host and path; anything not
    registered answers 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str, str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _key(method: str, url: str | httpx.URL) -> tuple[str, str, str, str]:
        parsed = httpx.URL(url)
        return (method.upper(), parsed.scheme, parsed.host, parsed.path or "/")

    def add(
        self,
        url: str,
        body: str = "",
        status: int = 200,
        headers: dict[str, str] | None = None,
        method: str = "GET",
    ) -> "FakeSite":
        self.routes[self._key(method, url)] = lambda request: httpx.Response(
            status, headers=headers, text=body
        )
        return self

    def fail(self, url: str, method: str = "GET") -> "FakeSite":
        """Make requests to `url` raise a connection error."""

        def raise_error(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[self._key(method, url)] = raise_error
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(self._key(request.method, request.url))
        if route is None:
            return httpx.Response(404, text="Not Found")
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested_paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class StubRecommender:
    """RecommendationGenerator test double recording every call."""

    def __init__(self, text: str = "Rotate exposed keys.", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        findings: Sequence[Finding],
        url: str,
        content_summary: str | None = None,
    ) -> str:
        self.calls.append(
            {"findings": list(findings), "url": url, "content_summary": content_summary}
        )
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def site() -> FakeSite:
    """Empty fake website."""
    return FakeSite()


@pytest.fixture
def fast_config() -> ScanConfig:
    """Scan configuration that does not throttle test traffic."""
    return ScanConfig(rate_limit=100.0, max_concurrency=8, active_probes=False)


@pytest.fixture
def store() -> InMemoryScanStore:
    return InMemoryScanStore()


@pytest.fixture
def recommender() -> StubRecommender:
    return StubRecommender()


@pytest.fixture
def run_probe(fast_config: ScanConfig) -> Callable[..., list]:
    """Run a probe against a FakeSite and return its tests."""

    def run(probe: BaseProbe, site: FakeSite, base_url: str = "https://example.com") -> list:
        async def go() -> list:
            async with HttpClient(fast_config, transport=site.transport) as client:
                return await probe.probe(client, base_url)

        return asyncio.run(go())

    return run
