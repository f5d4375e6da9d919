"""Tests for the HTTP client wrapper and request throttle."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest
from conftest import FakeSite

from keyguard.exceptions import TransportError
from keyguard.http_client import HttpClient, HttpResponse
from keyguard.models import ScanConfig
from keyguard.rate_limiter import RequestThrottle, TokenBucketRateLimiter


class TestHttpClient:
    """Test HttpClient request handling."""

    def test_get_lowercases_headers(self, site: FakeSite, fast_config: ScanConfig) -> None:
        site.add("https://a.com/", "hello", headers={"X-Frame-Options": "DENY"})

        async def go() -> HttpResponse:
            async with HttpClient(fast_config, transport=site.transport) as client:
                return await client.get("https://a.com/")

        response = asyncio.run(go())
        assert response.status_code == 200
        assert response.text == "hello"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.header("X-Frame-Options") == "DENY"

    def test_sends_user_agent(self, site: FakeSite, fast_config: ScanConfig) -> None:
        site.add("https://a.com/")

        async def go() -> None:
            async with HttpClient(fast_config, transport=site.transport) as client:
                await client.get("https://a.com/")

        asyncio.run(go())
        assert site.requests[0].headers["User-Agent"] == fast_config.user_agent

    def test_connection_error_becomes_transport_error(
        self, site: FakeSite, fast_config: ScanConfig
    ) -> None:
        site.fail("https://a.com/")

        async def go() -> None:
            async with HttpClient(fast_config, transport=site.transport) as client:
                await client.get("https://a.com/")

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.url == "https://a.com/"

    def test_timeout_becomes_transport_error(self, fast_config: ScanConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async def go() -> None:
            async with HttpClient(fast_config, transport=httpx.MockTransport(handler)) as client:
                await client.get("https://a.com/")

        with pytest.raises(TransportError, match="timeout"):
            asyncio.run(go())

    def test_redirect_not_followed_when_disabled(
        self, site: FakeSite, fast_config: ScanConfig
    ) -> None:
        site.add("http://a.com/", status=301, headers={"Location": "https://a.com/"})

        async def go() -> HttpResponse:
            async with HttpClient(fast_config, transport=site.transport) as client:
                return await client.get("http://a.com/", follow_redirects=False)

        response = asyncio.run(go())
        assert response.is_redirect

    def test_used_outside_context_raises(self) -> None:
        with pytest.raises(RuntimeError):
            asyncio.run(HttpClient().get("https://a.com/"))


class TestRateLimiting:
    """Test the token bucket and throttle."""

    def test_rejects_non_positive_rate(self) -> None:
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(rate=0)

    def test_burst_then_wait(self) -> None:
        async def go() -> float:
            bucket = TokenBucketRateLimiter(rate=20.0, burst=2.0)
            start = time.monotonic()
            for _ in range(4):
                await bucket.acquire()
            return time.monotonic() - start

        # Two tokens are free, the next two take ~50ms each
        assert asyncio.run(go()) >= 0.08

    def test_throttle_bounds_concurrency(self) -> None:
        async def go() -> int:
            throttle = RequestThrottle(max_concurrency=2, rate=100.0)
            active = 0
            peak = 0

            async def work() -> None:
                nonlocal active, peak
                async with throttle:
                    active += 1
                    peak = max(peak, active)
                    await asyncio.sleep(0.01)
                    active -= 1

            await asyncio.gather(*(work() for _ in range(6)))
            return peak

        assert asyncio.run(go()) == 2
