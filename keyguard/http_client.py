"""HTTP client wrapper with throttling, timeouts, and error translation."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import structlog

from keyguard.exceptions import TransportError
from keyguard.models import ScanConfig
from keyguard.rate_limiter import RequestThrottle

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status, lower-cased headers, and decoded body of a response."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    text: str = ""

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400


class HttpClient:
    """
    Async HTTP client used by the orchestrator and every probe.

    Every request carries a timeout and passes through a shared throttle.
    httpx errors are re-raised as TransportError so callers only deal with
    one failure type.
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ScanConfig()
        self.throttle = RequestThrottle(
            max_concurrency=self.config.max_concurrency,
            rate=self.config.rate_limit,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpClient":
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            verify=self.config.verify_ssl,
            headers={"User-Agent": self.config.user_agent},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HttpClient used outside of its async context")
        return self._client

    async def get(
        self,
        url: str,
        timeout: float | None = None,
        follow_redirects: bool = True,
    ) -> HttpResponse:
        """Perform a GET request."""
        return await self._send("GET", url, timeout=timeout, follow_redirects=follow_redirects)

    async def options(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Perform an OPTIONS (CORS preflight) request."""
        return await self._send("OPTIONS", url, headers=headers, timeout=timeout)

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        follow_redirects: bool = True,
    ) -> HttpResponse:
        async with self.throttle:
            try:
                response = await self.client.request(
                    method,
                    url,
                    headers=headers,
                    timeout=timeout if timeout is not None else self.config.timeout,
                    follow_redirects=follow_redirects,
                )
                text = response.text if method != "OPTIONS" else ""
            except httpx.TimeoutException as e:
                logger.warning("request_timeout", method=method, url=url)
                raise TransportError(url, f"timeout: {e}") from e
            except httpx.HTTPError as e:
                logger.warning("request_failed", method=method, url=url, error=str(e))
                raise TransportError(url, str(e) or type(e).__name__) from e

        logger.debug("http_response", method=method, url=url, status=response.status_code)
        return HttpResponse(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            text=text,
        )
