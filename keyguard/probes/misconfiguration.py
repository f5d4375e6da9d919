"""
Server misconfiguration probe.

Looks for server software and technology banners in response headers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class MisconfigurationProbe(BaseProbe):
    """Flag Server and X-Powered-By banners."""

    probe_type = ProbeType.MISCONFIGURATION

    KNOWN_SERVERS: tuple[str, ...] = ("apache", "nginx", "iis")

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []
        try:
            response = await client.get(base_url)
        except TransportError as e:
            self.logger.warning("base_request_failed", url=base_url, error=str(e))
            return tests

        server = response.header("server")
        if server is not None and any(s in server.lower() for s in self.KNOWN_SERVERS):
            tests.append(
                self._create_test(
                    test_name="Server Information Disclosure",
                    status=TestStatus.FAIL,
                    severity=Severity.LOW,
                    description="Server header reveals server software information",
                    recommendation=(
                        "Hide or modify server header to prevent information disclosure"
                    ),
                    details={"server_header": server},
                )
            )

        powered_by = response.header("x-powered-by")
        if powered_by is not None:
            tests.append(
                self._create_test(
                    test_name="Technology Disclosure",
                    status=TestStatus.FAIL,
                    severity=Severity.LOW,
                    description="X-Powered-By header reveals technology stack",
                    recommendation="Remove X-Powered-By header to prevent technology disclosure",
                    details={"powered_by": powered_by},
                )
            )
        return tests
