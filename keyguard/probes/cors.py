"""
CORS configuration probe.

Sends a preflight from a hostile origin and inspects
Access-Control-Allow-Origin.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class CORSProbe(BaseProbe):
    """Flag wildcard Access-Control-Allow-Origin responses."""

    probe_type = ProbeType.CORS

    PROBE_ORIGIN = "https://evil.com"

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []
        try:
            response = await client.options(
                base_url,
                headers={
                    "Origin": self.PROBE_ORIGIN,
                    "Access-Control-Request-Method": "POST",
                },
            )
        except TransportError as e:
            self.logger.warning("preflight_failed", url=base_url, error=str(e))
            return tests

        allow_origin = response.header("access-control-allow-origin")
        if allow_origin is None:
            return tests

        if allow_origin == "*":
            tests.append(
                self._create_test(
                    test_name="CORS Misconfiguration",
                    status=TestStatus.FAIL,
                    severity=Severity.MEDIUM,
                    description="CORS allows all origins (*)",
                    recommendation="Restrict CORS to specific trusted domains",
                    details={"allow_origin": allow_origin},
                )
            )
        else:
            tests.append(
                self._create_test(
                    test_name="CORS Configuration",
                    status=TestStatus.PASS,
                    severity=Severity.INFO,
                    description="CORS is properly configured",
                    recommendation="Continue monitoring CORS configuration",
                )
            )
        return tests
