"""
Debug endpoint exposure probe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType
from keyguard.probes.false_positive import has_debug_info, is_debug_false_positive
from keyguard.utils import join_path

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class DebugEndpointsProbe(BaseProbe):
    """Detect reachable debug, health, and status endpoints."""

    probe_type = ProbeType.DEBUG_ENDPOINTS

    DEBUG_ENDPOINTS: tuple[str, ...] = (
        "/debug",
        "/test",
        "/dev",
        "/api/debug",
        "/api/test",
        "/health",
        "/status",
        "/info",
        "/.well-known/security.txt",
    )

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []
        exposed: list[str] = []

        for endpoint in self.DEBUG_ENDPOINTS:
            try:
                response = await client.get(join_path(base_url, endpoint))
            except TransportError as e:
                self.logger.debug("endpoint_skipped", endpoint=endpoint, error=str(e))
                continue

            if response.status_code != 200:
                continue
            body = response.text
            if is_debug_false_positive(body):
                continue
            if has_debug_info(body):
                self.logger.warning("debug_info_exposed", endpoint=endpoint)
                exposed.append(endpoint)

        if exposed:
            tests.append(
                self._create_test(
                    test_name="Debug Endpoint Exposure",
                    status=TestStatus.FAIL,
                    severity=Severity.MEDIUM,
                    description="Debug or development endpoints are publicly accessible",
                    recommendation="Disable debug endpoints in production or restrict access",
                    details={"exposed_endpoints": ", ".join(exposed)},
                )
            )
        return tests
