"""
HTTPS enforcement probe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class TLSProbe(BaseProbe):
    """
    Check that the site uses HTTPS and redirects plain HTTP to it.

    A plain-HTTP base URL fails immediately without any request.
    """

    probe_type = ProbeType.TLS

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []

        if base_url.startswith("http://"):
            tests.append(
                self._create_test(
                    test_name="HTTPS Enforcement",
                    status=TestStatus.FAIL,
                    severity=Severity.HIGH,
                    description="Website is not using HTTPS",
                    recommendation="Implement HTTPS and redirect all HTTP traffic to HTTPS",
                )
            )
            return tests

        http_url = base_url.replace("https://", "http://", 1)
        try:
            response = await client.get(http_url, follow_redirects=False)
        except TransportError as e:
            self.logger.debug("http_variant_unreachable", url=http_url, error=str(e))
            return tests

        if response.is_redirect:
            tests.append(
                self._create_test(
                    test_name="HTTPS Redirect",
                    status=TestStatus.PASS,
                    severity=Severity.INFO,
                    description="HTTP traffic is properly redirected to HTTPS",
                    recommendation="Continue enforcing HTTPS redirects",
                )
            )
        else:
            tests.append(
                self._create_test(
                    test_name="HTTPS Redirect",
                    status=TestStatus.FAIL,
                    severity=Severity.MEDIUM,
                    description="HTTP traffic is not redirected to HTTPS",
                    recommendation="Configure server to redirect all HTTP requests to HTTPS",
                    details={"status_code": str(response.status_code)},
                )
            )
        return tests
