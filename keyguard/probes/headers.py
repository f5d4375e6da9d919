"""
Security header probe.

Checks the base response for six security-relevant headers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class SecurityHeadersProbe(BaseProbe):
    """Emit one pass/fail test per expected security header."""

    probe_type = ProbeType.SECURITY_HEADERS

    # (header, display name, purpose)
    SECURITY_HEADERS: tuple[tuple[str, str, str], ...] = (
        ("content-security-policy", "CSP", "Prevents XSS and code injection attacks"),
        ("x-frame-options", "X-Frame-Options", "Prevents clickjacking attacks"),
        ("x-content-type-options", "X-Content-Type-Options", "Prevents MIME type sniffing"),
        ("strict-transport-security", "HSTS", "Enforces HTTPS connections"),
        ("referrer-policy", "Referrer-Policy", "Controls referrer information"),
        ("permissions-policy", "Permissions-Policy", "Controls browser features"),
    )

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []
        try:
            response = await client.get(base_url)
        except TransportError as e:
            self.logger.warning("base_request_failed", url=base_url, error=str(e))
            return tests

        for header, name, purpose in self.SECURITY_HEADERS:
            present = response.header(header) is not None
            tests.append(
                self._create_test(
                    test_name=f"{name} Header",
                    status=TestStatus.PASS if present else TestStatus.FAIL,
                    severity=Severity.INFO if present else Severity.MEDIUM,
                    description=f"Security header check: {purpose}",
                    recommendation=(
                        "Header properly configured"
                        if present
                        else f"Implement {name} header to improve security"
                    ),
                    details={"header": header},
                )
            )
        return tests
