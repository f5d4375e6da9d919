"""
Information disclosure probe.

Requests paths that should not exist and looks for stack traces or debug
output in the error pages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType
from keyguard.utils import join_path

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class InfoDisclosureProbe(BaseProbe):
    """Flag error pages that leak exception or debug details."""

    probe_type = ProbeType.INFO_DISCLOSURE

    ERROR_PATHS: tuple[str, ...] = (
        "/nonexistent-page-404",
        "/admin/login",
        "/api/nonexistent",
    )

    CASE_INSENSITIVE_MARKERS: tuple[str, ...] = ("stack trace", "debug", "exception")
    EXACT_MARKERS: tuple[str, ...] = ("at line", "file not found:")

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []

        for path in self.ERROR_PATHS:
            try:
                response = await client.get(join_path(base_url, path))
            except TransportError as e:
                self.logger.debug("path_skipped", path=path, error=str(e))
                continue

            if self.has_disclosure(response.text):
                tests.append(
                    self._create_test(
                        test_name="Information Disclosure",
                        status=TestStatus.FAIL,
                        severity=Severity.MEDIUM,
                        description="Error pages reveal sensitive information",
                        recommendation=(
                            "Configure custom error pages that don't expose system details"
                        ),
                        details={"path": path, "status_code": str(response.status_code)},
                    )
                )
        return tests

    @classmethod
    def has_disclosure(cls, body: str) -> bool:
        lowered = body.lower()
        return any(m in lowered for m in cls.CASE_INSENSITIVE_MARKERS) or any(
            m in body for m in cls.EXACT_MARKERS
        )
