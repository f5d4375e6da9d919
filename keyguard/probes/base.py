"""
Base probe class defining the interface for all active security probes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from keyguard.models import Severity, TestStatus, VulnerabilityTest

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class ProbeType(StrEnum):
    """Active probe kinds, in execution order."""

    SECURITY_HEADERS = "security_headers"
    INFO_DISCLOSURE = "info_disclosure"
    SENSITIVE_PATHS = "sensitive_paths"
    DEBUG_ENDPOINTS = "debug_endpoints"
    CORS = "cors"
    TLS = "tls"
    MISCONFIGURATION = "misconfiguration"


class BaseProbe(ABC):
    """
    Abstract base class for active probes.

    Each probe builds and returns its own result list; probes never share
    mutable state, so they can run concurrently against the same client.
    """

    probe_type: ProbeType

    def __init__(self) -> None:
        self.logger = structlog.get_logger(probe=self.probe_type.value)

    @abstractmethod
    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        """
        Run the check against the target.

        Args:
            client: HTTP client shared by all probes of a scan
            base_url: Root URL of the scanned site

        Returns:
            Vulnerability tests emitted by this probe (possibly empty)
        """

    def _create_test(
        self,
        test_name: str,
        status: TestStatus,
        severity: Severity,
        description: str,
        recommendation: str,
        details: dict[str, str] | None = None,
    ) -> VulnerabilityTest:
        """Create a VulnerabilityTest and log failures."""
        if status == TestStatus.FAIL:
            self.logger.info(
                "probe_failed_check",
                test=test_name,
                severity=severity.value,
            )
        return VulnerabilityTest(
            test_name=test_name,
            status=status,
            severity=severity,
            description=description,
            recommendation=recommendation,
            details=details or {},
        )
