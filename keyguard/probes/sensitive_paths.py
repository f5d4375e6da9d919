"""
Sensitive path exposure probe.

Requests conventionally sensitive files and admin panels. A 200 response
only counts once it survives the false-positive filters and its body
matches the content predicate for its path family.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from keyguard.exceptions import TransportError
from keyguard.models import Severity, TestStatus, VulnerabilityTest
from keyguard.probes.base import BaseProbe, ProbeType
from keyguard.probes.false_positive import (
    PageBaseline,
    is_sensitive_content,
    is_sensitive_false_positive,
)
from keyguard.utils import join_path

if TYPE_CHECKING:
    from keyguard.http_client import HttpClient


class SensitivePathsProbe(BaseProbe):
    """Detect publicly readable configuration, VCS, and admin paths."""

    probe_type = ProbeType.SENSITIVE_PATHS

    SENSITIVE_PATHS: tuple[str, ...] = (
        # Environment files
        "/.env",
        "/api/.env",
        "/.env.local",
        "/.env.production",
        # Config files
        "/config.json",
        "/config.yaml",
        "/config.yml",
        "/config.toml",
        "/api/config.json",
        "/api/config.yaml",
        "/api/config.yml",
        "/api/config.toml",
        # Debug files
        "/api/debug.yaml",
        "/api/debug.yml",
        "/api/debug.json",
        "/debug.yaml",
        "/debug.yml",
        "/debug.json",
        # Package manifests
        "/package.json",
        "/composer.json",
        "/requirements.txt",
        "/Cargo.toml",
        # VCS metadata
        "/.git/config",
        "/.gitignore",
        # Backups and admin panels
        "/backup",
        "/admin",
        "/phpmyadmin",
        "/wp-admin",
        # Standard files, only when they hold real content
        "/robots.txt",
        "/sitemap.xml",
    )

    async def probe(self, client: "HttpClient", base_url: str) -> list[VulnerabilityTest]:
        tests: list[VulnerabilityTest] = []

        try:
            main_page = await client.get(base_url)
        except TransportError as e:
            self.logger.warning("baseline_request_failed", url=base_url, error=str(e))
            return tests

        baseline = PageBaseline.from_body(main_page.text)
        self.logger.debug("main_page_baseline", length=baseline.length, title=baseline.title)

        exposed: list[str] = []
        for path in self.SENSITIVE_PATHS:
            if await self._is_exposed(client, base_url, path, baseline):
                exposed.append(path)

        if exposed:
            joined = ", ".join(exposed)
            tests.append(
                self._create_test(
                    test_name="Sensitive File Exposure",
                    status=TestStatus.FAIL,
                    severity=Severity.HIGH,
                    description=f"Sensitive files are publicly accessible: {joined}",
                    recommendation=(
                        f"Immediately restrict access to these files: {joined}. "
                        "Configure server to deny access to sensitive file patterns."
                    ),
                    details={"accessible_paths": joined, "count": str(len(exposed))},
                )
            )
        else:
            tests.append(
                self._create_test(
                    test_name="Directory Traversal Protection",
                    status=TestStatus.PASS,
                    severity=Severity.INFO,
                    description="No sensitive files found publicly accessible",
                    recommendation="Continue monitoring for exposed files",
                )
            )
        return tests

    async def _is_exposed(
        self,
        client: "HttpClient",
        base_url: str,
        path: str,
        baseline: PageBaseline,
    ) -> bool:
        try:
            response = await client.get(join_path(base_url, path))
        except TransportError as e:
            self.logger.debug("path_skipped", path=path, error=str(e))
            return False

        if response.status_code != 200:
            return False

        body = response.text
        if is_sensitive_false_positive(body, baseline):
            self.logger.debug("path_false_positive", path=path, length=len(body))
            return False

        if is_sensitive_content(path, body):
            self.logger.warning("sensitive_file_found", path=path)
            return True
        return False
