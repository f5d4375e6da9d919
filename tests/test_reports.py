"""Tests for JSON and HTML report generation."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from keyguard.models import (
    Finding,
    ScanResult,
    ScanStatus,
    SecurityAnalysis,
    Severity,
    TestStatus,
    VulnerabilityTest,
)
from keyguard.reports import ReportGenerator


@pytest.fixture
def completed_result() -> ScanResult:
    result = ScanResult(url="https://example.com", user_id="u1")
    result.set_findings(
        [
            Finding(
                key_type="AWS Access Key",
                value="AKIA...MNOP",
                location="HTML",
                severity=Severity.CRITICAL,
                description="Amazon Web Services access key detected",
                context='const k = "<script>AKIA"',
                confidence=0.8,
            )
        ]
    )
    result.vulnerability_tests = [
        VulnerabilityTest(
            test_name="HTTPS Redirect",
            status=TestStatus.PASS,
            severity=Severity.INFO,
            description="HTTP traffic is properly redirected to HTTPS",
            recommendation="Continue enforcing HTTPS redirects",
        )
    ]
    result.security_analysis = SecurityAnalysis(frameworks=["Vue.js"])
    result.security_score = 75
    result.compliance_status = {"OWASP": "Poor"}
    result.ai_recommendations = "Rotate the <b>key</b>."
    result.status = ScanStatus.COMPLETED
    result.end_time = result.start_time + timedelta(seconds=3)
    result.total_checks = result.completed_checks = 4
    return result


class TestReportGenerator:
    """Test ReportGenerator."""

    def test_json_report(self, completed_result: ScanResult) -> None:
        data = json.loads(ReportGenerator(completed_result).generate_json())

        assert data["meta"]["target_url"] == "https://example.com"
        assert data["meta"]["scan_id"] == completed_result.id
        assert data["summary"]["status"] == "completed"
        assert data["summary"]["severity_counts"]["critical"] == 1
        assert data["summary"]["security_score"] == 75
        assert data["findings"][0]["value"] == "AKIA...MNOP"
        assert data["findings"][0]["severity"] == "critical"
        assert data["vulnerability_tests"][0]["status"] == "pass"
        assert data["security_analysis"]["frameworks"] == ["Vue.js"]

    def test_json_report_saved(self, completed_result: ScanResult, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        ReportGenerator(completed_result).generate_json(path)
        assert json.loads(path.read_text())["meta"]["scan_id"] == completed_result.id

    def test_html_report_escapes_scanned_content(self, completed_result: ScanResult) -> None:
        html = ReportGenerator(completed_result).generate_html()

        assert "KeyGuard Scan Report" in html
        assert "AKIA...MNOP" in html
        assert "Rotate the &lt;b&gt;key&lt;/b&gt;." in html
        assert "<b>key</b>" not in html
        assert "severity-critical" in html
        assert "Vue.js" in html

    def test_failed_scan_report(self) -> None:
        result = ScanResult(url="https://example.com", status=ScanStatus.FAILED, error="timeout")
        data = json.loads(ReportGenerator(result).generate_json())
        assert data["summary"]["error"] == "timeout"
        assert data["security_analysis"] is None
        assert "Scan failed: timeout" in ReportGenerator(result).generate_html()
