"""
Security score and compliance summary.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from keyguard.models import Finding, Severity, VulnerabilityTest

FINDING_PENALTIES: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}

FAILED_TEST_PENALTIES: dict[Severity, int] = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 12,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
}

MAX_SCORE = 100


def calculate_security_score(
    tests: Iterable[VulnerabilityTest],
    findings: Iterable[Finding],
) -> int:
    """
    Reduce findings and failed probe results to a 0-100 score.

    Args:
        tests: Active probe results; only failed tests are penalised
        findings: Credential findings

    Returns:
        Score floored at 0
    """
    penalty = sum(FINDING_PENALTIES.get(f.severity, 0) for f in findings)
    penalty += sum(FAILED_TEST_PENALTIES.get(t.severity, 0) for t in tests if t.failed)
    return max(0, MAX_SCORE - penalty)


def _posture(failed: int) -> str:
    if failed == 0:
        return "Excellent"
    if failed <= 3:
        return "Good"
    if failed <= 7:
        return "Fair"
    return "Poor"


def check_compliance_status(
    security_headers: Mapping[str, str],
    tests: Iterable[VulnerabilityTest],
) -> dict[str, str]:
    """
    Summarise OWASP header coverage, HTTPS status, and overall posture.

    Args:
        security_headers: Observed response headers, lower-cased names
        tests: Active probe results

    Returns:
        Mapping with "OWASP", "SSL/TLS", and "Security Posture" ratings
    """
    tests = list(tests)
    has_csp = "content-security-policy" in security_headers
    has_hsts = "strict-transport-security" in security_headers
    has_frame_options = "x-frame-options" in security_headers

    if has_csp and has_hsts and has_frame_options:
        owasp = "Good"
    elif has_csp or has_hsts:
        owasp = "Partial"
    else:
        owasp = "Poor"

    ssl_passed = all(
        not t.failed for t in tests if "HTTPS" in t.test_name or "SSL" in t.test_name
    )
    failed = sum(1 for t in tests if t.failed)

    return {
        "OWASP": owasp,
        "SSL/TLS": "Good" if ssl_passed else "Poor",
        "Security Posture": _posture(failed),
    }
