"""
Credential Scanner.

Applies the pattern library to a blob of text and produces masked,
located, confidence-scored findings.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from keyguard.models import ConfidenceThresholds, Finding
from keyguard.patterns import API_KEY_PATTERNS, CredentialPattern
from keyguard.utils import calculate_entropy, extract_context, line_number_at, mask_secret

logger = structlog.get_logger(__name__)


class ConfidenceEstimator:
    """
    Map the Shannon entropy of a matched value onto three confidence buckets.

    Random key material sits well above 4.5 bits/char; placeholders and
    repeated characters fall into the lowest bucket.
    """

    def __init__(self, thresholds: ConfidenceThresholds | None = None) -> None:
        self.thresholds = thresholds or ConfidenceThresholds()

    def estimate(self, value: str) -> float:
        entropy = calculate_entropy(value)
        t = self.thresholds
        if entropy > t.high_entropy:
            return t.high_confidence
        if entropy > t.medium_entropy:
            return t.medium_confidence
        return t.low_confidence


def build_recommendation(pattern: CredentialPattern) -> str:
    """Remediation text for a leaked credential of the given kind."""
    return (
        f"Immediately revoke this {pattern.name} from your {pattern.provider} dashboard "
        "and generate a new one. Store the new key securely using environment variables "
        "or a secrets manager."
    )


class CredentialScanner:
    """
    Scan arbitrary text for credentials.

    Stateless apart from its pattern table and confidence estimator, so one
    instance can be shared across concurrent resource scans.
    """

    def __init__(
        self,
        patterns: Sequence[CredentialPattern] = API_KEY_PATTERNS,
        estimator: ConfidenceEstimator | None = None,
    ) -> None:
        self.patterns = tuple(patterns)
        self.estimator = estimator or ConfidenceEstimator()

    def scan(self, text: str, location: str) -> list[Finding]:
        """
        Find every credential match in `text`.

        Findings are ordered pattern by pattern, and within a pattern from
        first to last match.

        Args:
            text: Content to scan
            location: Label identifying the content source

        Returns:
            List of findings, empty if nothing matched
        """
        findings: list[Finding] = []
        if not text:
            return findings

        for pattern in self.patterns:
            try:
                findings.extend(self._scan_pattern(pattern, text, location))
            except Exception as e:
                logger.warning(
                    "pattern_scan_error",
                    pattern=pattern.name,
                    location=location,
                    error=str(e),
                )

        if findings:
            logger.info("credentials_detected", location=location, count=len(findings))
        else:
            logger.debug("no_credentials_found", location=location, length=len(text))
        return findings

    def _scan_pattern(
        self,
        pattern: CredentialPattern,
        text: str,
        location: str,
    ) -> list[Finding]:
        findings: list[Finding] = []
        for match in pattern.pattern.finditer(text):
            value = match.group(0)
            if not value:
                continue
            confidence = self.estimator.estimate(value)
            if pattern.low_confidence:
                confidence = min(confidence, self.estimator.thresholds.low_confidence)

            findings.append(
                Finding(
                    key_type=pattern.name,
                    value=mask_secret(value),
                    location=location,
                    severity=pattern.severity,
                    description=pattern.description,
                    recommendation=build_recommendation(pattern),
                    context=extract_context(text, match.start(), match.end()),
                    line_number=line_number_at(text, match.start()),
                    confidence=confidence,
                )
            )
        return findings
