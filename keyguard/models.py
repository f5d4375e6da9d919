"""
Pydantic models for the KeyGuard scanner.

Defines findings, vulnerability test results, scan results, progress
events, and scan configuration.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(StrEnum):
    """Severity levels shared by findings and vulnerability tests."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class ScanStatus(StrEnum):
    """Lifecycle status persisted with a scan result."""

    SCANNING = "scanning"
    COMPLETED = "completed"
    FAILED = "failed"


class TestStatus(StrEnum):
    """Outcome of a single active probe check."""

    __test__ = False

    PASS = "pass"
    FAIL = "fail"


class ConfidenceThresholds(BaseModel):
    """Entropy cut-offs (bits/char) mapped to confidence buckets."""

    model_config = ConfigDict(frozen=True)

    high_entropy: float = Field(default=4.5, description="Entropy above which confidence is high")
    medium_entropy: float = Field(default=3.5, description="Entropy above which confidence is medium")
    high_confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    medium_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    low_confidence: float = Field(default=0.6, ge=0.0, le=1.0)


class ScanRequest(BaseModel):
    """Request to scan a single URL."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1, description="Target URL to scan")
    user_id: str | None = Field(default=None, description="Requesting user")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URL has valid scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Target URL must start with http:// or https://")
        return v


class Finding(BaseModel):
    """Credential detected in page content."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    key_type: str = Field(min_length=1, description="Pattern name that matched")
    value: str = Field(description="Masked matched value")
    location: str = Field(description="Where the match was found, e.g. 'JavaScript: app.js'")
    severity: Severity
    description: str
    recommendation: str | None = None
    context: str = Field(default="", description="Up to 50 characters either side of the match")
    line_number: int = Field(default=1, ge=1)
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: Severity) -> Severity:
        """Info is only used by vulnerability tests, never by findings."""
        if v == Severity.INFO:
            raise ValueError("Finding severity must be critical, high, medium, or low")
        return v


class ScanSummary(BaseModel):
    """Finding counts per severity bucket."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> "ScanSummary":
        """Recompute counts from a collection of findings."""
        summary = cls()
        for finding in findings:
            summary.total += 1
            match finding.severity:
                case Severity.CRITICAL:
                    summary.critical += 1
                case Severity.HIGH:
                    summary.high += 1
                case Severity.MEDIUM:
                    summary.medium += 1
                case Severity.LOW:
                    summary.low += 1
        return summary


class SecurityAnalysis(BaseModel):
    """Static fingerprint of the scanned page."""

    model_config = ConfigDict(frozen=True)

    frameworks: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    third_party_services: list[str] = Field(default_factory=list)
    security_headers: dict[str, str] = Field(default_factory=dict)
    potential_endpoints: list[str] = Field(default_factory=list)
    external_resources: list[str] = Field(default_factory=list)
    form_actions: list[str] = Field(default_factory=list)
    meta_tags: dict[str, str] = Field(default_factory=dict)

    def with_headers(self, headers: dict[str, str]) -> "SecurityAnalysis":
        """Return a copy carrying the observed security response headers."""
        return self.model_copy(update={"security_headers": dict(headers)})


class VulnerabilityTest(BaseModel):
    """Result of one active probe check."""

    model_config = ConfigDict(frozen=True)

    test_name: str
    status: TestStatus
    severity: Severity
    description: str
    recommendation: str
    details: dict[str, str] = Field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.status == TestStatus.FAIL


class ScanProgress(BaseModel):
    """Latest progress event for a scan."""

    model_config = ConfigDict(frozen=True)

    stage: str
    progress: int = Field(ge=0, le=100)
    message: str


class ScanResult(BaseModel):
    """Complete scan record, persisted at start and on every terminal transition."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str | None = None
    url: str
    status: ScanStatus = ScanStatus.SCANNING
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    findings: list[Finding] = Field(default_factory=list)
    total_checks: int = Field(default=0, ge=0)
    completed_checks: int = Field(default=0, ge=0)
    ai_recommendations: str | None = None
    summary: ScanSummary = Field(default_factory=ScanSummary)
    security_analysis: SecurityAnalysis | None = None
    vulnerability_tests: list[VulnerabilityTest] = Field(default_factory=list)
    security_score: int | None = Field(default=None, ge=0, le=100)
    compliance_status: dict[str, str] = Field(default_factory=dict)
    error: str | None = None

    @classmethod
    def from_request(cls, request: ScanRequest) -> "ScanResult":
        """Create the initial `scanning` record for a request."""
        return cls(url=request.url, user_id=request.user_id)

    @property
    def is_terminal(self) -> bool:
        return self.status in (ScanStatus.COMPLETED, ScanStatus.FAILED)

    @property
    def duration_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def set_findings(self, findings: list[Finding]) -> None:
        """Replace findings and recompute the summary."""
        self.findings = list(findings)
        self.summary = ScanSummary.from_findings(self.findings)


class ScanConfig(BaseModel):
    """Per-scan configuration with validation."""

    timeout: float = Field(default=30.0, ge=5.0, le=300.0, description="Request timeout in seconds")
    max_concurrency: int = Field(default=8, ge=1, le=32, description="Concurrent resource fetches")
    rate_limit: float = Field(default=10.0, gt=0.0, le=100.0, description="Requests per second")
    user_agent: str = Field(default="KeyGuard/1.0 Security Scanner")
    verify_ssl: bool = Field(default=True)
    active_probes: bool = Field(default=True, description="Run the active probe engine")
    confidence_thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)
