"""
KeyGuard - website credential leak and misconfiguration scanner.

Scans a page and its directly linked scripts and stylesheets for exposed
API keys, runs heuristic security probes against the site, and produces
a scored report with remediation advice.
"""

__version__ = "1.0.0"

from keyguard.exceptions import (
    ConfigurationError,
    KeyGuardError,
    RecommendationError,
    ScanStateError,
    TransportError,
)
from keyguard.models import (
    Finding,
    ScanConfig,
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatus,
    Severity,
    VulnerabilityTest,
)
from keyguard.orchestrator import ScanOrchestrator, ScanState
from keyguard.scanner import CredentialScanner
from keyguard.storage import InMemoryScanStore, ScanStore

__all__ = [
    "__version__",
    "ConfigurationError",
    "KeyGuardError",
    "RecommendationError",
    "ScanStateError",
    "TransportError",
    "Finding",
    "ScanConfig",
    "ScanProgress",
    "ScanRequest",
    "ScanResult",
    "ScanStatus",
    "Severity",
    "VulnerabilityTest",
    "ScanOrchestrator",
    "ScanState",
    "CredentialScanner",
    "InMemoryScanStore",
    "ScanStore",
]
