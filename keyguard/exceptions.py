"""
Exception hierarchy for KeyGuard.

Transport errors on the root page and recommendation errors are fatal to a
scan; transport errors on secondary resources are skipped by the caller.
"""

from __future__ import annotations


class KeyGuardError(Exception):
    """Base class for all KeyGuard errors."""


class ConfigurationError(KeyGuardError):
    """Raised when required configuration is missing or invalid."""


class TransportError(KeyGuardError):
    """Raised when an outbound HTTP request fails (DNS, timeout, connection)."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message


class RecommendationError(KeyGuardError):
    """Raised when the recommendation generator cannot produce text."""


class ScanStateError(KeyGuardError):
    """Raised on an illegal scan state transition."""
