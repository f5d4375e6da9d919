"""
Credential pattern library.

An ordered, immutable table of credential formats. Order matters only for
the order in which findings are reported for a single piece of text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from keyguard.models import Severity


@dataclass(frozen=True, slots=True)
class CredentialPattern:
    """One credential format: name, compiled regex, severity, and provider."""

    name: str
    pattern: re.Pattern[str]
    severity: Severity
    provider: str
    description: str
    # Broad patterns that match unrelated identifiers are pinned to the
    # lowest confidence bucket.
    low_confidence: bool = False


def _p(
    name: str,
    regex: str,
    severity: Severity,
    provider: str,
    description: str,
    low_confidence: bool = False,
) -> CredentialPattern:
    return CredentialPattern(
        name=name,
        pattern=re.compile(regex),
        severity=severity,
        provider=provider,
        description=description,
        low_confidence=low_confidence,
    )


API_KEY_PATTERNS: tuple[CredentialPattern, ...] = (
    # AWS
    _p("AWS Access Key", r"AKIA[0-9A-Z]{16}", Severity.CRITICAL, "AWS",
       "Amazon Web Services access key detected"),
    _p("AWS Secret Key",
       r"(?i)(?:aws[_\-]?secret|secret[_\-]?access[_\-]?key)[=:\s]*([a-zA-Z0-9+/]{40})",
       Severity.CRITICAL, "AWS", "AWS secret access key detected"),
    _p("AWS Session Token", r"AQoEXAMPLEH4aoAH0gNCAPyJxz4BlCFFxWNE1OPTgk5TthT\+rJrR",
       Severity.HIGH, "AWS", "AWS session token detected"),
    # GitHub
    _p("GitHub Token", r"ghp_[a-zA-Z0-9]{36}", Severity.HIGH, "GitHub",
       "GitHub personal access token detected"),
    _p("GitHub OAuth Token", r"gho_[a-zA-Z0-9]{36}", Severity.HIGH, "GitHub",
       "GitHub OAuth token detected"),
    _p("GitHub App Token", r"(?:ghu|ghs)_[a-zA-Z0-9]{36}", Severity.HIGH, "GitHub",
       "GitHub app token detected"),
    # OpenAI
    _p("OpenAI API Key", r"sk-[a-zA-Z0-9]{20}T3BlbkFJ[a-zA-Z0-9]{20}", Severity.HIGH, "OpenAI",
       "OpenAI API key detected"),
    # Stripe
    _p("Stripe Secret Key", r"sk_(?:test|live)_[0-9a-zA-Z]{24}", Severity.CRITICAL, "Stripe",
       "Stripe secret API key detected"),
    _p("Stripe Publishable Key", r"pk_(?:test|live)_[0-9a-zA-Z]{24}", Severity.MEDIUM, "Stripe",
       "Stripe publishable key detected"),
    # Google
    _p("Google Cloud API Key", r"AIza[0-9A-Za-z\-_]{35}", Severity.HIGH, "Google Cloud",
       "Google Cloud Platform API key detected"),
    _p("Google OAuth Key", r"ya29\.[0-9A-Za-z\-_]+", Severity.HIGH, "Google",
       "Google OAuth access token detected"),
    # Azure: any standalone 32-hex string, so hashes and ids match too
    _p("Azure Subscription Key", r"\b[0-9a-f]{32}\b", Severity.HIGH, "Microsoft Azure",
       "Possible Microsoft Azure subscription key detected (32 hex characters)",
       low_confidence=True),
    # Slack
    _p("Slack Bot Token", r"xoxb-[0-9]{11}-[0-9]{11}-[0-9a-zA-Z]{24}", Severity.HIGH, "Slack",
       "Slack bot token detected"),
    _p("Slack Webhook",
       r"https://hooks\.slack\.com/services/[A-Z0-9]{9}/[A-Z0-9]{9}/[a-zA-Z0-9]{24}",
       Severity.MEDIUM, "Slack", "Slack webhook URL detected"),
    # Discord
    _p("Discord Bot Token", r"[MN][A-Za-z\d]{23}\.[\w-]{6}\.[\w-]{27}", Severity.HIGH, "Discord",
       "Discord bot token detected"),
    # Twilio
    _p("Twilio API Key", r"SK[a-z0-9]{32}", Severity.HIGH, "Twilio",
       "Twilio API key detected"),
    # SendGrid
    _p("SendGrid API Key", r"SG\.[a-zA-Z0-9_\-]{22}\.[a-zA-Z0-9_\-]{43}", Severity.HIGH, "SendGrid",
       "SendGrid API key detected"),
    # Mailgun
    _p("Mailgun API Key", r"key-[a-zA-Z0-9]{32}", Severity.HIGH, "Mailgun",
       "Mailgun API key detected"),
    # Generic
    _p("JWT Token", r"eyJ[a-zA-Z0-9_\-]*\.eyJ[a-zA-Z0-9_\-]*\.[a-zA-Z0-9_\-]*", Severity.MEDIUM,
       "Generic", "JSON Web Token detected"),
    _p("Database Connection String", r"(?:mongodb|mysql|postgresql|postgres)://[^\s]+",
       Severity.CRITICAL, "Database", "Database connection string detected"),
    _p("Private Key", r"-----BEGIN (?:RSA )?PRIVATE KEY-----", Severity.CRITICAL, "Cryptography",
       "Private key detected"),
)


def get_pattern(name: str) -> CredentialPattern:
    """Look up a pattern by its display name."""
    for pattern in API_KEY_PATTERNS:
        if pattern.name == name:
            return pattern
    raise KeyError(name)
