"""
Utility functions for the KeyGuard scanner.

Provides entropy calculation, secret masking, text context helpers,
URL resolution, and HTML title extraction.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from datetime import datetime, timezone
from urllib.parse import urljoin

CONTEXT_RADIUS = 50

_TITLE_RE = re.compile(r"<title>(.*?)</title>", re.DOTALL)


def calculate_entropy(data: str) -> float:
    """
    Calculate Shannon entropy in bits per character.

    Args:
        data: Input string to analyze

    Returns:
        Entropy value in bits per character (0.0 for empty input)
    """
    if not data:
        return 0.0

    counter = Counter(data)
    length = len(data)
    entropy = 0.0

    for count in counter.values():
        probability = count / length
        entropy -= probability * math.log2(probability)

    return entropy


def mask_secret(value: str) -> str:
    """
    Mask a secret so it can be shown in reports.

    Values of eight characters or fewer are fully starred; longer values
    keep their first and last four characters.
    """
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


def extract_context(content: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    """Return the match plus up to `radius` characters either side."""
    return content[max(0, start - radius) : min(len(content), end + radius)]


def line_number_at(content: str, position: int) -> int:
    """1-based line number of `position` within `content`."""
    return content.count("\n", 0, position) + 1


def resolve_url(base_url: str, reference: str) -> str:
    """
    Resolve a script/stylesheet reference against the page URL.

    Protocol-relative references are pinned to https.
    """
    if reference.startswith(("http://", "https://")):
        return reference
    if reference.startswith("//"):
        return f"https:{reference}"
    return urljoin(base_url, reference)


def resource_name(url: str) -> str:
    """Last path segment of a URL, used in location labels."""
    name = url.rstrip("/").rsplit("/", 1)[-1]
    return name or url


def extract_title(html: str) -> str:
    """Text of the first <title> element, or empty string."""
    match = _TITLE_RE.search(html)
    return match.group(1) if match else ""


def join_path(base_url: str, path: str) -> str:
    """Append an absolute path to the base URL without doubling slashes."""
    return f"{base_url.rstrip('/')}{path}"


def truncate_string(s: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix.

    Args:
        s: String to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to append when truncated

    Returns:
        Truncated string
    """
    if len(s) <= max_length:
        return s
    return s[: max_length - len(suffix)] + suffix


def get_utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.0f}s"
