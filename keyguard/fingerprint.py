"""
Context Fingerprinter.

Best-effort static analysis of page markup: detects frameworks, build
tools, and third-party services, and harvests candidate API endpoints,
external resources, form targets, and meta tags.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

import structlog

from keyguard import dom
from keyguard.models import SecurityAnalysis
from keyguard.utils import resolve_url

logger = structlog.get_logger(__name__)

# (label, markers) - any marker present in the raw HTML adds the label
FRAMEWORK_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Next.js/React", ("React", "_next", "__NEXT_DATA__")),
    ("Vue.js", ("Vue", "vue.js")),
    ("Angular", ("angular", "ng-")),
    ("Svelte", ("svelte",)),
)

BUILD_TOOL_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Webpack", ("webpack",)),
    ("Vite", ("vite",)),
)

LIBRARY_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Tailwind CSS", ("tailwind", "tw-")),
    ("Bootstrap", ("bootstrap",)),
    ("jQuery", ("jquery",)),
    ("Axios", ("axios",)),
    ("Fetch API", ("fetch(",)),
)

# Matched against external script src attributes
SCRIPT_SERVICE_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Google Services", ("google",)),
    ("Facebook", ("facebook", "fb.com")),
    ("Cloudflare", ("cloudflare",)),
    ("Stripe", ("stripe",)),
)

# Matched against the whole page
CONTENT_SERVICE_SIGNATURES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Google Analytics", ("gtag", "google-analytics")),
    ("Hotjar", ("hotjar",)),
    ("Mixpanel", ("mixpanel",)),
    ("Sentry", ("sentry",)),
)

API_ENDPOINT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/api/[a-zA-Z0-9_\-/]+"),
    re.compile(r"https?://[^/]+/api/[a-zA-Z0-9_\-/]+"),
    re.compile(r"'/(?:api|v1|v2|v3)/[^']*'"),
    re.compile(r'"/api/[^"]*"'),
)


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


def _match_signatures(
    content: str,
    signatures: tuple[tuple[str, tuple[str, ...]], ...],
    into: list[str],
) -> None:
    for label, markers in signatures:
        if any(marker in content for marker in markers):
            _append_unique(into, label)


class ContextFingerprinter:
    """
    Fingerprint a page's technology stack and attack surface.

    Detection is substring matching, not semantic parsing; false negatives
    are expected.
    """

    def analyze(self, html: str, base_url: str) -> SecurityAnalysis:
        """
        Build a SecurityAnalysis for the page.

        Args:
            html: Raw page HTML
            base_url: URL the page was fetched from

        Returns:
            SecurityAnalysis with an empty `security_headers` mapping
        """
        frameworks: list[str] = []
        technologies: list[str] = []
        services: list[str] = []
        endpoints: list[str] = []
        external: list[str] = []
        form_actions: list[str] = []
        meta_tags: dict[str, str] = {}

        _match_signatures(html, FRAMEWORK_SIGNATURES, frameworks)
        _match_signatures(html, BUILD_TOOL_SIGNATURES, technologies)

        try:
            document = dom.parse_document(html)
        except Exception as e:
            logger.warning("fingerprint_parse_error", url=base_url, error=str(e))
            document = None

        if document is not None:
            for element in dom.select(document, "meta"):
                name = dom.attr(element, "name")
                content = dom.attr(element, "content")
                if name is not None and content is not None:
                    meta_tags[name] = content

            for element in dom.select(document, dom.SCRIPT_SRC_SELECTOR):
                src = dom.attr(element, "src") or ""
                if src and self._is_external(src, base_url):
                    external.append(src)
                    _match_signatures(src, SCRIPT_SERVICE_SIGNATURES, services)

            for element in dom.select(document, dom.STYLESHEET_SELECTOR):
                href = dom.attr(element, "href") or ""
                if href and self._is_external(href, base_url):
                    external.append(href)

            for element in dom.select(document, "form[action]"):
                action = dom.attr(element, "action") or ""
                form_actions.append(action)
                if action.startswith(("/api/", "api/")):
                    _append_unique(endpoints, action)

        for pattern in API_ENDPOINT_PATTERNS:
            for match in pattern.finditer(html):
                _append_unique(endpoints, match.group(0).strip("\"'"))

        _match_signatures(html, LIBRARY_SIGNATURES, technologies)
        _match_signatures(html, CONTENT_SERVICE_SIGNATURES, services)

        analysis = SecurityAnalysis(
            frameworks=frameworks,
            technologies=technologies,
            third_party_services=services,
            potential_endpoints=endpoints,
            external_resources=external,
            form_actions=form_actions,
            meta_tags=meta_tags,
        )
        logger.info(
            "security_context_analyzed",
            url=base_url,
            frameworks=analysis.frameworks,
            technologies=analysis.technologies,
            third_party_services=analysis.third_party_services,
            external_resources=len(analysis.external_resources),
            potential_endpoints=len(analysis.potential_endpoints),
            meta_tags=len(analysis.meta_tags),
        )
        return analysis

    @staticmethod
    def _is_external(reference: str, base_url: str) -> bool:
        """True when `reference` is served from a host other than the page's."""
        host = urlparse(resolve_url(base_url, reference)).netloc.lower()
        return bool(host) and host != urlparse(base_url).netloc.lower()
