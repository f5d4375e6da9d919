"""
HTML/DOM access built on BeautifulSoup.

Thin wrappers so the rest of the scanner only deals with selectors and
attribute strings. Selector and parse failures degrade to empty results.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from bs4 import BeautifulSoup, Tag

from keyguard.utils import resolve_url

logger = structlog.get_logger(__name__)

SCRIPT_SRC_SELECTOR = "script[src]"
INLINE_SCRIPT_SELECTOR = "script:not([src])"
STYLESHEET_SELECTOR = "link[rel='stylesheet']"


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select(document: BeautifulSoup, selector: str) -> list[Tag]:
    """Run a CSS selector, returning no elements if it cannot be evaluated."""
    try:
        return list(document.select(selector))
    except Exception as e:
        logger.warning("selector_error", selector=selector, error=str(e))
        return []


def attr(element: Tag, name: str) -> str | None:
    value = element.get(name)
    if value is None:
        return None
    # Multi-valued attributes such as rel come back as lists
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def inner_html(element: Tag) -> str:
    return element.decode_contents()


@dataclass
class PageResources:
    """Scannable resources referenced directly by a page."""

    script_urls: list[str] = field(default_factory=list)
    inline_scripts: list[str] = field(default_factory=list)
    css_urls: list[str] = field(default_factory=list)

    @property
    def check_count(self) -> int:
        """Number of scan checks: the HTML itself plus every resource."""
        return 1 + len(self.script_urls) + len(self.inline_scripts) + len(self.css_urls)


def extract_page_resources(html: str, base_url: str) -> PageResources:
    """
    Collect external scripts, inline scripts, and stylesheets from a page.

    Args:
        html: Raw page HTML
        base_url: URL the page was fetched from, used to resolve references

    Returns:
        PageResources with absolute script and stylesheet URLs
    """
    resources = PageResources()
    try:
        document = parse_document(html)
    except Exception as e:
        logger.warning("html_parse_error", url=base_url, error=str(e))
        return resources

    for element in select(document, SCRIPT_SRC_SELECTOR):
        src = attr(element, "src")
        if src:
            resources.script_urls.append(resolve_url(base_url, src))

    for element in select(document, INLINE_SCRIPT_SELECTOR):
        resources.inline_scripts.append(inner_html(element))

    for element in select(document, STYLESHEET_SELECTOR):
        href = attr(element, "href")
        if href:
            resources.css_urls.append(resolve_url(base_url, href))

    return resources
