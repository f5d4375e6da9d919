"""
False-positive classification for path-probing checks.

Many sites answer every path with 200: single-page apps serve their HTML
shell from a catch-all route and others render a custom "not found" page.
These helpers reject such responses before any content predicate runs, and
hold the declarative table of per-path-family content predicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from keyguard.utils import extract_title

NOT_FOUND_MARKERS: tuple[str, ...] = (
    "404",
    "Not Found",
    "Page Not Found",
    "Do you think this is a mistake",
    "page not found",
    "PAGE NOT FOUND",
)

# Matched against the lowercased body; html, head and body tags are all optional
HTML_MARKERS: tuple[str, ...] = ("<!doctype html", "<html", "<head", "<body")

DEBUG_MARKERS: tuple[str, ...] = ("debug", "version", "environment", "status")

# Catch-all HTML shells for debug endpoints tend to be small
CATCH_ALL_MAX_LENGTH = 2000

# Titles this short are too generic to identify the main page
MIN_TITLE_LENGTH = 5


@dataclass(frozen=True)
class PageBaseline:
    """Length and title of the main page, used for catch-all detection."""

    length: int
    title: str

    @classmethod
    def from_body(cls, body: str) -> "PageBaseline":
        return cls(length=len(body), title=extract_title(body))

    def matches(self, body: str) -> bool:
        """True when `body` looks like the main page served again."""
        return (
            len(self.title) > MIN_TITLE_LENGTH
            and len(body) == self.length
            and self.title in body
        )


def is_custom_404(body: str) -> bool:
    return any(marker in body for marker in NOT_FOUND_MARKERS)


def is_html_content(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in HTML_MARKERS)


def is_sensitive_false_positive(body: str, baseline: PageBaseline | None) -> bool:
    """Reject catch-all pages, custom 404 pages, and any HTML document."""
    if baseline is not None and baseline.matches(body):
        return True
    return is_custom_404(body) or is_html_content(body)


def is_debug_false_positive(body: str) -> bool:
    """Reject custom 404 pages and small HTML catch-all shells."""
    not_found = is_custom_404(body)
    catch_all = is_html_content(body) and (
        len(body) < CATCH_ALL_MAX_LENGTH or not_found
    )
    return not_found or catch_all


def has_debug_info(body: str) -> bool:
    """True when a non-HTML body exposes debug or runtime details."""
    if is_html_content(body):
        return False
    lowered = body.lower()
    if any(marker in lowered for marker in DEBUG_MARKERS):
        return True
    if body.startswith("{") and ('"version"' in body or '"status"' in body):
        return True
    return "uptime" in body or "memory" in body


@dataclass(frozen=True)
class PathFamily:
    """A group of probed paths sharing one content predicate."""

    name: str
    matches: Callable[[str], bool]
    is_sensitive: Callable[[str], bool]


def _contains(fragment: str) -> Callable[[str], bool]:
    return lambda path: fragment in path


def _any_of(*fragments: str) -> Callable[[str], bool]:
    return lambda path: any(f in path for f in fragments)


def _exact(expected: str) -> Callable[[str], bool]:
    return lambda path: path == expected


def _env_file(body: str) -> bool:
    return "=" in body and any(k in body for k in ("KEY", "SECRET", "TOKEN", "PASSWORD"))


def _json_config(body: str) -> bool:
    return body.startswith("{") and "config" in body and not is_html_content(body)


def _yaml_config(body: str) -> bool:
    return ":" in body and "config" in body and not is_html_content(body)


def _toml_config(body: str) -> bool:
    return "[" in body and "]" in body and not is_html_content(body)


def _debug_file(body: str) -> bool:
    return ("debug" in body or "DEBUG" in body) and not is_html_content(body)


def _package_json(body: str) -> bool:
    return "dependencies" in body or "scripts" in body or '"name"' in body


def _composer_json(body: str) -> bool:
    return "require" in body and body.startswith("{")


def _requirements_txt(body: str) -> bool:
    return "==" in body or ">=" in body


def _cargo_toml(body: str) -> bool:
    return "[package]" in body or "[dependencies]" in body


def _git_config(body: str) -> bool:
    return "[core]" in body or "repository" in body


def _gitignore(body: str) -> bool:
    return "node_modules" in body or "*.log" in body


def _admin_panel(body: str) -> bool:
    return (
        "admin" in body.lower()
        and ("login" in body or "dashboard" in body)
        and not is_html_content(body)
    )


def _phpmyadmin(body: str) -> bool:
    return "phpMyAdmin" in body or "pma_" in body


def _wp_admin(body: str) -> bool:
    return "WordPress" in body or "wp-login" in body


def _robots_txt(body: str) -> bool:
    return body.startswith("User-agent:") or "Disallow:" in body


def _sitemap_xml(body: str) -> bool:
    return body.startswith("<?xml") and "<urlset" in body


def _backup(body: str) -> bool:
    return not is_html_content(body) and len(body) > 100


# First matching family wins, so broad substring families come first
PATH_FAMILIES: tuple[PathFamily, ...] = (
    PathFamily("environment file", _contains(".env"), _env_file),
    PathFamily("JSON config", _contains("config.json"), _json_config),
    PathFamily("YAML config", _any_of("config.yaml", "config.yml"), _yaml_config),
    PathFamily("TOML config", _contains("config.toml"), _toml_config),
    PathFamily("debug file", _contains("debug"), _debug_file),
    PathFamily("npm manifest", _exact("/package.json"), _package_json),
    PathFamily("composer manifest", _contains("composer.json"), _composer_json),
    PathFamily("pip requirements", _exact("/requirements.txt"), _requirements_txt),
    PathFamily("cargo manifest", _exact("/Cargo.toml"), _cargo_toml),
    PathFamily("git config", _exact("/.git/config"), _git_config),
    PathFamily("gitignore", _exact("/.gitignore"), _gitignore),
    PathFamily("admin panel", _exact("/admin"), _admin_panel),
    PathFamily("phpMyAdmin", _exact("/phpmyadmin"), _phpmyadmin),
    PathFamily("WordPress admin", _exact("/wp-admin"), _wp_admin),
    PathFamily("robots.txt", _exact("/robots.txt"), _robots_txt),
    PathFamily("sitemap", _exact("/sitemap.xml"), _sitemap_xml),
    PathFamily("backup", _exact("/backup"), _backup),
)


def family_for(path: str) -> PathFamily | None:
    for family in PATH_FAMILIES:
        if family.matches(path):
            return family
    return None


def is_sensitive_content(path: str, body: str) -> bool:
    """Apply the content predicate of the family `path` belongs to."""
    family = family_for(path)
    return family is not None and family.is_sensitive(body)
