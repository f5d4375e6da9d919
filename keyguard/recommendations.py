"""
Recommendation generation.

The orchestrator calls a RecommendationGenerator exactly once per scan.
ChatCompletionRecommender talks to an OpenAI-compatible streaming
chat-completions endpoint; any failure raises RecommendationError and
there is no canned fallback text.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Protocol, Sequence

import httpx
import structlog

from keyguard.config import Settings
from keyguard.exceptions import RecommendationError
from keyguard.models import Finding, SecurityAnalysis, VulnerabilityTest
from keyguard.utils import truncate_string

if TYPE_CHECKING:
    from keyguard.dom import PageResources

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are a cybersecurity expert specializing in web application security audits. \
You analyze websites for API key leaks and security vulnerabilities and give actionable \
recommendations based on detected technologies, frameworks, security patterns, and active \
vulnerability test results.

Be careful with API key false positives such as file names or plain numeric identifiers; \
call out anything in the initial scan that looks anomalous.

Structure the response as:
1. Executive Summary
2. Critical Issues
3. API Key Findings
4. Security Configuration
5. Technology-Specific Recommendations
6. Architecture Improvements
7. Compliance & Standards
8. Monitoring & Detection

Give specific, prioritized, actionable steps tailored to the detected stack and findings."""

HTML_SNIPPET_LENGTH = 1000
SCRIPT_SNIPPET_LENGTH = 500
MAX_LISTED_RESOURCES = 10


class RecommendationGenerator(Protocol):
    """Produces free-text remediation advice for a finished scan."""

    async def generate(
        self,
        findings: Sequence[Finding],
        url: str,
        content_summary: str | None = None,
    ) -> str: ...


def _joined_or_none(items: Sequence[str]) -> str:
    return ", ".join(items) if items else "None detected"


def build_content_summary(
    url: str,
    html: str,
    resources: "PageResources",
    analysis: SecurityAnalysis,
    findings: Sequence[Finding],
    pattern_count: int,
    tests: Sequence[VulnerabilityTest] = (),
    security_score: int | None = None,
    compliance: dict[str, str] | None = None,
) -> str:
    """Describe the scanned page for the recommendation prompt."""
    script_snippet = (
        truncate_string(resources.inline_scripts[0], SCRIPT_SNIPPET_LENGTH)
        if resources.inline_scripts
        else "No inline scripts"
    )
    lines = [
        f"Website: {url}",
        "",
        "## Comprehensive Security Analysis",
        "",
        "### Content Analysis",
        f"- HTML: {len(html)} bytes",
        f"- JavaScript files: {len(resources.script_urls)}",
        f"- CSS files: {len(resources.css_urls)}",
        f"- Inline scripts: {len(resources.inline_scripts)}",
        "",
        "### Technology Stack Detected",
        f"- Frameworks: {_joined_or_none(analysis.frameworks)}",
        f"- Technologies: {_joined_or_none(analysis.technologies)}",
        f"- Third-party Services: {_joined_or_none(analysis.third_party_services)}",
        "",
        "### Security-Relevant Findings",
        f"- External Resources: {len(analysis.external_resources)} detected",
        f"- Potential API Endpoints: {len(analysis.potential_endpoints)}",
        f"- Form Actions: {len(analysis.form_actions)}",
        f"- Meta Tags: {len(analysis.meta_tags)} analyzed",
        "",
        "### Sample Code Analysis",
        "",
        "HTML snippet:",
        truncate_string(html, HTML_SNIPPET_LENGTH),
        "",
        "JavaScript snippet:",
        script_snippet,
        "",
        "### Security Scan Results",
        f"- API Key Findings: {len(findings)} issues detected",
        f"- Pattern Matches: {pattern_count} total patterns scanned",
        "",
        "### Detailed Security Context",
        f"- External Resources: {analysis.external_resources[:MAX_LISTED_RESOURCES]}",
        f"- Potential API Endpoints: {analysis.potential_endpoints}",
    ]

    if tests:
        lines += ["", "### Active Security Tests"]
        if security_score is not None:
            lines.append(f"- Security Score: {security_score}/100")
        for name, rating in (compliance or {}).items():
            lines.append(f"- {name}: {rating}")
        for test in tests:
            if test.failed:
                details = ", ".join(f"{k}={v}" for k, v in test.details.items())
                lines.append(
                    f"- FAILED {test.test_name} ({test.severity.value}): {test.description}"
                    + (f" [{details}]" if details else "")
                )
    return "\n".join(lines)


def build_prompt(
    findings: Sequence[Finding],
    url: str,
    content_summary: str | None = None,
) -> str:
    """User prompt for the chat completion."""
    if not findings:
        if content_summary:
            return (
                f"Analyze this website for security vulnerabilities:\n\n{content_summary}\n\n"
                "No API keys found. Provide security audit and recommendations."
            )
        return (
            f"Security scan completed for {url}. No API keys found. "
            "Provide security recommendations."
        )

    findings_block = "\n".join(
        f"- {f.key_type} ({f.severity.value}) in {f.location}: {f.description}"
        for f in findings
    )
    content_section = f"\n\nWebsite Content Analysis:\n{content_summary}" if content_summary else ""
    return (
        f"Security Audit Scan Results for: {url}\n\n"
        f"Exposed API keys and security issues found:\n{findings_block}{content_section}\n\n"
        "Please provide:\n"
        "1. Immediate remediation steps for each finding\n"
        "2. Best practices to prevent future exposures\n"
        "3. Security implementation recommendations\n"
        "4. Risk assessment and priority guidance\n"
        "5. Analysis of the website content for additional security concerns\n\n"
        "Format the response in clear sections with actionable steps."
    )


def parse_stream(lines: Sequence[str]) -> str:
    """
    Concatenate `delta.content` chunks from server-sent event lines.

    Stops at the `[DONE]` marker; malformed chunks are skipped.
    """
    content: list[str] = []
    for line in lines:
        if not line.startswith("data: "):
            continue
        data = line[len("data: ") :].strip()
        if data == "[DONE]":
            break
        if not data:
            continue
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("stream_chunk_unparseable", data=truncate_string(data, 100))
            continue
        choices = chunk.get("choices") or []
        if not choices:
            continue
        delta = choices[0].get("delta") or {}
        text = delta.get("content")
        if isinstance(text, str):
            content.append(text)
    return "".join(content)


class ChatCompletionRecommender:
    """RecommendationGenerator backed by a streaming chat-completions API."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        max_tokens: int = 8192,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatCompletionRecommender":
        return cls(
            api_key=settings.require_api_key(),
            base_url=settings.recommender_api_url,
            model=settings.recommender_model,
            timeout=settings.recommender_timeout,
        )

    async def generate(
        self,
        findings: Sequence[Finding],
        url: str,
        content_summary: str | None = None,
    ) -> str:
        prompt = build_prompt(findings, url, content_summary)
        logger.info(
            "generating_recommendations",
            url=url,
            findings=len(findings),
            model=self.model,
        )
        content = await self._complete(prompt)
        if not content.strip():
            raise RecommendationError("Recommendation service returned an empty response")
        logger.info("recommendations_generated", url=url, length=len(content))
        return content

    async def _complete(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": True,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        endpoint = f"{self.base_url}/chat/completions"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                async with client.stream("POST", endpoint, json=payload, headers=headers) as response:
                    if response.status_code >= 400:
                        body = (await response.aread()).decode(errors="replace")
                        raise RecommendationError(
                            f"Recommendation service request failed with status "
                            f"{response.status_code}: {truncate_string(body, 500)}"
                        )
                    lines = [line async for line in response.aiter_lines()]
        except httpx.HTTPError as e:
            raise RecommendationError(f"Recommendation service unreachable: {e}") from e

        return parse_stream(lines)
