"""
Report generation for KeyGuard scan results.

Renders a finished ScanResult as JSON or as a standalone HTML page.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from jinja2 import Environment

from keyguard import __version__
from keyguard.models import ScanResult
from keyguard.utils import format_duration

logger = structlog.get_logger(__name__)


class ReportGenerator:
    """Generate scan reports in JSON or HTML."""

    def __init__(self, result: ScanResult) -> None:
        self.result = result

    def generate_json(self, output_path: str | Path | None = None) -> str:
        """
        Generate JSON report.

        Args:
            output_path: Optional path to save report

        Returns:
            JSON string of the report
        """
        report_data = self._build_report_data()
        json_str = json.dumps(report_data, indent=2, default=str)
        logger.info("json_report_generated", findings=len(report_data["findings"]))

        if output_path:
            Path(output_path).write_text(json_str)
            logger.info("json_report_saved", path=str(output_path))
        return json_str

    def generate_html(self, output_path: str | Path | None = None) -> str:
        """
        Generate HTML report.

        Args:
            output_path: Optional path to save report

        Returns:
            HTML string of the report
        """
        report_data = self._build_report_data()
        html = self._render_html(report_data)
        logger.info("html_report_generated", findings=len(report_data["findings"]))

        if output_path:
            Path(output_path).write_text(html)
            logger.info("html_report_saved", path=str(output_path))
        return html

    def _build_report_data(self) -> dict[str, Any]:
        r = self.result
        analysis = r.security_analysis
        return {
            "meta": {
                "report_generated": datetime.now(timezone.utc).isoformat(),
                "scanner_version": __version__,
                "target_url": r.url,
                "scan_id": r.id,
                "user_id": r.user_id,
            },
            "summary": {
                "status": r.status.value,
                "started_at": r.start_time.isoformat(),
                "completed_at": r.end_time.isoformat() if r.end_time else None,
                "duration": format_duration(r.duration_seconds),
                "total_checks": r.total_checks,
                "completed_checks": r.completed_checks,
                "severity_counts": r.summary.model_dump(),
                "security_score": r.security_score,
                "compliance_status": r.compliance_status,
                "error": r.error,
            },
            "findings": [f.model_dump(mode="json") for f in r.findings],
            "vulnerability_tests": [t.model_dump(mode="json") for t in r.vulnerability_tests],
            "security_analysis": analysis.model_dump(mode="json") if analysis else None,
            "ai_recommendations": r.ai_recommendations,
        }

    def _render_html(self, data: dict[str, Any]) -> str:
        """Render HTML report; autoescape keeps scanned content inert."""
        env = Environment(autoescape=True)
        template = env.from_string(HTML_TEMPLATE)
        return template.render(data=data, severity_class=self._severity_class)

    @staticmethod
    def _severity_class(severity: str) -> str:
        return f"severity-{severity}" if severity else "severity-info"


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>KeyGuard Report - {{ data.meta.target_url }}</title>
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: #f8fafc; color: #1e293b; margin: 0; }
        .container { max-width: 1100px; margin: 0 auto; padding: 2rem; }
        header { background: #0f766e; color: white; padding: 1.5rem 2rem; border-radius: 10px; margin-bottom: 1.5rem; }
        header h1 { margin: 0 0 0.5rem; font-size: 1.6rem; }
        .card { background: white; border-radius: 10px; padding: 1.25rem 1.5rem; margin-bottom: 1.5rem; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }
        .counts span { display: inline-block; margin-right: 1rem; font-weight: 600; }
        table { width: 100%; border-collapse: collapse; font-size: 0.9rem; }
        th, td { text-align: left; padding: 0.5rem; border-bottom: 1px solid #e2e8f0; vertical-align: top; }
        code { background: #f1f5f9; padding: 0.1rem 0.3rem; border-radius: 4px; word-break: break-all; }
        pre { white-space: pre-wrap; background: #f1f5f9; padding: 1rem; border-radius: 6px; }
        .severity-critical { color: #dc2626; font-weight: 700; }
        .severity-high { color: #ea580c; font-weight: 700; }
        .severity-medium { color: #ca8a04; font-weight: 600; }
        .severity-low { color: #16a34a; }
        .severity-info { color: #6b7280; }
        .status-fail { color: #dc2626; }
        .status-pass { color: #16a34a; }
    </style>
</head>
<body>
<div class="container">
    <header>
        <h1>KeyGuard Scan Report</h1>
        <div>{{ data.meta.target_url }}</div>
        <div>Scan {{ data.meta.scan_id }} &middot; {{ data.summary.status }} &middot; {{ data.summary.duration }}</div>
    </header>

    <section class="card">
        <h2>Summary</h2>
        <div class="counts">
            <span class="severity-critical">Critical: {{ data.summary.severity_counts.critical }}</span>
            <span class="severity-high">High: {{ data.summary.severity_counts.high }}</span>
            <span class="severity-medium">Medium: {{ data.summary.severity_counts.medium }}</span>
            <span class="severity-low">Low: {{ data.summary.severity_counts.low }}</span>
            <span>Total: {{ data.summary.severity_counts.total }}</span>
        </div>
        <p>Checks: {{ data.summary.completed_checks }} / {{ data.summary.total_checks }}</p>
        {% if data.summary.security_score is not none %}
        <p>Security score: <strong>{{ data.summary.security_score }}/100</strong></p>
        {% endif %}
        {% for name, rating in data.summary.compliance_status.items() %}
        <p>{{ name }}: {{ rating }}</p>
        {% endfor %}
        {% if data.summary.error %}
        <p class="severity-critical">Scan failed: {{ data.summary.error }}</p>
        {% endif %}
    </section>

    <section class="card">
        <h2>Exposed Credentials</h2>
        {% if data.findings %}
        <table>
            <tr><th>Severity</th><th>Type</th><th>Value</th><th>Location</th><th>Line</th><th>Confidence</th></tr>
            {% for f in data.findings %}
            <tr>
                <td class="{{ severity_class(f.severity) }}">{{ f.severity | upper }}</td>
                <td>{{ f.key_type }}<br><small>{{ f.recommendation }}</small></td>
                <td><code>{{ f.value }}</code></td>
                <td>{{ f.location }}</td>
                <td>{{ f.line_number }}</td>
                <td>{{ "%.0f" | format(f.confidence * 100) }}%</td>
            </tr>
            {% endfor %}
        </table>
        {% else %}
        <p>No exposed credentials detected.</p>
        {% endif %}
    </section>

    {% if data.vulnerability_tests %}
    <section class="card">
        <h2>Active Security Tests</h2>
        <table>
            <tr><th>Test</th><th>Status</th><th>Severity</th><th>Description</th><th>Recommendation</th></tr>
            {% for t in data.vulnerability_tests %}
            <tr>
                <td>{{ t.test_name }}</td>
                <td class="status-{{ t.status }}">{{ t.status | upper }}</td>
                <td class="{{ severity_class(t.severity) }}">{{ t.severity | upper }}</td>
                <td>{{ t.description }}</td>
                <td>{{ t.recommendation }}</td>
            </tr>
            {% endfor %}
        </table>
    </section>
    {% endif %}

    {% if data.security_analysis %}
    <section class="card">
        <h2>Detected Stack</h2>
        <p>Frameworks: {{ data.security_analysis.frameworks | join(", ") or "None detected" }}</p>
        <p>Technologies: {{ data.security_analysis.technologies | join(", ") or "None detected" }}</p>
        <p>Third-party services: {{ data.security_analysis.third_party_services | join(", ") or "None detected" }}</p>
        <p>Potential API endpoints: {{ data.security_analysis.potential_endpoints | length }}</p>
        <p>External resources: {{ data.security_analysis.external_resources | length }}</p>
    </section>
    {% endif %}

    {% if data.ai_recommendations %}
    <section class="card">
        <h2>Recommendations</h2>
        <pre>{{ data.ai_recommendations }}</pre>
    </section>
    {% endif %}

    <footer><small>Generated {{ data.meta.report_generated }} by KeyGuard {{ data.meta.scanner_version }}</small></footer>
</div>
</body>
</html>
"""
