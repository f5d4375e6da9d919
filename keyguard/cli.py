"""
Command-line interface for the KeyGuard scanner.

Scans one URL, prints or saves a JSON/HTML report, and exits with a code
reflecting the worst credential finding.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from keyguard import __version__

if TYPE_CHECKING:
    from keyguard.models import ScanResult

EXIT_OK = 0
EXIT_HIGH = 1
EXIT_CRITICAL = 2
EXIT_SCAN_FAILED = 3


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure structlog for CLI output."""
    import logging

    log_level = "DEBUG" if debug else "INFO" if verbose else "WARNING"

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # Reports go to stdout, so logs must not
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="keyguard",
        description="KeyGuard - website credential leak and misconfiguration scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  keyguard https://example.com
  keyguard https://example.com --output report.html --report-format html
  keyguard https://example.com --no-probes --concurrency 4 --rate 2

Environment:
  NEURA_ROUTER_API_KEY    API key for the recommendation service (required)
  NEURA_ROUTER_API_URL    Chat-completions base URL
  NEURA_ROUTER_API_MODEL  Model used for recommendations

Exit codes:
  0  no critical or high findings
  1  high-severity findings
  2  critical findings
  3  scan failed
""",
    )

    parser.add_argument(
        "target",
        help="Target URL to scan (must include http:// or https://)",
    )

    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output file path for report (default: stdout)",
    )

    parser.add_argument(
        "--report-format",
        choices=["json", "html"],
        default="json",
        dest="report_format",
        help="Report output format (default: json)",
    )

    parser.add_argument(
        "--no-probes",
        action="store_true",
        help="Skip active security probes (credential scan only)",
    )

    parser.add_argument(
        "-t", "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum concurrent resource fetches (default: 8)",
    )

    parser.add_argument(
        "-r", "--rate",
        type=float,
        default=None,
        help="Rate limit in requests per second (default: 10)",
    )

    parser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        help="Disable SSL certificate verification",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"KeyGuard {__version__}",
    )

    return parser


def exit_code_for(result: "ScanResult") -> int:
    """Map a finished scan to the process exit code."""
    from keyguard.models import ScanStatus

    if result.status != ScanStatus.COMPLETED:
        return EXIT_SCAN_FAILED
    if result.summary.critical > 0:
        return EXIT_CRITICAL
    if result.summary.high > 0:
        return EXIT_HIGH
    return EXIT_OK


def _scan_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {
        "verify_ssl": not args.no_verify_ssl,
        "active_probes": not args.no_probes,
    }
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if args.concurrency is not None:
        overrides["max_concurrency"] = args.concurrency
    if args.rate is not None:
        overrides["rate_limit"] = args.rate
    return overrides


async def run_scan(args: argparse.Namespace) -> int:
    """
    Execute the scan and write the report.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    from pydantic import ValidationError

    from keyguard.config import get_settings
    from keyguard.exceptions import ConfigurationError
    from keyguard.models import ScanRequest
    from keyguard.orchestrator import ScanOrchestrator
    from keyguard.recommendations import ChatCompletionRecommender
    from keyguard.reports import ReportGenerator
    from keyguard.storage import InMemoryScanStore

    logger = structlog.get_logger(__name__)

    try:
        settings = get_settings()
        config = settings.scan_config(**_scan_overrides(args))
        request = ScanRequest(url=args.target)
        recommender = ChatCompletionRecommender.from_settings(settings)
    except (ValidationError, ConfigurationError) as e:
        logger.error("configuration_error", error=str(e))
        return EXIT_SCAN_FAILED

    logger.info(
        "scan_starting",
        target=request.url,
        timeout=config.timeout,
        concurrency=config.max_concurrency,
        rate=config.rate_limit,
        active_probes=config.active_probes,
    )

    orchestrator = ScanOrchestrator(InMemoryScanStore(), recommender, config=config)
    result = await orchestrator.run(request)

    reporter = ReportGenerator(result)
    report = reporter.generate_json() if args.report_format == "json" else reporter.generate_html()

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(report)
        logger.info("report_saved", path=str(output_path.absolute()))
    else:
        print(report)

    logger.info(
        "scan_summary",
        status=result.status.value,
        total_findings=result.summary.total,
        critical=result.summary.critical,
        high=result.summary.high,
        medium=result.summary.medium,
        low=result.summary.low,
        security_score=result.security_score,
        duration=f"{result.duration_seconds:.2f}s",
    )
    return exit_code_for(result)


def main() -> None:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args()

    configure_logging(verbose=args.verbose, debug=args.debug)

    try:
        exit_code = asyncio.run(run_scan(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nScan interrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        logger = structlog.get_logger(__name__)
        logger.error("fatal_error", error=str(e))
        if args.debug:
            raise
        sys.exit(EXIT_SCAN_FAILED)


if __name__ == "__main__":
    main()
