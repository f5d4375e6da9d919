"""
Scan Orchestrator for KeyGuard.

Drives a single scan through fetch, parse, resource scanning, optional
active probes, and recommendation generation, publishing progress and the
final result through a ScanStore.
"""

from __future__ import annotations

import asyncio
import time
from enum import StrEnum
from typing import Sequence

import httpx
import structlog

from keyguard.dom import PageResources, extract_page_resources
from keyguard.exceptions import KeyGuardError, ScanStateError, TransportError
from keyguard.fingerprint import ContextFingerprinter
from keyguard.http_client import HttpClient, HttpResponse
from keyguard.models import (
    Finding,
    ScanConfig,
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatus,
    VulnerabilityTest,
)
from keyguard.probes import PROBE_CLASSES, BaseProbe
from keyguard.recommendations import RecommendationGenerator, build_content_summary
from keyguard.scanner import ConfidenceEstimator, CredentialScanner
from keyguard.scoring import calculate_security_score, check_compliance_status
from keyguard.storage import ScanStore
from keyguard.utils import get_utc_now, resource_name

logger = structlog.get_logger(__name__)

# Response headers copied onto SecurityAnalysis.security_headers
OBSERVED_SECURITY_HEADERS: tuple[str, ...] = (
    "content-security-policy",
    "x-frame-options",
    "x-content-type-options",
    "strict-transport-security",
    "referrer-policy",
    "permissions-policy",
    "x-xss-protection",
)


class ScanState(StrEnum):
    """Orchestrator states for one scan."""

    CREATED = "created"
    FETCHING = "fetching"
    PARSING = "parsing"
    SCANNING_RESOURCES = "scanning_resources"
    GENERATING_RECOMMENDATION = "generating_recommendation"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ScanState.COMPLETED, ScanState.FAILED})

TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.CREATED: frozenset({ScanState.FETCHING, ScanState.FAILED}),
    ScanState.FETCHING: frozenset({ScanState.PARSING, ScanState.FAILED}),
    ScanState.PARSING: frozenset({ScanState.SCANNING_RESOURCES, ScanState.FAILED}),
    ScanState.SCANNING_RESOURCES: frozenset(
        {ScanState.GENERATING_RECOMMENDATION, ScanState.FAILED}
    ),
    ScanState.GENERATING_RECOMMENDATION: frozenset({ScanState.COMPLETED, ScanState.FAILED}),
    ScanState.COMPLETED: frozenset(),
    ScanState.FAILED: frozenset(),
}


class ScanLifecycle:
    """Tracks the state of one scan and rejects illegal transitions."""

    def __init__(self, scan_id: str) -> None:
        self.scan_id = scan_id
        self.state = ScanState.CREATED

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, target: ScanState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise ScanStateError(
                f"Scan {self.scan_id}: illegal transition {self.state.value} -> {target.value}"
            )
        logger.debug(
            "scan_state_changed",
            scan_id=self.scan_id,
            from_state=self.state.value,
            to_state=target.value,
        )
        self.state = target


class ProbePool:
    """
    Runs active probes concurrently.

    A probe that raises is logged and contributes no tests; results keep
    probe order.
    """

    def __init__(self, probes: Sequence[BaseProbe] | None = None) -> None:
        if probes is None:
            probes = [probe_class() for probe_class in PROBE_CLASSES.values()]
        self.probes = list(probes)

    async def run_all(self, client: HttpClient, base_url: str) -> list[VulnerabilityTest]:
        results = await asyncio.gather(
            *(probe.probe(client, base_url) for probe in self.probes),
            return_exceptions=True,
        )

        tests: list[VulnerabilityTest] = []
        for probe, result in zip(self.probes, results):
            if isinstance(result, BaseException):
                logger.error("probe_error", probe=probe.probe_type.value, error=str(result))
                continue
            logger.info("probe_complete", probe=probe.probe_type.value, test_count=len(result))
            tests.extend(result)

        logger.info(
            "all_probes_complete",
            url=base_url,
            tests=len(tests),
            failed=sum(1 for t in tests if t.failed),
        )
        return tests


def _observed_security_headers(response: HttpResponse) -> dict[str, str]:
    return {
        name: value
        for name in OBSERVED_SECURITY_HEADERS
        if (value := response.header(name)) is not None
    }


class ScanOrchestrator:
    """
    Main scan orchestrator.

    Coordinates the scan lifecycle:
    1. Root page fetch (the only fatal network step)
    2. Resource extraction and fingerprinting
    3. Concurrent credential scanning of scripts and stylesheets
    4. Optional active probes, scoring, and compliance
    5. One recommendation call, then the terminal write
    """

    def __init__(
        self,
        store: ScanStore,
        recommender: RecommendationGenerator,
        config: ScanConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        scanner: CredentialScanner | None = None,
        fingerprinter: ContextFingerprinter | None = None,
        probe_pool: ProbePool | None = None,
    ) -> None:
        self.store = store
        self.recommender = recommender
        self.config = config or ScanConfig()
        self.scanner = scanner or CredentialScanner(
            estimator=ConfidenceEstimator(self.config.confidence_thresholds)
        )
        self.fingerprinter = fingerprinter or ContextFingerprinter()
        self.probe_pool = probe_pool or ProbePool()
        self._transport = transport
        self._tasks: set[asyncio.Task[ScanResult]] = set()

    async def start_scan(self, request: ScanRequest) -> ScanResult:
        """
        Persist a new `scanning` result and run the scan in the background.

        Returns:
            Snapshot of the initial result; poll the store for updates
        """
        result = ScanResult.from_request(request)
        await self.store.save_scan_result(result)
        logger.info("scan_started", scan_id=result.id, target=result.url, user_id=result.user_id)

        snapshot = result.model_copy(deep=True)
        task = asyncio.create_task(self.perform_scan(result), name=f"scan-{result.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return snapshot

    async def run(self, request: ScanRequest) -> ScanResult:
        """Run a scan to completion in the current task."""
        result = ScanResult.from_request(request)
        await self.store.save_scan_result(result)
        logger.info("scan_started", scan_id=result.id, target=result.url, user_id=result.user_id)
        return await self.perform_scan(result)

    async def wait_for_completion(
        self,
        scan_id: str,
        poll_interval: float = 0.5,
        timeout: float | None = None,
    ) -> ScanResult:
        """
        Poll the store until the scan reaches a terminal status.

        Raises:
            KeyGuardError: If the scan id is unknown
            TimeoutError: If `timeout` elapses first
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            result = await self.store.get_scan_result(scan_id)
            if result is None:
                raise KeyGuardError(f"Unknown scan id: {scan_id}")
            if result.is_terminal:
                return result
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Scan {scan_id} did not finish within {timeout}s")
            await asyncio.sleep(poll_interval)

    async def perform_scan(self, result: ScanResult) -> ScanResult:
        """
        Execute the pipeline for an already-persisted result.

        The result is mutated in place and written back on the single
        terminal transition.
        """
        lifecycle = ScanLifecycle(result.id)
        try:
            async with HttpClient(self.config, transport=self._transport) as client:
                await self._run_pipeline(result, lifecycle, client)
        except ScanStateError:
            raise
        except KeyGuardError as e:
            await self._fail(result, lifecycle, str(e))
        except Exception as e:
            logger.exception("scan_unexpected_error", scan_id=result.id, target=result.url)
            await self._fail(result, lifecycle, f"Unexpected error: {e}")
        return result

    async def _run_pipeline(
        self,
        result: ScanResult,
        lifecycle: ScanLifecycle,
        client: HttpClient,
    ) -> None:
        lifecycle.advance(ScanState.FETCHING)
        await self._progress(result.id, lifecycle, 10, "Fetching website content")

        # Transport errors on the root page are fatal
        root = await client.get(result.url)
        if not 200 <= root.status_code < 300:
            logger.warning("root_non_success_status", target=result.url, status=root.status_code)
        html = root.text

        lifecycle.advance(ScanState.PARSING)
        await self._progress(result.id, lifecycle, 30, "Analyzing HTML content")

        resources = extract_page_resources(html, result.url)
        result.total_checks = resources.check_count
        analysis = self.fingerprinter.analyze(html, result.url)
        analysis = analysis.with_headers(_observed_security_headers(root))
        result.security_analysis = analysis
        logger.info(
            "page_parsed",
            scan_id=result.id,
            scripts=len(resources.script_urls),
            inline_scripts=len(resources.inline_scripts),
            stylesheets=len(resources.css_urls),
        )

        findings = self.scanner.scan(html, "HTML")
        result.completed_checks = 1

        lifecycle.advance(ScanState.SCANNING_RESOURCES)
        await self._progress(result.id, lifecycle, 50, "Scanning JavaScript files")
        findings += await self._scan_remote(
            client, result, resources.script_urls, "JavaScript"
        )
        for script in resources.inline_scripts:
            findings += self.scanner.scan(script, "Inline JavaScript")
            result.completed_checks += 1

        await self._progress(result.id, lifecycle, 70, "Scanning CSS files")
        findings += await self._scan_remote(client, result, resources.css_urls, "CSS")
        result.set_findings(findings)

        if self.config.active_probes:
            await self._progress(result.id, lifecycle, 80, "Running active security tests")
            tests = await self.probe_pool.run_all(client, result.url)
            result.vulnerability_tests = tests
            result.security_score = calculate_security_score(tests, findings)
            result.compliance_status = check_compliance_status(analysis.security_headers, tests)

        lifecycle.advance(ScanState.GENERATING_RECOMMENDATION)
        await self._progress(result.id, lifecycle, 90, "Generating AI recommendations")
        summary = build_content_summary(
            url=result.url,
            html=html,
            resources=resources,
            analysis=analysis,
            findings=findings,
            pattern_count=len(self.scanner.patterns),
            tests=result.vulnerability_tests,
            security_score=result.security_score,
            compliance=result.compliance_status or None,
        )
        # Recommendation errors propagate and fail the scan
        result.ai_recommendations = await self.recommender.generate(findings, result.url, summary)

        await self._complete(result, lifecycle)

    async def _scan_remote(
        self,
        client: HttpClient,
        result: ScanResult,
        urls: Sequence[str],
        label: str,
    ) -> list[Finding]:
        """Fetch and scan resources concurrently; failed fetches are skipped."""

        async def scan_one(url: str) -> list[Finding]:
            try:
                response = await client.get(url)
            except TransportError as e:
                logger.warning(
                    "resource_skipped",
                    scan_id=result.id,
                    resource=resource_name(url),
                    url=url,
                    error=e.message,
                )
                return []
            finally:
                result.completed_checks += 1
            return self.scanner.scan(response.text, f"{label}: {resource_name(url)}")

        # gather preserves input order, so merged findings are deterministic
        per_resource = await asyncio.gather(*(scan_one(url) for url in urls))
        return [finding for findings in per_resource for finding in findings]

    async def _progress(
        self,
        scan_id: str,
        lifecycle: ScanLifecycle,
        progress: int,
        message: str,
    ) -> None:
        logger.debug("scan_progress", scan_id=scan_id, progress=progress, message=message)
        await self.store.update_progress(
            scan_id,
            ScanProgress(stage=lifecycle.state.value, progress=progress, message=message),
        )

    async def _complete(self, result: ScanResult, lifecycle: ScanLifecycle) -> None:
        lifecycle.advance(ScanState.COMPLETED)
        result.status = ScanStatus.COMPLETED
        result.end_time = get_utc_now()
        result.completed_checks = result.total_checks
        result.set_findings(result.findings)
        await self._persist_terminal(result, lifecycle, "Scan completed")
        logger.info(
            "scan_completed",
            scan_id=result.id,
            target=result.url,
            findings=result.summary.total,
            critical=result.summary.critical,
            high=result.summary.high,
            security_score=result.security_score,
            duration=result.duration_seconds,
        )

    async def _fail(self, result: ScanResult, lifecycle: ScanLifecycle, error: str) -> None:
        lifecycle.advance(ScanState.FAILED)
        result.status = ScanStatus.FAILED
        result.end_time = get_utc_now()
        result.error = error
        await self._persist_terminal(result, lifecycle, f"Scan failed: {error}")
        logger.error("scan_failed", scan_id=result.id, target=result.url, error=error)

    async def _persist_terminal(
        self,
        result: ScanResult,
        lifecycle: ScanLifecycle,
        message: str,
    ) -> None:
        # Store errors after a terminal transition are logged, never raised
        try:
            await self.store.save_scan_result(result)
            await self._progress(result.id, lifecycle, 100, message)
        except Exception:
            logger.exception(
                "terminal_write_failed", scan_id=result.id, state=lifecycle.state.value
            )
