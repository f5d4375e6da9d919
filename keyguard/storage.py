"""
Scan persistence.

The orchestrator talks to storage only through the ScanStore protocol.
Every write stores a deep copy, so a reader never observes a snapshot the
writer is still mutating.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from keyguard.models import ScanProgress, ScanResult


class ScanStore(Protocol):
    """Persistence contract consumed by the orchestrator."""

    async def save_scan_result(self, result: ScanResult) -> None: ...

    async def get_scan_result(self, scan_id: str) -> ScanResult | None: ...

    async def update_progress(self, scan_id: str, progress: ScanProgress) -> None: ...

    async def get_progress(self, scan_id: str) -> ScanProgress | None: ...

    async def list_user_scans(self, user_id: str) -> list[ScanResult]: ...


class InMemoryScanStore:
    """Process-local ScanStore with last-write-wins semantics per scan id."""

    def __init__(self) -> None:
        self._results: dict[str, ScanResult] = {}
        self._progress: dict[str, ScanProgress] = {}
        self._lock = asyncio.Lock()

    async def save_scan_result(self, result: ScanResult) -> None:
        snapshot = result.model_copy(deep=True)
        async with self._lock:
            self._results[snapshot.id] = snapshot

    async def get_scan_result(self, scan_id: str) -> ScanResult | None:
        async with self._lock:
            result = self._results.get(scan_id)
        return result.model_copy(deep=True) if result is not None else None

    async def update_progress(self, scan_id: str, progress: ScanProgress) -> None:
        async with self._lock:
            self._progress[scan_id] = progress

    async def get_progress(self, scan_id: str) -> ScanProgress | None:
        async with self._lock:
            return self._progress.get(scan_id)

    async def list_user_scans(self, user_id: str) -> list[ScanResult]:
        """Scans owned by `user_id`, newest first."""
        async with self._lock:
            owned = [r for r in self._results.values() if r.user_id == user_id]
        owned.sort(key=lambda r: r.start_time, reverse=True)
        return [r.model_copy(deep=True) for r in owned]
