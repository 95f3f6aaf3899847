"""Background and manual sync triggering for the device.

The scheduler owns retry policy and nothing else: the sync itself is an
injected coroutine, the preferences and the network state are read fresh on
every tick. Only one sync runs at a time; a trigger that arrives while one is
in flight, or that finds another process holding the sync lock, is reported
as skipped rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from cli.sync_lock import SyncLockBusyError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from cli.preferences import SyncPreferences
    from cli.sync_client import SyncReport

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BASE_SECONDS = 30.0


class SyncOutcomeKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"
    SKIPPED = "skipped"


class SyncTrigger(StrEnum):
    MANUAL = "manual"
    BACKGROUND = "background"


@dataclass(frozen=True)
class SyncResult:
    outcome: SyncOutcomeKind
    synced_count: int = 0
    pushed_count: int = 0
    server_time: int | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is SyncOutcomeKind.SUCCESS


@dataclass(frozen=True)
class NetworkState:
    """What the platform reports about connectivity right now."""

    connected: bool = True
    unmetered: bool = True


def always_online() -> NetworkState:
    return NetworkState()


class SyncScheduler:
    """Single-flight sync runner with a periodic background loop."""

    def __init__(
        self,
        sync: Callable[[], Awaitable[SyncReport]],
        preferences: Callable[[], SyncPreferences],
        network_state: Callable[[], NetworkState] = always_online,
        *,
        retry_base_seconds: float = DEFAULT_RETRY_BASE_SECONDS,
    ) -> None:
        self._sync = sync
        self._preferences = preferences
        self._network_state = network_state
        self._retry_base_seconds = retry_base_seconds
        self._in_flight = False
        self._consecutive_failures = 0
        self._wake = asyncio.Event()
        self._stopping = False
        self.last_result: SyncResult | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def next_delay(self) -> float:
        """Seconds until the next background tick.

        The regular interval after a success; after background failures the
        retry delay doubles from the base, never exceeding the interval.
        """
        interval = self._preferences().sync_interval_seconds
        if self._consecutive_failures == 0:
            return interval
        backoff = self._retry_base_seconds * 2 ** (self._consecutive_failures - 1)
        return min(backoff, interval)

    async def _attempt(self, trigger: SyncTrigger) -> SyncResult:
        if self._in_flight:
            logger.debug("%s sync skipped: another sync is in flight", trigger)
            return SyncResult(SyncOutcomeKind.SKIPPED, message="Sync already in progress")

        self._in_flight = True
        try:
            report = await self._sync()
        except SyncLockBusyError as exc:
            logger.info("%s sync skipped: %s", trigger, exc)
            return SyncResult(SyncOutcomeKind.SKIPPED, message="Sync already in progress")
        except Exception as exc:
            logger.exception("%s sync failed", trigger)
            return SyncResult(SyncOutcomeKind.ERROR, message=str(exc) or type(exc).__name__)
        finally:
            self._in_flight = False

        return SyncResult(
            SyncOutcomeKind.SUCCESS,
            synced_count=report.pulled,
            pushed_count=report.pushed,
            server_time=report.server_time,
            message=f"Pushed {report.pushed}, pulled {report.pulled}",
        )

    async def trigger_manual(self) -> SyncResult:
        """User-initiated sync. A failure is reported once and never retried."""
        if not self._preferences().is_configured:
            result = SyncResult(SyncOutcomeKind.NOT_CONFIGURED, message="Sync is not configured")
        else:
            result = await self._attempt(SyncTrigger.MANUAL)
            if result.ok:
                self._consecutive_failures = 0
        self.last_result = result
        return result

    def _background_guard(self) -> SyncResult | None:
        prefs = self._preferences()
        if not prefs.auto_sync_enabled:
            return SyncResult(SyncOutcomeKind.SKIPPED, message="Auto sync disabled")
        if not prefs.is_configured:
            return SyncResult(SyncOutcomeKind.NOT_CONFIGURED, message="Sync is not configured")
        network = self._network_state()
        if not network.connected:
            return SyncResult(SyncOutcomeKind.SKIPPED, message="No network connection")
        if prefs.sync_on_wifi_only and not network.unmetered:
            return SyncResult(SyncOutcomeKind.SKIPPED, message="Waiting for an unmetered network")
        return None

    async def run_background_once(self) -> SyncResult:
        """One background tick: check guards, sync, update the backoff state."""
        result = self._background_guard()
        if result is None:
            result = await self._attempt(SyncTrigger.BACKGROUND)
            if result.outcome is SyncOutcomeKind.ERROR:
                self._consecutive_failures += 1
                logger.warning(
                    "Background sync failed %d time(s) in a row; next attempt in %.0fs",
                    self._consecutive_failures,
                    self.next_delay(),
                )
            elif result.ok:
                self._consecutive_failures = 0
        else:
            logger.debug("Background sync not run: %s", result.message)
        self.last_result = result
        return result

    def wake(self) -> None:
        """Run the next background tick now instead of waiting out the delay."""
        self._wake.set()

    def stop(self) -> None:
        self._stopping = True
        self._wake.set()

    async def run(self) -> None:
        """Tick until :meth:`stop` is called. Sleeps on an event, never polls."""
        logger.info("Sync scheduler started")
        while not self._stopping:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.next_delay())
            except TimeoutError:
                pass
            self._wake.clear()
            if self._stopping:
                break
            await self.run_background_once()
        logger.info("Sync scheduler stopped")
