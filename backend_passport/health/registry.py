"""
Health registry: live, best-effort view of every external dependency's reachability.

Holds one Dependency per registered name, runs all probes concurrently on a fixed
interval, and derives the aggregate healthy / degraded / down verdict.

Failure isolation: a probe that fails, raises or times out marks only its own
dependency as error; run_probe_cycle() never raises. There is no retry/backoff;
the next scheduled cycle is the retry.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Iterable, Mapping

from backend_passport.health.models import (
    Dependency,
    DependencyStatus,
    HealthSnapshot,
    overall_from_statuses,
)
from backend_passport.health.probes import DependencyProbe, ProbeResult
from backend_passport.passport_logging import get_logger
from backend_passport.scheduler import PeriodicTask
from backend_passport.utils.clock import elapsed_ms, now_ms

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 30.0
DEFAULT_PROBE_TIMEOUT_SEC = 10.0


class HealthRegistry:
    """
    Owns Dependency state (single writer: the probe cycle) and the probe timer.

    Construct, initialize(names), then either call run_probe_cycle() directly or
    start() the background timer; stop() cancels it.
    """

    def __init__(
        self,
        probes: Mapping[str, DependencyProbe] | None = None,
        *,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
        probe_timeout_sec: float = DEFAULT_PROBE_TIMEOUT_SEC,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._probes: dict[str, DependencyProbe] = dict(probes or {})
        self._deps: dict[str, Dependency] = {}
        self._probe_timeout = probe_timeout_sec
        self._clock = clock
        self._timer = PeriodicTask("health-probe-cycle", interval_sec, self.run_probe_cycle)
        self.cycles = 0

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def initialize(self, names: Iterable[str]) -> None:
        """Register each name as active with last_checked_at = now (optimistic, not yet probed)."""
        now = self._clock()
        for name in names:
            if name in self._deps:
                continue
            self._deps[name] = Dependency(name=name, status=DependencyStatus.ACTIVE, last_checked_at=now)
        logger.info("health_registry_initialized", dependencies=list(self._deps))

    def register_probe(self, name: str, probe: DependencyProbe) -> None:
        self._probes[name] = probe

    # ------------------------------------------------------------------
    # Probe cycle
    # ------------------------------------------------------------------

    async def _probe_one(self, dep: Dependency) -> None:
        probe = self._probes.get(dep.name)
        if probe is None:
            dep.status = DependencyStatus.INACTIVE
            dep.response_time_ms = None
            dep.detail = "no_probe_configured"
            dep.last_checked_at = self._clock()
            return

        start = time.monotonic()
        try:
            result = await asyncio.wait_for(probe(), timeout=self._probe_timeout)
        except asyncio.TimeoutError:
            result = ProbeResult(False, elapsed_ms(start), "timeout")
        except Exception as e:
            # Probes must not raise; a misbehaving one still only affects itself
            result = ProbeResult(False, elapsed_ms(start), str(e) or type(e).__name__)
        elapsed = elapsed_ms(start)

        # Fields are updated together with no suspension point in between
        if result.ok:
            dep.status = DependencyStatus.ACTIVE
            dep.response_time_ms = round(elapsed, 2)
            dep.detail = None
        else:
            dep.status = DependencyStatus.ERROR
            dep.response_time_ms = None
            dep.detail = result.detail
            logger.warning("health_probe_failed", dependency=dep.name, detail=result.detail)
        dep.last_checked_at = self._clock()

    async def run_probe_cycle(self) -> HealthSnapshot:
        """Probe every registered dependency concurrently; isolate each failure. Never raises."""
        deps = list(self._deps.values())
        outcomes = await asyncio.gather(*(self._probe_one(d) for d in deps), return_exceptions=True)
        for dep, outcome in zip(deps, outcomes):
            if isinstance(outcome, BaseException) and not isinstance(outcome, asyncio.CancelledError):
                dep.status = DependencyStatus.ERROR
                dep.response_time_ms = None
                dep.detail = str(outcome) or type(outcome).__name__
                dep.last_checked_at = self._clock()
                logger.error("health_probe_crashed", dependency=dep.name, error=dep.detail)
        self.cycles += 1
        snap = self.snapshot()
        logger.info(
            "health_cycle_done",
            cycle=self.cycles,
            overall=snap.overall.value,
            active=snap.active_count,
            total=len(snap.services),
        )
        return snap

    # ------------------------------------------------------------------
    # Timer lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self) -> None:
        """Start the periodic probe cycle on the running event loop."""
        self._timer.start()

    async def stop(self) -> None:
        """Cancel the periodic probe cycle (safe to call when not started)."""
        await self._timer.stop()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get(self, name: str) -> Dependency | None:
        dep = self._deps.get(name)
        return dep.copy() if dep else None

    def dependencies(self) -> list[Dependency]:
        return [d.copy() for d in self._deps.values()]

    def snapshot(self) -> HealthSnapshot:
        services = tuple(self.dependencies())
        return HealthSnapshot(
            overall=overall_from_statuses([d.status for d in services]),
            services=services,
            timestamp=self._clock(),
        )

    def __len__(self) -> int:
        return len(self._deps)
