"""
Metrics aggregator: read-only monitoring statistics over the health and pipeline registries.

Never mutates either registry. Empty registries produce zero / "down" defaults
rather than errors or NaN, so the monitoring endpoint always answers.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable

import psutil

from backend_passport import __version__
from backend_passport.health.models import DependencyStatus, HealthSnapshot
from backend_passport.health.registry import HealthRegistry
from backend_passport.pipeline.models import StepStatus
from backend_passport.pipeline.registry import PipelineRegistry
from backend_passport.utils.clock import now_ms


@dataclass
class PipelineStats:
    total: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    success_rate: float = 0.0
    avg_processing_time: float = 0.0


@dataclass
class ServiceStats:
    health: HealthSnapshot
    count: int = 0
    active: int = 0
    degraded: int = 0


@dataclass
class PerformanceStats:
    avg_response_time: float = 0.0
    last_health_check: float = 0.0


@dataclass
class SystemStats:
    status: str
    uptime: float
    memory: dict[str, int]
    version: str
    environment: str


def process_memory() -> dict[str, int]:
    """RSS / VMS of the current process in bytes; empty when the OS refuses."""
    try:
        info = psutil.Process().memory_info()
    except psutil.Error:
        return {}
    return {"rss": int(info.rss), "vms": int(info.vms)}


def process_uptime_sec() -> float:
    try:
        created = psutil.Process().create_time()
    except psutil.Error:
        return 0.0
    return max(0.0, time.time() - created)


class MetricsAggregator:
    def __init__(
        self,
        health: HealthRegistry,
        pipelines: PipelineRegistry,
        *,
        version: str = __version__,
        environment: str = "development",
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._health = health
        self._pipelines = pipelines
        self._version = version
        self._environment = environment
        self._clock = clock

    def pipeline_stats(self) -> PipelineStats:
        records = self._pipelines.all_records()
        total = len(records)
        completed = [r for r in records if r.overall_status is StepStatus.COMPLETED]
        failed = sum(1 for r in records if r.overall_status is StepStatus.FAILED)
        active = sum(1 for r in records if r.is_active)
        success_rate = (len(completed) / total * 100.0) if total else 0.0
        durations = [r.total_duration_ms for r in completed if r.total_duration_ms is not None]
        avg = sum(durations) / len(durations) if durations else 0.0
        return PipelineStats(
            total=total,
            active=active,
            completed=len(completed),
            failed=failed,
            success_rate=round(success_rate, 2),
            avg_processing_time=float(round(avg)),
        )

    def service_stats(self, snapshot: HealthSnapshot | None = None) -> ServiceStats:
        snap = snapshot or self._health.snapshot()
        return ServiceStats(
            health=snap,
            count=len(snap.services),
            active=snap.active_count,
            degraded=sum(1 for d in snap.services if d.status is DependencyStatus.ERROR),
        )

    def performance_stats(self, snapshot: HealthSnapshot | None = None) -> PerformanceStats:
        snap = snapshot or self._health.snapshot()
        times = [d.response_time_ms for d in snap.services if d.response_time_ms is not None]
        avg = sum(times) / len(times) if times else 0.0
        last = max((d.last_checked_at for d in snap.services), default=0.0)
        return PerformanceStats(avg_response_time=round(avg, 2), last_health_check=last)

    def system_stats(self, snapshot: HealthSnapshot | None = None) -> SystemStats:
        snap = snapshot or self._health.snapshot()
        return SystemStats(
            status=snap.overall.value,
            uptime=round(process_uptime_sec(), 3),
            memory=process_memory(),
            version=self._version,
            environment=self._environment,
        )

    def monitoring_report(self) -> dict[str, Any]:
        """Full monitoring document (snake_case; the API layer renders camelCase)."""
        snap = self._health.snapshot()
        services = self.service_stats(snap)
        return {
            "system": asdict(self.system_stats(snap)),
            "services": {
                "health": snap.to_dict(),
                "count": services.count,
                "active": services.active,
                "degraded": services.degraded,
            },
            "pipelines": asdict(self.pipeline_stats()),
            "performance": asdict(self.performance_stats(snap)),
            "timestamp": self._clock(),
        }
