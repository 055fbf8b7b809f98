"""
Data models for dependency health.

Dependency is the live, mutable state of one external provider (owned by the
HealthRegistry). HealthSnapshot is an immutable, derived view computed on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class DependencyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class OverallHealth(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


@dataclass
class Dependency:
    """Latest known state of one external dependency."""

    name: str
    status: DependencyStatus
    last_checked_at: float
    """Epoch ms of the last probe (or of registration, before the first probe)."""
    response_time_ms: float | None = None
    """Elapsed ms of the last successful probe; None until one succeeds or after a failure."""
    detail: str | None = None
    """Reason for the last failure, if any."""

    def copy(self) -> Dependency:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "last_check": self.last_checked_at,
        }
        if self.response_time_ms is not None:
            out["response_time"] = self.response_time_ms
        return out


def overall_from_statuses(statuses: list[DependencyStatus]) -> OverallHealth:
    """
    healthy iff every dependency is active; degraded iff strictly more than half
    are active; down otherwise (including an empty set).
    """
    total = len(statuses)
    if total == 0:
        return OverallHealth.DOWN
    active = sum(1 for s in statuses if s is DependencyStatus.ACTIVE)
    if active == total:
        return OverallHealth.HEALTHY
    if active * 2 > total:
        return OverallHealth.DEGRADED
    return OverallHealth.DOWN


@dataclass(frozen=True)
class HealthSnapshot:
    overall: OverallHealth
    services: tuple[Dependency, ...] = field(default_factory=tuple)
    timestamp: float = 0.0

    @property
    def active_count(self) -> int:
        return sum(1 for d in self.services if d.status is DependencyStatus.ACTIVE)

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.services if d.status is DependencyStatus.ERROR)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall.value,
            "services": [d.to_dict() for d in self.services],
            "timestamp": self.timestamp,
        }
