"""
Dependency health monitoring.

Probes check one external provider each; the HealthRegistry runs them
concurrently on a timer and derives the aggregate healthy / degraded / down status.
"""

from backend_passport.health.models import Dependency, DependencyStatus, HealthSnapshot, OverallHealth
from backend_passport.health.probes import ProbeResult, build_default_probes
from backend_passport.health.registry import HealthRegistry

__all__ = [
    "Dependency",
    "DependencyStatus",
    "HealthRegistry",
    "HealthSnapshot",
    "OverallHealth",
    "ProbeResult",
    "build_default_probes",
]
