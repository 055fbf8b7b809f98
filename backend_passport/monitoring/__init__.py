"""Monitoring: dashboard statistics derived from the health and pipeline registries."""

from backend_passport.monitoring.metrics import MetricsAggregator, PipelineStats

__all__ = ["MetricsAggregator", "PipelineStats"]
