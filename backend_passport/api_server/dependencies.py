"""
App-scoped components and FastAPI dependencies.

Components are built once per application (lifespan) and shared by reference:
one HTTP client, one HealthRegistry, one PipelineRegistry, one orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from backend_passport import __version__
from backend_passport.config.settings import Settings
from backend_passport.health.probes import build_default_probes
from backend_passport.health.registry import HealthRegistry
from backend_passport.monitoring.metrics import MetricsAggregator
from backend_passport.pipeline.orchestrator import PipelineOrchestrator
from backend_passport.pipeline.registry import PipelineRegistry


@dataclass
class AppComponents:
    settings: Settings
    health: HealthRegistry
    pipelines: PipelineRegistry
    orchestrator: PipelineOrchestrator
    metrics: MetricsAggregator
    client: httpx.AsyncClient | None = None
    """Owned HTTP client; closed on shutdown when set."""


def build_components(settings: Settings) -> AppComponents:
    """Wire the production components from settings (call inside the running event loop)."""
    client = httpx.AsyncClient(
        headers={"User-Agent": f"backend-passport/{__version__}"},
        follow_redirects=True,
    )
    health = HealthRegistry(
        build_default_probes(settings, client),
        interval_sec=settings.health_check_interval_sec,
        probe_timeout_sec=settings.probe_timeout_sec,
    )
    health.initialize(settings.dependencies)
    pipelines = PipelineRegistry(settings.pipeline_max_records, settings.pipeline_record_ttl_sec)
    orchestrator = PipelineOrchestrator.from_settings(settings, pipelines, client)
    metrics = MetricsAggregator(health, pipelines, version=settings.version, environment=settings.app_env)
    return AppComponents(
        settings=settings,
        health=health,
        pipelines=pipelines,
        orchestrator=orchestrator,
        metrics=metrics,
        client=client,
    )


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return get_components(request).orchestrator


def get_pipeline_registry(request: Request) -> PipelineRegistry:
    return get_components(request).pipelines


def get_metrics(request: Request) -> MetricsAggregator:
    return get_components(request).metrics
