"""
FastAPI server: health, monitoring, reputation score and pipeline inspection.

The lifespan builds one set of app-scoped components (HTTP client, health
registry, pipeline registry, orchestrator, metrics aggregator), starts the
periodic dependency probes and tears everything down on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from backend_passport import __version__
from backend_passport.api_server.dependencies import (
    AppComponents,
    build_components,
    get_components,
    get_metrics,
    get_pipeline_registry,
)
from backend_passport.api_server.schemas import (
    HealthResponse,
    MonitoringResponse,
    PipelineListResponse,
    PipelineRecordOut,
)
from backend_passport.api_server.score import router as score_router
from backend_passport.config.settings import Settings, get_settings
from backend_passport.monitoring.metrics import MetricsAggregator, process_uptime_sec
from backend_passport.passport_logging import get_logger
from backend_passport.pipeline.registry import PipelineRegistry
from backend_passport.utils.clock import now_ms

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Lifespan: build components, start probes (never blocks API)
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build components unless injected, start the probe timer, stop and close on shutdown."""
    components: AppComponents | None = getattr(app.state, "components", None)
    if components is None:
        components = build_components(app.state.settings)
        app.state.components = components

    if app.state.start_health_checks:
        components.health.start()
        logger.info(
            "api_health_checks_started",
            interval_sec=components.settings.health_check_interval_sec,
            dependencies=len(components.health),
        )

    try:
        yield
    finally:
        await components.health.stop()
        if components.client is not None:
            await components.client.aclose()
        logger.info("api_shutdown_complete")


# -----------------------------------------------------------------------------
# App factory and routes
# -----------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    start_health_checks: bool = True,
    components: AppComponents | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    components lets callers (tests, tools) inject prebuilt registries and an
    orchestrator; otherwise the lifespan wires the production ones from settings.
    """
    settings = settings or (components.settings if components else get_settings())
    app = FastAPI(
        title="Backend Passport API",
        description="EVM wallet reputation scores with dependency health and pipeline monitoring.",
        version=settings.version or __version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.start_health_checks = start_health_checks
    if components is not None:
        app.state.components = components

    app.include_router(score_router)

    @app.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
    async def health(components: AppComponents = Depends(get_components)) -> Any:
        """Latest dependency statuses and overall health (reads the registry; never probes)."""
        try:
            snap = components.health.snapshot()
            return HealthResponse.model_validate(
                {
                    **snap.to_dict(),
                    "uptime": round(process_uptime_sec(), 3),
                    "version": components.settings.version,
                    "environment": components.settings.app_env,
                }
            )
        except Exception:
            logger.exception("health_endpoint_failed")
            return JSONResponse(
                status_code=500,
                content={"status": "error", "message": "Health check failed", "timestamp": now_ms()},
            )

    @app.get("/monitoring", response_model=MonitoringResponse)
    async def monitoring(metrics: MetricsAggregator = Depends(get_metrics)) -> Any:
        """System, service, pipeline and performance statistics."""
        try:
            return MonitoringResponse.model_validate(metrics.monitoring_report())
        except Exception:
            logger.exception("monitoring_endpoint_failed")
            return JSONResponse(
                status_code=500,
                content={"status": "error", "message": "Monitoring data unavailable", "timestamp": now_ms()},
            )

    @app.get("/pipelines", response_model=PipelineListResponse)
    async def list_pipelines(
        active: bool = Query(False, description="Only pending/processing runs"),
        registry: PipelineRegistry = Depends(get_pipeline_registry),
    ) -> PipelineListResponse:
        """Retained pipeline records, oldest first."""
        records = registry.active_records() if active else registry.all_records()
        return PipelineListResponse(
            count=len(records),
            pipelines=[PipelineRecordOut.model_validate(r.to_dict(include_outputs=False)) for r in records],
        )

    @app.get("/pipelines/{pipeline_id}", response_model=PipelineRecordOut)
    async def get_pipeline(
        pipeline_id: str,
        registry: PipelineRegistry = Depends(get_pipeline_registry),
    ) -> PipelineRecordOut:
        """One pipeline record with every step's status, timing and output."""
        record = registry.get(pipeline_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Pipeline not found: {pipeline_id}")
        return PipelineRecordOut.model_validate(record.to_dict())

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    return app
