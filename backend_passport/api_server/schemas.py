"""
Response models for the HTTP API.

Field names are snake_case in Python and camelCase on the wire (the monitoring
dashboard's contract); models accept either form on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Health / monitoring
# -----------------------------------------------------------------------------


class ServiceOut(CamelModel):
    name: str
    status: str = Field(..., description="active | inactive | error")
    last_check: float = Field(..., description="Epoch ms of the last probe")
    response_time: float | None = Field(None, description="Latency (ms) of the last successful probe")


class HealthOut(CamelModel):
    overall: str = Field(..., description="healthy | degraded | down")
    services: list[ServiceOut] = Field(default_factory=list)
    timestamp: float


class HealthResponse(HealthOut):
    """GET /health response."""

    uptime: float = 0.0
    version: str = ""
    environment: str = ""


class SystemOut(CamelModel):
    status: str = "down"
    uptime: float = 0.0
    memory: dict[str, int] = Field(default_factory=dict)
    version: str = ""
    environment: str = ""


class ServicesOut(CamelModel):
    health: HealthOut
    count: int = 0
    active: int = 0
    degraded: int = 0


class PipelinesOut(CamelModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    success_rate: float = 0.0
    avg_processing_time: float = 0.0


class PerformanceOut(CamelModel):
    avg_response_time: float = 0.0
    last_health_check: float = 0.0


class MonitoringResponse(CamelModel):
    """GET /monitoring response."""

    system: SystemOut
    services: ServicesOut
    pipelines: PipelinesOut
    performance: PerformanceOut
    timestamp: float


# -----------------------------------------------------------------------------
# Score
# -----------------------------------------------------------------------------


class BreakdownOut(CamelModel):
    wallet_age_days: int = 0
    dao_votes: int = 0
    defi_txs: int = 0
    total_txs: int = 0
    unique_contracts: int = 0
    last_activity: int | None = None
    as_of: int | None = None


class ScoreResponse(CamelModel):
    """GET /score response; also the shape of the fallback payload."""

    address: str
    score: int = Field(..., ge=0, le=100)
    breakdown: BreakdownOut
    reason_codes: list[str] = Field(default_factory=list)
    explanation: str
    confidence: float = Field(..., ge=0, le=1)
    reasoning: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    timestamp: int
    data_source: str
    pipeline_id: str | None = None
    error: str | None = None


# -----------------------------------------------------------------------------
# Pipelines
# -----------------------------------------------------------------------------


class PipelineStepOut(CamelModel):
    name: str
    status: str
    started_at: float | None = None
    finished_at: float | None = None
    duration_ms: float | None = None
    output: Any = None
    error: str | None = None


class PipelineRecordOut(CamelModel):
    id: str
    address: str
    overall_status: str
    started_at: float
    finished_at: float | None = None
    total_duration_ms: float | None = None
    failed_step: str | None = None
    steps: list[PipelineStepOut] = Field(default_factory=list)


class PipelineListResponse(CamelModel):
    count: int
    pipelines: list[PipelineRecordOut] = Field(default_factory=list)
