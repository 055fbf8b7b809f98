"""
Pytest fixtures for Backend Passport tests.

Fake activity sources and an injectable clock so pipeline runs are
deterministic; the API client gets prebuilt components so no test touches the
network.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import pytest

from backend_passport.ai_engine.explainer import RuleBasedExplainer
from backend_passport.config.settings import (
    DEFAULT_DEPENDENCIES,
    DEP_BLOCK_EXPLORER,
    DEP_GOVERNANCE_API,
    DEP_GRAPH_INDEXER,
    Settings,
)
from backend_passport.health.probes import CallableProbe
from backend_passport.health.registry import HealthRegistry
from backend_passport.monitoring.metrics import MetricsAggregator
from backend_passport.pipeline.orchestrator import PipelineOrchestrator
from backend_passport.pipeline.registry import PipelineRegistry

AS_OF = 1_700_000_000
DAY = 86_400
VALID_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class FakeClock:
    """Epoch-ms clock that advances a fixed step on every read."""

    def __init__(self, start_ms: float = AS_OF * 1000.0, step_ms: float = 5.0) -> None:
        self.now = start_ms
        self.step_ms = step_ms

    def __call__(self) -> float:
        self.now += self.step_ms
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeSource:
    """ActivitySource returning a canned payload, or raising, optionally after a hook."""

    def __init__(
        self,
        source_id: str,
        payload: dict[str, Any] | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
        hook: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.source_id = source_id
        self.payload = payload or {"source": source_id}
        self.error = error
        self.delay = delay
        self.hook = hook
        self.calls: list[str] = []

    async def fetch_activity(self, address: str) -> dict[str, Any]:
        self.calls.append(address)
        if self.hook is not None:
            await self.hook()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


def indexer_payload(transfers: int = 12) -> dict[str, Any]:
    return {
        "source": DEP_GRAPH_INDEXER,
        "token_transfers": [
            {
                "from": VALID_ADDRESS.lower(),
                "to": "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984",
                "value": "1000",
                "timestamp": str(AS_OF - 3 * DAY),
            }
            for _ in range(transfers)
        ],
    }


def explorer_payload(
    total_txs: int = 120,
    unique_contracts: int = 25,
    first_days_ago: int | None = 400,
    last_days_ago: int | None = 2,
) -> dict[str, Any]:
    return {
        "source": DEP_BLOCK_EXPLORER,
        "transactions": [],
        "total_txs": total_txs,
        "unique_contracts": unique_contracts,
        "first_tx_at": AS_OF - first_days_ago * DAY if first_days_ago is not None else None,
        "last_tx_at": AS_OF - last_days_ago * DAY if last_days_ago is not None else None,
    }


def governance_payload(votes: int = 4) -> dict[str, Any]:
    return {
        "source": DEP_GOVERNANCE_API,
        "votes": [{"id": f"vote-{i}", "choice": 1, "created": AS_OF - 30 * DAY} for i in range(votes)],
    }


def aggregate_payload(**explorer: Any) -> dict[str, Any]:
    return {
        "address": VALID_ADDRESS.lower(),
        "indexer": indexer_payload(),
        "explorer": explorer_payload(**explorer),
        "governance": governance_payload(),
        "aggregated_at": AS_OF,
    }


def default_sources() -> list[FakeSource]:
    return [
        FakeSource(DEP_GRAPH_INDEXER, indexer_payload()),
        FakeSource(DEP_BLOCK_EXPLORER, explorer_payload()),
        FakeSource(DEP_GOVERNANCE_API, governance_payload()),
    ]


async def _always_ok() -> bool:
    return True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(app_env="test", health_check_interval_sec=60.0, probe_timeout_sec=0.5)


@pytest.fixture
def sources():
    return default_sources()


@pytest.fixture
def pipeline_registry(fake_clock):
    return PipelineRegistry(max_records=100, clock=fake_clock)


@pytest.fixture
def orchestrator(pipeline_registry, sources, fake_clock):
    return PipelineOrchestrator(
        pipeline_registry,
        sources,
        RuleBasedExplainer(),
        fetch_timeout_sec=1.0,
        explain_timeout_sec=1.0,
        clock=fake_clock,
    )


@pytest.fixture
def health_registry(fake_clock):
    registry = HealthRegistry(
        {name: CallableProbe(name, _always_ok) for name in DEFAULT_DEPENDENCIES},
        interval_sec=60.0,
        probe_timeout_sec=0.5,
        clock=fake_clock,
    )
    registry.initialize(DEFAULT_DEPENDENCIES)
    return registry


@pytest.fixture
def components(settings, health_registry, pipeline_registry, orchestrator, fake_clock):
    from backend_passport.api_server.dependencies import AppComponents

    return AppComponents(
        settings=settings,
        health=health_registry,
        pipelines=pipeline_registry,
        orchestrator=orchestrator,
        metrics=MetricsAggregator(
            health_registry,
            pipeline_registry,
            version=settings.version,
            environment=settings.app_env,
            clock=fake_clock,
        ),
    )


@pytest.fixture
def client(components):
    """FastAPI TestClient over injected components; lifespan runs, probe timer does not."""
    from fastapi.testclient import TestClient

    from backend_passport.api_server.server import create_app

    app = create_app(components.settings, start_health_checks=False, components=components)
    with TestClient(app) as c:
        yield c
