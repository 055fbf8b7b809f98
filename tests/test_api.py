"""
Pytest tests for the HTTP API (FastAPI TestClient over injected components).
"""

from __future__ import annotations

import asyncio

from backend_passport.core.exceptions import DependencyUnavailableError
from backend_passport.health.models import DependencyStatus

from conftest import VALID_ADDRESS


def test_health_before_first_probe(client):
    """GET /health lists every dependency in camelCase; no latency until probed."""
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["overall"] == "healthy"
    assert data["environment"] == "test"
    assert data["uptime"] >= 0
    assert [s["name"] for s in data["services"]] == [
        "graph-indexer",
        "block-explorer",
        "governance-api",
        "ai-compute",
        "on-chain-contracts",
    ]
    for service in data["services"]:
        assert service["status"] == "active"
        assert "lastCheck" in service
        assert "responseTime" not in service


def test_health_after_probe_cycle_reports_latency(client, components):
    asyncio.run(components.health.run_probe_cycle())
    data = client.get("/health").json()
    assert all("responseTime" in s for s in data["services"])


def test_health_reports_degraded(client, components):
    components.health._deps["ai-compute"].status = DependencyStatus.ERROR
    data = client.get("/health").json()
    assert data["overall"] == "degraded"
    assert {s["name"]: s["status"] for s in data["services"]}["ai-compute"] == "error"


def test_health_unexpected_error_returns_500(client, components, monkeypatch):
    def broken():
        raise RuntimeError("registry corrupted")

    monkeypatch.setattr(components.health, "snapshot", broken)
    r = client.get("/health")
    assert r.status_code == 500
    data = r.json()
    assert data["status"] == "error"
    assert data["message"] == "Health check failed"
    assert "timestamp" in data


def test_score_success(client):
    r = client.get("/score", params={"address": VALID_ADDRESS})
    assert r.status_code == 200
    data = r.json()
    assert data["address"] == VALID_ADDRESS.lower()
    assert data["score"] == 87
    assert data["breakdown"]["walletAgeDays"] == 400
    assert data["breakdown"]["daoVotes"] == 4
    assert data["reasonCodes"] == ["ESTABLISHED_WALLET", "GOVERNANCE_PARTICIPANT", "ACTIVE_RECENTLY"]
    assert data["dataSource"] == "The Graph + Etherscan + Snapshot + 0G AI"
    assert data["pipelineId"].startswith(f"pipeline_{VALID_ADDRESS}_")
    assert data["confidence"] == 0.95
    assert data.get("error") is None


def test_score_by_path(client):
    r = client.get(f"/api/score/{VALID_ADDRESS}")
    assert r.status_code == 200
    assert r.json()["score"] == 87


def test_invalid_address_returns_fallback_with_pipeline(client):
    """Invalid input never hard-fails: 200 with the fallback payload and a failed record."""
    r = client.get("/score", params={"address": "not-an-address"})
    assert r.status_code == 200
    data = r.json()
    assert data["score"] == 0
    assert data["confidence"] == 0.1
    assert data["dataSource"] == "Fallback"
    assert data["reasoning"] == ["Invalid wallet address format"]
    assert "Invalid wallet address format" in data["error"]
    assert data["breakdown"]["walletAgeDays"] == 0

    record = client.get(f"/pipelines/{data['pipelineId']}").json()
    assert record["overallStatus"] == "failed"
    assert record["failedStep"] == "validate_address"
    assert [s["status"] for s in record["steps"]][1:] == ["pending"] * 7


def test_missing_address_returns_fallback(client):
    r = client.get("/score")
    assert r.status_code == 200
    assert r.json()["dataSource"] == "Fallback"


def test_dependency_failure_returns_fallback(client, sources):
    sources[0].error = DependencyUnavailableError("graph-indexer", "HTTP 503")
    data = client.get("/score", params={"address": VALID_ADDRESS}).json()
    assert data["dataSource"] == "Fallback"
    assert data["reasoning"] == ["Error occurred during data fetching"]
    assert data["error"] == "graph-indexer: HTTP 503"
    assert data["pipelineId"]


def test_unexpected_source_error_returns_fallback_with_pipeline(client, sources):
    sources[1].error = AttributeError("'str' object has no attribute 'get'")
    r = client.get("/score", params={"address": VALID_ADDRESS})
    assert r.status_code == 200
    data = r.json()
    assert data["dataSource"] == "Fallback"
    assert data["reasoning"] == ["Error occurred during data fetching"]
    assert data["error"] == "block-explorer: unexpected error: AttributeError: 'str' object has no attribute 'get'"
    assert data["pipelineId"]

    record = client.get(f"/pipelines/{data['pipelineId']}").json()
    assert record["overallStatus"] == "failed"
    assert record["failedStep"] == "fetch_source_b"


def test_unexpected_explainer_error_returns_fallback_with_pipeline(client, orchestrator, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator._explainer, "explain", broken)
    data = client.get("/score", params={"address": VALID_ADDRESS}).json()
    assert data["dataSource"] == "Fallback"
    assert data["error"] == "Step explain failed: RuntimeError: boom"
    assert client.get(f"/pipelines/{data['pipelineId']}").json()["failedStep"] == "explain"


def test_monitoring_unexpected_error_returns_500(client, components, monkeypatch):
    def broken():
        raise RuntimeError("registry corrupted")

    monkeypatch.setattr(components.metrics, "monitoring_report", broken)
    r = client.get("/monitoring")
    assert r.status_code == 500
    data = r.json()
    assert data["status"] == "error"
    assert data["message"] == "Monitoring data unavailable"
    assert "timestamp" in data


def test_monitoring_after_runs(client):
    client.get("/score", params={"address": VALID_ADDRESS})
    client.get("/score", params={"address": "0x123"})
    r = client.get("/monitoring")
    assert r.status_code == 200
    data = r.json()
    assert set(data) == {"system", "services", "pipelines", "performance", "timestamp"}
    assert data["pipelines"]["total"] == 2
    assert data["pipelines"]["completed"] == 1
    assert data["pipelines"]["failed"] == 1
    assert data["pipelines"]["successRate"] == 50.0
    assert data["pipelines"]["avgProcessingTime"] > 0
    assert data["services"]["count"] == 5
    assert data["services"]["health"]["overall"] == "healthy"
    assert "avgResponseTime" in data["performance"]
    assert "lastHealthCheck" in data["performance"]
    assert data["system"]["status"] == "healthy"
    assert data["system"]["memory"]["rss"] > 0


def test_monitoring_with_no_pipelines(client):
    data = client.get("/monitoring").json()
    assert data["pipelines"]["total"] == 0
    assert data["pipelines"]["successRate"] == 0.0
    assert data["pipelines"]["avgProcessingTime"] == 0.0


def test_pipelines_listing_and_detail(client):
    pid = client.get("/score", params={"address": VALID_ADDRESS}).json()["pipelineId"]

    listing = client.get("/pipelines").json()
    assert listing["count"] == 1
    assert listing["pipelines"][0]["id"] == pid
    assert all(s.get("output") is None for s in listing["pipelines"][0]["steps"])

    assert client.get("/pipelines", params={"active": "true"}).json()["count"] == 0

    detail = client.get(f"/pipelines/{pid}").json()
    assert detail["overallStatus"] == "completed"
    assert len(detail["steps"]) == 8
    assert detail["steps"][-1]["name"] == "format_response"
    assert detail["steps"][-1]["output"]["score"] == 87
    assert detail["totalDurationMs"] > 0


def test_unknown_pipeline_is_404(client):
    r = client.get("/pipelines/pipeline_does_not_exist")
    assert r.status_code == 404
    assert "Pipeline not found" in r.json()["detail"]


def test_fallback_pipeline_id_is_fetchable_for_unsafe_input(client):
    data = client.get("/score", params={"address": "0x12/34"}).json()
    assert data["pipelineId"].startswith("pipeline_0x1234_")
    r = client.get(f"/pipelines/{data['pipelineId']}")
    assert r.status_code == 200
    assert r.json()["address"] == "0x12/34"
