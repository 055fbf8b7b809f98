"""
Pytest tests for dependency probes over a mocked HTTP transport.
"""

from __future__ import annotations

import httpx
import pytest

from backend_passport.config.settings import DEFAULT_DEPENDENCIES, Settings
from backend_passport.health.probes import CallableProbe, HttpProbe, JsonRpcProbe, build_default_probes


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_probe_ok_on_2xx():
    async with _client(lambda r: httpx.Response(200, json={"ok": True})) as client:
        result = await HttpProbe("svc", client, "https://svc.example/health")()
    assert result.ok
    assert result.detail is None
    assert result.elapsed_ms >= 0


@pytest.mark.asyncio
async def test_http_probe_reports_status_code():
    async with _client(lambda r: httpx.Response(503)) as client:
        result = await HttpProbe("svc", client, "https://svc.example/health")()
    assert not result.ok
    assert result.detail == "http_503"


@pytest.mark.asyncio
async def test_http_probe_never_raises_on_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        result = await HttpProbe("svc", client, "https://svc.example/health")()
    assert not result.ok
    assert result.detail.startswith("ConnectError")


@pytest.mark.asyncio
async def test_http_probe_timeout_detail():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with _client(handler) as client:
        result = await HttpProbe("svc", client, "https://svc.example/health")()
    assert not result.ok
    assert result.detail == "timeout"


@pytest.mark.asyncio
async def test_json_rpc_probe_requires_result():
    async with _client(lambda r: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x1"})) as client:
        assert (await JsonRpcProbe("rpc", client, "https://rpc.example")()).ok

    async with _client(lambda r: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -1}})) as client:
        result = await JsonRpcProbe("rpc", client, "https://rpc.example")()
    assert not result.ok
    assert result.detail == "unexpected_payload"

    async with _client(lambda r: httpx.Response(200, text="not json")) as client:
        result = await JsonRpcProbe("rpc", client, "https://rpc.example")()
    assert result.detail == "invalid_json"


@pytest.mark.asyncio
async def test_callable_probe_wraps_exceptions():
    async def boom() -> bool:
        raise RuntimeError("nope")

    result = await CallableProbe("x", boom)()
    assert not result.ok
    assert result.detail == "nope"


@pytest.mark.asyncio
async def test_default_probes_cover_every_dependency():
    async with _client(lambda r: httpx.Response(200, json={"result": "0x1"})) as client:
        probes = build_default_probes(Settings(), client)
        assert set(probes) == set(DEFAULT_DEPENDENCIES)
        results = [await probe() for probe in probes.values()]
    assert all(r.ok for r in results)
