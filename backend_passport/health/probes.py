"""
Dependency probes: one bounded-time health check against one external provider.

Every probe returns a ProbeResult and never raises; transport errors, timeouts
and non-2xx responses all become ok=False with a short detail string. The
HealthRegistry additionally wraps each call in its own timeout.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

import httpx

from backend_passport.config.settings import (
    DEP_AI_COMPUTE,
    DEP_BLOCK_EXPLORER,
    DEP_GOVERNANCE_API,
    DEP_GRAPH_INDEXER,
    DEP_ONCHAIN_CONTRACTS,
    Settings,
)
from backend_passport.passport_logging import get_logger
from backend_passport.utils.clock import elapsed_ms

logger = get_logger(__name__)

GRAPH_META_QUERY = "{ _meta { hasIndexingErrors } }"
MAX_DETAIL_LENGTH = 200


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    elapsed_ms: float
    detail: str | None = None


class DependencyProbe(Protocol):
    async def __call__(self) -> ProbeResult: ...


def _detail(text: str) -> str:
    if len(text) <= MAX_DETAIL_LENGTH:
        return text
    return text[: MAX_DETAIL_LENGTH - 3] + "..."


class HttpProbe:
    """
    Single HTTP request; ok iff the response is 2xx (and `validate`, when given,
    accepts the decoded JSON body).
    """

    def __init__(
        self,
        name: str,
        client: httpx.AsyncClient,
        url: str,
        *,
        method: str = "GET",
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout_sec: float = 10.0,
        validate: Callable[[Any], bool] | None = None,
    ) -> None:
        self.name = name
        self._client = client
        self._url = url
        self._method = method.upper()
        self._json_body = json_body
        self._params = params
        self._timeout = timeout_sec
        self._validate = validate

    async def __call__(self) -> ProbeResult:
        start = time.monotonic()
        try:
            resp = await self._client.request(
                self._method,
                self._url,
                json=self._json_body,
                params=self._params,
                timeout=self._timeout,
            )
        except httpx.TimeoutException:
            return ProbeResult(False, elapsed_ms(start), "timeout")
        except httpx.HTTPError as e:
            return ProbeResult(False, elapsed_ms(start), _detail(f"{type(e).__name__}: {e}"))
        elapsed = elapsed_ms(start)
        if not resp.is_success:
            return ProbeResult(False, elapsed, f"http_{resp.status_code}")
        if self._validate is not None:
            try:
                accepted = self._validate(resp.json())
            except ValueError:
                return ProbeResult(False, elapsed, "invalid_json")
            if not accepted:
                return ProbeResult(False, elapsed, "unexpected_payload")
        return ProbeResult(True, elapsed)


class JsonRpcProbe(HttpProbe):
    """eth_chainId against the chain RPC; ok iff the reply carries a result."""

    def __init__(self, name: str, client: httpx.AsyncClient, url: str, *, timeout_sec: float = 10.0) -> None:
        super().__init__(
            name,
            client,
            url,
            method="POST",
            json_body={"jsonrpc": "2.0", "id": 1, "method": "eth_chainId", "params": []},
            timeout_sec=timeout_sec,
            validate=lambda body: isinstance(body, dict) and body.get("result") is not None,
        )


class CallableProbe:
    """Adapts a plain coroutine function returning bool into a probe (tests, in-process checks)."""

    def __init__(self, name: str, check: Callable[[], Awaitable[bool]]) -> None:
        self.name = name
        self._check = check

    async def __call__(self) -> ProbeResult:
        start = time.monotonic()
        try:
            ok = bool(await self._check())
        except Exception as e:
            return ProbeResult(False, elapsed_ms(start), _detail(str(e) or type(e).__name__))
        return ProbeResult(ok, elapsed_ms(start), None if ok else "check_failed")


def build_default_probes(settings: Settings, client: httpx.AsyncClient) -> dict[str, DependencyProbe]:
    """Probes for the five reference dependencies, keyed by dependency name."""
    timeout = settings.probe_timeout_sec
    ai_health_url = settings.ai_compute_url.rstrip("/") + "/health"
    probes: dict[str, DependencyProbe] = {
        DEP_GRAPH_INDEXER: HttpProbe(
            DEP_GRAPH_INDEXER,
            client,
            settings.graph_indexer_url,
            method="POST",
            json_body={"query": GRAPH_META_QUERY},
            timeout_sec=timeout,
        ),
        DEP_BLOCK_EXPLORER: HttpProbe(
            DEP_BLOCK_EXPLORER,
            client,
            settings.block_explorer_url,
            params={"module": "stats", "action": "ethsupply", "apikey": settings.block_explorer_api_key},
            timeout_sec=timeout,
        ),
        DEP_GOVERNANCE_API: HttpProbe(
            DEP_GOVERNANCE_API,
            client,
            settings.governance_api_url,
            method="POST",
            json_body={"query": "{ space(id: \"ens.eth\") { id } }"},
            timeout_sec=timeout,
        ),
        DEP_AI_COMPUTE: HttpProbe(DEP_AI_COMPUTE, client, ai_health_url, timeout_sec=timeout),
        DEP_ONCHAIN_CONTRACTS: JsonRpcProbe(DEP_ONCHAIN_CONTRACTS, client, settings.eth_rpc_url, timeout_sec=timeout),
    }
    logger.debug("health_probes_built", dependencies=list(probes))
    return probes
