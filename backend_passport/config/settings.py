"""
Application settings and environment configuration.

Loads configuration from environment variables and the project .env file,
validates and clamps numeric values, and exposes one typed Settings object
for the health registry, the reputation pipeline and the API server.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_passport import __version__
from backend_passport.config.env import (
    DEFAULT_BLOCK_EXPLORER_URL,
    DEFAULT_ETH_RPC_URL,
    DEFAULT_GOVERNANCE_API_URL,
    DEFAULT_GRAPH_INDEXER_URL,
    DEFAULT_ZERO_G_BASE_URL,
    env_bool,
    env_float,
    env_int,
    env_str,
    get_app_env,
    load_passport_env,
)

DEFAULT_HEALTH_CHECK_INTERVAL_SEC = 30.0
DEFAULT_PROBE_TIMEOUT_SEC = 10.0
DEFAULT_FETCH_TIMEOUT_SEC = 15.0
DEFAULT_EXPLAIN_TIMEOUT_SEC = 20.0
DEFAULT_PIPELINE_MAX_RECORDS = 1000
MIN_HEALTH_CHECK_INTERVAL_SEC = 1.0
MIN_TIMEOUT_SEC = 0.1

# Dependency names, in registration order
DEP_GRAPH_INDEXER = "graph-indexer"
DEP_BLOCK_EXPLORER = "block-explorer"
DEP_GOVERNANCE_API = "governance-api"
DEP_AI_COMPUTE = "ai-compute"
DEP_ONCHAIN_CONTRACTS = "on-chain-contracts"
DEFAULT_DEPENDENCIES: tuple[str, ...] = (
    DEP_GRAPH_INDEXER,
    DEP_BLOCK_EXPLORER,
    DEP_GOVERNANCE_API,
    DEP_AI_COMPUTE,
    DEP_ONCHAIN_CONTRACTS,
)


@dataclass
class Settings:
    """
    Config for the whole service.

    health_check_interval_sec: Period of the background probe cycle.
    probe_timeout_sec / fetch_timeout_sec / explain_timeout_sec: Bound on each external call.
    parallel_fetch: Run the three fetch steps concurrently (still timed per step).
    pipeline_max_records / pipeline_record_ttl_sec: Pipeline registry eviction policy.
    """

    app_env: str = "development"
    version: str = __version__
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    graph_indexer_url: str = DEFAULT_GRAPH_INDEXER_URL
    block_explorer_url: str = DEFAULT_BLOCK_EXPLORER_URL
    block_explorer_api_key: str = "demo"
    governance_api_url: str = DEFAULT_GOVERNANCE_API_URL
    ai_compute_url: str = DEFAULT_ZERO_G_BASE_URL
    ai_compute_api_key: str = ""
    eth_rpc_url: str = DEFAULT_ETH_RPC_URL

    health_check_interval_sec: float = DEFAULT_HEALTH_CHECK_INTERVAL_SEC
    probe_timeout_sec: float = DEFAULT_PROBE_TIMEOUT_SEC
    fetch_timeout_sec: float = DEFAULT_FETCH_TIMEOUT_SEC
    explain_timeout_sec: float = DEFAULT_EXPLAIN_TIMEOUT_SEC
    parallel_fetch: bool = False

    pipeline_max_records: int = DEFAULT_PIPELINE_MAX_RECORDS
    pipeline_record_ttl_sec: float | None = None

    dependencies: tuple[str, ...] = field(default_factory=lambda: DEFAULT_DEPENDENCIES)

    def __post_init__(self) -> None:
        self.health_check_interval_sec = max(MIN_HEALTH_CHECK_INTERVAL_SEC, float(self.health_check_interval_sec))
        self.probe_timeout_sec = max(MIN_TIMEOUT_SEC, float(self.probe_timeout_sec))
        self.fetch_timeout_sec = max(MIN_TIMEOUT_SEC, float(self.fetch_timeout_sec))
        self.explain_timeout_sec = max(MIN_TIMEOUT_SEC, float(self.explain_timeout_sec))
        self.pipeline_max_records = max(1, int(self.pipeline_max_records))
        if self.pipeline_record_ttl_sec is not None and self.pipeline_record_ttl_sec <= 0:
            self.pipeline_record_ttl_sec = None

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def load_settings() -> Settings:
    """Build Settings from environment with defaults (always re-reads the env)."""
    load_passport_env()
    ttl = env_float("PIPELINE_RECORD_TTL_SEC", 0.0)
    return Settings(
        app_env=get_app_env(),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
        graph_indexer_url=env_str("GRAPH_INDEXER_URL", DEFAULT_GRAPH_INDEXER_URL),
        block_explorer_url=env_str("BLOCK_EXPLORER_URL", DEFAULT_BLOCK_EXPLORER_URL),
        block_explorer_api_key=env_str("ETHERSCAN_API_KEY", "demo"),
        governance_api_url=env_str("GOVERNANCE_API_URL", DEFAULT_GOVERNANCE_API_URL),
        ai_compute_url=env_str("ZERO_G_BASE_URL", DEFAULT_ZERO_G_BASE_URL),
        ai_compute_api_key=env_str("ZERO_G_API_KEY"),
        eth_rpc_url=env_str("ETH_RPC_URL", DEFAULT_ETH_RPC_URL),
        health_check_interval_sec=env_float("HEALTH_CHECK_INTERVAL_SEC", DEFAULT_HEALTH_CHECK_INTERVAL_SEC),
        probe_timeout_sec=env_float("PROBE_TIMEOUT_SEC", DEFAULT_PROBE_TIMEOUT_SEC),
        fetch_timeout_sec=env_float("FETCH_TIMEOUT_SEC", DEFAULT_FETCH_TIMEOUT_SEC),
        explain_timeout_sec=env_float("EXPLAIN_TIMEOUT_SEC", DEFAULT_EXPLAIN_TIMEOUT_SEC),
        parallel_fetch=env_bool("PIPELINE_PARALLEL_FETCH", False),
        pipeline_max_records=env_int("PIPELINE_MAX_RECORDS", DEFAULT_PIPELINE_MAX_RECORDS),
        pipeline_record_ttl_sec=ttl if ttl > 0 else None,
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings (cached; call get_settings.cache_clear()
    after changing the environment).
    """
    return load_settings()
