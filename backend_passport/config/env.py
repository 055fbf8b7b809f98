"""
Environment variable loading for Backend Passport.

- APP_ENV: development | staging | production (default: development)
- GRAPH_INDEXER_URL, BLOCK_EXPLORER_URL, GOVERNANCE_API_URL: data provider endpoints
- ETHERSCAN_API_KEY: block explorer key (default: demo)
- ZERO_G_BASE_URL / ZERO_G_API_KEY: AI compute service
- ETH_RPC_URL: JSON-RPC endpoint used to check the on-chain contracts
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_passport/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_GRAPH_INDEXER_URL = "https://api.thegraph.com/subgraphs/name/uniswap/uniswap-v3"
DEFAULT_BLOCK_EXPLORER_URL = "https://api.etherscan.io/api"
DEFAULT_GOVERNANCE_API_URL = "https://hub.snapshot.org/graphql"
DEFAULT_ZERO_G_BASE_URL = "https://api.0g.ai/v1"
DEFAULT_ETH_RPC_URL = "https://cloudflare-eth.com"

_TRUTHY = ("1", "true", "yes", "on")


def load_passport_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or "").strip() or default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def get_app_env() -> str:
    """Return APP_ENV (falls back to NODE_ENV, then development)."""
    load_passport_env()
    return env_str("APP_ENV") or env_str("NODE_ENV") or "development"

