"""
Activity sources: fetch raw on-chain activity for one address from one provider.

- GraphIndexerSource: token transfers from the graph indexer (GraphQL).
- BlockExplorerSource: normal transaction history from the block explorer (txlist).
- GovernanceSource: DAO votes from the governance hub (GraphQL).

Each fetch_activity() returns a JSON-like dict and raises DependencyUnavailableError
on transport failures, non-2xx responses, GraphQL errors, explorer error status
or a reply whose JSON does not have the expected shape.
No local fallback data: a failed fetch fails the pipeline run.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from backend_passport.config.settings import (
    DEP_BLOCK_EXPLORER,
    DEP_GOVERNANCE_API,
    DEP_GRAPH_INDEXER,
    Settings,
)
from backend_passport.core.exceptions import DependencyUnavailableError
from backend_passport.passport_logging import get_logger
from backend_passport.utils.wallet_utils import short_wallet

logger = get_logger(__name__)

MAX_RECORDS_PER_QUERY = 100
EXPLORER_NO_TX_MESSAGE = "No transactions found"

TOKEN_TRANSFERS_QUERY = """
query GetTokenTransfers($address: String!) {
  transfers(
    where: { or: [{ from: $address }, { to: $address }] }
    orderBy: timestamp
    orderDirection: desc
    first: 100
  ) {
    from
    to
    value
    timestamp
    token { symbol name }
  }
}
"""

VOTES_QUERY = """
query GetVotes($address: String!) {
  votes(
    where: { voter: $address }
    orderBy: "created"
    orderDirection: desc
    first: 100
  ) {
    id
    proposal { id title }
    choice
    created
  }
}
"""


class ActivitySource(Protocol):
    source_id: str

    async def fetch_activity(self, address: str) -> dict[str, Any]: ...


def _decode_json(resp: httpx.Response, dependency: str) -> Any:
    if not resp.is_success:
        raise DependencyUnavailableError(dependency, f"HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise DependencyUnavailableError(dependency, "response is not valid JSON") from e


async def _post_graphql(
    client: httpx.AsyncClient,
    url: str,
    query: str,
    variables: dict[str, Any],
    dependency: str,
    timeout: float,
) -> dict[str, Any]:
    try:
        resp = await client.post(url, json={"query": query, "variables": variables}, timeout=timeout)
    except httpx.HTTPError as e:
        raise DependencyUnavailableError(dependency, f"{type(e).__name__}: {e}") from e
    body = _decode_json(resp, dependency)
    if not isinstance(body, dict):
        raise DependencyUnavailableError(dependency, "unexpected GraphQL payload")
    errors = body.get("errors")
    if errors:
        first = errors[0] if isinstance(errors, list) else errors
        msg = first.get("message") if isinstance(first, dict) else str(first)
        raise DependencyUnavailableError(dependency, f"GraphQL error: {msg}")
    data = body.get("data")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DependencyUnavailableError(dependency, "unexpected GraphQL data payload")
    return data


def _records(data: dict[str, Any], key: str, dependency: str) -> list[dict[str, Any]]:
    """data[key] as a list of objects; anything else is a malformed reply."""
    items = data.get(key) or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise DependencyUnavailableError(dependency, f"unexpected {key} payload")
    return items


class GraphIndexerSource:
    source_id = DEP_GRAPH_INDEXER

    def __init__(self, client: httpx.AsyncClient, url: str, timeout_sec: float = 15.0) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout_sec

    async def fetch_activity(self, address: str) -> dict[str, Any]:
        data = await _post_graphql(
            self._client,
            self._url,
            TOKEN_TRANSFERS_QUERY,
            {"address": address.lower()},
            self.source_id,
            self._timeout,
        )
        transfers = _records(data, "transfers", self.source_id)
        logger.debug("source_fetched", source=self.source_id, address=short_wallet(address), transfers=len(transfers))
        return {"source": self.source_id, "token_transfers": transfers}


class BlockExplorerSource:
    source_id = DEP_BLOCK_EXPLORER

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        api_key: str = "demo",
        timeout_sec: float = 15.0,
    ) -> None:
        self._client = client
        self._url = url
        self._api_key = api_key
        self._timeout = timeout_sec

    async def fetch_activity(self, address: str) -> dict[str, Any]:
        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": 1,
            "offset": MAX_RECORDS_PER_QUERY,
            "sort": "asc",
            "apikey": self._api_key,
        }
        try:
            resp = await self._client.get(self._url, params=params, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise DependencyUnavailableError(self.source_id, f"{type(e).__name__}: {e}") from e
        body = _decode_json(resp, self.source_id)
        if not isinstance(body, dict):
            raise DependencyUnavailableError(self.source_id, "unexpected explorer payload")

        status = str(body.get("status", ""))
        message = str(body.get("message") or "")
        if status == "1":
            transactions = body.get("result") or []
        elif message.startswith(EXPLORER_NO_TX_MESSAGE):
            transactions = []
        else:
            detail = body.get("result") if isinstance(body.get("result"), str) else message
            raise DependencyUnavailableError(self.source_id, f"explorer error: {detail or 'unknown'}")
        if not isinstance(transactions, list):
            raise DependencyUnavailableError(self.source_id, "explorer result is not a list")
        if not all(isinstance(tx, dict) for tx in transactions):
            raise DependencyUnavailableError(self.source_id, "unexpected explorer transaction payload")
        return summarize_transactions(transactions)


def summarize_transactions(transactions: list[dict[str, Any]]) -> dict[str, Any]:
    """Explorer txlist (ascending) -> totals plus first/last activity timestamps (unix sec)."""
    timestamps: list[int] = []
    for tx in transactions:
        try:
            timestamps.append(int(tx.get("timeStamp")))
        except (TypeError, ValueError):
            continue
    counterparties = {(tx.get("to") or "").lower() for tx in transactions if tx.get("to")}
    return {
        "source": DEP_BLOCK_EXPLORER,
        "transactions": transactions,
        "total_txs": len(transactions),
        "unique_contracts": len(counterparties),
        "first_tx_at": min(timestamps) if timestamps else None,
        "last_tx_at": max(timestamps) if timestamps else None,
    }


class GovernanceSource:
    source_id = DEP_GOVERNANCE_API

    def __init__(self, client: httpx.AsyncClient, url: str, timeout_sec: float = 15.0) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout_sec

    async def fetch_activity(self, address: str) -> dict[str, Any]:
        data = await _post_graphql(
            self._client,
            self._url,
            VOTES_QUERY,
            {"address": address.lower()},
            self.source_id,
            self._timeout,
        )
        votes = _records(data, "votes", self.source_id)
        logger.debug("source_fetched", source=self.source_id, address=short_wallet(address), votes=len(votes))
        return {"source": self.source_id, "votes": votes}


def build_default_sources(settings: Settings, client: httpx.AsyncClient) -> tuple[ActivitySource, ActivitySource, ActivitySource]:
    """(graph indexer, block explorer, governance) in pipeline step order."""
    timeout = settings.fetch_timeout_sec
    return (
        GraphIndexerSource(client, settings.graph_indexer_url, timeout),
        BlockExplorerSource(client, settings.block_explorer_url, settings.block_explorer_api_key, timeout),
        GovernanceSource(client, settings.governance_api_url, timeout),
    )
