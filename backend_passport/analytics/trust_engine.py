"""
Trust engine: compute 0-100 reputation score from aggregated wallet activity.

Formula: age (<=40, linear to one year) + DAO votes*2.5 (<=25) + DeFi transfers
(<=20, full at 10) + tx volume (<=10, full at 100) + contract diversity (<=5,
full at 20), +2 when active within 7 days, -5 when idle over 90 days (or never
active). Clamps to 0-100 and rounds. Returns the breakdown and reason codes.

Pure and deterministic: all time arithmetic is relative to the aggregate's
aggregated_at, never to the current clock.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from backend_passport.passport_logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

AGE_POINTS_CAP = 40
AGE_FULL_DAYS = 365
DAO_POINTS_CAP = 25
DAO_POINTS_PER_VOTE = 2.5
DEFI_POINTS_CAP = 20
DEFI_FULL_TXS = 10
TX_POINTS_CAP = 10
TX_FULL_COUNT = 100
DIVERSITY_POINTS_CAP = 5
DIVERSITY_FULL_CONTRACTS = 20
RECENT_ACTIVITY_DAYS = 7
RECENT_ACTIVITY_BONUS = 2
DORMANT_DAYS = 90
DORMANT_PENALTY = 5
SCORE_MIN = 0
SCORE_MAX = 100

# Reason codes returned with the breakdown
REASON_NEW_WALLET = "NEW_WALLET"
REASON_ESTABLISHED_WALLET = "ESTABLISHED_WALLET"
REASON_NO_GOVERNANCE = "NO_GOVERNANCE"
REASON_GOVERNANCE_PARTICIPANT = "GOVERNANCE_PARTICIPANT"
REASON_LOW_ACTIVITY = "LOW_ACTIVITY"
REASON_ACTIVE_RECENTLY = "ACTIVE_RECENTLY"
REASON_DORMANT = "DORMANT"

NEW_WALLET_MAX_DAYS = 30
LOW_ACTIVITY_MAX_TXS = 5


@dataclass
class ScoreBreakdown:
    wallet_age_days: int = 0
    dao_votes: int = 0
    defi_txs: int = 0
    total_txs: int = 0
    unique_contracts: int = 0
    last_activity: int | None = None
    """Unix seconds of the most recent observed activity; None if never active."""
    as_of: int = 0
    """Unix seconds the breakdown is relative to (the aggregate's aggregated_at)."""

    @property
    def days_since_last_activity(self) -> float | None:
        if self.last_activity is None:
            return None
        return max(0.0, (self.as_of - self.last_activity) / SECONDS_PER_DAY)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ScoreResult:
    score: int
    breakdown: ScoreBreakdown
    reason_codes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "breakdown": self.breakdown.to_dict(),
            "reason_codes": list(self.reason_codes),
        }


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _latest_timestamp(items: list[dict[str, Any]], *keys: str) -> int | None:
    latest: int | None = None
    for item in items:
        for key in keys:
            ts = _to_int(item.get(key)) if isinstance(item, dict) else None
            if ts is not None and (latest is None or ts > latest):
                latest = ts
    return latest


def build_breakdown(aggregate: dict[str, Any]) -> ScoreBreakdown:
    """Derive named counters from the aggregate payload (indexer + explorer + governance)."""
    as_of = int(aggregate["aggregated_at"])
    indexer = aggregate.get("indexer") or {}
    explorer = aggregate.get("explorer") or {}
    governance = aggregate.get("governance") or {}

    transfers = list(indexer.get("token_transfers") or [])
    votes = list(governance.get("votes") or [])
    first_tx_at = _to_int(explorer.get("first_tx_at"))

    wallet_age_days = 0
    if first_tx_at is not None:
        wallet_age_days = max(1, (as_of - first_tx_at) // SECONDS_PER_DAY)

    candidates = [
        _to_int(explorer.get("last_tx_at")),
        _latest_timestamp(transfers, "timestamp"),
        _latest_timestamp(votes, "created", "timestamp"),
    ]
    seen = [ts for ts in candidates if ts is not None]

    return ScoreBreakdown(
        wallet_age_days=int(wallet_age_days),
        dao_votes=len(votes),
        defi_txs=len(transfers),
        total_txs=int(explorer.get("total_txs") or 0),
        unique_contracts=int(explorer.get("unique_contracts") or 0),
        last_activity=max(seen) if seen else None,
        as_of=as_of,
    )


def _build_reason_codes(b: ScoreBreakdown) -> list[str]:
    codes: list[str] = []
    if b.wallet_age_days < NEW_WALLET_MAX_DAYS:
        codes.append(REASON_NEW_WALLET)
    elif b.wallet_age_days >= AGE_FULL_DAYS:
        codes.append(REASON_ESTABLISHED_WALLET)
    codes.append(REASON_GOVERNANCE_PARTICIPANT if b.dao_votes > 0 else REASON_NO_GOVERNANCE)
    if b.total_txs < LOW_ACTIVITY_MAX_TXS:
        codes.append(REASON_LOW_ACTIVITY)
    days = b.days_since_last_activity
    if days is not None and days < RECENT_ACTIVITY_DAYS:
        codes.append(REASON_ACTIVE_RECENTLY)
    elif days is None or days > DORMANT_DAYS:
        codes.append(REASON_DORMANT)
    return codes


def score_breakdown(b: ScoreBreakdown) -> int:
    score = 0.0
    score += min(AGE_POINTS_CAP, b.wallet_age_days / AGE_FULL_DAYS * AGE_POINTS_CAP)
    score += min(DAO_POINTS_CAP, b.dao_votes * DAO_POINTS_PER_VOTE)
    score += min(DEFI_POINTS_CAP, b.defi_txs / DEFI_FULL_TXS * DEFI_POINTS_CAP)
    score += min(TX_POINTS_CAP, b.total_txs / TX_FULL_COUNT * TX_POINTS_CAP)
    score += min(DIVERSITY_POINTS_CAP, b.unique_contracts / DIVERSITY_FULL_CONTRACTS * DIVERSITY_POINTS_CAP)

    days = b.days_since_last_activity
    if days is not None and days < RECENT_ACTIVITY_DAYS:
        score += RECENT_ACTIVITY_BONUS
    elif days is None or days > DORMANT_DAYS:
        score -= DORMANT_PENALTY

    return int(round(max(SCORE_MIN, min(SCORE_MAX, score))))


def compute_score(aggregate: dict[str, Any]) -> ScoreResult:
    """
    Compute the reputation score for one aggregate payload.

    aggregate: {"address", "aggregated_at", "indexer", "explorer", "governance"} as
        produced by the pipeline's aggregate step.
    Raises KeyError / TypeError / ValueError on malformed input; the pipeline wraps
    these as ComputationError.
    """
    breakdown = build_breakdown(aggregate)
    result = ScoreResult(
        score=score_breakdown(breakdown),
        breakdown=breakdown,
        reason_codes=_build_reason_codes(breakdown),
    )
    logger.debug(
        "trust_engine_result",
        address=(aggregate.get("address") or "")[:16] + "...",
        score=result.score,
        reason_codes=result.reason_codes,
    )
    return result
