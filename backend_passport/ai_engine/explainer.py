"""
Reputation explanation: score + breakdown -> text, confidence, reasons, recommendations.

RuleBasedExplainer runs locally and is deterministic for a given breakdown.
RemoteExplainer asks the AI compute service and falls back to a basic
explanation when the service is unreachable or replies with garbage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from backend_passport.analytics.trust_engine import ScoreBreakdown
from backend_passport.config.settings import DEP_AI_COMPUTE, Settings
from backend_passport.passport_logging import get_logger
from backend_passport.utils.wallet_utils import short_wallet

logger = get_logger(__name__)

BASE_CONFIDENCE = 0.8
MAX_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.6
RECOMMENDATION_SCORE_BELOW = 70


@dataclass
class Explanation:
    text: str
    confidence: float
    reasons: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "recommendations": list(self.recommendations),
        }


class Explainer(Protocol):
    async def explain(self, address: str, score: int, breakdown: ScoreBreakdown) -> Explanation: ...


def _score_sentence(score: int, reasons: list[str]) -> str:
    lead = " ".join(reasons[:2])
    if score >= 80:
        return (
            f"This wallet demonstrates excellent on-chain reputation with a score of {score}/100. {lead} "
            "The wallet shows strong engagement across multiple aspects of the Ethereum ecosystem."
        )
    if score >= 60:
        return (
            f"This wallet shows good on-chain reputation with a score of {score}/100. {lead} "
            "There's room for improvement in certain areas."
        )
    if score >= 40:
        return (
            f"This wallet has moderate on-chain reputation with a score of {score}/100. {lead} "
            "Consider the recommendations to improve your reputation score."
        )
    return (
        f"This wallet has limited on-chain reputation with a score of {score}/100. {lead} "
        "Focus on building a stronger on-chain presence."
    )


def analyze_breakdown(score: int, b: ScoreBreakdown) -> Explanation:
    """Rule-based analysis of age, governance, DeFi, contract diversity and recency."""
    confidence = BASE_CONFIDENCE
    reasons: list[str] = []
    recommendations: list[str] = []

    if b.wallet_age_days > 365:
        reasons.append(f"Strong wallet longevity: {b.wallet_age_days} days indicates established presence")
        confidence += 0.1
    elif b.wallet_age_days > 90:
        reasons.append(f"Moderate wallet age: {b.wallet_age_days} days shows some history")
    else:
        reasons.append(f"New wallet: {b.wallet_age_days} days suggests recent activity")
        recommendations.append("Consider building longer transaction history")

    if b.dao_votes > 10:
        reasons.append(f"Active DAO participant: {b.dao_votes} votes shows governance engagement")
        confidence += 0.1
    elif b.dao_votes > 0:
        reasons.append(f"Some DAO participation: {b.dao_votes} votes indicates governance interest")
    else:
        reasons.append("No DAO participation detected")
        recommendations.append("Consider participating in DAO governance to improve reputation")

    if b.defi_txs > 50:
        reasons.append(f"High DeFi activity: {b.defi_txs} transactions shows active DeFi usage")
        confidence += 0.1
    elif b.defi_txs > 10:
        reasons.append(f"Moderate DeFi activity: {b.defi_txs} transactions indicates some DeFi engagement")
    else:
        reasons.append("Limited DeFi activity")
        recommendations.append("Engage more with DeFi protocols to demonstrate expertise")

    if b.unique_contracts > 20:
        reasons.append(
            f"Diverse contract interactions: {b.unique_contracts} unique contracts shows broad ecosystem engagement"
        )
        confidence += 0.05

    days = b.days_since_last_activity
    if days is not None:
        if days < 7:
            reasons.append("Recent activity detected - wallet is actively used")
            confidence += 0.05
        elif days > 30:
            reasons.append("Limited recent activity - wallet may be dormant")
            recommendations.append("Maintain regular activity to keep reputation current")

    text = _score_sentence(score, reasons)
    if score < RECOMMENDATION_SCORE_BELOW and recommendations:
        text += f" To improve your reputation: {', '.join(recommendations[:2])}."

    return Explanation(
        text=text,
        confidence=round(min(confidence, MAX_CONFIDENCE), 2),
        reasons=reasons,
        recommendations=recommendations,
    )


def fallback_explanation(score: int, b: ScoreBreakdown) -> Explanation:
    """Basic explanation used when the AI compute service is unavailable."""
    return Explanation(
        text=(
            f"This wallet has a reputation score of {score}/100 based on wallet age "
            f"({b.wallet_age_days} days), DAO votes ({b.dao_votes}), and DeFi transactions ({b.defi_txs})."
        ),
        confidence=FALLBACK_CONFIDENCE,
        reasons=[
            f"Wallet age: {b.wallet_age_days} days",
            f"DAO votes: {b.dao_votes}",
            f"DeFi transactions: {b.defi_txs}",
        ],
        recommendations=[
            "Build longer transaction history",
            "Participate in DAO governance",
            "Engage with DeFi protocols",
        ],
    )


class RuleBasedExplainer:
    async def explain(self, address: str, score: int, breakdown: ScoreBreakdown) -> Explanation:
        return analyze_breakdown(score, breakdown)


class RemoteExplainer:
    """AI compute service client: POST {base_url}/analyze-reputation with a bearer key."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        timeout_sec: float = 20.0,
    ) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + "/analyze-reputation"
        self._api_key = api_key
        self._timeout = timeout_sec

    async def _call(self, address: str, score: int, breakdown: ScoreBreakdown) -> Explanation:
        resp = await self._client.post(
            self._url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "wallet_address": address,
                "score": score,
                "on_chain_data": breakdown.to_dict(),
                "analysis_type": "reputation_explanation",
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        confidence = float(body["confidence"])
        if not math.isfinite(confidence):
            raise ValueError(f"non-finite confidence: {confidence}")
        return Explanation(
            text=str(body["explanation"]),
            confidence=max(0.0, min(1.0, confidence)),
            reasons=[str(r) for r in body.get("reasoning") or []],
            recommendations=[str(r) for r in body.get("recommendations") or []],
        )

    async def explain(self, address: str, score: int, breakdown: ScoreBreakdown) -> Explanation:
        try:
            return await self._call(address, score, breakdown)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "explainer_remote_failed",
                dependency=DEP_AI_COMPUTE,
                address=short_wallet(address),
                error=str(e),
            )
            return fallback_explanation(score, breakdown)


def build_explainer(settings: Settings, client: httpx.AsyncClient) -> Explainer:
    """Remote explainer when an AI compute API key is configured, rule-based otherwise."""
    if settings.ai_compute_api_key:
        return RemoteExplainer(client, settings.ai_compute_url, settings.ai_compute_api_key, settings.explain_timeout_sec)
    return RuleBasedExplainer()
