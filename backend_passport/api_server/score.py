"""
FastAPI router: GET /score?address=..., GET /api/score/{address}.

Runs one reputation pipeline per request. Always answers 200: when the run
fails (bad address, unreachable dependency, scoring error) the client gets a
fallback payload carrying the pipeline id and the error message instead.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from backend_passport.api_server.dependencies import get_orchestrator
from backend_passport.api_server.schemas import ScoreResponse
from backend_passport.core.exceptions import InvalidInputError, PassportError
from backend_passport.passport_logging import get_logger
from backend_passport.pipeline.orchestrator import PipelineOrchestrator, response_of
from backend_passport.utils.clock import now_ms
from backend_passport.utils.wallet_utils import short_wallet

logger = get_logger(__name__)

router = APIRouter(tags=["score"])

FALLBACK_DATA_SOURCE = "Fallback"
FALLBACK_EXPLANATION = "Unable to calculate reputation score at this time. Please try again later."
FALLBACK_CONFIDENCE = 0.1
FALLBACK_RECOMMENDATION = "Please ensure the wallet address is valid and try again"


def fallback_payload(address: str, error: BaseException, pipeline_id: str | None) -> dict[str, Any]:
    """Zero-score response returned in place of an error."""
    if isinstance(error, InvalidInputError):
        reasoning = ["Invalid wallet address format"]
    else:
        reasoning = ["Error occurred during data fetching"]
    return {
        "address": address,
        "score": 0,
        "breakdown": {
            "wallet_age_days": 0,
            "dao_votes": 0,
            "defi_txs": 0,
            "total_txs": 0,
            "unique_contracts": 0,
        },
        "reason_codes": [],
        "explanation": FALLBACK_EXPLANATION,
        "confidence": FALLBACK_CONFIDENCE,
        "reasoning": reasoning,
        "recommendations": [FALLBACK_RECOMMENDATION],
        "timestamp": int(now_ms()),
        "data_source": FALLBACK_DATA_SOURCE,
        "pipeline_id": pipeline_id,
        "error": str(error) or type(error).__name__,
    }


async def _score_address(address: str, orchestrator: PipelineOrchestrator) -> ScoreResponse:
    subject = (address or "").strip()
    try:
        record = await orchestrator.compute_reputation(subject)
    except PassportError as e:
        return ScoreResponse.model_validate(fallback_payload(subject, e, e.pipeline_id))
    except Exception as e:
        logger.exception("score_unexpected_error", address=short_wallet(subject))
        return ScoreResponse.model_validate(fallback_payload(subject, e, getattr(e, "pipeline_id", None)))
    return ScoreResponse.model_validate(response_of(record))


@router.get("/score", response_model=ScoreResponse, response_model_by_alias=True)
async def get_score(
    address: str = Query("", description="EVM wallet address (0x + 40 hex chars)"),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ScoreResponse:
    """Reputation score, breakdown and explanation for one wallet."""
    return await _score_address(address, orchestrator)


@router.get("/api/score/{address}", response_model=ScoreResponse, response_model_by_alias=True)
async def get_score_by_path(
    address: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ScoreResponse:
    """Same as GET /score with the address in the path."""
    return await _score_address(address, orchestrator)
