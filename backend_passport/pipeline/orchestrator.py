"""
Reputation pipeline orchestrator: validate -> fetch x3 -> aggregate -> score -> explain -> format.

One compute_reputation() call is one run with a fresh PipelineRecord (never
idempotent: the same address twice gives two records). Steps execute in order
through the step executor; the first failure aborts the run (fail-fast), leaves
completed steps' outputs on the record, leaves later steps pending, marks the
record failed and re-raises to the caller.

The three fetch steps have no data dependency on one another. They run one after
the other by default; with parallel_fetch they run concurrently but still as three
separately timed step records.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Sequence

import httpx

from backend_passport.ai_engine.explainer import Explainer, build_explainer
from backend_passport.analytics.sources import ActivitySource, build_default_sources
from backend_passport.analytics.trust_engine import ScoreBreakdown, ScoreResult, compute_score
from backend_passport.config.settings import DEP_AI_COMPUTE, Settings
from backend_passport.core.exceptions import (
    ComputationError,
    DependencyUnavailableError,
    InvalidInputError,
    PassportError,
    PipelineError,
)
from backend_passport.passport_logging import get_logger, pipeline_context
from backend_passport.pipeline.executor import execute_step
from backend_passport.pipeline.models import FETCH_STEPS, PipelineRecord, StepName, StepStatus
from backend_passport.pipeline.registry import PipelineRegistry
from backend_passport.utils.clock import now_ms
from backend_passport.utils.wallet_utils import EVM_ADDRESS_LENGTH, is_valid_wallet, normalize_wallet, short_wallet

logger = get_logger(__name__)

DATA_SOURCE = "The Graph + Etherscan + Snapshot + 0G AI"

Scorer = Callable[[dict[str, Any]], ScoreResult]


def validate_address(address: str) -> str:
    """Syntactic check: non-empty, 0x-prefixed, 42 chars, hex body. Returns the lower-cased address."""
    if not address:
        raise InvalidInputError("Invalid wallet address format: address is empty")
    if not address.startswith("0x"):
        raise InvalidInputError("Invalid wallet address format: missing 0x prefix")
    if len(address) != EVM_ADDRESS_LENGTH:
        raise InvalidInputError(
            f"Invalid wallet address format: expected {EVM_ADDRESS_LENGTH} characters, got {len(address)}"
        )
    if not is_valid_wallet(address):
        raise InvalidInputError("Invalid wallet address format: non-hex characters")
    return normalize_wallet(address)


class PipelineOrchestrator:
    def __init__(
        self,
        registry: PipelineRegistry,
        sources: Sequence[ActivitySource],
        explainer: Explainer,
        *,
        scorer: Scorer = compute_score,
        fetch_timeout_sec: float | None = 15.0,
        explain_timeout_sec: float | None = 20.0,
        parallel_fetch: bool = False,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        if len(sources) != len(FETCH_STEPS):
            raise PipelineError(f"Expected {len(FETCH_STEPS)} activity sources, got {len(sources)}")
        self.registry = registry
        self._sources = tuple(sources)
        self._explainer = explainer
        self._scorer = scorer
        self._fetch_timeout = fetch_timeout_sec
        self._explain_timeout = explain_timeout_sec
        self.parallel_fetch = parallel_fetch
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: PipelineRegistry,
        client: httpx.AsyncClient,
    ) -> PipelineOrchestrator:
        return cls(
            registry,
            build_default_sources(settings, client),
            build_explainer(settings, client),
            fetch_timeout_sec=settings.fetch_timeout_sec,
            explain_timeout_sec=settings.explain_timeout_sec,
            parallel_fetch=settings.parallel_fetch,
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def compute_reputation(self, address: str) -> PipelineRecord:
        """
        Run the full pipeline for one address and return its finished record.

        Raises a PassportError (InvalidInputError, DependencyUnavailableError,
        ComputationError, AggregationError) carrying the run's pipeline_id after
        the record has been finalised as failed. Anything else a step raises is
        re-raised as DependencyUnavailableError for fetch steps and
        ComputationError otherwise, chained to the original.
        """
        subject = (address or "").strip()
        record = PipelineRecord.create(subject, self._clock())
        self.registry.add(record)

        with pipeline_context(record.id, short_wallet(subject)):
            record.overall_status = StepStatus.PROCESSING
            logger.info("pipeline_started")
            try:
                await self._run(record)
            except PassportError as e:
                self._fail(record, e)
                e.pipeline_id = record.id
                raise
            except Exception as e:
                self._fail(record, e)
                err = self._as_domain_error(record, e)
                err.pipeline_id = record.id
                raise err from e
            except BaseException as e:
                self._fail(record, e)
                raise
            record.finish(StepStatus.COMPLETED, self._clock())
            logger.info("pipeline_completed", total_duration_ms=record.total_duration_ms)
        return record

    def _fail(self, record: PipelineRecord, e: BaseException) -> None:
        record.finish(StepStatus.FAILED, self._clock())
        failed = record.failed_step()
        logger.warning(
            "pipeline_failed",
            failed_step=failed.name.value if failed else None,
            error=failed.error_message if failed else str(e),
            error_type=type(e).__name__,
            total_duration_ms=record.total_duration_ms,
        )

    def _as_domain_error(self, record: PipelineRecord, e: Exception) -> PassportError:
        failed = record.failed_step()
        detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
        if failed is not None and failed.name in FETCH_STEPS:
            source = self._sources[FETCH_STEPS.index(failed.name)]
            return DependencyUnavailableError(source.source_id, f"unexpected error: {detail}")
        step = failed.name.value if failed else "pipeline"
        return ComputationError(f"Step {step} failed: {detail}")

    async def _run(self, record: PipelineRecord) -> None:
        address = await execute_step(
            record,
            StepName.VALIDATE_ADDRESS,
            functools.partial(self._validate, record.address),
            clock=self._clock,
        )
        if self.parallel_fetch:
            await self._fetch_concurrently(record, address)
        else:
            for step, source in zip(FETCH_STEPS, self._sources):
                await self._fetch_step(record, step, source, address)

        aggregate = await execute_step(
            record, StepName.AGGREGATE, functools.partial(self._aggregate, record, address), clock=self._clock
        )
        scored = await execute_step(
            record, StepName.COMPUTE_SCORE, functools.partial(self._score, aggregate), clock=self._clock
        )
        await execute_step(
            record,
            StepName.EXPLAIN,
            functools.partial(self._explain, address, scored),
            timeout_sec=self._explain_timeout,
            dependency=DEP_AI_COMPUTE,
            clock=self._clock,
        )
        await execute_step(
            record, StepName.FORMAT_RESPONSE, functools.partial(self._format, record), clock=self._clock
        )

    def _fetch_step(self, record: PipelineRecord, step: StepName, source: ActivitySource, address: str):
        return execute_step(
            record,
            step,
            functools.partial(source.fetch_activity, address),
            timeout_sec=self._fetch_timeout,
            dependency=source.source_id,
            clock=self._clock,
        )

    async def _fetch_concurrently(self, record: PipelineRecord, address: str) -> None:
        outcomes = await asyncio.gather(
            *(self._fetch_step(record, step, source, address) for step, source in zip(FETCH_STEPS, self._sources)),
            return_exceptions=True,
        )
        # All three settle first so each keeps its own timing; then fail on the earliest step
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    # ------------------------------------------------------------------
    # Step bodies
    # ------------------------------------------------------------------

    async def _validate(self, address: str) -> str:
        return validate_address(address)

    async def _aggregate(self, record: PipelineRecord, address: str) -> dict[str, Any]:
        indexer, explorer, governance = (record.output_of(step) for step in FETCH_STEPS)
        return {
            "address": address,
            "indexer": indexer,
            "explorer": explorer,
            "governance": governance,
            "aggregated_at": int(self._clock() // 1000),
        }

    async def _score(self, aggregate: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._scorer(aggregate).to_dict()
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise ComputationError(f"Score computation failed: {type(e).__name__}: {e}") from e

    async def _explain(self, address: str, scored: dict[str, Any]) -> dict[str, Any]:
        breakdown = ScoreBreakdown(**scored["breakdown"])
        explanation = await self._explainer.explain(address, int(scored["score"]), breakdown)
        return explanation.to_dict()

    async def _format(self, record: PipelineRecord) -> dict[str, Any]:
        aggregate = record.output_of(StepName.AGGREGATE)
        scored = record.output_of(StepName.COMPUTE_SCORE)
        explanation = record.output_of(StepName.EXPLAIN)
        try:
            return {
                "address": aggregate["address"],
                "score": scored["score"],
                "breakdown": scored["breakdown"],
                "reason_codes": scored.get("reason_codes", []),
                "explanation": explanation["text"],
                "confidence": explanation["confidence"],
                "reasoning": explanation["reasons"],
                "recommendations": explanation["recommendations"],
                "timestamp": int(self._clock()),
                "data_source": DATA_SOURCE,
                "pipeline_id": record.id,
            }
        except KeyError as e:
            raise ComputationError(f"Response formatting failed: missing field {e}") from e


def response_of(record: PipelineRecord) -> dict[str, Any]:
    """Final externally visible payload of a completed run."""
    return record.output_of(StepName.FORMAT_RESPONSE)
