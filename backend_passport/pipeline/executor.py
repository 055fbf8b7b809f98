"""
Step executor: run one named step of a pipeline and annotate it.

pending -> processing just before invocation; on success the output is stored and
the step is completed; on failure the message is stored, the step is failed, and
the exception is re-raised so the orchestrator aborts the run. A bounded timeout
turns a hanging external call into a DependencyUnavailableError.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from backend_passport.core.exceptions import DependencyUnavailableError, PipelineError
from backend_passport.passport_logging import get_logger
from backend_passport.pipeline.models import PipelineRecord, StepName, StepStatus
from backend_passport.utils.clock import now_ms

logger = get_logger(__name__)

StepFunction = Callable[[], Awaitable[Any]]


def _error_message(exc: BaseException) -> str:
    msg = str(exc).strip()
    return msg or type(exc).__name__


async def execute_step(
    record: PipelineRecord,
    name: StepName,
    fn: StepFunction,
    *,
    timeout_sec: float | None = None,
    dependency: str | None = None,
    clock: Callable[[], float] = now_ms,
) -> Any:
    """
    Execute fn as step `name` of `record`; return its output or re-raise its error.

    timeout_sec: Optional bound; a timeout is recorded and raised as
        DependencyUnavailableError(dependency or step name, "timed out after ...").
    """
    step = record.step(name)
    if step.status is not StepStatus.PENDING:
        raise PipelineError(f"Step {name.value} of {record.id} is {step.status.value}, expected pending")

    step.status = StepStatus.PROCESSING
    step.started_at = clock()
    try:
        if timeout_sec is not None:
            try:
                output = await asyncio.wait_for(fn(), timeout=timeout_sec)
            except asyncio.TimeoutError as e:
                raise DependencyUnavailableError(
                    dependency or name.value, f"timed out after {timeout_sec:g}s"
                ) from e
        else:
            output = await fn()
    except asyncio.CancelledError:
        step.finished_at = clock()
        step.error_message = "cancelled"
        step.status = StepStatus.FAILED
        logger.warning("pipeline_step_cancelled", step=name.value)
        raise
    except Exception as e:
        step.finished_at = clock()
        step.error_message = _error_message(e)
        step.status = StepStatus.FAILED
        logger.warning(
            "pipeline_step_failed",
            step=name.value,
            duration_ms=step.duration_ms,
            error=step.error_message,
            error_type=type(e).__name__,
        )
        raise

    step.finished_at = clock()
    step.output = output
    step.status = StepStatus.COMPLETED
    logger.debug(
        "pipeline_step_completed",
        step=name.value,
        duration_ms=step.duration_ms,
    )
    return output
