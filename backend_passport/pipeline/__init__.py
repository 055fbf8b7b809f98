"""
Reputation pipeline: fixed eight-step run per address, individually timed and statused.
"""

from backend_passport.pipeline.executor import execute_step
from backend_passport.pipeline.models import (
    STEP_ORDER,
    PipelineRecord,
    PipelineStep,
    StepFailure,
    StepName,
    StepStatus,
    StepSuccess,
)
from backend_passport.pipeline.orchestrator import PipelineOrchestrator, response_of, validate_address
from backend_passport.pipeline.registry import PipelineRegistry

__all__ = [
    "STEP_ORDER",
    "PipelineOrchestrator",
    "PipelineRecord",
    "PipelineRegistry",
    "PipelineStep",
    "StepFailure",
    "StepName",
    "StepStatus",
    "StepSuccess",
    "execute_step",
    "response_of",
    "validate_address",
]
