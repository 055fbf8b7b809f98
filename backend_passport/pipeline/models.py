"""
Data models for the reputation pipeline.

A PipelineRecord owns exactly eight PipelineSteps in a fixed order. Steps move
pending -> processing -> completed | failed; the record's overall status follows
pending -> processing -> completed | failed. Terminal states are final.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from backend_passport.core.exceptions import AggregationError, PipelineError
from backend_passport.utils.wallet_utils import EVM_ADDRESS_LENGTH


class StepStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class StepName(str, Enum):
    VALIDATE_ADDRESS = "validate_address"
    FETCH_SOURCE_A = "fetch_source_a"
    FETCH_SOURCE_B = "fetch_source_b"
    FETCH_SOURCE_C = "fetch_source_c"
    AGGREGATE = "aggregate"
    COMPUTE_SCORE = "compute_score"
    EXPLAIN = "explain"
    FORMAT_RESPONSE = "format_response"


STEP_ORDER: tuple[StepName, ...] = tuple(StepName)

FETCH_STEPS: tuple[StepName, ...] = (
    StepName.FETCH_SOURCE_A,
    StepName.FETCH_SOURCE_B,
    StepName.FETCH_SOURCE_C,
)


@dataclass(frozen=True)
class StepSuccess:
    output: Any


@dataclass(frozen=True)
class StepFailure:
    error_message: str


StepResult = Union[StepSuccess, StepFailure]

_ID_UNSAFE_RE = re.compile(r"[^0-9A-Za-z]")


@dataclass
class PipelineStep:
    """One named, individually timed unit of work within a run."""

    name: StepName
    status: StepStatus = StepStatus.PENDING
    started_at: float | None = None
    """Epoch ms when the step moved to processing."""
    finished_at: float | None = None
    output: Any = None
    error_message: str | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return max(0.0, self.finished_at - self.started_at)

    @property
    def result(self) -> StepResult | None:
        """Success/failure union once terminal; None while pending or processing."""
        if self.status is StepStatus.COMPLETED:
            return StepSuccess(self.output)
        if self.status is StepStatus.FAILED:
            return StepFailure(self.error_message or "")
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name.value,
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_ms": self.duration_ms,
        }
        if self.status is StepStatus.COMPLETED:
            out["output"] = self.output
        if self.error_message is not None:
            out["error"] = self.error_message
        return out


def new_pipeline_id(address: str, started_at_ms: float) -> str:
    """
    pipeline_<address>_<start ms>_<random>; never reused across runs.

    The address part keeps only ASCII letters and digits, capped at the length of
    an EVM address, so ids built from malformed input stay a single path segment.
    """
    subject = _ID_UNSAFE_RE.sub("", address)[:EVM_ADDRESS_LENGTH]
    return f"pipeline_{subject}_{int(started_at_ms)}_{uuid.uuid4().hex[:8]}"


@dataclass
class PipelineRecord:
    """Full annotated record of one compute-reputation run."""

    id: str
    address: str
    started_at: float
    steps: list[PipelineStep] = field(default_factory=lambda: [PipelineStep(name) for name in STEP_ORDER])
    overall_status: StepStatus = StepStatus.PENDING
    finished_at: float | None = None
    total_duration_ms: float | None = None

    @classmethod
    def create(cls, address: str, started_at: float) -> PipelineRecord:
        return cls(id=new_pipeline_id(address, started_at), address=address, started_at=started_at)

    @property
    def is_terminal(self) -> bool:
        return self.overall_status.is_terminal

    @property
    def is_active(self) -> bool:
        return self.overall_status in (StepStatus.PENDING, StepStatus.PROCESSING)

    def step(self, name: StepName | str) -> PipelineStep:
        key = StepName(name)
        for s in self.steps:
            if s.name is key:
                return s
        raise PipelineError(f"Step {key.value} not found in pipeline {self.id}")

    def output_of(self, name: StepName) -> Any:
        """Output of a completed step; AggregationError if it is pending, processing or failed."""
        result = self.step(name).result
        if not isinstance(result, StepSuccess):
            raise AggregationError(name.value)
        return result.output

    def failed_step(self) -> PipelineStep | None:
        return next((s for s in self.steps if s.status is StepStatus.FAILED), None)

    def finish(self, status: StepStatus, finished_at: float) -> None:
        if self.is_terminal:
            raise PipelineError(f"Pipeline {self.id} already finished as {self.overall_status.value}")
        self.overall_status = status
        self.finished_at = finished_at
        self.total_duration_ms = max(0.0, finished_at - self.started_at)

    def to_dict(self, include_outputs: bool = True) -> dict[str, Any]:
        steps = [s.to_dict() for s in self.steps]
        if not include_outputs:
            for s in steps:
                s.pop("output", None)
        failed = self.failed_step()
        return {
            "id": self.id,
            "address": self.address,
            "overall_status": self.overall_status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "total_duration_ms": self.total_duration_ms,
            "failed_step": failed.name.value if failed else None,
            "steps": steps,
        }
