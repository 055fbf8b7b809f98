"""
Application-level exceptions.

Domain exceptions with consistent error codes for the API layer, the health
registry and the reputation pipeline.
"""

from __future__ import annotations


class PassportError(Exception):
    """Base class for every Backend Passport domain error."""

    code = "passport_error"
    pipeline_id: str | None = None
    """Id of the pipeline run that raised it, set by the orchestrator."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidInputError(PassportError):
    """Malformed subject address. Terminal: retrying the same input cannot succeed."""

    code = "invalid_input"


class DependencyUnavailableError(PassportError):
    """An external provider call failed, timed out or returned an error payload."""

    code = "dependency_unavailable"

    def __init__(self, dependency: str, message: str) -> None:
        super().__init__(f"{dependency}: {message}")
        self.dependency = dependency


class ComputationError(PassportError):
    """Scoring or formatting logic raised on input it should have accepted."""

    code = "computation_error"


class AggregationError(PassportError):
    """A required upstream step output was missing when a later step needed it."""

    code = "aggregation_error"

    def __init__(self, step: str, message: str | None = None) -> None:
        super().__init__(message or f"Required step '{step}' has no completed output")
        self.step = step


class PipelineError(PassportError):
    """Orchestration misuse (unknown step, step executed twice)."""

    code = "pipeline_error"
