"""Result models for pipeline runs."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class FailurePolicy(str, Enum):
    """What a stage failure does to the rest of the run."""

    PROPAGATE = "propagate"
    IGNORE = "ignore"


class StageStatus(str, Enum):
    """Result of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    IGNORED_FAILURE = "ignored_failure"
    SKIPPED = "skipped"


class Outcome(str, Enum):
    """Terminal classification of a pipeline run."""

    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"


class StageResult(BaseModel):
    """Execution record for one stage."""

    name: str
    policy: FailurePolicy
    status: StageStatus = StageStatus.PENDING
    started_at: datetime | None = None
    duration_seconds: float = 0.0
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def executed(self) -> bool:
        return self.status not in (StageStatus.PENDING, StageStatus.SKIPPED)


def compute_outcome(results: Iterable[StageResult]) -> Outcome:
    """Classify a run from its stage results.

    Any propagating failure wins over ignored failures, which win over success.
    """
    statuses = {r.status for r in results}
    if StageStatus.FAILURE in statuses:
        return Outcome.FAILURE
    if StageStatus.IGNORED_FAILURE in statuses:
        return Outcome.UNSTABLE
    return Outcome.SUCCESS


def generate_run_id() -> str:
    """Generate unique run ID with run_ prefix."""
    return f"run_{uuid4().hex[:8]}"


class PipelineRunResult(BaseModel):
    """Immutable summary of a finished pipeline run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=generate_run_id)
    job_name: str
    build_number: int
    outcome: Outcome
    stages: list[StageResult] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def executed_stages(self) -> list[str]:
        """Names of stages that actually ran, in order."""
        return [s.name for s in self.stages if s.executed]
