"""Result models for deploy-spine.

Pydantic v2 models capturing the outcome of an orchestration run. Per-artifact
results roll up into one ``OrchestrationResult``.

Key Concepts:
    ArtifactOutcome: succeeded, succeeded_with_timeout, failed, skipped.
        ``skipped`` marks artifacts never attempted because an earlier one
        failed.
    ArtifactResult: What happened to one deployable — action, outcome, monitor
        status, listener events, warning or error text.
    OrchestrationResult: The whole run. ``mark_complete()`` finalises
        timestamps, overall status and summary. ``noop`` is set when nothing
        was resolved.
    OverallStatus: PASSED, FAILED, SKIPPED, RUNNING, PENDING.

Architecture Decisions:
    - Pydantic v2 BaseModel: ``model_dump_json(indent=2)`` for ``--json`` output.
    - ``mark_complete()`` pattern: the orchestrator calls it once, on success
      and on failure alike.
    - A monitor timeout is a warning on an otherwise PASSED run.

Tags:
    results, models, pydantic, deployment, status, reporting
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class OverallStatus(str, Enum):
    """Overall status of an orchestration run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"


class ArtifactOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SUCCEEDED_WITH_TIMEOUT = "succeeded_with_timeout"
    FAILED = "failed"
    SKIPPED = "skipped"


class ArtifactResult(BaseModel):
    """Result of the deployer action on a single deployable."""

    name: str
    identity: str = ""
    type: str | None = None
    location: str | None = None
    action: str
    auto: bool = False
    outcome: ArtifactOutcome = ArtifactOutcome.SKIPPED
    action_invoked: bool = False
    monitored: bool = False
    monitor_status: str | None = None
    events: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    warning: str | None = None
    error: str | None = None

    @property
    def timed_out(self) -> bool:
        return self.outcome == ArtifactOutcome.SUCCEEDED_WITH_TIMEOUT


class OrchestrationResult(BaseModel):
    """Result of one orchestration run across all deployables."""

    run_id: str
    container_id: str
    container_name: str = ""
    deployer: str | None = None
    action: str
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    artifacts: list[ArtifactResult] = Field(default_factory=list)
    noop: bool = False
    overall_status: OverallStatus = OverallStatus.PENDING
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    summary: str = ""

    @property
    def timeouts(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if a.timed_out]

    @property
    def succeeded(self) -> bool:
        return self.overall_status in (OverallStatus.PASSED, OverallStatus.SKIPPED)

    def mark_complete(self) -> None:
        """Finalize run: compute duration, status and summary."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

        if self.error or any(a.outcome == ArtifactOutcome.FAILED for a in self.artifacts):
            self.overall_status = OverallStatus.FAILED
        elif self.noop or not self.artifacts:
            self.overall_status = OverallStatus.SKIPPED
        else:
            self.overall_status = OverallStatus.PASSED

        if self.noop:
            self.summary = f"nothing to {self.action} on {self.container_name or self.container_id}"
            return

        done = sum(
            1
            for a in self.artifacts
            if a.outcome in (ArtifactOutcome.SUCCEEDED, ArtifactOutcome.SUCCEEDED_WITH_TIMEOUT)
        )
        self.summary = (
            f"{done}/{len(self.artifacts)} deployables {self.action} "
            f"{self.overall_status.value} on {self.container_name or self.container_id} "
            f"({len(self.timeouts)} timeouts) in {self.duration_seconds:.1f}s"
        )
