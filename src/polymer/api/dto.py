from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..core.executor.runner import RunReport, StepResult


class ProbeStep(BaseModel):
    name: str
    duration_seconds: float
    succeeded: bool
    type: str = Field("", description="Resolved step type (step type or plan default)")
    error_kind: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: StepResult) -> ProbeStep:
        return cls(
            name=result.name,
            duration_seconds=result.duration,
            succeeded=result.succeeded,
            type=result.step_type,
            error_kind=result.error.kind if result.error else None,
            error=str(result.error.cause) if result.error else None,
        )


class ProbeReport(BaseModel):
    plan: str
    status: str
    total_duration_seconds: float
    steps: list[ProbeStep]
    error: str | None = Field(None, description="Failure that aborted the run, if any")

    @classmethod
    def from_report(cls, report: RunReport) -> ProbeReport:
        return cls(
            plan=report.plan_name,
            status=report.status.value,
            total_duration_seconds=report.total_duration,
            steps=[ProbeStep.from_result(s) for s in report.steps],
            error=str(report.error) if report.error else None,
        )
