"""Request/response schemas for the probe API."""

from datetime import datetime

from pydantic import BaseModel

from ctxprobe.models import (
    ProbeConfiguration,
    ProbeResult,
    RunStatus,
    SearchStrategyName,
)
from ctxprobe.probing.presets import configuration_for_preset


class StartProbeRequest(BaseModel):
    """Unset fields fall back to the preset, then to configuration defaults."""

    model: str
    transport: str | None = None  # defaults to the catalog provider of the model
    preset: str | None = None
    strategy: SearchStrategyName | None = None
    min_tokens: int | None = None
    max_tokens: int | None = None
    step_size: int | None = None
    precision: int | None = None
    max_attempts: int | None = None
    timeout_seconds: float | None = None
    include_output_tokens: bool | None = None
    output_tokens: int | None = None
    retry_count: int | None = None
    project_context: str | None = None
    stream: bool = False

    def to_configuration(self) -> ProbeConfiguration:
        overrides = self.model_dump(
            exclude={"model", "transport", "preset", "stream"}, exclude_none=True
        )
        if self.transport:
            overrides["provider"] = self.transport
        if self.preset:
            return configuration_for_preset(self.model, self.preset, **overrides)
        return ProbeConfiguration(model=self.model, **overrides)


class ParseProbeRequest(BaseModel):
    text: str


class RunAccepted(BaseModel):
    run_id: str
    status: RunStatus = "running"


class CancelResponse(BaseModel):
    run_id: str
    cancelled: bool


class RunSummary(BaseModel):
    run_id: str
    model: str
    strategy: SearchStrategyName
    status: RunStatus
    discovered_boundary: int
    step_count: int
    started_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_result(cls, result: ProbeResult) -> "RunSummary":
        return cls(
            run_id=result.run_id,
            model=result.model,
            strategy=result.strategy,
            status=result.status,
            discovered_boundary=result.discovered_boundary,
            step_count=len(result.steps),
            started_at=result.started_at,
            finished_at=result.finished_at,
        )
