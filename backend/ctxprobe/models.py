"""Canonical data structures for ctxprobe.

Defined once here, referenced everywhere else. Steps and results are frozen:
a step is never mutated after the executor creates it, and a result is an
immutable snapshot handed to the caller.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SearchStrategyName = Literal["linear", "binary", "adaptive"]
ProbeOutcome = Literal["success", "boundary_exceeded", "transient_error"]
SearchPhase = Literal["linear", "binary", "coarse", "fine"]
RunStatus = Literal["running", "completed", "cancelled"]
TerminationReason = Literal[
    "precision_reached",
    "boundary_found",
    "range_exhausted",
    "floor_exceeded",
    "attempts_exhausted",
    "transient_failures",
    "cancelled",
]

# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class ModelDescriptor(BaseModel):
    """Static facts about a target endpoint."""

    model_config = ConfigDict(frozen=True)

    model: str
    provider: str = "openai"
    max_context_tokens: int
    max_output_tokens: int = 4_096
    input_price_per_1k: float = 0.0
    output_price_per_1k: float = 0.0
    encoding: str = "cl100k_base"


class ProbeConfiguration(BaseModel):
    model: str
    provider: str | None = None
    strategy: SearchStrategyName = "binary"
    min_tokens: int = 1_000
    max_tokens: int = 200_000
    step_size: int = 2_000  # linear only
    precision: int = 500  # binary / adaptive
    max_attempts: int = 25
    timeout_seconds: float = 60.0
    include_output_tokens: bool = False
    output_tokens: int = 1_000
    retry_count: int = 3
    project_context: str | None = None


# ---------------------------------------------------------------------------
# Step log
# ---------------------------------------------------------------------------


class ProbeStep(BaseModel):
    """One executed trial against the endpoint."""

    model_config = ConfigDict(frozen=True)

    step: int  # 1-based, monotonic within a run
    phase: SearchPhase
    target_tokens: int
    input_tokens: int
    expected_output_tokens: int
    outcome: ProbeOutcome
    latency_ms: int
    attempts: int = 1
    output_tokens: int | None = None  # success only
    cost: float = 0.0
    error: str | None = None  # failures only
    timestamp: datetime

    @property
    def conclusive(self) -> bool:
        return self.outcome != "transient_error"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class LatencyStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    mean_ms: float = 0.0
    min_ms: int = 0
    max_ms: int = 0
    p50_ms: int = 0
    p90_ms: int = 0
    p95_ms: int = 0
    p99_ms: int = 0


class PrecisionAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_precise: bool
    percentage: float
    difference: int
    confidence_interval: tuple[int, int]


class RunStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_steps: int = 0
    successful_steps: int = 0
    boundary_steps: int = 0
    transient_steps: int = 0
    success_rate: float = 0.0
    conclusive_rate: float = 0.0
    latency: LatencyStats = Field(default_factory=LatencyStats)
    throughput_tokens_per_second: float = 0.0
    total_cost: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    precision: PrecisionAssessment


class ProbeResult(BaseModel):
    """Final or partial outcome of a probe run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    model: str
    provider: str | None = None
    strategy: SearchStrategyName
    status: RunStatus
    partial: bool
    termination_reason: TerminationReason | None = None
    configured_max_tokens: int
    theoretical_max_tokens: int
    discovered_boundary: int
    steps: tuple[ProbeStep, ...] = ()
    statistics: RunStatistics
    started_at: datetime
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
