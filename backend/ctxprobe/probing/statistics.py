"""Run statistics over a step log."""

import math
from collections.abc import Sequence
from datetime import datetime

from ctxprobe.models import LatencyStats, PrecisionAssessment, ProbeStep, RunStatistics

PERCENTILES = (50, 90, 95, 99)


def percentile(sorted_values: Sequence[int], p: float) -> int:
    """Nearest-rank percentile: index ceil(p/100 * n) - 1 into sorted values."""
    if not sorted_values:
        return 0
    index = max(0, math.ceil(p / 100 * len(sorted_values)) - 1)
    return sorted_values[min(index, len(sorted_values) - 1)]


def latency_stats(steps: Sequence[ProbeStep]) -> LatencyStats:
    if not steps:
        return LatencyStats()
    latencies = sorted(s.latency_ms for s in steps)
    p50, p90, p95, p99 = (percentile(latencies, p) for p in PERCENTILES)
    return LatencyStats(
        mean_ms=sum(latencies) / len(latencies),
        min_ms=latencies[0],
        max_ms=latencies[-1],
        p50_ms=p50,
        p90_ms=p90,
        p95_ms=p95,
        p99_ms=p99,
    )


def assess_precision(boundary: int, theoretical_max: int, precision: int) -> PrecisionAssessment:
    difference = abs(boundary - theoretical_max)
    if theoretical_max > 0:
        percentage = max(0.0, 100 - difference / theoretical_max * 100)
    else:
        percentage = 0.0
    return PrecisionAssessment(
        is_precise=difference <= precision,
        percentage=percentage,
        difference=difference,
        confidence_interval=(max(0, boundary - precision), boundary + precision),
    )


def compute_statistics(
    steps: Sequence[ProbeStep],
    boundary: int,
    theoretical_max: int,
    precision: int,
    started_at: datetime,
    finished_at: datetime,
) -> RunStatistics:
    total = len(steps)
    successes = [s for s in steps if s.outcome == "success"]
    boundary_steps = sum(1 for s in steps if s.outcome == "boundary_exceeded")
    transient_steps = total - len(successes) - boundary_steps

    succeeded_tokens = sum(s.input_tokens + (s.output_tokens or 0) for s in successes)
    elapsed = (finished_at - started_at).total_seconds()
    throughput = succeeded_tokens / elapsed if elapsed > 0 else 0.0

    return RunStatistics(
        total_steps=total,
        successful_steps=len(successes),
        boundary_steps=boundary_steps,
        transient_steps=transient_steps,
        success_rate=len(successes) / total if total else 0.0,
        conclusive_rate=(len(successes) + boundary_steps) / total if total else 0.0,
        latency=latency_stats(steps),
        throughput_tokens_per_second=throughput,
        total_cost=sum(s.cost for s in steps),
        total_input_tokens=sum(s.input_tokens for s in steps),
        total_output_tokens=sum(s.output_tokens or 0 for s in steps),
        precision=assess_precision(boundary, theoretical_max, precision),
    )
