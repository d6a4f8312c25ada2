"""Report rendering: JSON, CSV, and Markdown views of probe results.

Pure formatting. Nothing here stores or reads anything; callers decide where
the rendered documents go.
"""

import csv
import io
from datetime import UTC, datetime

from ctxprobe.models import ProbeResult
from ctxprobe.probing.history import RunHistory

REPORT_VERSION = "1.0"

SAFE_USAGE_RATIO = 0.8
CONSERVATIVE_USAGE_RATIO = 0.6

LONG_CONTEXT_THRESHOLD = 100_000
MEDIUM_CONTEXT_THRESHOLD = 30_000
SLOW_RESPONSE_MS = 10_000

CSV_FIELDS = [
    "step", "phase", "target_tokens", "input_tokens", "expected_output_tokens",
    "outcome", "latency_ms", "attempts", "output_tokens", "cost", "error", "timestamp",
]


def render_json(result: ProbeResult) -> dict:
    """Export a result as a JSON-ready document."""
    return {
        "source": "ctxprobe",
        "version": REPORT_VERSION,
        "exported_at": datetime.now(UTC).isoformat(),
        "duration_seconds": result.duration_seconds,
        "result": result.model_dump(mode="json"),
    }


def render_csv(result: ProbeResult) -> str:
    """One row per step."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for step in result.steps:
        writer.writerow({
            "step": step.step,
            "phase": step.phase,
            "target_tokens": step.target_tokens,
            "input_tokens": step.input_tokens,
            "expected_output_tokens": step.expected_output_tokens,
            "outcome": step.outcome,
            "latency_ms": step.latency_ms,
            "attempts": step.attempts,
            "output_tokens": step.output_tokens if step.output_tokens is not None else "",
            "cost": f"{step.cost:.6f}",
            "error": step.error or "",
            "timestamp": step.timestamp.isoformat(),
        })
    return output.getvalue()


def context_class(tokens: int) -> str:
    if tokens > LONG_CONTEXT_THRESHOLD:
        return "long"
    if tokens > MEDIUM_CONTEXT_THRESHOLD:
        return "medium"
    return "limited"


def render_markdown(result: ProbeResult) -> str:
    stats = result.statistics
    precision = stats.precision
    low, high = precision.confidence_interval
    lines = [
        f"# Context probe: {result.model}",
        "",
        "## Overview",
        "",
        f"- Run: `{result.run_id}`",
        f"- Provider: {result.provider or 'unknown'}",
        f"- Strategy: {result.strategy}",
        f"- Status: {result.status}" + (" (partial)" if result.partial else ""),
        f"- Termination: {result.termination_reason or 'n/a'}",
        f"- Discovered boundary: **{result.discovered_boundary:,} tokens**",
        f"- Theoretical maximum: {result.theoretical_max_tokens:,} tokens",
        f"- Configured maximum: {result.configured_max_tokens:,} tokens",
        f"- Started: {result.started_at.isoformat()}",
        f"- Duration: {result.duration_seconds:.1f}s",
        "",
        "## Statistics",
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Steps | {stats.total_steps} |",
        f"| Success rate | {stats.success_rate:.1%} |",
        f"| Conclusive rate | {stats.conclusive_rate:.1%} |",
        f"| Latency mean | {stats.latency.mean_ms:.0f} ms |",
        f"| Latency min / max | {stats.latency.min_ms} / {stats.latency.max_ms} ms |",
        f"| Latency p50 / p90 / p95 / p99 | {stats.latency.p50_ms} / {stats.latency.p90_ms}"
        f" / {stats.latency.p95_ms} / {stats.latency.p99_ms} ms |",
        f"| Throughput | {stats.throughput_tokens_per_second:,.0f} tokens/s |",
        f"| Total cost | ${stats.total_cost:.4f} |",
        f"| Tokens in / out | {stats.total_input_tokens:,} / {stats.total_output_tokens:,} |",
        "",
        "## Precision",
        "",
        f"- Precise: {'yes' if precision.is_precise else 'no'}",
        f"- Agreement with theoretical maximum: {precision.percentage:.1f}%",
        f"- Difference: {precision.difference:,} tokens",
        f"- Confidence interval: [{low:,}, {high:,}]",
        "",
        "## Steps",
        "",
        "| # | Phase | Target | Input | Outcome | Latency (ms) | Attempts | Cost |",
        "|---|---|---|---|---|---|---|---|",
    ]
    for step in result.steps:
        lines.append(
            f"| {step.step} | {step.phase} | {step.target_tokens:,} | {step.input_tokens:,}"
            f" | {step.outcome} | {step.latency_ms} | {step.attempts} | ${step.cost:.4f} |"
        )
    lines.extend(["", *_recommendations(result)])
    return "\n".join(lines) + "\n"


def _recommendations(result: ProbeResult) -> list[str]:
    boundary = result.discovered_boundary
    lines = ["## Recommendation", ""]
    if boundary == 0:
        lines.append("- No size succeeded; check credentials and the minimum probe size.")
        return lines

    lines.append(f"- Safe usage: **{int(boundary * SAFE_USAGE_RATIO):,} tokens** (80% of boundary)")
    lines.append(
        f"- Conservative usage: **{int(boundary * CONSERVATIVE_USAGE_RATIO):,} tokens** (60% of boundary)"
    )
    kind = context_class(boundary)
    if kind == "long":
        lines.append("- Long context: whole codebases fit in a single request.")
    elif kind == "medium":
        lines.append("- Medium context: split large projects by module.")
    else:
        lines.append("- Limited context: send files or features one at a time.")
    if result.statistics.latency.mean_ms > SLOW_RESPONSE_MS:
        lines.append("- Responses near the boundary are slow; leave room for timeouts.")
    return lines


def render_history_markdown(history: RunHistory) -> str:
    """History table plus a per-model comparison over completed runs."""
    results = history.results()
    lines = [
        "# Probe history",
        "",
        "| Run | Model | Strategy | Status | Boundary | Steps | Duration (s) |",
        "|---|---|---|---|---|---|---|",
    ]
    for r in results:
        lines.append(
            f"| `{r.run_id[:8]}` | {r.model} | {r.strategy} | {r.status}"
            f" | {r.discovered_boundary:,} | {len(r.steps)} | {r.duration_seconds:.1f} |"
        )

    by_model: dict[str, list[ProbeResult]] = {}
    for r in results:
        if r.status == "completed":
            by_model.setdefault(r.model, []).append(r)
    best = history.best_by_model()

    lines.extend([
        "",
        "## Model comparison",
        "",
        "| Model | Best boundary | Mean duration (s) | Runs |",
        "|---|---|---|---|",
    ])
    for model, runs in sorted(by_model.items()):
        mean_duration = sum(r.duration_seconds for r in runs) / len(runs)
        lines.append(
            f"| {model} | {best[model].discovered_boundary:,} | {mean_duration:.1f} | {len(runs)} |"
        )
    return "\n".join(lines) + "\n"
