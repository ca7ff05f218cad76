from __future__ import annotations

from blast.config import RunConfig
from blast.metrics import ErrorType, Summary


def format_duration(ms: float) -> str:
    """Render milliseconds the way Go prints a time.Duration: 509µs, 5.96ms, 1.5s."""
    if ms <= 0:
        return "0s"
    if ms < 1:
        value, unit = ms * 1000.0, "µs"
    elif ms < 1000:
        value, unit = ms, "ms"
    else:
        value, unit = ms / 1000.0, "s"
    return f"{value:.3f}".rstrip("0").rstrip(".") + unit


def format_percent(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".") + "%"


def render_summary(summary: Summary, config: RunConfig) -> str:
    lines = [
        f"Made {summary.requests_dispatched} requests to {config.target.url} "
        f"with a concurrency setting of {config.concurrency}",
        "Summary:",
        f"\tSuccess    : {format_percent(summary.success_rate)}",
        f"\tRPS        : {summary.requests_per_second:.1f}",
        f"\tRequests   : {summary.requests_seen}",
        f"\tErrors     : {summary.error_count}",
        f"\tBytes      : {summary.total_bytes}",
        f"\tDuration   : {format_duration(summary.mean_latency_ms)}",
        f"\tFastest    : {format_duration(summary.fastest_ms)}",
        f"\tSlowest    : {format_duration(summary.slowest_ms)}",
        f"\tElapsed    : {format_duration(summary.elapsed_sec * 1000.0)}",
    ]
    if summary.error_types:
        lines.append("Error types:")
        for name, count in sorted(summary.error_types.items()):
            lines.append(f"\t{name:<11}: {count}")
    cancelled = summary.error_types.get(ErrorType.CANCELLED.value, 0)
    if cancelled:
        lines.append(
            f"Note: {cancelled} requests were cut off by the run deadline; "
            "those never started count as 0 latency in Duration and Fastest."
        )
    return "\n".join(lines)
