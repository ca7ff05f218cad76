from __future__ import annotations

from typing import AsyncIterable, Iterable

from blast.errors import AggregationError
from blast.metrics.models import AggregateTotals, RequestOutcome, Summary


class Aggregator:
    """Single consumer of the result stream.

    Reduction is a plain fold with commutative operations (count, sum, min,
    max), so arrival order never affects the totals and no lock is needed.
    """

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.totals = AggregateTotals()

    async def consume(self, outcomes: AsyncIterable[RequestOutcome]) -> AggregateTotals:
        async for outcome in outcomes:
            self.totals.observe(outcome)
        if self.totals.requests_seen != self.expected:
            msg = (
                f"Aggregated {self.totals.requests_seen} outcomes "
                f"but {self.expected} requests were dispatched"
            )
            raise AggregationError(msg)
        return self.totals


def summarize(totals: AggregateTotals, dispatched: int, elapsed_sec: float) -> Summary:
    seen = totals.requests_seen
    if seen == 0:
        fastest = slowest = mean = 0.0
    else:
        fastest = totals.min_latency_ms
        slowest = totals.max_latency_ms
        mean = totals.duration_sum_ms / seen
    success_rate = 100.0 * totals.success_count / dispatched if dispatched > 0 else 0.0
    rps = seen / elapsed_sec if elapsed_sec > 0 else 0.0
    return Summary(
        requests_dispatched=dispatched,
        requests_seen=seen,
        success_count=totals.success_count,
        error_count=totals.error_count,
        total_bytes=totals.total_bytes,
        success_rate=success_rate,
        requests_per_second=rps,
        mean_latency_ms=mean,
        fastest_ms=fastest,
        slowest_ms=slowest,
        elapsed_sec=elapsed_sec,
        error_types=dict(totals.error_types),
    )


def aggregate(
    outcomes: Iterable[RequestOutcome],
    dispatched: int,
    elapsed_sec: float,
) -> Summary:
    totals = AggregateTotals()
    for outcome in outcomes:
        totals.observe(outcome)
    return summarize(totals, dispatched, elapsed_sec)
