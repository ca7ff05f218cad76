from __future__ import annotations

from blast.metrics.aggregator import Aggregator, aggregate, summarize
from blast.metrics.models import AggregateTotals, ErrorType, RequestOutcome, Summary

__all__ = [
    "AggregateTotals",
    "Aggregator",
    "ErrorType",
    "RequestOutcome",
    "Summary",
    "aggregate",
    "summarize",
]
