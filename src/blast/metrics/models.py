from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    STATUS = "status"
    CANCELLED = "cancelled"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class RequestOutcome:
    success: bool
    status_code: int | None
    error_type: ErrorType | None
    byte_count: int
    latency_ms: float

    @property
    def errored(self) -> bool:
        return not self.success


@dataclass(slots=True)
class AggregateTotals:
    """Running totals; owned by a single aggregator, never shared."""

    requests_seen: int = 0
    success_count: int = 0
    error_count: int = 0
    total_bytes: int = 0
    duration_sum_ms: float = 0.0
    min_latency_ms: float = math.inf
    max_latency_ms: float = 0.0
    error_types: dict[str, int] = field(default_factory=dict)

    def observe(self, outcome: RequestOutcome) -> None:
        self.requests_seen += 1
        if outcome.success:
            self.success_count += 1
        else:
            self.error_count += 1
            key = (outcome.error_type or ErrorType.OTHER).value
            self.error_types[key] = self.error_types.get(key, 0) + 1
        self.total_bytes += outcome.byte_count
        self.duration_sum_ms += outcome.latency_ms
        self.min_latency_ms = min(self.min_latency_ms, outcome.latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, outcome.latency_ms)


@dataclass(frozen=True, slots=True)
class Summary:
    requests_dispatched: int
    requests_seen: int
    success_count: int
    error_count: int
    total_bytes: int
    success_rate: float
    requests_per_second: float
    mean_latency_ms: float
    fastest_ms: float
    slowest_ms: float
    elapsed_sec: float
    error_types: Mapping[str, int] = field(default_factory=dict)
