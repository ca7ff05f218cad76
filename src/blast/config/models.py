from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx

from blast.errors import ConfigurationError

DEFAULT_REQUESTS = 10_000
DEFAULT_CONCURRENCY = 100


@dataclass(frozen=True, slots=True)
class TargetConfig:
    url: str
    timeout_sec: float = 10.0


@dataclass(frozen=True, slots=True)
class RunConfig:
    target: TargetConfig
    requests: int = DEFAULT_REQUESTS
    concurrency: int = DEFAULT_CONCURRENCY
    run_timeout_sec: float | None = None
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "run_id": self.run_id or "",
            "created_at": self.created_at.isoformat(),
            "requests": self.requests,
            "concurrency": self.concurrency,
            "run_timeout_sec": self.run_timeout_sec,
            "notes": self.notes,
            "target": {
                "url": self.target.url,
                "timeout_sec": self.target.timeout_sec,
            },
        }


def validate_config(config: RunConfig) -> None:
    """Reject configurations that must never start a run."""
    if config.requests < 0:
        msg = f"Request count must be >= 0, got {config.requests}"
        raise ConfigurationError(msg)
    if config.concurrency < 1:
        msg = f"Concurrency must be >= 1, got {config.concurrency}"
        raise ConfigurationError(msg)
    if config.target.timeout_sec <= 0:
        msg = f"Request timeout must be positive, got {config.target.timeout_sec}"
        raise ConfigurationError(msg)
    if config.run_timeout_sec is not None and config.run_timeout_sec <= 0:
        msg = f"Run timeout must be positive, got {config.run_timeout_sec}"
        raise ConfigurationError(msg)
    _validate_url(config.target.url)


def _validate_url(raw: str) -> None:
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        msg = f"Malformed target URL {raw!r}: {exc}"
        raise ConfigurationError(msg) from exc
    if url.scheme not in ("http", "https") or not url.host:
        msg = f"Target URL must be an absolute http(s) URL, got {raw!r}"
        raise ConfigurationError(msg)
