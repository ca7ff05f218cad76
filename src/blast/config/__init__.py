from __future__ import annotations

from blast.config.models import (
    DEFAULT_CONCURRENCY,
    DEFAULT_REQUESTS,
    RunConfig,
    TargetConfig,
    validate_config,
)

__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_REQUESTS",
    "RunConfig",
    "TargetConfig",
    "validate_config",
]
