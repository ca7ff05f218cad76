from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid run configuration, raised before any request is dispatched."""


class AggregationError(RuntimeError):
    """The aggregator saw a different number of outcomes than were dispatched.

    Every executor emits exactly one outcome, failures included, so this
    always points at a bug rather than a runtime condition.
    """
