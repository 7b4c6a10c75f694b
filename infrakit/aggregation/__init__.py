"""Fetch aggregation and the sync use case."""

from .orchestrator import (
    AggregationResult,
    FetchWarning,
    NamedFetcher,
    aggregate_all,
    aggregate_partial,
    aggregate_scope,
)

__all__ = [
    "AggregationResult",
    "FetchWarning",
    "NamedFetcher",
    "aggregate_all",
    "aggregate_partial",
    "aggregate_scope",
]
