"""Pure domain types and helpers for batch runs."""

from insights_batch.domain.chunking import chunk, planned_batch_count, total_batch_count
from insights_batch.domain.types import (
    AggregationResult,
    BatchProgress,
    BatchStrategy,
    CollectionStats,
    KeyGroupOutcome,
    KeyGroupReport,
    average_per_batch,
    format_timestamp,
)

__all__ = [
    "AggregationResult",
    "BatchProgress",
    "BatchStrategy",
    "CollectionStats",
    "KeyGroupOutcome",
    "KeyGroupReport",
    "average_per_batch",
    "chunk",
    "format_timestamp",
    "planned_batch_count",
    "total_batch_count",
]
