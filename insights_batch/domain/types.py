"""
insights_batch.domain.types -- Pure frozen dataclasses for batch runs.

ZERO I/O.  Frozen dataclasses with enum fields and tuples for immutable
collections.

Invariants enforced:
    - AggregationResult is built once, at the end of a successful run,
      and never mutated afterwards.
    - ``results`` preserves the order in which batches were executed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


# =============================================================================
# Strategy enum
# =============================================================================


class BatchStrategy(str, Enum):
    """How a pipeline is bounded into batches."""

    PRE_AGGREGATION = "pre-aggregation"  # page source documents, run pipeline per page
    POST_AGGREGATION = "post-aggregation"  # run pipeline once, page its output

    @classmethod
    def parse(cls, value: BatchStrategy | str) -> BatchStrategy:
        """Accept an enum member or its string value.

        Raises:
            ValueError: If ``value`` names no strategy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown batch strategy {value!r}. "
                f"Available: {[s.value for s in cls]}"
            ) from None


# =============================================================================
# Progress
# =============================================================================


@dataclass(frozen=True)
class BatchProgress:
    """One progress observation, emitted after each completed batch."""

    batch_index: int  # 0-indexed
    planned_batches: int  # after the max_batches cap
    total_batches: int  # before the cap
    record_count: int  # records returned by this batch
    cumulative_records: int

    @property
    def batch_number(self) -> int:
        return self.batch_index + 1

    @property
    def is_last(self) -> bool:
        return self.batch_number == self.planned_batches


# =============================================================================
# Result envelope
# =============================================================================


def format_timestamp(when: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    text = when.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def average_per_batch(total_results: int, batches_processed: int) -> int:
    """round(total / batches), halves rounded up; 0 when nothing ran."""
    if batches_processed <= 0:
        return 0
    return int(total_results / batches_processed + 0.5)


@dataclass(frozen=True)
class AggregationResult:
    """Immutable envelope returned by one executor invocation.

    ``total_documents`` is the source collection count taken at the start
    of the run; with post-aggregation it is informational only and will
    usually differ from ``len(results)``.
    """

    name: str
    timestamp: str
    total_documents: int
    batches_processed: int
    results: tuple[dict[str, Any], ...] = ()
    config: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] | None = None

    @property
    def total_results(self) -> int:
        return len(self.results)

    @property
    def average_results_per_batch(self) -> int:
        return average_per_batch(self.total_results, self.batches_processed)

    def to_dict(self) -> dict[str, Any]:
        """camelCase mapping in the shape written to disk."""
        data: dict[str, Any] = {
            "name": self.name,
            "timestamp": self.timestamp,
            "totalDocuments": self.total_documents,
            "batchesProcessed": self.batches_processed,
            "results": list(self.results),
            "config": dict(self.config),
        }
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AggregationResult:
        """Rebuild an envelope from its persisted form.

        Raises:
            KeyError: If a required key is missing.
        """
        return cls(
            name=data["name"],
            timestamp=data["timestamp"],
            total_documents=data["totalDocuments"],
            batches_processed=data["batchesProcessed"],
            results=tuple(data.get("results", ())),
            config=dict(data.get("config") or {}),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True)
class CollectionStats:
    """Document count for a collection plus database-level statistics."""

    collection_name: str
    document_count: int
    database_stats: Mapping[str, Any] = field(default_factory=dict)


# =============================================================================
# Key-group driver DTOs
# =============================================================================


@dataclass(frozen=True)
class KeyGroupOutcome:
    """Outcome of the one query run for a group of keys.

    A failed group has ``error`` set, no records, and every key missing.
    """

    group_index: int
    keys: tuple[str, ...]
    record_count: int = 0
    found_keys: tuple[str, ...] = ()
    missing_keys: tuple[str, ...] = ()
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class KeyGroupReport:
    """Aggregate result of running one query per key group."""

    total_keys: int
    results: tuple[dict[str, Any], ...] = ()
    outcomes: tuple[KeyGroupOutcome, ...] = ()
    processed_keys: tuple[str, ...] = ()
    missing_keys: tuple[str, ...] = ()

    @property
    def failed_groups(self) -> tuple[KeyGroupOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(not o.succeeded for o in self.outcomes)
