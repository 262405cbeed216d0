"""
BatchAggregationExecutor -- runs an opaque pipeline in bounded batches.

Contract:
    ``execute()`` validates the configuration, counts the source
    collection, then runs the caller's pipeline with one of two strategies
    and returns a single ``AggregationResult`` envelope.

    pre-aggregation
        For each page i: ``[{"$skip": i*B}, {"$limit": B}, *pipeline]``.
        One query per page; at most one page of output in flight.
    post-aggregation
        Run the whole pipeline once with disk spill allowed, then slice its
        output into pages of B in memory.  No further queries.

    In both modes the planned page count is ceil(N / B) clamped to
    ``max_batches``, pages run strictly in order, and ``processing_delay_ms``
    is slept between pages (never after the last).

Invariants enforced:
    - Configuration is validated before the store is touched.
    - The caller's pipeline is never mutated.
    - Fail-fast: the first failed query aborts the run.  No envelope is
      returned and ``QueryFailure.batches_processed`` counts only the pages
      completed before the failure.
    - Progress is a side channel (log + optional callback), never part of
      the return value.

Non-goals:
    - Does NOT choose a strategy -- the caller declares it.
    - Does NOT retry -- callers own any retry policy.
    - Does NOT open or close the store connection.
"""

from __future__ import annotations

import time
from dataclasses import asdict
from typing import Callable
from uuid import uuid4

from insights_config.schema import BatchConfig
from insights_config.validator import validate_batch_config
from insights_kernel.db.store import Document, DocumentStore, Pipeline
from insights_kernel.domain.clock import Clock, SystemClock
from insights_kernel.exceptions import ConfigurationError, QueryFailure, StoreError
from insights_kernel.logging_config import LogContext, get_logger

from insights_batch.domain.chunking import chunk, planned_batch_count, total_batch_count
from insights_batch.domain.types import (
    AggregationResult,
    BatchProgress,
    BatchStrategy,
    CollectionStats,
    average_per_batch,
    format_timestamp,
)

logger = get_logger("batch.executor")

ProgressCallback = Callable[[BatchProgress], None]


class BatchAggregationExecutor:
    """Batch execution engine for read-only aggregation pipelines.

    Contract:
        - ``execute()`` runs one pipeline and returns its envelope.
        - The store, clock and sleep function are injected so the executor
          can run against a fake store with no real waiting.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        sleep: Callable[[float], None] | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._sleep = sleep or time.sleep
        self._on_progress = on_progress

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def execute(
        self,
        collection_name: str,
        pipeline: Pipeline,
        config: BatchConfig,
        name: str,
        strategy: BatchStrategy | str = BatchStrategy.PRE_AGGREGATION,
    ) -> AggregationResult:
        """Run ``pipeline`` against ``collection_name`` in batches.

        Raises:
            ConfigurationError: If ``config`` or ``strategy`` is invalid.
                Raised before any query runs.
            QueryFailure: If the count, a page, or the full pipeline fails.
        """
        try:
            strategy = BatchStrategy.parse(strategy)
        except ValueError as exc:
            raise ConfigurationError("strategy", strategy, str(exc)) from None
        validate_batch_config(config)

        run_id = str(uuid4())
        with LogContext.bind(
            run_id=run_id,
            report_name=name,
            collection=collection_name,
            strategy=strategy.value,
        ):
            start = self._clock.monotonic()
            logger.info(
                "batch_run_started",
                extra={
                    "batch_size": config.batch_size,
                    "processing_delay_ms": config.processing_delay_ms,
                    "max_batches": config.max_batches,
                },
            )

            total_documents = self._count(collection_name, name)
            logger.info(
                "source_documents_counted",
                extra={"total_documents": total_documents},
            )

            if strategy is BatchStrategy.PRE_AGGREGATION:
                results, batches_processed = self._run_pre_aggregation(
                    collection_name, pipeline, config, name, total_documents,
                )
            else:
                results, batches_processed = self._run_post_aggregation(
                    collection_name, pipeline, config, name,
                )

            elapsed_ms = int((self._clock.monotonic() - start) * 1000)
            envelope = AggregationResult(
                name=name,
                timestamp=format_timestamp(self._clock.now()),
                total_documents=total_documents,
                batches_processed=batches_processed,
                results=tuple(results),
                config={**config.to_dict(), "strategy": strategy.value},
                metadata={
                    "executionTimeMs": elapsed_ms,
                    "averageResultsPerBatch": average_per_batch(
                        len(results), batches_processed,
                    ),
                },
            )

            logger.info(
                "batch_run_completed",
                extra={
                    "total_results": envelope.total_results,
                    "batches_processed": batches_processed,
                    "duration_ms": elapsed_ms,
                },
            )
            return envelope

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _run_pre_aggregation(
        self,
        collection_name: str,
        pipeline: Pipeline,
        config: BatchConfig,
        name: str,
        total_documents: int,
    ) -> tuple[list[Document], int]:
        total = total_batch_count(total_documents, config.batch_size)
        planned = planned_batch_count(
            total_documents, config.batch_size, config.max_batches,
        )
        logger.info(
            "batches_planned",
            extra={"planned_batches": planned, "total_batches": total},
        )

        all_results: list[Document] = []
        batches_processed = 0

        for i in range(planned):
            page_pipeline = [
                {"$skip": i * config.batch_size},
                {"$limit": config.batch_size},
                *pipeline,
            ]
            try:
                batch_results = self._store.aggregate(collection_name, page_pipeline)
            except StoreError as exc:
                self._log_failure(i, batches_processed, exc)
                raise QueryFailure(
                    aggregation_name=name,
                    collection_name=collection_name,
                    stage="page",
                    batch_index=i,
                    batches_processed=batches_processed,
                    cause=str(exc),
                ) from exc

            all_results.extend(batch_results)
            batches_processed += 1
            self._report_progress(
                BatchProgress(
                    batch_index=i,
                    planned_batches=planned,
                    total_batches=total,
                    record_count=len(batch_results),
                    cumulative_records=len(all_results),
                )
            )
            self._pause(i, planned, config)

        return all_results, batches_processed

    def _run_post_aggregation(
        self,
        collection_name: str,
        pipeline: Pipeline,
        config: BatchConfig,
        name: str,
    ) -> tuple[list[Document], int]:
        logger.info("full_pipeline_started")
        try:
            full_results = self._store.aggregate(
                collection_name, list(pipeline), allow_disk_use=True,
            )
        except StoreError as exc:
            self._log_failure(None, 0, exc)
            raise QueryFailure(
                aggregation_name=name,
                collection_name=collection_name,
                stage="full_pipeline",
                batches_processed=0,
                cause=str(exc),
            ) from exc

        total = total_batch_count(len(full_results), config.batch_size)
        planned = planned_batch_count(
            len(full_results), config.batch_size, config.max_batches,
        )
        logger.info(
            "batches_planned",
            extra={
                "total_results": len(full_results),
                "planned_batches": planned,
                "total_batches": total,
            },
        )

        all_results: list[Document] = []
        batches_processed = 0
        for i, batch_results in enumerate(chunk(full_results, config.batch_size)[:planned]):
            all_results.extend(batch_results)
            batches_processed += 1
            self._report_progress(
                BatchProgress(
                    batch_index=i,
                    planned_batches=planned,
                    total_batches=total,
                    record_count=len(batch_results),
                    cumulative_records=len(all_results),
                )
            )
            self._pause(i, planned, config)

        return all_results, batches_processed

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _count(self, collection_name: str, name: str) -> int:
        try:
            return self._store.count_documents(collection_name)
        except StoreError as exc:
            self._log_failure(None, 0, exc)
            raise QueryFailure(
                aggregation_name=name,
                collection_name=collection_name,
                stage="count",
                batches_processed=0,
                cause=str(exc),
            ) from exc

    def _pause(self, index: int, planned: int, config: BatchConfig) -> None:
        if index < planned - 1 and config.processing_delay_ms > 0:
            self._sleep(config.processing_delay_seconds)

    def _report_progress(self, progress: BatchProgress) -> None:
        logger.info(
            "batch_processed",
            extra={
                **asdict(progress),
                "batch_number": progress.batch_number,
            },
        )
        if self._on_progress is not None:
            self._on_progress(progress)

    def _log_failure(
        self, batch_index: int | None, batches_processed: int, exc: Exception,
    ) -> None:
        logger.error(
            "batch_failed",
            extra={
                "batch_index": batch_index,
                "batches_processed": batches_processed,
                "error": str(exc),
            },
        )


# =============================================================================
# Module-level conveniences
# =============================================================================


def execute_batch_aggregation(
    store: DocumentStore,
    collection_name: str,
    pipeline: Pipeline,
    config: BatchConfig,
    name: str,
    strategy: BatchStrategy | str = BatchStrategy.PRE_AGGREGATION,
    on_progress: ProgressCallback | None = None,
) -> AggregationResult:
    """One-shot wrapper around ``BatchAggregationExecutor.execute()``."""
    executor = BatchAggregationExecutor(store, on_progress=on_progress)
    return executor.execute(collection_name, pipeline, config, name, strategy)


def get_collection_stats(store: DocumentStore, collection_name: str) -> CollectionStats:
    """Document count of ``collection_name`` plus database statistics.

    Raises:
        StoreError: If either query fails.
    """
    count = store.count_documents(collection_name)
    stats = store.database_stats()
    return CollectionStats(
        collection_name=collection_name,
        document_count=count,
        database_stats=stats,
    )
