"""Batch services: the executor, the key-group driver, and report I/O."""

from insights_batch.services.executor import (
    BatchAggregationExecutor,
    execute_batch_aggregation,
    get_collection_stats,
)
from insights_batch.services.key_groups import (
    FileKeySource,
    KeySource,
    LatestReportKeySource,
    QueryKeySource,
    StaticKeySource,
    run_key_groups,
)
from insights_batch.services.report_writer import (
    find_latest_report,
    load_results_from_json,
    save_json_document,
    save_results_to_json,
)

__all__ = [
    "BatchAggregationExecutor",
    "FileKeySource",
    "KeySource",
    "LatestReportKeySource",
    "QueryKeySource",
    "StaticKeySource",
    "execute_batch_aggregation",
    "find_latest_report",
    "get_collection_stats",
    "load_results_from_json",
    "run_key_groups",
    "save_json_document",
    "save_results_to_json",
]
