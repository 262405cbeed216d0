"""
Key-group driver -- one bounded query per group of externally supplied keys.

Contract:
    ``run_key_groups()`` splits a key list with ``chunk()``, builds a
    pipeline for each group through the caller's factory, and runs each
    pipeline once with disk spill allowed.

    Groups target disjoint keys, so a failed group does not abort its
    siblings: the failure is recorded on that group's ``KeyGroupOutcome``
    and its keys are reported as missing.  This is the opposite of the
    executor's fail-fast policy, where batches are pages of one pipeline.

Key sources:
    ``KeySource`` is the pluggable producer of the input list.
    ``StaticKeySource``, ``FileKeySource``, ``LatestReportKeySource`` (newest
    ``public-keys_*.json``) and ``QueryKeySource`` (live extraction) cover
    the ways a run obtains its keys.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Iterable, Protocol, Sequence, runtime_checkable

from insights_config.schema import BatchConfig
from insights_kernel.db.store import Document, DocumentStore, Pipeline
from insights_kernel.exceptions import KeySourceError, PersistenceFailure, StoreError
from insights_kernel.logging_config import get_logger

from insights_batch.domain.chunking import chunk
from insights_batch.domain.types import BatchStrategy, KeyGroupOutcome, KeyGroupReport
from insights_batch.services.executor import BatchAggregationExecutor
from insights_batch.services.report_writer import find_latest_report, load_json_document

logger = get_logger("batch.key_groups")

PipelineFactory = Callable[[list[str]], Pipeline]

DEFAULT_GROUP_SIZE = 10
PUBLIC_KEYS_PREFIX = "public-keys"


# =============================================================================
# Key sources
# =============================================================================


@runtime_checkable
class KeySource(Protocol):
    """Produces the list of keys a key-group run iterates over."""

    def load_keys(self) -> list[str]: ...


class StaticKeySource:
    """Keys supplied in code."""

    def __init__(self, keys: Sequence[str]):
        self._keys = list(keys)

    def load_keys(self) -> list[str]:
        return list(self._keys)


class FileKeySource:
    """Keys read from a JSON file holding a bare array of strings."""

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_keys(self) -> list[str]:
        try:
            data = load_json_document(self._path)
        except PersistenceFailure as exc:
            raise KeySourceError(str(self._path), str(exc)) from exc
        if not isinstance(data, list) or not all(isinstance(k, str) for k in data):
            raise KeySourceError(str(self._path), "expected a JSON array of strings")
        logger.info(
            "keys_loaded", extra={"path": str(self._path), "key_count": len(data)},
        )
        return data


class LatestReportKeySource:
    """Keys from the newest ``<prefix>_*.json`` file in a directory."""

    def __init__(self, directory: Path | str, prefix: str = PUBLIC_KEYS_PREFIX):
        self._directory = Path(directory)
        self._prefix = prefix

    def load_keys(self) -> list[str]:
        latest = find_latest_report(self._directory, self._prefix)
        if latest is None:
            raise KeySourceError(
                str(self._directory / f"{self._prefix}_*.json"),
                "no key file found; run the key extraction first",
            )
        return FileKeySource(latest).load_keys()


class QueryKeySource:
    """Keys extracted live with a post-aggregation run.

    ``field`` names the attribute holding the key in each result record;
    records without it are skipped.  The run is never capped.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection_name: str,
        pipeline: Pipeline,
        field: str,
        config: BatchConfig,
        name: str = "extract_keys",
    ):
        self._executor = BatchAggregationExecutor(store)
        self._collection_name = collection_name
        self._pipeline = pipeline
        self._field = field
        self._config = config.with_overrides(max_batches=None)
        self._name = name

    def load_keys(self) -> list[str]:
        result = self._executor.execute(
            self._collection_name,
            self._pipeline,
            self._config,
            self._name,
            BatchStrategy.POST_AGGREGATION,
        )
        return [
            r[self._field] for r in result.results if r.get(self._field) is not None
        ]


# =============================================================================
# Driver
# =============================================================================


def _dedupe(keys: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(keys))


def run_key_groups(
    store: DocumentStore,
    collection_name: str,
    keys: Sequence[str],
    pipeline_factory: PipelineFactory,
    group_size: int = DEFAULT_GROUP_SIZE,
    key_field: str = "publicKey",
    processing_delay_ms: int = 0,
    sleep: Callable[[float], None] | None = None,
) -> KeyGroupReport:
    """Run one query per group of ``group_size`` keys.

    Returns:
        KeyGroupReport with every record in group order, one outcome per
        group, the keys that produced results, and the keys that did not
        (including all keys of failed groups).

    Raises:
        InvalidArgumentError: If ``group_size`` is not positive.
    """
    sleep = sleep or time.sleep
    groups = chunk(keys, group_size)
    logger.info(
        "key_groups_started",
        extra={
            "collection_name": collection_name,
            "key_count": len(keys),
            "group_count": len(groups),
            "group_size": group_size,
        },
    )

    all_results: list[Document] = []
    processed: dict[str, None] = {}
    outcomes: list[KeyGroupOutcome] = []

    for i, group in enumerate(groups):
        try:
            records = store.aggregate(
                collection_name, pipeline_factory(list(group)), allow_disk_use=True,
            )
        except StoreError as exc:
            logger.warning(
                "key_group_failed",
                extra={"group_index": i, "keys": group, "error": str(exc)},
            )
            outcomes.append(
                KeyGroupOutcome(
                    group_index=i,
                    keys=tuple(group),
                    missing_keys=tuple(k for k in _dedupe(group) if k not in processed),
                    error=str(exc),
                )
            )
        else:
            found = _dedupe(
                r[key_field] for r in records if r.get(key_field) is not None
            )
            processed.update(dict.fromkeys(found))
            missing = tuple(k for k in _dedupe(group) if k not in processed)
            all_results.extend(records)
            outcomes.append(
                KeyGroupOutcome(
                    group_index=i,
                    keys=tuple(group),
                    record_count=len(records),
                    found_keys=tuple(found),
                    missing_keys=missing,
                )
            )
            logger.info(
                "key_group_processed",
                extra={
                    "group_index": i,
                    "group_count": len(groups),
                    "record_count": len(records),
                    "missing_keys": list(missing),
                },
            )

        if i < len(groups) - 1 and processing_delay_ms > 0:
            sleep(processing_delay_ms / 1000)

    missing_keys = tuple(k for k in _dedupe(keys) if k not in processed)
    report = KeyGroupReport(
        total_keys=len(keys),
        results=tuple(all_results),
        outcomes=tuple(outcomes),
        processed_keys=tuple(processed),
        missing_keys=missing_keys,
    )
    logger.info(
        "key_groups_completed",
        extra={
            "processed_keys": len(report.processed_keys),
            "missing_keys": len(missing_keys),
            "failed_groups": len(report.failed_groups),
            "total_results": len(all_results),
        },
    )
    return report
