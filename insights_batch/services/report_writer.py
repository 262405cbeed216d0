"""
Report persistence -- writes result envelopes and plain JSON documents.

Contract:
    - ``save_results_to_json()`` writes ``<name>_<timestamp>.json`` holding
      the envelope plus a ``summary`` block and returns the path.
    - ``save_json_document()`` writes any JSON payload under a prefix.
    - ``load_results_from_json()`` reads an envelope back.
    - ``find_latest_report()`` picks the newest ``<prefix>_*.json``.

Filename timestamps are ISO-8601 UTC with ``:`` and ``.`` replaced by
``-`` and cut at whole seconds, e.g. ``report_2024-01-01T12-00-00.json``.
They sort lexicographically in time order.

Failure modes:
    ``OSError`` and decode errors become ``PersistenceFailure``.  The
    envelope passed in is never modified, so a failed write leaves the
    in-memory result intact for a retry.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

from bson import Decimal128, ObjectId

from insights_kernel.domain.clock import Clock, SystemClock
from insights_kernel.exceptions import PersistenceFailure
from insights_kernel.logging_config import get_logger

from insights_batch.domain.types import AggregationResult, format_timestamp

logger = get_logger("batch.report_writer")


class ReportJSONEncoder(json.JSONEncoder):
    """Serialize BSON and stdlib values the way the reports expect.

    ObjectId and UUID become their string form, datetimes ISO-8601 UTC,
    and Decimal128 / Decimal their exact decimal string.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (ObjectId, UUID)):
            return str(obj)
        if isinstance(obj, datetime):
            return format_timestamp(obj)
        if isinstance(obj, Decimal128):
            return str(obj.to_decimal())
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (set, frozenset)):
            return list(obj)
        return super().default(obj)


def filename_timestamp(when: datetime) -> str:
    """``2024-01-01T12:00:00.000Z`` -> ``2024-01-01T12-00-00``."""
    return format_timestamp(when).replace(":", "-").replace(".", "-")[:-5]


def report_filename(name: str, when: datetime) -> str:
    return f"{name}_{filename_timestamp(when)}.json"


def build_summary(result: AggregationResult) -> dict[str, int]:
    """Summary block appended to every persisted envelope."""
    return {
        "totalResults": result.total_results,
        "batchesProcessed": result.batches_processed,
        "totalDocuments": result.total_documents,
        "averageResultsPerBatch": result.average_results_per_batch,
    }


def _write_json(path: Path, payload: Any) -> int:
    """Write ``payload`` to ``path`` and return the file size in bytes."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(
            payload, cls=ReportJSONEncoder, indent=2, ensure_ascii=False,
        )
        path.write_text(text, encoding="utf-8")
        return path.stat().st_size
    except (OSError, TypeError, ValueError) as exc:
        logger.error(
            "report_write_failed", extra={"path": str(path), "error": str(exc)},
        )
        raise PersistenceFailure(str(path), "write", str(exc)) from exc


def save_results_to_json(
    result: AggregationResult,
    directory: Path | str = "results",
    clock: Clock | None = None,
) -> Path:
    """
    Persist an envelope with its summary block.

    Postconditions:
        - ``directory`` exists and contains the new file.
        - ``result`` is unchanged.
    Raises:
        PersistenceFailure: If the directory or file cannot be written.
    """
    clock = clock or SystemClock()
    path = Path(directory) / report_filename(result.name, clock.now())
    payload = {**result.to_dict(), "summary": build_summary(result)}

    size = _write_json(path, payload)
    logger.info(
        "report_saved",
        extra={
            "path": str(path),
            "size_mb": round(size / (1024 * 1024), 2),
            "total_results": result.total_results,
        },
    )
    return path


def save_json_document(
    payload: Any,
    directory: Path | str,
    prefix: str,
    clock: Clock | None = None,
) -> Path:
    """Persist a bare JSON document as ``<prefix>_<timestamp>.json``."""
    clock = clock or SystemClock()
    path = Path(directory) / report_filename(prefix, clock.now())
    size = _write_json(path, payload)
    logger.info(
        "document_saved",
        extra={"path": str(path), "size_mb": round(size / (1024 * 1024), 2)},
    )
    return path


def load_json_document(path: Path | str) -> Any:
    """Read any JSON document written by this module.

    Raises:
        PersistenceFailure: If the file is missing or not valid JSON.
    """
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PersistenceFailure(str(path), "read", str(exc)) from exc


def load_results_from_json(path: Path | str) -> AggregationResult:
    """Read a persisted envelope back; the ``summary`` block is ignored."""
    data = load_json_document(path)
    try:
        return AggregationResult.from_dict(data)
    except (KeyError, TypeError) as exc:
        raise PersistenceFailure(
            str(path), "read", f"not a result envelope: {exc}",
        ) from exc


def find_latest_report(directory: Path | str, prefix: str) -> Path | None:
    """Newest ``<prefix>_*.json`` in ``directory`` by filename, or None."""
    directory = Path(directory)
    if not directory.is_dir():
        return None
    candidates = sorted(
        p for p in directory.glob(f"{prefix}_*.json") if p.is_file()
    )
    return candidates[-1] if candidates else None
