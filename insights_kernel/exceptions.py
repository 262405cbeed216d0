"""
Typed exception hierarchy for the reporting utilities.

Every error has its own class, a machine-readable ``code`` class attribute,
and carries its context as attributes rather than only in the message.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InsightsError (base)
    |
    +-- ConfigurationError        invalid batch / store configuration
    +-- InvalidArgumentError      bad argument to a pure helper (e.g. chunk size)
    |
    +-- StoreError                the document store rejected an operation
    |   +-- StoreConnectionError
    |   +-- StoreNotConnectedError
    |
    +-- QueryFailure              a count / page / full-pipeline query failed
    +-- PersistenceFailure        writing or reading a report file failed
    +-- KeySourceError            an input key list could not be produced

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                        | When Raised
----------------------------|-----------------------------------------------
CONFIGURATION_ERROR         | batch size <= 0, negative delay, bad max batches
INVALID_ARGUMENT            | chunk size <= 0 and similar helper misuse
STORE_ERROR                 | store-level failure (wraps PyMongoError)
STORE_CONNECTION_FAILED     | server unreachable / authentication failed
STORE_NOT_CONNECTED         | store used before connect() or after close()
QUERY_FAILURE               | executor aborted a run on a failed query
PERSISTENCE_FAILURE         | report file could not be written or read
KEY_SOURCE_ERROR            | no key file found, or key file malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

The executor never recovers locally.  A ``StoreError`` raised while a run
is in flight is re-raised as ``QueryFailure`` (chained with ``from``) with
the batch position attached, and the run aborts with no envelope:

    try:
        result = executor.execute("transaction", pipeline, config, "daily")
    except QueryFailure as e:
        log.error("run aborted", extra={"stage": e.stage,
                                        "batches_processed": e.batches_processed})
        raise

Entry scripts catch ``InsightsError`` at the top level and exit non-zero.
"""

from __future__ import annotations

from typing import Any


class InsightsError(Exception):
    """
    Base exception for all reporting errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "INSIGHTS_ERROR"


# Configuration / argument errors


class ConfigurationError(InsightsError):
    """Batch or store configuration is invalid.  Raised before any query."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration {field}={value!r}: {reason}")


class InvalidArgumentError(InsightsError):
    """A helper was called with an argument outside its domain."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, value: Any, reason: str):
        self.argument = argument
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid argument {argument}={value!r}: {reason}")


# Store errors


class StoreError(InsightsError):
    """The document store failed an operation."""

    code: str = "STORE_ERROR"

    def __init__(
        self,
        operation: str,
        message: str,
        collection_name: str | None = None,
    ):
        self.operation = operation
        self.collection_name = collection_name
        target = f" on '{collection_name}'" if collection_name else ""
        super().__init__(f"Store {operation} failed{target}: {message}")


class StoreConnectionError(StoreError):
    """Could not establish a connection to the document store."""

    code: str = "STORE_CONNECTION_FAILED"

    def __init__(self, uri: str, message: str):
        self.uri = uri
        super().__init__("connect", message)


class StoreNotConnectedError(StoreError):
    """The store handle was requested before connect() or after close()."""

    code: str = "STORE_NOT_CONNECTED"

    def __init__(self) -> None:
        super().__init__(
            "access", "connection is not open; call connect() first",
        )


# Execution errors


class QueryFailure(InsightsError):
    """
    A query issued by the batch executor failed; the run was aborted.

    ``stage`` is one of ``count``, ``page`` or ``full_pipeline``.
    ``batch_index`` is the zero-based page that failed (None for stages
    that are not per-batch).  ``batches_processed`` counts only the batches
    that completed before the failure.
    """

    code: str = "QUERY_FAILURE"

    def __init__(
        self,
        aggregation_name: str,
        collection_name: str,
        stage: str,
        batches_processed: int,
        batch_index: int | None = None,
        cause: str | None = None,
    ):
        self.aggregation_name = aggregation_name
        self.collection_name = collection_name
        self.stage = stage
        self.batch_index = batch_index
        self.batches_processed = batches_processed
        where = f"batch {batch_index + 1}" if batch_index is not None else stage
        message = (
            f"Aggregation '{aggregation_name}' on '{collection_name}' "
            f"failed at {where} after {batches_processed} batch(es)"
        )
        if cause:
            message = f"{message}: {cause}"
        super().__init__(message)


class PersistenceFailure(InsightsError):
    """A report file could not be written or read."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, path: str, operation: str, message: str):
        self.path = path
        self.operation = operation
        super().__init__(f"Could not {operation} {path}: {message}")


class KeySourceError(InsightsError):
    """An input key list could not be produced."""

    code: str = "KEY_SOURCE_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Key source {source} unavailable: {reason}")
