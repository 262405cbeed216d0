"""
Pytest fixtures for the reporting test suite.

Provides:
- An in-memory ``FakeDocumentStore`` preloaded with transaction documents
- A deterministic clock and a recording sleep function
- Batch configurations with no real delay
- Logging reset between tests

No MongoDB server is needed; pymongo is only exercised through its
exception types and the connection fakes in ``tests.fakes``.
"""

from datetime import datetime, timezone

import pytest

from insights_config.schema import BatchConfig
from insights_kernel.domain.clock import DeterministicClock
from insights_kernel.logging_config import LogContext, reset_logging

from tests.fakes import FakeDocumentStore, RecordingSleep, make_transactions


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 10, 30, 45, 123000, tzinfo=timezone.utc))


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def config(tmp_path) -> BatchConfig:
    return BatchConfig(
        batch_size=10,
        processing_delay_ms=0,
        max_batches=None,
        output_directory=str(tmp_path / "results"),
    )


@pytest.fixture
def store() -> FakeDocumentStore:
    """25 plain transaction documents."""
    return FakeDocumentStore({"transaction": make_transactions(25)})


@pytest.fixture
def keyed_store() -> FakeDocumentStore:
    """1000 transaction documents spread over 37 public keys."""
    return FakeDocumentStore({"transaction": make_transactions(1000, key_count=37)})
