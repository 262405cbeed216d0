"""
Configuration schema (``insights_config.schema``).

Frozen dataclasses for everything a run is configured with.  Values are
built by ``insights_config.loader`` and checked by
``insights_config.validator``; nothing here reads the environment.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

DEFAULT_BATCH_SIZE = 1000
DEFAULT_PROCESSING_DELAY_MS = 500
DEFAULT_OUTPUT_DIRECTORY = "results"

DEFAULT_MONGO_URI = "mongodb://localhost:27017/commerce_db"
DEFAULT_ENVIRONMENT = "development"


@dataclass(frozen=True)
class BatchConfig:
    """
    Batch execution settings, immutable for the duration of a run.

    Contract
    --------
    * ``batch_size`` > 0.
    * ``processing_delay_ms`` >= 0; pause inserted between batches.
    * ``max_batches`` is None (no cap) or > 0.
    * ``output_directory`` is only read by the report writer.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    processing_delay_ms: int = DEFAULT_PROCESSING_DELAY_MS
    max_batches: int | None = None
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY

    @property
    def processing_delay_seconds(self) -> float:
        return self.processing_delay_ms / 1000

    def with_overrides(self, **changes: Any) -> BatchConfig:
        """Return a copy with ``changes`` applied (e.g. ``max_batches=None``)."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """camelCase run provenance stored in the result envelope.

        ``output_directory`` is left out; it only steers the report writer.
        """
        return {
            "batchSize": self.batch_size,
            "processingDelay": self.processing_delay_ms,
            "maxBatches": self.max_batches,
        }


@dataclass(frozen=True)
class StoreSettings:
    """Connection settings for the MongoDB store."""

    uri: str = DEFAULT_MONGO_URI
    username: str | None = None
    password: str | None = None
    environment: str = DEFAULT_ENVIRONMENT
    database_name: str | None = None

    def connection_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``StoreConnection`` / ``open_store``."""
        return {
            "username": self.username,
            "password": self.password,
            "database_name": self.database_name,
        }

    def __repr__(self) -> str:
        fields = asdict(self)
        if fields["password"]:
            fields["password"] = "***"
        body = ", ".join(f"{k}={v!r}" for k, v in fields.items())
        return f"StoreSettings({body})"
