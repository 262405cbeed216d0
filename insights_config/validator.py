"""
Configuration Validator (``insights_config.validator``).

Checks a configuration value before any query runs.  Every failure is a
``ConfigurationError`` naming the offending field; there are no warnings
and no silent corrections.
"""

from __future__ import annotations

from typing import Any

from insights_config.schema import BatchConfig, StoreSettings
from insights_kernel.exceptions import ConfigurationError

_MONGO_SCHEMES = ("mongodb://", "mongodb+srv://")


def _require_int(field: str, value: Any) -> int:
    # bool is an int subclass; True must not pass as a batch size of 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(field, value, "must be an integer")
    return value


def validate_batch_config(config: BatchConfig) -> BatchConfig:
    """
    Validate a ``BatchConfig`` and return it unchanged.

    Raises:
        ConfigurationError: on a non-positive batch size, a negative delay,
            a non-positive ``max_batches`` when set, or a blank output
            directory.
    """
    if _require_int("batch_size", config.batch_size) <= 0:
        raise ConfigurationError(
            "batch_size", config.batch_size, "must be greater than 0",
        )
    if _require_int("processing_delay_ms", config.processing_delay_ms) < 0:
        raise ConfigurationError(
            "processing_delay_ms", config.processing_delay_ms,
            "must not be negative",
        )
    if config.max_batches is not None:
        if _require_int("max_batches", config.max_batches) <= 0:
            raise ConfigurationError(
                "max_batches", config.max_batches,
                "must be greater than 0 when set",
            )
    if not config.output_directory or not str(config.output_directory).strip():
        raise ConfigurationError(
            "output_directory", config.output_directory, "must not be empty",
        )
    return config


def validate_store_settings(settings: StoreSettings) -> StoreSettings:
    """Validate connection settings and return them unchanged."""
    if not settings.uri or not settings.uri.startswith(_MONGO_SCHEMES):
        raise ConfigurationError(
            "uri", settings.uri,
            "must start with mongodb:// or mongodb+srv://",
        )
    return settings
