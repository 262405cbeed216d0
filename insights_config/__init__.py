"""
insights_config -- configuration for batch reporting runs.

Responsibility:
    Turns defaults, an optional YAML file, and the environment into
    validated, immutable ``BatchConfig`` / ``StoreSettings`` values.

Public surface:
    - ``load_batch_config()`` / ``load_store_settings()``
    - ``load_dotenv_file()`` for entry scripts
    - ``validate_batch_config()`` for callers that build configs in code

Failure modes:
    - ``ConfigurationError`` -- any invalid value, raised before the store
      is touched.
"""

from insights_config.loader import (
    load_batch_config,
    load_dotenv_file,
    load_store_settings,
    load_yaml_file,
)
from insights_config.schema import BatchConfig, StoreSettings
from insights_config.validator import validate_batch_config, validate_store_settings

__all__ = [
    "BatchConfig",
    "StoreSettings",
    "load_batch_config",
    "load_dotenv_file",
    "load_store_settings",
    "load_yaml_file",
    "validate_batch_config",
    "validate_store_settings",
]
