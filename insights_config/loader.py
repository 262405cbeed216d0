"""
Configuration Loader (``insights_config.loader``).

Responsibility
--------------
Builds ``BatchConfig`` and ``StoreSettings`` values from three layers, in
increasing precedence:

1. Built-in defaults (``insights_config.schema``).
2. An optional YAML file with ``batch:`` and ``store:`` sections.
3. Environment variables (``BATCH_SIZE``, ``BATCH_DELAY``, ``MAX_BATCHES``,
   ``OUTPUT_DIRECTORY``, ``MONGO_URI``, ``MONGO_USER``, ``MONGO_PASSWORD``,
   ``MONGO_DATABASE``, ``APP_ENV``).

A ``.env`` file can be folded into the process environment first with
``load_dotenv_file()``; variables already set are never overridden.

Invariants enforced
-------------------
* Loaders are pure over their inputs: the same environment mapping and
  file contents always produce equal values.
* Every value returned has passed ``insights_config.validator``.
* Empty environment values count as unset.

Failure modes
-------------
* Non-integer numeric value  -> ``ConfigurationError``.
* Unreadable YAML file  -> ``ConfigurationError``.
* Malformed YAML  -> ``ConfigurationError`` chained from ``yaml.YAMLError``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from insights_config.schema import BatchConfig, StoreSettings
from insights_config.validator import validate_batch_config, validate_store_settings
from insights_kernel.exceptions import ConfigurationError

# Environment key -> BatchConfig field
BATCH_ENV_KEYS: dict[str, str] = {
    "BATCH_SIZE": "batch_size",
    "BATCH_DELAY": "processing_delay_ms",
    "MAX_BATCHES": "max_batches",
    "OUTPUT_DIRECTORY": "output_directory",
}

# Environment key -> StoreSettings field
STORE_ENV_KEYS: dict[str, str] = {
    "MONGO_URI": "uri",
    "MONGO_USER": "username",
    "MONGO_PASSWORD": "password",
    "MONGO_DATABASE": "database_name",
    "APP_ENV": "environment",
}

# YAML key (either spelling) -> BatchConfig field
_BATCH_YAML_KEYS: dict[str, str] = {
    "batch_size": "batch_size",
    "batchSize": "batch_size",
    "processing_delay": "processing_delay_ms",
    "processing_delay_ms": "processing_delay_ms",
    "processingDelay": "processing_delay_ms",
    "max_batches": "max_batches",
    "maxBatches": "max_batches",
    "output_directory": "output_directory",
    "outputDirectory": "output_directory",
}

_INT_FIELDS = frozenset({"batch_size", "processing_delay_ms", "max_batches"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file cannot be read, is not valid YAML,
            or is not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(
            str(path), None, f"cannot read config file: {exc.strerror or exc}",
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), None, f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), type(data).__name__, "must be a mapping")
    return data


def load_dotenv_file(path: Path | str | None = None) -> bool:
    """Fold a ``.env`` file into ``os.environ`` without overriding.

    Returns True if a file was found and loaded.
    """
    if path is None:
        return load_dotenv(override=False)
    return load_dotenv(dotenv_path=path, override=False)


def parse_int(field: str, value: Any) -> int:
    """Parse an integer from an env string or YAML scalar."""
    if isinstance(value, bool):
        raise ConfigurationError(field, value, "must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            pass
    raise ConfigurationError(field, value, "must be an integer")


def _coerce_batch_field(field: str, value: Any) -> Any:
    if field in _INT_FIELDS:
        return parse_int(field, value)
    return str(value)


def _env_overrides(
    environ: Mapping[str, str], keys: Mapping[str, str],
) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for env_key, field in keys.items():
        raw = environ.get(env_key)
        if raw is None or raw.strip() == "":
            continue
        overrides[field] = raw
    return overrides


def _section(config_file: Path | str | None, name: str) -> dict[str, Any]:
    if config_file is None:
        return {}
    section = load_yaml_file(Path(config_file)).get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(name, section, "section must be a mapping")
    return section


def load_batch_config(
    environ: Mapping[str, str] | None = None,
    config_file: Path | str | None = None,
) -> BatchConfig:
    """
    Build and validate the batch configuration.

    Preconditions:
        - ``environ`` defaults to ``os.environ``.
    Postconditions:
        - Returns a validated ``BatchConfig``.
    Raises:
        ConfigurationError: on non-integer or out-of-range values.
    """
    env = os.environ if environ is None else environ
    fields: dict[str, Any] = {}

    for key, value in _section(config_file, "batch").items():
        field = _BATCH_YAML_KEYS.get(key)
        if field is None:
            raise ConfigurationError(f"batch.{key}", value, "unknown setting")
        fields[field] = None if value is None else _coerce_batch_field(field, value)

    for field, raw in _env_overrides(env, BATCH_ENV_KEYS).items():
        fields[field] = _coerce_batch_field(field, raw)

    # YAML null means "use the default" except for the optional cap
    fields = {
        k: v for k, v in fields.items() if v is not None or k == "max_batches"
    }
    return validate_batch_config(BatchConfig(**fields))


def load_store_settings(
    environ: Mapping[str, str] | None = None,
    config_file: Path | str | None = None,
) -> StoreSettings:
    """Build and validate the store connection settings."""
    env = os.environ if environ is None else environ
    fields: dict[str, Any] = {}

    valid = set(STORE_ENV_KEYS.values())
    for key, value in _section(config_file, "store").items():
        if key not in valid:
            raise ConfigurationError(f"store.{key}", value, "unknown setting")
        if value is not None:
            fields[key] = str(value)

    fields.update(_env_overrides(env, STORE_ENV_KEYS))
    return validate_store_settings(StoreSettings(**fields))
