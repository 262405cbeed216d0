"""Shared wiring for the entry scripts: env, logging, config, errors."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, TextIO

from insights_config import (
    BatchConfig,
    StoreSettings,
    load_batch_config,
    load_dotenv_file,
    load_store_settings,
)
from insights_kernel.db import DocumentStore, open_store
from insights_kernel.logging_config import configure_logging


def bootstrap(
    config_file: Path | None = None,
    verbose: bool = False,
) -> tuple[BatchConfig, StoreSettings]:
    """Load ``.env``, configure logging, and build both config values.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    load_dotenv_file()
    configure_logging(level=logging.DEBUG if verbose else logging.INFO)
    return (
        load_batch_config(config_file=config_file),
        load_store_settings(config_file=config_file),
    )


@contextmanager
def connected_store(settings: StoreSettings) -> Generator[DocumentStore, None, None]:
    """Open the store once for the whole run and close it on the way out."""
    with open_store(settings.uri, **settings.connection_kwargs()) as store:
        yield store


def print_batch_config(config: BatchConfig, out: TextIO | None = None) -> None:
    out = out or sys.stdout
    print("Batch configuration:", file=out)
    print(f"  - Batch size: {config.batch_size}", file=out)
    print(f"  - Delay between batches: {config.processing_delay_ms}ms", file=out)
    print(f"  - Max batches: {config.max_batches or 'unlimited'}", file=out)
    print(f"  - Output directory: {config.output_directory}", file=out)


def report_error(exc: BaseException, err: TextIO | None = None) -> int:
    """Print the error and its cause; return the process exit status."""
    err = err or sys.stderr
    print(f"ERROR: {exc}", file=err)
    cause = exc.__cause__
    if cause is not None:
        print(f"  Cause: {type(cause).__name__}: {cause}", file=err)
    return 1


def add_common_arguments(parser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML file with batch: and store: sections.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level.",
    )
