#!/usr/bin/env python3
"""
Analyze transactions per public key, ten keys per query.

Keys come from, in order of preference:
  1. ``--keys-file FILE`` -- a JSON array of strings;
  2. ``--fresh`` -- a live extraction against the store;
  3. the newest ``public-keys_*.json`` in OUTPUT_DIRECTORY
     (written by ``extract_public_keys.py``).

A failed group is reported and its keys listed as missing; the other
groups still run.  Results are written to
``<OUTPUT_DIRECTORY>/transaction-analysis_<timestamp>.json``.

Usage:
    python3 scripts/analyze_transactions.py [--keys-file FILE] [--fresh]
                                            [--group-size N] [--config FILE]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from insights_batch.domain.types import KeyGroupReport  # noqa: E402
from insights_batch.services.key_groups import (  # noqa: E402
    DEFAULT_GROUP_SIZE,
    FileKeySource,
    KeySource,
    LatestReportKeySource,
    QueryKeySource,
    run_key_groups,
)
from insights_batch.services.report_writer import save_json_document  # noqa: E402
from insights_config.schema import BatchConfig  # noqa: E402
from insights_kernel.db.store import DocumentStore  # noqa: E402
from insights_kernel.domain.clock import Clock  # noqa: E402
from insights_kernel.exceptions import InsightsError  # noqa: E402
from insights_queries import (  # noqa: E402
    EXTRACT_PUBLIC_KEYS_PIPELINE,
    TRANSACTION_COLLECTION,
    create_transaction_analysis_pipeline,
)

from scripts._runtime import add_common_arguments, bootstrap, connected_store, report_error  # noqa: E402

ANALYSIS_PREFIX = "transaction-analysis"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the per-key transaction analysis in key groups.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--keys-file",
        type=Path,
        default=None,
        help="JSON array of public keys to analyze.",
    )
    source.add_argument(
        "--fresh",
        action="store_true",
        help="Extract the keys from the store instead of reading a file.",
    )
    parser.add_argument(
        "--group-size",
        type=int,
        default=DEFAULT_GROUP_SIZE,
        help=f"Keys per query (default: {DEFAULT_GROUP_SIZE}).",
    )
    add_common_arguments(parser)
    return parser.parse_args(argv)


def resolve_key_source(
    store: DocumentStore,
    config: BatchConfig,
    keys_file: Path | None = None,
    fresh: bool = False,
) -> KeySource:
    if keys_file is not None:
        return FileKeySource(keys_file)
    if fresh:
        return QueryKeySource(
            store,
            TRANSACTION_COLLECTION,
            EXTRACT_PUBLIC_KEYS_PIPELINE,
            "publicKey",
            config,
        )
    return LatestReportKeySource(config.output_directory)


def analyze_transactions(
    store: DocumentStore,
    keys: list[str],
    config: BatchConfig,
    group_size: int = DEFAULT_GROUP_SIZE,
    clock: Clock | None = None,
    sleep: Callable[[float], None] | None = None,
) -> tuple[KeyGroupReport, Path]:
    """Run the analysis over ``keys`` and save the records array."""
    report = run_key_groups(
        store,
        TRANSACTION_COLLECTION,
        keys,
        create_transaction_analysis_pipeline,
        group_size=group_size,
        processing_delay_ms=config.processing_delay_ms,
        sleep=sleep,
    )
    path = save_json_document(
        list(report.results), config.output_directory, ANALYSIS_PREFIX, clock=clock,
    )
    return report, path


def print_summary(report: KeyGroupReport, path: Path) -> None:
    print("\nAnalysis completed")
    print(f"Public keys processed: {len(report.processed_keys)} of {report.total_keys}")
    print(f"Total results: {len(report.results)}")

    if report.failed_groups:
        print(f"\nFailed groups ({len(report.failed_groups)}):")
        for outcome in report.failed_groups:
            print(f"   - group {outcome.group_index + 1}: {outcome.error}")

    if report.missing_keys:
        print(f"\nPublic keys without results ({len(report.missing_keys)}):")
        for key in report.missing_keys:
            print(f"   - {key}")
        print("\n   These keys may have no transactions in the database")

    print(f"\nFile saved to: {path}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config, settings = bootstrap(args.config, args.verbose)
        with connected_store(settings) as store:
            source = resolve_key_source(store, config, args.keys_file, args.fresh)
            keys = source.load_keys()
            print(f"{len(keys)} public keys loaded\n")
            report, path = analyze_transactions(store, keys, config, args.group_size)
    except InsightsError as e:
        return report_error(e)

    print_summary(report, path)
    return 1 if report.all_failed else 0


if __name__ == "__main__":
    sys.exit(main())
