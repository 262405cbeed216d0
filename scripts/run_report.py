#!/usr/bin/env python3
"""
Run one named report from the query catalog and save it as JSON.

Batch settings come from the environment (BATCH_SIZE, BATCH_DELAY,
MAX_BATCHES, OUTPUT_DIRECTORY), an optional YAML file, or a .env file.

Usage:
    python3 scripts/run_report.py [--report NAME] [--config FILE]

Examples:
    # Default report (simple_document_extraction)
    python3 scripts/run_report.py

    # Status breakdown, capped at two batches
    MAX_BATCHES=2 python3 scripts/run_report.py --report transactions_by_status

    # Show the available reports
    python3 scripts/run_report.py --list
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Callable

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from insights_batch.services.executor import BatchAggregationExecutor  # noqa: E402
from insights_batch.services.report_writer import save_results_to_json  # noqa: E402
from insights_config.schema import BatchConfig  # noqa: E402
from insights_kernel.db.store import DocumentStore  # noqa: E402
from insights_kernel.domain.clock import Clock  # noqa: E402
from insights_kernel.exceptions import InsightsError  # noqa: E402
from insights_queries.registry import ReportDefinition, default_report_registry  # noqa: E402

from scripts._runtime import (  # noqa: E402
    add_common_arguments,
    bootstrap,
    connected_store,
    print_batch_config,
    report_error,
)

DEFAULT_REPORT = "simple_document_extraction"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a catalog report in batches and save it as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--report",
        default=DEFAULT_REPORT,
        help=f"Report name (default: {DEFAULT_REPORT}).",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the available reports and exit.",
    )
    add_common_arguments(parser)
    return parser.parse_args(argv)


def run_report(
    store: DocumentStore,
    report: ReportDefinition,
    config: BatchConfig,
    clock: Clock | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Path:
    """Execute ``report`` and persist its envelope; return the file path."""
    executor = BatchAggregationExecutor(store, clock=clock, sleep=sleep)
    result = executor.execute(
        report.collection_name,
        list(report.pipeline),
        config,
        report.name,
        report.strategy,
    )
    path = save_results_to_json(result, config.output_directory, clock=clock)
    print(f"Results saved to: {path}")
    print(f"  Batches processed: {result.batches_processed}")
    print(f"  Total results: {result.total_results}")
    return path


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    registry = default_report_registry()

    if args.list:
        for name in registry.list_reports():
            report = registry.get(name)
            print(f"{name:<30} {report.strategy.value:<18} {report.description}")
        return 0

    try:
        report = registry.get(args.report)
    except KeyError as e:
        print(f"ERROR: {e.args[0]}", file=sys.stderr)
        return 1

    start = time.monotonic()
    print("=" * 50)
    print("Commerce Insights - Batch Aggregation")
    print("=" * 50)

    try:
        config, settings = bootstrap(args.config, args.verbose)
        print_batch_config(config)
        print(f"\nRunning {report.name} ({report.strategy.value})...\n")
        with connected_store(settings) as store:
            run_report(store, report, config)
    except InsightsError as e:
        return report_error(e)

    print("=" * 50)
    print(f"Completed in {time.monotonic() - start:.2f} seconds")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
