#!/usr/bin/env python3
"""
Extract every distinct public key from the transaction collection.

Runs the public-key pipeline with the post-aggregation strategy and no
batch cap, then writes the keys as a bare JSON array of strings to
``<OUTPUT_DIRECTORY>/public-keys_<timestamp>.json``.  The newest such file
is the default input of ``analyze_transactions.py``.

Usage:
    python3 scripts/extract_public_keys.py [--config FILE]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from insights_batch.domain.types import BatchStrategy  # noqa: E402
from insights_batch.services.executor import BatchAggregationExecutor  # noqa: E402
from insights_batch.services.key_groups import PUBLIC_KEYS_PREFIX  # noqa: E402
from insights_batch.services.report_writer import save_json_document  # noqa: E402
from insights_config.schema import BatchConfig  # noqa: E402
from insights_kernel.db.store import DocumentStore  # noqa: E402
from insights_kernel.domain.clock import Clock  # noqa: E402
from insights_kernel.exceptions import InsightsError  # noqa: E402
from insights_queries import EXTRACT_PUBLIC_KEYS_PIPELINE, TRANSACTION_COLLECTION  # noqa: E402

from scripts._runtime import add_common_arguments, bootstrap, connected_store, report_error  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract distinct public keys to a JSON array file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    add_common_arguments(parser)
    return parser.parse_args(argv)


def extract_public_keys(
    store: DocumentStore,
    config: BatchConfig,
    clock: Clock | None = None,
    sleep: Callable[[float], None] | None = None,
) -> tuple[list[str], Path]:
    """Run the extraction uncapped and save the key list.

    Returns:
        The keys, in pipeline output order, and the written file path.
    """
    uncapped = config.with_overrides(max_batches=None)
    executor = BatchAggregationExecutor(store, clock=clock, sleep=sleep)
    result = executor.execute(
        TRANSACTION_COLLECTION,
        EXTRACT_PUBLIC_KEYS_PIPELINE,
        uncapped,
        "extract_public_keys",
        BatchStrategy.POST_AGGREGATION,
    )
    public_keys = [
        item["publicKey"] for item in result.results if item.get("publicKey") is not None
    ]
    path = save_json_document(
        public_keys, uncapped.output_directory, PUBLIC_KEYS_PREFIX, clock=clock,
    )
    return public_keys, path


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config, settings = bootstrap(args.config, args.verbose)
        with connected_store(settings) as store:
            public_keys, path = extract_public_keys(store, config)
    except InsightsError as e:
        return report_error(e)

    print(f"\n{len(public_keys)} public keys extracted")
    print(f"File saved to: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
