"""
ReportDefinition and ReportRegistry -- the named reports a run can execute.

Contract:
    ``ReportRegistry`` maps report names to ``ReportDefinition`` values.
    ``default_report_registry()`` returns a registry loaded with every
    report in this package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from insights_batch.domain.types import BatchStrategy

from insights_queries.public_keys import EXTRACT_PUBLIC_KEYS_PIPELINE
from insights_queries.sample import (
    SIMPLE_COUNT_PIPELINE,
    SIMPLE_DOCUMENT_EXTRACTION_PIPELINE,
    TRANSACTIONS_BY_STATUS_PIPELINE,
)

TRANSACTION_COLLECTION = "transaction"


@dataclass(frozen=True)
class ReportDefinition:
    """A pipeline plus where and how to run it."""

    name: str
    collection_name: str
    pipeline: tuple[dict[str, Any], ...]
    strategy: BatchStrategy
    description: str = ""


class ReportRegistry:
    """Registry mapping report names to definitions.

    Contract:
        - ``register()`` adds a report; raises ValueError on duplicate.
        - ``get()`` retrieves by name; raises KeyError if missing.
        - ``list_reports()`` returns all names, sorted.
    """

    def __init__(self) -> None:
        self._reports: dict[str, ReportDefinition] = {}

    def register(self, report: ReportDefinition) -> None:
        if report.name in self._reports:
            raise ValueError(f"Report '{report.name}' is already registered")
        self._reports[report.name] = report

    def get(self, name: str) -> ReportDefinition:
        try:
            return self._reports[name]
        except KeyError:
            raise KeyError(
                f"No report registered as '{name}'. "
                f"Available: {sorted(self._reports.keys())}"
            ) from None

    def list_reports(self) -> tuple[str, ...]:
        return tuple(sorted(self._reports.keys()))

    def __len__(self) -> int:
        return len(self._reports)

    def __contains__(self, name: str) -> bool:
        return name in self._reports


def default_report_registry() -> ReportRegistry:
    """Create a registry pre-loaded with every catalog report."""
    registry = ReportRegistry()
    registry.register(ReportDefinition(
        name="simple_document_extraction",
        collection_name=TRANSACTION_COLLECTION,
        pipeline=tuple(SIMPLE_DOCUMENT_EXTRACTION_PIPELINE),
        strategy=BatchStrategy.PRE_AGGREGATION,
        description="_id, createdAt and updatedAt of every transaction",
    ))
    registry.register(ReportDefinition(
        name="simple_count",
        collection_name=TRANSACTION_COLLECTION,
        pipeline=tuple(SIMPLE_COUNT_PIPELINE),
        strategy=BatchStrategy.PRE_AGGREGATION,
        description="Document count per batch",
    ))
    registry.register(ReportDefinition(
        name="transactions_by_status",
        collection_name=TRANSACTION_COLLECTION,
        pipeline=tuple(TRANSACTIONS_BY_STATUS_PIPELINE),
        strategy=BatchStrategy.POST_AGGREGATION,
        description="Transaction count per status",
    ))
    registry.register(ReportDefinition(
        name="extract_public_keys",
        collection_name=TRANSACTION_COLLECTION,
        pipeline=tuple(EXTRACT_PUBLIC_KEYS_PIPELINE),
        strategy=BatchStrategy.POST_AGGREGATION,
        description="Distinct public keys",
    ))
    return registry
