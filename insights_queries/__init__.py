"""
insights_queries -- the query catalog.

Pipelines are plain lists of stage documents.  Nothing outside this
package looks inside them; the executor only wraps them with paging
stages.
"""

from insights_queries.public_keys import EXTRACT_PUBLIC_KEYS_PIPELINE
from insights_queries.registry import (
    TRANSACTION_COLLECTION,
    ReportDefinition,
    ReportRegistry,
    default_report_registry,
)
from insights_queries.sample import (
    SIMPLE_COUNT_PIPELINE,
    SIMPLE_DOCUMENT_EXTRACTION_PIPELINE,
    TRANSACTIONS_BY_STATUS_PIPELINE,
)
from insights_queries.transaction_analysis import create_transaction_analysis_pipeline

__all__ = [
    "EXTRACT_PUBLIC_KEYS_PIPELINE",
    "SIMPLE_COUNT_PIPELINE",
    "SIMPLE_DOCUMENT_EXTRACTION_PIPELINE",
    "TRANSACTIONS_BY_STATUS_PIPELINE",
    "TRANSACTION_COLLECTION",
    "ReportDefinition",
    "ReportRegistry",
    "create_transaction_analysis_pipeline",
    "default_report_registry",
]
