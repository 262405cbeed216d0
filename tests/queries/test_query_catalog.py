"""
Tests for insights_queries -- catalog pipelines and the report registry.

The simple pipelines are run through the in-memory store to check what
they produce per page; the analysis pipeline is checked structurally.
"""

import pytest

from insights_batch.domain.types import BatchStrategy
from insights_batch.services.executor import BatchAggregationExecutor
from insights_queries import (
    EXTRACT_PUBLIC_KEYS_PIPELINE,
    SIMPLE_COUNT_PIPELINE,
    SIMPLE_DOCUMENT_EXTRACTION_PIPELINE,
    TRANSACTIONS_BY_STATUS_PIPELINE,
    ReportDefinition,
    ReportRegistry,
    create_transaction_analysis_pipeline,
    default_report_registry,
)

from tests.fakes import run_pipeline


# =============================================================================
# Simple pipelines
# =============================================================================


class TestSamplePipelines:
    def test_document_extraction_projects_three_fields(self, store):
        docs = run_pipeline(store.collections["transaction"], SIMPLE_DOCUMENT_EXTRACTION_PIPELINE)

        assert len(docs) == 25
        assert set(docs[0]) == {"_id", "createdAt", "updatedAt"}

    def test_simple_count(self, store):
        assert run_pipeline(store.collections["transaction"], SIMPLE_COUNT_PIPELINE) == [
            {"total": 25},
        ]

    def test_transactions_by_status(self, store):
        rows = run_pipeline(store.collections["transaction"], TRANSACTIONS_BY_STATUS_PIPELINE)

        # 25 documents cycling approved / pending / rejected
        assert rows[0] == {"status": "approved", "count": 9}
        assert sorted(r["count"] for r in rows) == [8, 8, 9]

    def test_extract_public_keys_skips_missing_and_blank(self):
        docs = [
            {"publicKey": "pk-1"},
            {"publicKey": "pk-1"},
            {"publicKey": ""},
            {"publicKey": None},
            {"other": 1},
            {"publicKey": "pk-2"},
        ]
        assert run_pipeline(docs, EXTRACT_PUBLIC_KEYS_PIPELINE) == [
            {"publicKey": "pk-1"},
            {"publicKey": "pk-2"},
        ]


# =============================================================================
# Transaction analysis pipeline
# =============================================================================


class TestTransactionAnalysisPipeline:
    def test_matches_given_keys(self):
        pipeline = create_transaction_analysis_pipeline(["pk-1", "pk-2"])
        assert pipeline[0] == {"$match": {"publicKey": {"$in": ["pk-1", "pk-2"]}}}

    def test_new_list_every_call(self):
        keys = ["pk-1"]
        first = create_transaction_analysis_pipeline(keys)
        second = create_transaction_analysis_pipeline(keys)

        assert first == second
        assert first is not second
        keys.append("pk-2")
        assert first[0]["$match"]["publicKey"]["$in"] == ["pk-1"]

    def test_groups_by_public_key(self):
        stages = create_transaction_analysis_pipeline(["pk-1"])
        group = next(s["$group"] for s in stages if "$group" in s)

        assert group["_id"] == "$publicKey"
        assert group["total"] == {"$sum": 1}
        assert "V1" in group and "V2" in group

    def test_joins_webcheckout(self):
        stages = create_transaction_analysis_pipeline(["pk-1"])
        lookup = next(s["$lookup"] for s in stages if "$lookup" in s)

        assert lookup["from"] == "webcheckout"
        assert lookup["as"] == "webcheckoutData"

    def test_output_fields(self):
        projection = create_transaction_analysis_pipeline(["pk-1"])[-1]["$project"]

        assert projection["_id"] == 0
        assert projection["publicKey"] == "$_id"
        for field in (
            "comercio", "idComercio", "isGateway", "epaycoImplementationType",
            "createdAtMasAntiguo", "porcentajeV1", "porcentajeV2",
            "paymentMethodsStats", "totalPaymentMethods", "horaEjecucion",
        ):
            assert field in projection

    def test_dates_rendered_in_bogota(self):
        projection = create_transaction_analysis_pipeline(["pk-1"])[-1]["$project"]
        rendered = projection["createdAtMasAntiguo"]["$dateToString"]

        assert rendered["timezone"] == "America/Bogota"
        assert rendered["format"] == "%Y-%m-%d %H:%M:%S"


# =============================================================================
# Registry
# =============================================================================


class TestReportRegistry:
    def test_default_reports(self):
        registry = default_report_registry()

        assert registry.list_reports() == (
            "extract_public_keys",
            "simple_count",
            "simple_document_extraction",
            "transactions_by_status",
        )
        assert len(registry) == 4
        assert "simple_count" in registry

    def test_strategies(self):
        registry = default_report_registry()

        assert registry.get("simple_document_extraction").strategy is BatchStrategy.PRE_AGGREGATION
        assert registry.get("simple_count").strategy is BatchStrategy.PRE_AGGREGATION
        assert registry.get("transactions_by_status").strategy is BatchStrategy.POST_AGGREGATION
        assert registry.get("extract_public_keys").strategy is BatchStrategy.POST_AGGREGATION

    def test_unknown_report_lists_available(self):
        with pytest.raises(KeyError, match="simple_count"):
            default_report_registry().get("nope")

    def test_duplicate_registration(self):
        registry = ReportRegistry()
        report = ReportDefinition("r", "transaction", (), BatchStrategy.PRE_AGGREGATION)
        registry.register(report)

        with pytest.raises(ValueError, match="already registered"):
            registry.register(report)

    def test_every_report_runs(self, keyed_store, config, clock, sleeper):
        executor = BatchAggregationExecutor(keyed_store, clock=clock, sleep=sleeper)
        registry = default_report_registry()

        for name in registry.list_reports():
            report = registry.get(name)
            result = executor.execute(
                report.collection_name, list(report.pipeline), config, name, report.strategy,
            )
            assert result.batches_processed > 0, name
