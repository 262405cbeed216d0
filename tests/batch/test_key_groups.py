"""
Tests for insights_batch.services.key_groups.

Validates group sizing, per-group failure isolation, processed / missing
key accounting, pacing, and each KeySource implementation.
"""

import json

import pytest

from insights_batch.services.key_groups import (
    FileKeySource,
    KeySource,
    LatestReportKeySource,
    QueryKeySource,
    StaticKeySource,
    run_key_groups,
)
from insights_kernel.exceptions import InvalidArgumentError, KeySourceError
from insights_queries import EXTRACT_PUBLIC_KEYS_PIPELINE

from tests.fakes import FakeDocumentStore, make_transactions


def count_by_key(keys):
    return [
        {"$match": {"publicKey": {"$in": keys}}},
        {"$group": {"_id": "$publicKey", "total": {"$sum": 1}}},
        {"$project": {"_id": 0, "publicKey": "$_id", "total": 1}},
    ]


# =============================================================================
# Driver
# =============================================================================


class TestRunKeyGroups:
    def test_one_query_per_group(self, keyed_store):
        keys = [f"pk-{i:03d}" for i in range(25)]

        report = run_key_groups(keyed_store, "transaction", keys, count_by_key)

        assert len(keyed_store.aggregate_calls) == 3
        assert [len(o.keys) for o in report.outcomes] == [10, 10, 5]
        assert all(call[3] is True for call in keyed_store.aggregate_calls)

    def test_group_pipelines_receive_their_keys(self, keyed_store):
        keys = [f"pk-{i:03d}" for i in range(12)]

        run_key_groups(keyed_store, "transaction", keys, count_by_key, group_size=5)

        matched = [call[2][0]["$match"]["publicKey"]["$in"] for call in keyed_store.aggregate_calls]
        assert matched == [keys[0:5], keys[5:10], keys[10:12]]

    def test_results_and_processed_keys(self, keyed_store):
        keys = ["pk-000", "pk-001", "pk-002"]

        report = run_key_groups(keyed_store, "transaction", keys, count_by_key, group_size=2)

        assert report.total_keys == 3
        assert report.processed_keys == ("pk-000", "pk-001", "pk-002")
        assert report.missing_keys == ()
        assert len(report.results) == 3
        # 1000 documents over 37 keys: pk-000 gets 28, the rest 27
        totals = {r["publicKey"]: r["total"] for r in report.results}
        assert totals == {"pk-000": 28, "pk-001": 27, "pk-002": 27}

    def test_unknown_keys_are_missing(self, keyed_store):
        keys = ["pk-000", "nope-1", "pk-001", "nope-2"]

        report = run_key_groups(keyed_store, "transaction", keys, count_by_key, group_size=2)

        assert report.processed_keys == ("pk-000", "pk-001")
        assert report.missing_keys == ("nope-1", "nope-2")
        assert report.outcomes[0].missing_keys == ("nope-1",)
        assert report.outcomes[0].found_keys == ("pk-000",)

    def test_failed_group_does_not_abort_siblings(self):
        store = FakeDocumentStore(
            {"transaction": make_transactions(100, key_count=10)}, fail_on_aggregate=2,
        )
        keys = [f"pk-{i:03d}" for i in range(6)]

        report = run_key_groups(store, "transaction", keys, count_by_key, group_size=2)

        assert len(store.aggregate_calls) == 3
        assert [o.succeeded for o in report.outcomes] == [True, False, True]
        failed = report.failed_groups[0]
        assert failed.group_index == 1
        assert failed.missing_keys == ("pk-002", "pk-003")
        assert "time limit" in failed.error
        assert report.missing_keys == ("pk-002", "pk-003")
        assert not report.all_failed

    def test_every_group_failing(self):
        store = FakeDocumentStore(
            {"transaction": make_transactions(10, key_count=2)},
            fail_on_aggregate=lambda stages: True,
        )

        report = run_key_groups(store, "transaction", ["pk-000", "pk-001"], count_by_key, 1)

        assert report.all_failed
        assert report.processed_keys == ()
        assert report.missing_keys == ("pk-000", "pk-001")

    def test_duplicate_keys_reported_once(self, keyed_store):
        report = run_key_groups(
            keyed_store, "transaction", ["pk-000", "pk-000", "zz"], count_by_key,
        )
        assert report.total_keys == 3
        assert report.processed_keys == ("pk-000",)
        assert report.missing_keys == ("zz",)

    def test_empty_key_list(self, keyed_store):
        report = run_key_groups(keyed_store, "transaction", [], count_by_key)

        assert report.outcomes == ()
        assert keyed_store.aggregate_calls == []

    def test_pacing_between_groups(self, keyed_store, sleeper):
        keys = [f"pk-{i:03d}" for i in range(25)]

        run_key_groups(
            keyed_store, "transaction", keys, count_by_key,
            processing_delay_ms=200, sleep=sleeper,
        )

        assert sleeper.calls == [0.2, 0.2]

    def test_invalid_group_size(self, keyed_store):
        with pytest.raises(InvalidArgumentError):
            run_key_groups(keyed_store, "transaction", ["a"], count_by_key, group_size=0)


# =============================================================================
# Key sources
# =============================================================================


class TestKeySources:
    def test_static_source(self):
        source = StaticKeySource(["a", "b"])
        assert isinstance(source, KeySource)
        assert source.load_keys() == ["a", "b"]

    def test_file_source(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text(json.dumps(["pk-1", "pk-2"]), encoding="utf-8")

        assert FileKeySource(path).load_keys() == ["pk-1", "pk-2"]

    def test_file_source_missing_file(self, tmp_path):
        with pytest.raises(KeySourceError) as exc_info:
            FileKeySource(tmp_path / "absent.json").load_keys()
        assert exc_info.value.code == "KEY_SOURCE_ERROR"

    @pytest.mark.parametrize("payload", ['{"keys": []}', "[1, 2]", "not json"])
    def test_file_source_malformed(self, tmp_path, payload):
        path = tmp_path / "keys.json"
        path.write_text(payload, encoding="utf-8")

        with pytest.raises(KeySourceError):
            FileKeySource(path).load_keys()

    def test_latest_report_source_picks_newest(self, tmp_path):
        (tmp_path / "public-keys_2024-01-01T00-00-00.json").write_text('["old"]')
        (tmp_path / "public-keys_2024-06-01T00-00-00.json").write_text('["new"]')
        (tmp_path / "other_2025-01-01T00-00-00.json").write_text('["other"]')

        assert LatestReportKeySource(tmp_path).load_keys() == ["new"]

    def test_latest_report_source_without_files(self, tmp_path):
        with pytest.raises(KeySourceError, match="no key file found"):
            LatestReportKeySource(tmp_path).load_keys()

    def test_query_source_extracts_all_keys(self, keyed_store, config):
        source = QueryKeySource(
            keyed_store, "transaction", EXTRACT_PUBLIC_KEYS_PIPELINE, "publicKey",
            config.with_overrides(max_batches=1),
        )

        keys = source.load_keys()

        # max_batches is ignored for key extraction
        assert len(keys) == 37
        assert keys[0] == "pk-000"
        assert keyed_store.aggregate_calls[0][3] is True
