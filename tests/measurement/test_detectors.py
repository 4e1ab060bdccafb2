"""Tests for the detector catalogue."""

from __future__ import annotations

import math

import pytest

from kvstats.domain.enums import Category, Severity
from kvstats.domain.values import OperationRecord
from kvstats.infrastructure.config import CapacityBaseline, StatsConfig, Thresholds
from kvstats.measurement.detectors import (
    BatchGetDetector,
    CapacityModeDetector,
    ConcatenatedKeyDetector,
    FetchingToFilterDetector,
    FrequentScansDetector,
    HighCapacityUsageDetector,
    HotPartitionDetector,
    LargeItemDetector,
    ProjectionDetector,
    ReadBeforeWriteDetector,
    ScanInefficiencyDetector,
    SequentialWritesDetector,
    SlowOperationsDetector,
    UniformPartitionKeyDetector,
    UnusedIndexDetector,
)
from kvstats.measurement.engine import default_detectors
from tests.helpers.records import DAY_MS, HOUR_MS, SECOND_MS, T0, make_ctx, make_op

KB = 1024


def _keyed(pk: str, n: int, start: float = T0, operation: str = "get", **kwargs: object) -> list[OperationRecord]:
    """*n* operations on partition key *pk*, one second apart."""
    return [
        make_op(operation, start + i * 1000, partition_key_value=pk, **kwargs)
        for i in range(n)
    ]


def _unique(n: int, start: float = T0 + 500_000) -> list[OperationRecord]:
    """*n* gets on distinct partition keys."""
    return [
        make_op("get", start + i * 1000, partition_key_value=f"OTHER#{i}")
        for i in range(n)
    ]


def _scans(
    n: int,
    item_count: int,
    scanned_count: int,
    operation: str = "scan",
    **kwargs: object,
) -> list[OperationRecord]:
    return [
        make_op(operation, T0 + i * 1000, item_count=item_count,
                scanned_count=scanned_count, **kwargs)
        for i in range(n)
    ]


# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------


class TestCatalogue:
    """Properties every default detector must satisfy."""

    @pytest.fixture
    def busy_ctx(self):
        records = (
            _keyed("USER#1", 30, operation="put", item_size_bytes=150 * KB)
            + _scans(3, 2, 1000, filter_applied=True)
            + [make_op("put", T0 + 100_000 + i, partition_key_value=str(i)) for i in range(25)]
        )
        return make_ctx(records)

    def test_empty_buffer_yields_nothing(self) -> None:
        ctx = make_ctx([])
        for detector in default_detectors():
            assert detector.detect(ctx) == []

    def test_idempotent(self, busy_ctx) -> None:
        for detector in default_detectors():
            assert detector.detect(busy_ctx) == detector.detect(busy_ctx)

    def test_recommendations_tagged(self, busy_ctx) -> None:
        for detector in default_detectors():
            for rec in detector.detect(busy_ctx):
                assert rec.detector == detector.name
                assert rec.category is detector.category

    def test_unique_names_and_descriptions(self) -> None:
        detectors = default_detectors()
        names = [d.name for d in detectors]
        assert len(set(names)) == len(names)
        for d in detectors:
            assert d.describe()
            assert d.name in repr(d)


class TestDetectionContext:
    def test_reference_time_live(self) -> None:
        assert make_ctx([make_op()], now_ms=T0 + 5).reference_time_ms == T0 + 5

    def test_reference_time_latest_record(self) -> None:
        ctx = make_ctx([make_op("get", T0 + 9), make_op("get", T0)])
        assert ctx.reference_time_ms == T0 + 9

    def test_reference_time_empty(self) -> None:
        assert make_ctx([]).reference_time_ms is None


# ---------------------------------------------------------------------------
# Hot partition
# ---------------------------------------------------------------------------


class TestHotPartition:
    """Share of keyed traffic per partition key."""

    def test_error_above_half(self) -> None:
        ctx = make_ctx(_keyed("A", 6) + _unique(4))
        recs = HotPartitionDetector().detect(ctx)
        assert len(recs) == 1
        assert recs[0].severity is Severity.ERROR
        assert recs[0].category is Category.HOT_PARTITION
        assert recs[0].metadata["partition"] == "A"
        assert recs[0].metadata["share"] == pytest.approx(0.6)
        assert recs[0].frequency == 6
        assert "60.0%" in recs[0].details

    def test_warning_above_thirty_percent(self) -> None:
        recs = HotPartitionDetector().detect(make_ctx(_keyed("A", 7) + _unique(13)))
        assert [r.severity for r in recs] == [Severity.WARNING]

    def test_info_above_ten_percent(self) -> None:
        recs = HotPartitionDetector().detect(make_ctx(_keyed("A", 3) + _unique(17)))
        assert [r.severity for r in recs] == [Severity.INFO]

    def test_exactly_ten_percent_not_flagged(self) -> None:
        recs = HotPartitionDetector().detect(make_ctx(_keyed("A", 3) + _unique(27)))
        assert recs == []

    def test_min_samples(self) -> None:
        recs = HotPartitionDetector().detect(make_ctx(_keyed("A", 2) + _keyed("B", 2)))
        assert recs == []

    def test_fallback_to_index_scope(self) -> None:
        index_ops = [
            make_op("query", T0 + i, table_name="orders", index_name="gsi1")
            for i in range(5)
        ]
        keyed = [
            make_op("get", T0 + 100 + i, table_name="orders", partition_key_value=f"O#{i}")
            for i in range(5)
        ]
        recs = HotPartitionDetector().detect(make_ctx(index_ops + keyed))
        assert len(recs) == 1
        assert recs[0].metadata["partition"] == "orders:gsi1"
        assert recs[0].severity is Severity.WARNING
        assert "multi-attribute" in (recs[0].suggested_action or "")

    def test_scans_excluded_from_fallback(self) -> None:
        scans = [make_op("scan", T0 + i) for i in range(10)]
        recs = HotPartitionDetector().detect(make_ctx(scans + _keyed("A", 3)))
        assert len(recs) == 1
        assert recs[0].metadata["partition"] == "A"
        assert recs[0].severity is Severity.ERROR

    def test_same_key_on_two_tables(self) -> None:
        ops = _keyed("A", 3, table_name="t1") + _keyed("A", 3, table_name="t2")
        recs = HotPartitionDetector().detect(make_ctx(ops))
        assert {r.metadata["table_name"] for r in recs} == {"t1", "t2"}


# ---------------------------------------------------------------------------
# Scan efficiency
# ---------------------------------------------------------------------------


class TestScanInefficiency:
    """Mean returned/examined ratio per group."""

    def test_warning_below_twenty_percent(self) -> None:
        recs = ScanInefficiencyDetector().detect(make_ctx(_scans(3, 2, 1000)))
        assert len(recs) == 1
        assert recs[0].severity is Severity.WARNING
        assert recs[0].metadata["efficiency"] == pytest.approx(0.002)
        assert recs[0].impact_score == pytest.approx(0.998)
        assert "query on an index" in (recs[0].suggested_action or "")

    def test_info_between_twenty_and_fifty(self) -> None:
        recs = ScanInefficiencyDetector().detect(make_ctx(_scans(3, 400, 1000)))
        assert [r.severity for r in recs] == [Severity.INFO]

    @pytest.mark.parametrize(
        ("item_count", "expected"),
        [
            (199, Severity.WARNING),
            (200, Severity.INFO),
            (499, Severity.INFO),
            (500, None),
        ],
    )
    def test_boundaries(self, item_count: int, expected: Severity | None) -> None:
        recs = ScanInefficiencyDetector().detect(make_ctx(_scans(3, item_count, 1000)))
        assert [r.severity for r in recs] == ([expected] if expected else [])

    def test_min_samples(self) -> None:
        assert ScanInefficiencyDetector().detect(make_ctx(_scans(2, 2, 1000))) == []

    def test_groups_isolated(self) -> None:
        bad = _scans(3, 2, 1000, access_pattern_name="listAll")
        good = _scans(3, 900, 1000, access_pattern_name="listActive")
        recs = ScanInefficiencyDetector().detect(make_ctx(bad + good))
        assert [r.metadata["group"] for r in recs] == ["listAll"]

    def test_records_without_scanned_count_ignored(self) -> None:
        ops = [make_op("query", T0 + i, item_count=1) for i in range(5)]
        assert ScanInefficiencyDetector().detect(make_ctx(ops)) == []

    def test_query_suggests_key_condition(self) -> None:
        recs = ScanInefficiencyDetector().detect(make_ctx(_scans(3, 2, 1000, operation="query")))
        assert "key condition" in (recs[0].suggested_action or "")


class TestFetchingToFilter:
    def test_filtered_reads_flagged(self) -> None:
        ops = _scans(3, 10, 100, operation="query", filter_applied=True)
        recs = FetchingToFilterDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].severity is Severity.WARNING
        assert recs[0].category is Category.FETCHING_TO_FILTER
        assert "filter expression" in (recs[0].suggested_action or "")

    def test_unfiltered_reads_ignored(self) -> None:
        ops = _scans(3, 10, 100, operation="query")
        assert FetchingToFilterDetector().detect(make_ctx(ops)) == []

    def test_info_band(self) -> None:
        ops = _scans(3, 30, 100, filter_applied=True)
        recs = FetchingToFilterDetector().detect(make_ctx(ops))
        assert [r.severity for r in recs] == [Severity.INFO]


# ---------------------------------------------------------------------------
# Sequential writes
# ---------------------------------------------------------------------------


class TestSequentialWrites:
    """Clustered single writes that could be batched."""

    def test_thirty_puts_become_two_batches(self) -> None:
        ops = [make_op("put", T0 + i * 10, partition_key_value="USER#1") for i in range(30)]
        recs = SequentialWritesDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.category is Category.BATCH_OPPORTUNITY
        assert rec.severity is Severity.INFO
        assert rec.metadata["batch_requests"] == 2
        assert rec.frequency == 30
        assert "2 batch requests" in rec.details
        assert rec.impact_score == pytest.approx(1 - 2 / 30)

    def test_separate_clusters(self) -> None:
        offsets = [0, 100, 200, 5000, 5100, 5200]
        ops = [make_op("put", T0 + o) for o in offsets]
        recs = SequentialWritesDetector().detect(make_ctx(ops))
        assert [r.metadata["cluster_size"] for r in recs] == [3, 3]

    def test_two_writes_not_enough(self) -> None:
        ops = [make_op("put", T0), make_op("delete", T0 + 10)]
        assert SequentialWritesDetector().detect(make_ctx(ops)) == []

    def test_deletes_count(self) -> None:
        ops = [make_op("delete", T0 + i) for i in range(3)]
        recs = SequentialWritesDetector().detect(make_ctx(ops))
        assert recs[0].affected_operations == ("delete",)

    def test_reads_and_updates_ignored(self) -> None:
        ops = [make_op("get", T0 + i) for i in range(5)] + [make_op("update", T0 + i) for i in range(5)]
        assert SequentialWritesDetector().detect(make_ctx(ops)) == []

    def test_groups_isolated(self) -> None:
        ops = [make_op("put", T0 + i, table_name="a") for i in range(2)]
        ops += [make_op("put", T0 + i, table_name="b") for i in range(2)]
        assert SequentialWritesDetector().detect(make_ctx(ops)) == []

    def test_batch_count_monotonic(self) -> None:
        detector = SequentialWritesDetector()
        counts = [detector.batch_requests(n) for n in range(3, 120)]
        assert counts == sorted(counts)
        assert detector.batch_requests(25) == 1
        assert detector.batch_requests(26) == 2
        assert detector.batch_requests(51) == 3

    def test_one_recommendation_per_burst(self) -> None:
        for n in (3, 25, 26, 100, 500):
            ops = [make_op("put", T0 + i * (1000 / n)) for i in range(n)]
            recs = SequentialWritesDetector().detect(make_ctx(ops))
            assert len(recs) == 1, n
            assert recs[0].metadata["batch_requests"] == math.ceil(n / 25), n
            assert recs[0].frequency == n


# ---------------------------------------------------------------------------
# Read before write
# ---------------------------------------------------------------------------


def _get_put_pairs(n: int, put_delay: float = 100, **kwargs: object) -> list[OperationRecord]:
    ops: list[OperationRecord] = []
    for i in range(n):
        start = T0 + i * 60_000
        ops.append(make_op("get", start, partition_key_value="USER#1", **kwargs))
        ops.append(make_op("put", start + put_delay, partition_key_value="USER#1", **kwargs))
    return ops


class TestReadBeforeWrite:
    """Get then put on the same key."""

    def test_three_pairs(self) -> None:
        recs = ReadBeforeWriteDetector().detect(make_ctx(_get_put_pairs(3)))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.severity is Severity.INFO
        assert rec.category is Category.READ_BEFORE_WRITE
        assert rec.metadata["occurrences"] == 3
        assert rec.impact_score == pytest.approx(0.5)
        assert "50%" in (rec.estimated_impact.cost_reduction or "")
        assert "update()" in (rec.suggested_action or "")

    def test_two_pairs_not_enough(self) -> None:
        assert ReadBeforeWriteDetector().detect(make_ctx(_get_put_pairs(2))) == []

    def test_put_outside_window(self) -> None:
        assert ReadBeforeWriteDetector().detect(make_ctx(_get_put_pairs(3, put_delay=6000))) == []

    def test_simultaneous_put_not_counted(self) -> None:
        assert ReadBeforeWriteDetector().detect(make_ctx(_get_put_pairs(3, put_delay=0))) == []

    def test_sort_key_distinguishes_items(self) -> None:
        ops: list[OperationRecord] = []
        for i in range(3):
            start = T0 + i * 60_000
            ops.append(make_op("get", start, partition_key_value="U#1", sort_key_value="A"))
            ops.append(make_op("put", start + 100, partition_key_value="U#1", sort_key_value="B"))
        assert ReadBeforeWriteDetector().detect(make_ctx(ops)) == []

    def test_tables_distinguish_items(self) -> None:
        ops: list[OperationRecord] = []
        for i in range(3):
            start = T0 + i * 60_000
            ops.append(make_op("get", start, table_name="t1", partition_key_value="U#1"))
            ops.append(make_op("put", start + 100, table_name="t2", partition_key_value="U#1"))
        assert ReadBeforeWriteDetector().detect(make_ctx(ops)) == []


# ---------------------------------------------------------------------------
# Large items
# ---------------------------------------------------------------------------


class TestLargeItem:
    """Item size buckets."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (100 * KB - 1, None),
            (100 * KB, Severity.INFO),
            (300 * KB, Severity.INFO),
            (300 * KB + 1, Severity.WARNING),
            (350_000, Severity.WARNING),
        ],
    )
    def test_buckets(self, size: int, expected: Severity | None) -> None:
        recs = LargeItemDetector().detect(make_ctx([make_op("put", item_size_bytes=size)]))
        assert [r.severity for r in recs] == ([expected] if expected else [])

    def test_single_large_put_fires(self) -> None:
        recs = LargeItemDetector().detect(make_ctx([make_op("put", item_size_bytes=350_000)]))
        assert len(recs) == 1
        assert recs[0].metadata["max_size_bytes"] == 350_000
        assert "blob storage" in (recs[0].suggested_action or "")

    def test_both_buckets_in_one_group(self) -> None:
        ops = [
            make_op("put", T0, item_size_bytes=310_000),
            make_op("update", T0 + 1, item_size_bytes=350_000),
            make_op("put", T0 + 2, item_size_bytes=150 * KB),
        ]
        recs = LargeItemDetector().detect(make_ctx(ops))
        assert [r.severity for r in recs] == [Severity.WARNING, Severity.INFO]
        assert recs[0].metadata["avg_size_bytes"] == pytest.approx(330_000)
        assert recs[0].metadata["max_size_bytes"] == 350_000
        assert recs[0].frequency == 2

    def test_reads_ignored(self) -> None:
        ops = [make_op("get", item_size_bytes=390_000)]
        assert LargeItemDetector().detect(make_ctx(ops)) == []

    def test_invalid_bounds(self) -> None:
        with pytest.raises(ValueError, match="info_bytes"):
            LargeItemDetector(info_bytes=500 * KB, warning_bytes=300 * KB)


# ---------------------------------------------------------------------------
# Uniform partition keys
# ---------------------------------------------------------------------------


def _puts_with_keys(keys: list[str], **kwargs: object) -> list[OperationRecord]:
    return [
        make_op("put", T0 + i * 1000, partition_key_value=k, **kwargs)
        for i, k in enumerate(keys)
    ]


class TestUniformPartitionKey:
    """Sequential and temporal key passes."""

    def test_sequential_integers(self) -> None:
        ops = _puts_with_keys([str(i) for i in range(1, 26)])
        recs = UniformPartitionKeyDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].severity is Severity.WARNING
        assert recs[0].category is Category.UNIFORM_PARTITION_KEY
        assert recs[0].metadata["pattern"] == "sequential"
        assert recs[0].metadata["ratio"] == pytest.approx(1.0)
        assert "hash" in (recs[0].suggested_action or "")

    def test_below_min_samples(self) -> None:
        ops = _puts_with_keys([str(i) for i in range(1, 20)])
        assert UniformPartitionKeyDetector().detect(make_ctx(ops)) == []

    def test_exactly_min_samples(self) -> None:
        ops = _puts_with_keys([str(i) for i in range(1, 21)])
        assert len(UniformPartitionKeyDetector().detect(make_ctx(ops))) == 1

    def test_decreasing_not_flagged(self) -> None:
        ops = _puts_with_keys([str(i) for i in range(25, 0, -1)])
        assert UniformPartitionKeyDetector().detect(make_ctx(ops)) == []

    def test_prefixed_integers(self) -> None:
        ops = _puts_with_keys([f"ORDER#{i:04d}" for i in range(1, 26)])
        recs = UniformPartitionKeyDetector().detect(make_ctx(ops))
        assert recs[0].metadata["pattern"] == "sequential"

    def test_iso_dates(self) -> None:
        ops = _puts_with_keys([f"2024-01-{d:02d}" for d in range(1, 26)])
        recs = UniformPartitionKeyDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].metadata["pattern"] == "temporal"
        assert "sort key" in (recs[0].suggested_action or "")

    def test_epochs(self) -> None:
        ops = _puts_with_keys([str(1_700_000_000 + i * 60) for i in range(25)])
        recs = UniformPartitionKeyDetector().detect(make_ctx(ops))
        assert recs[0].metadata["pattern"] == "temporal"

    def test_opaque_keys(self) -> None:
        names = [f"USER#{chr(97 + i % 26)}{chr(97 + (i * 7) % 26)}" for i in range(25)]
        assert UniformPartitionKeyDetector().detect(make_ctx(_puts_with_keys(names))) == []

    def test_groups_counted_separately(self) -> None:
        ops = _puts_with_keys([str(i) for i in range(1, 11)], access_pattern_name="a")
        ops += _puts_with_keys([str(i) for i in range(1, 16)], access_pattern_name="b")
        assert UniformPartitionKeyDetector().detect(make_ctx(ops)) == []

    def test_reads_ignored(self) -> None:
        ops = [make_op("get", T0 + i, partition_key_value=str(i)) for i in range(1, 26)]
        assert UniformPartitionKeyDetector().detect(make_ctx(ops)) == []


# ---------------------------------------------------------------------------
# Unused index
# ---------------------------------------------------------------------------


class TestUnusedIndex:
    """Staleness relative to the latest record or the live clock."""

    def _index_op(self, ts: float) -> OperationRecord:
        return make_op("query", ts, table_name="orders", index_name="gsi1")

    def test_idle_index_flagged(self) -> None:
        ops = [self._index_op(T0), make_op("get", T0 + 8 * DAY_MS, table_name="orders")]
        recs = UnusedIndexDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.severity is Severity.INFO
        assert rec.category is Category.UNUSED_INDEX
        assert rec.metadata["index_name"] == "gsi1"
        assert rec.metadata["idle_days"] == pytest.approx(8.0)

    def test_recent_use_not_flagged(self) -> None:
        ops = [self._index_op(T0 + 2 * DAY_MS), make_op("get", T0 + 8 * DAY_MS)]
        assert UnusedIndexDetector().detect(make_ctx(ops)) == []

    def test_exactly_seven_days_not_flagged(self) -> None:
        ops = [self._index_op(T0), make_op("get", T0 + 7 * DAY_MS)]
        assert UnusedIndexDetector().detect(make_ctx(ops)) == []

    def test_live_clock(self) -> None:
        ctx = make_ctx([self._index_op(T0)], now_ms=T0 + 8 * DAY_MS)
        assert len(UnusedIndexDetector().detect(ctx)) == 1

    def test_without_live_clock_single_index_is_current(self) -> None:
        assert UnusedIndexDetector().detect(make_ctx([self._index_op(T0)])) == []

    def test_primary_only_traffic(self) -> None:
        ops = [make_op("get", T0), make_op("get", T0 + 30 * DAY_MS)]
        assert UnusedIndexDetector().detect(make_ctx(ops)) == []


# ---------------------------------------------------------------------------
# Capacity mode
# ---------------------------------------------------------------------------


def _hourly_reads(units: float, hours: int = 1, per_hour: int = 3) -> list[OperationRecord]:
    return [
        make_op("get", T0 + h * HOUR_MS + i * 1000, consumed_read_units=units)
        for h in range(hours)
        for i in range(per_hour)
    ]


def _per_second_reads(units: float, seconds: int = 300, start: float = T0) -> list[OperationRecord]:
    return [
        make_op("get", start + i * SECOND_MS, consumed_read_units=units)
        for i in range(seconds)
    ]


class TestCapacityModeWithBaseline:
    """Utilization against a provisioned baseline."""

    def _config(self, read: float = 0.0, write: float = 0.0, **kwargs: object) -> StatsConfig:
        return StatsConfig(capacity_baseline=CapacityBaseline(read, write), **kwargs)

    def test_underutilized_recommends_on_demand(self) -> None:
        ops = [make_op("get", T0 + h * HOUR_MS, consumed_read_units=100) for h in range(3)]
        recs = CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=10)))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.severity is Severity.INFO
        assert rec.category is Category.CAPACITY
        assert rec.metadata["recommended_mode"] == "on-demand"
        assert rec.metadata["observed_seconds"] == pytest.approx(7200)
        assert rec.metadata["mean_utilization"]["read"] == pytest.approx(300 / 7200 / 10)
        assert rec.metadata["provisioned_monthly_cost"] == pytest.approx(10 * 0.00013 * 730)
        assert rec.metadata["monthly_savings"] > 0
        assert "saved" in (rec.estimated_impact.cost_reduction or "")

    def test_sustained_full_capacity_burst_warns(self) -> None:
        # five minutes at exactly the provisioned rate
        ops = _per_second_reads(10)
        recs = CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=10)))
        assert len(recs) == 1
        assert recs[0].severity is Severity.WARNING
        assert recs[0].metadata["peak_utilization"]["read"] == pytest.approx(1.0)

    def test_burst_in_mostly_idle_window_warns(self) -> None:
        ops = _per_second_reads(10)
        ops.append(make_op("get", T0 + 3 * HOUR_MS, consumed_read_units=1))
        recs = CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=10)))
        assert [r.severity for r in recs] == [Severity.WARNING]
        assert recs[0].metadata["mean_utilization"]["read"] < 0.30

    def test_well_sized_capacity(self) -> None:
        ops = _per_second_reads(5)
        assert CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=10))) == []

    def test_sampled_buffer_scaled_up(self) -> None:
        ops = _per_second_reads(5)
        full = self._config(read=10)
        half = self._config(read=10, sample_rate=0.5)
        assert CapacityModeDetector().detect(make_ctx(ops, config=full)) == []
        recs = CapacityModeDetector().detect(make_ctx(ops, config=half))
        assert [r.severity for r in recs] == [Severity.WARNING]

    def test_no_reported_units_is_inconclusive(self) -> None:
        ops = [make_op("get", T0 + h * HOUR_MS) for h in range(5)]
        assert CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=10))) == []

    def test_unreported_dimension_ignored(self) -> None:
        ops = [make_op("get", T0 + h * HOUR_MS, consumed_read_units=100) for h in range(3)]
        cfg = self._config(read=10, write=10)
        recs = CapacityModeDetector().detect(make_ctx(ops, config=cfg))
        assert len(recs) == 1
        assert set(recs[0].metadata["mean_utilization"]) == {"read"}

    def test_min_samples(self) -> None:
        ops = _per_second_reads(1500, seconds=2)
        assert CapacityModeDetector().detect(make_ctx(ops, config=self._config(read=1))) == []


class TestCapacityModeTrafficShape:
    """Coefficient-of-variation fallback without a baseline."""

    def test_variable_traffic_on_demand(self) -> None:
        ops = _hourly_reads(1, hours=1, per_hour=30)
        ops.append(make_op("get", T0 + HOUR_MS + 1000))
        recs = CapacityModeDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].metadata["recommended_mode"] == "on-demand"
        assert recs[0].metadata["coefficient_of_variation"] > 0.5

    def test_steady_traffic_provisioned(self) -> None:
        recs = CapacityModeDetector().detect(make_ctx(_hourly_reads(1, hours=3, per_hour=20)))
        assert len(recs) == 1
        assert recs[0].metadata["recommended_mode"] == "provisioned"

    def test_single_hour_inconclusive(self) -> None:
        assert CapacityModeDetector().detect(make_ctx(_hourly_reads(1, per_hour=30))) == []

    def test_moderate_traffic_inconclusive(self) -> None:
        assert CapacityModeDetector().detect(make_ctx(_hourly_reads(1, hours=2, per_hour=10))) == []


# ---------------------------------------------------------------------------
# Concatenated keys
# ---------------------------------------------------------------------------


class TestConcatenatedKey:
    def test_partition_key(self) -> None:
        ops = [
            make_op("put", T0 + i, partition_key_value=f"TENANT#{i}#CUSTOMER#{i * 7}")
            for i in range(3)
        ]
        recs = ConcatenatedKeyDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.severity is Severity.INFO
        assert rec.category is Category.BEST_PRACTICE
        assert rec.metadata["tokens"] == ["TENANT", "CUSTOMER"]
        assert rec.metadata["key_attribute"] == "partition_key"
        assert "multi-attribute" in (rec.suggested_action or "")

    def test_sort_key(self) -> None:
        ops = [
            make_op("query", T0 + i, partition_key_value="USER#1", sort_key_value="ORDER#1#ITEM#2")
            for i in range(3)
        ]
        recs = ConcatenatedKeyDetector().detect(make_ctx(ops))
        assert [r.metadata["key_attribute"] for r in recs] == ["sort_key"]

    def test_min_samples(self) -> None:
        ops = [make_op("put", T0 + i, partition_key_value="TENANT#1#CUSTOMER#2") for i in range(2)]
        assert ConcatenatedKeyDetector().detect(make_ctx(ops)) == []

    def test_single_segment_keys_ignored(self) -> None:
        ops = [make_op("put", T0 + i, partition_key_value=f"USER#{i}") for i in range(5)]
        assert ConcatenatedKeyDetector().detect(make_ctx(ops)) == []


# ---------------------------------------------------------------------------
# Threshold detectors
# ---------------------------------------------------------------------------


class TestSlowOperations:
    def test_slow_queries(self) -> None:
        ops = [make_op("query", T0 + i, latency_ms=1500) for i in range(3)]
        recs = SlowOperationsDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].severity is Severity.WARNING
        assert recs[0].category is Category.PERFORMANCE
        assert recs[0].metadata["slow_count"] == 3
        assert recs[0].impact_score == pytest.approx(1 / 3)

    def test_threshold_from_config(self) -> None:
        ops = [make_op("query", T0 + i, latency_ms=1500) for i in range(3)]
        cfg = StatsConfig(thresholds=Thresholds(slow_query_ms=2000))
        assert SlowOperationsDetector().detect(make_ctx(ops, config=cfg)) == []

    def test_grouped_by_operation_type(self) -> None:
        ops = [make_op("scan", T0 + i, latency_ms=1200) for i in range(3)]
        ops += [make_op("query", T0 + i, latency_ms=1200) for i in range(2)]
        recs = SlowOperationsDetector().detect(make_ctx(ops))
        assert [r.metadata["operation"] for r in recs] == ["scan"]


class TestHighCapacityUsage:
    def test_heavy_reads(self) -> None:
        ops = [make_op("scan", T0 + i, consumed_read_units=150) for i in range(3)]
        recs = HighCapacityUsageDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        assert recs[0].category is Category.COST
        assert recs[0].metadata["unit_kind"] == "read"
        assert recs[0].metadata["avg_units"] == pytest.approx(150)

    def test_heavy_writes(self) -> None:
        ops = [make_op("put", T0 + i, consumed_write_units=150) for i in range(3)]
        recs = HighCapacityUsageDetector().detect(make_ctx(ops))
        assert [r.metadata["unit_kind"] for r in recs] == ["write"]

    def test_threshold_from_config(self) -> None:
        ops = [make_op("scan", T0 + i, consumed_read_units=150) for i in range(3)]
        cfg = StatsConfig(thresholds=Thresholds(high_read_units=200))
        assert HighCapacityUsageDetector().detect(make_ctx(ops, config=cfg)) == []


# ---------------------------------------------------------------------------
# Batch get
# ---------------------------------------------------------------------------


class TestBatchGet:
    """Bursts of single gets that one batchGet could serve."""

    def test_five_gets_in_a_second(self) -> None:
        ops = [make_op("get", T0 + i * 200) for i in range(5)]
        recs = BatchGetDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.category is Category.BATCH_OPPORTUNITY
        assert rec.severity is Severity.INFO
        assert rec.affected_operations == ("get",)
        assert rec.metadata["batch_requests"] == 1
        assert "batchGet" in (rec.suggested_action or "")

    def test_four_gets_not_enough(self) -> None:
        ops = [make_op("get", T0 + i * 200) for i in range(4)]
        assert BatchGetDetector().detect(make_ctx(ops)) == []

    def test_batch_limit(self) -> None:
        ops = [make_op("get", T0 + i * (1000 / 150)) for i in range(150)]
        recs = BatchGetDetector().detect(make_ctx(ops))
        assert [r.metadata["batch_requests"] for r in recs] == [2]
        assert recs[0].frequency == 150

    def test_spread_out_gets_ignored(self) -> None:
        ops = [make_op("get", T0 + i * 2000) for i in range(10)]
        assert BatchGetDetector().detect(make_ctx(ops)) == []

    def test_other_operations_and_groups_ignored(self) -> None:
        ops = [make_op("put", T0 + i) for i in range(5)]
        ops += [make_op("get", T0 + i, table_name="a") for i in range(3)]
        ops += [make_op("get", T0 + i, table_name="b") for i in range(3)]
        assert BatchGetDetector().detect(make_ctx(ops)) == []


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def _reads(operation: str, full: int, projected: int = 0) -> list[OperationRecord]:
    ops = [make_op(operation, T0 + i) for i in range(full)]
    ops += [make_op(operation, T0 + full + i, used_projection=True) for i in range(projected)]
    return ops


class TestProjection:
    """Read types that mostly fetch whole items."""

    def test_full_item_reads(self) -> None:
        recs = ProjectionDetector().detect(make_ctx(_reads("get", 11)))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.category is Category.PERFORMANCE
        assert rec.affected_operations == ("get",)
        assert rec.metadata["projection_usage_rate"] == pytest.approx(0.0)
        assert rec.metadata["full_fetches"] == 11

    def test_needs_more_than_ten_full_fetches(self) -> None:
        assert ProjectionDetector().detect(make_ctx(_reads("query", 10, projected=5))) == []

    def test_half_projected_is_fine(self) -> None:
        assert ProjectionDetector().detect(make_ctx(_reads("query", 12, projected=12))) == []

    def test_partial_usage_reported(self) -> None:
        recs = ProjectionDetector().detect(make_ctx(_reads("scan", 18, projected=12)))
        assert len(recs) == 1
        assert recs[0].metadata["projection_usage_rate"] == pytest.approx(0.4)
        assert "40.0%" in recs[0].details

    def test_one_recommendation_per_read_type(self) -> None:
        ops = _reads("query", 11) + _reads("get", 11) + _reads("put", 20)
        recs = ProjectionDetector().detect(make_ctx(ops))
        assert [r.metadata["operation"] for r in recs] == ["get", "query"]


# ---------------------------------------------------------------------------
# Frequent scans
# ---------------------------------------------------------------------------


class TestFrequentScans:
    """Tables scanned often enough to suggest a missing index."""

    def test_frequent_scans_on_one_table(self) -> None:
        ops = [
            make_op("scan", T0 + i, table_name="orders", access_pattern_name="listActive")
            for i in range(11)
        ]
        recs = FrequentScansDetector().detect(make_ctx(ops))
        assert len(recs) == 1
        rec = recs[0]
        assert rec.severity is Severity.WARNING
        assert rec.category is Category.PERFORMANCE
        assert rec.metadata["scan_count"] == 11
        assert rec.metadata["access_patterns"] == ["listActive"]
        assert rec.impact_score == pytest.approx(1.0)

    def test_ten_scans_not_enough(self) -> None:
        ops = [make_op("scan", T0 + i, table_name="orders") for i in range(10)]
        ops += [make_op("get", T0 + i, table_name="orders") for i in range(10)]
        assert FrequentScansDetector().detect(make_ctx(ops)) == []

    def test_per_table_threshold(self) -> None:
        ops = [make_op("scan", T0 + i, table_name="orders") for i in range(8)]
        ops += [make_op("scan", T0 + i, table_name="users") for i in range(5)]
        recs = FrequentScansDetector().detect(make_ctx(ops))
        assert [r.metadata["table_name"] for r in recs] == ["orders"]
        assert recs[0].metadata["total_scans"] == 13
