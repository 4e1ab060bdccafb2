"""Shared fixtures for the kvstats test suite."""

from __future__ import annotations

import pytest

from kvstats.domain.values import OperationRecord
from kvstats.infrastructure.config import StatsConfig
from kvstats.measurement.collector import StatsCollector
from kvstats.measurement.engine import RecommendationEngine
from tests.helpers.records import T0, make_op

# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> StatsConfig:
    """Full-capture config with a fixed sampling seed."""
    return StatsConfig(seed=7)


@pytest.fixture
def collector(config: StatsConfig) -> StatsCollector:
    return StatsCollector(config)


@pytest.fixture
def engine(config: StatsConfig) -> RecommendationEngine:
    """Engine with the default catalogue and no live clock."""
    return RecommendationEngine(config)


# ---------------------------------------------------------------------------
# Record fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_op() -> OperationRecord:
    """A keyed query on the primary index."""
    return make_op(
        "query",
        T0,
        latency_ms=12.5,
        table_name="users",
        access_pattern_name="getUserOrders",
        consumed_read_units=2.5,
        item_count=10,
        scanned_count=12,
        partition_key_value="USER#1",
    )


@pytest.fixture
def mixed_ops() -> list[OperationRecord]:
    """A small mix of reads and writes across two access patterns."""
    return [
        make_op("get", T0, latency_ms=4.0, consumed_read_units=0.5,
                access_pattern_name="getUser", partition_key_value="USER#1"),
        make_op("put", T0 + 10, latency_ms=8.0, consumed_write_units=1.0,
                access_pattern_name="saveUser", partition_key_value="USER#2"),
        make_op("get", T0 + 20, latency_ms=6.0, consumed_read_units=0.5,
                access_pattern_name="getUser", partition_key_value="USER#3"),
        make_op("delete", T0 + 30, latency_ms=5.0, consumed_write_units=1.0,
                partition_key_value="USER#4"),
    ]
