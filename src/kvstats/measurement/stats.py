"""Aggregate views over recorded operations.

Two families of running totals are kept: one per operation type and one per
access-pattern name.  :class:`StatsAccumulator` updates them incrementally as
records arrive; :func:`compute_stats` rebuilds the same view from a raw
buffer so the incremental path can be checked against a full replay.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from kvstats.domain.values import OperationRecord


# ---------------------------------------------------------------------------
# Aggregate value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationTypeStats:
    """Totals for one operation type."""

    count: int = 0
    total_latency_ms: float = 0.0
    total_read_units: float = 0.0
    total_write_units: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.count if self.count else 0.0

    def add(self, record: OperationRecord) -> OperationTypeStats:
        return replace(
            self,
            count=self.count + 1,
            total_latency_ms=self.total_latency_ms + record.latency_ms,
            total_read_units=self.total_read_units + (record.consumed_read_units or 0.0),
            total_write_units=self.total_write_units + (record.consumed_write_units or 0.0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_latency_ms": self.total_latency_ms,
            "avg_latency_ms": self.avg_latency_ms,
            "total_read_units": self.total_read_units,
            "total_write_units": self.total_write_units,
        }


@dataclass(frozen=True)
class AccessPatternStats:
    """Totals for one access-pattern name."""

    count: int = 0
    total_latency_ms: float = 0.0
    total_read_units: float = 0.0
    total_write_units: float = 0.0
    total_items_returned: int = 0

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.count if self.count else 0.0

    @property
    def avg_items_returned(self) -> float:
        return self.total_items_returned / self.count if self.count else 0.0

    def add(self, record: OperationRecord) -> AccessPatternStats:
        return replace(
            self,
            count=self.count + 1,
            total_latency_ms=self.total_latency_ms + record.latency_ms,
            total_read_units=self.total_read_units + (record.consumed_read_units or 0.0),
            total_write_units=self.total_write_units + (record.consumed_write_units or 0.0),
            total_items_returned=self.total_items_returned + record.item_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_latency_ms": self.total_latency_ms,
            "avg_latency_ms": self.avg_latency_ms,
            "total_read_units": self.total_read_units,
            "total_write_units": self.total_write_units,
            "total_items_returned": self.total_items_returned,
            "avg_items_returned": self.avg_items_returned,
        }


@dataclass(frozen=True)
class TableStats:
    """Immutable snapshot of every aggregate.

    Attributes
    ----------
    operations:
        Operation tag (``"get"``, ``"batchWrite"``...) to totals.
    access_patterns:
        Access-pattern name to totals.
    """

    operations: dict[str, OperationTypeStats] = field(default_factory=dict)
    access_patterns: dict[str, AccessPatternStats] = field(default_factory=dict)

    @property
    def total_operations(self) -> int:
        return sum(s.count for s in self.operations.values())

    @property
    def total_read_units(self) -> float:
        return sum(s.total_read_units for s in self.operations.values())

    @property
    def total_write_units(self) -> float:
        return sum(s.total_write_units for s in self.operations.values())

    def is_empty(self) -> bool:
        return not self.operations and not self.access_patterns

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "operations": {k: v.to_dict() for k, v in self.operations.items()},
            "access_patterns": {k: v.to_dict() for k, v in self.access_patterns.items()},
        }


# ---------------------------------------------------------------------------
# Running accumulator
# ---------------------------------------------------------------------------

class StatsAccumulator:
    """Mutable running totals, updated one record at a time.

    Not thread-safe on its own; :class:`~kvstats.measurement.collector.StatsCollector`
    guards it with the same lock as the raw buffer.
    """

    def __init__(self) -> None:
        self._operations: dict[str, OperationTypeStats] = {}
        self._patterns: dict[str, AccessPatternStats] = {}

    def add(self, record: OperationRecord) -> None:
        op = record.operation.value
        self._operations[op] = self._operations.get(op, OperationTypeStats()).add(record)
        if record.access_pattern_name:
            name = record.access_pattern_name
            self._patterns[name] = self._patterns.get(name, AccessPatternStats()).add(record)

    def snapshot(self) -> TableStats:
        # entries are frozen, so shallow dict copies are enough
        return TableStats(
            operations=dict(self._operations),
            access_patterns=dict(self._patterns),
        )

    def clear(self) -> None:
        self._operations.clear()
        self._patterns.clear()


def compute_stats(records: Iterable[OperationRecord]) -> TableStats:
    """Rebuild the aggregate view from scratch over *records*."""
    acc = StatsAccumulator()
    for record in records:
        acc.add(record)
    return acc.snapshot()
