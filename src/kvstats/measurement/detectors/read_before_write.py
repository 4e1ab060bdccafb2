"""Read-before-write detector.

A get followed shortly by a put on the same key is usually a client-side
read-modify-write.  An in-place update does the same job in one call and
without the race between the read and the write.

For every key (table + partition key + sort key) each get counts once if a
put on that key lands strictly after it and within 5 seconds.  Keys with at
least three such pairs are reported.
"""

from __future__ import annotations

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    group_by,
)
from kvstats.measurement.detectors.windows import count_followed_by


def _item_key(record: OperationRecord) -> tuple[str, str] | None:
    key = record.key_id
    if key is None:
        return None
    return (record.table_name, key)


class ReadBeforeWriteDetector(BaseDetector):
    """Get-then-put pairs on one key that should be a single update."""

    def __init__(
        self,
        window_ms: float = 5000.0,
        min_occurrences: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        self._window_ms = window_ms
        self._min_occurrences = max(1, min_occurrences)

    @property
    def name(self) -> str:
        return "read_before_write"

    @property
    def category(self) -> Category:
        return Category.READ_BEFORE_WRITE

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        gets = group_by(ctx.where(lambda r: r.operation is OperationType.GET), _item_key)
        puts = group_by(ctx.where(lambda r: r.operation is OperationType.PUT), _item_key)

        recommendations: list[Recommendation] = []
        for (table, key), get_ops in gets.items():
            put_ops = puts.get((table, key))
            if not put_ops:
                continue
            pairs = count_followed_by(get_ops, put_ops, self._window_ms)
            if pairs < self._min_occurrences:
                continue
            recommendations.append(
                Recommendation(
                    severity=Severity.INFO,
                    category=self.category,
                    message=f"Read-before-write pattern detected on {key}",
                    details=(
                        f"Detected {pairs} get operations on key '{key}' in table "
                        f"'{table}' followed by a put on the same key within "
                        f"{self._window_ms / 1000:.0f}s. The item is read, modified "
                        f"client-side and written back."
                    ),
                    suggested_action=(
                        "Use update() with an update expression instead of get() + put(). "
                        "It modifies the item in place, needs no prior read and avoids "
                        "lost updates between the read and the write."
                    ),
                    affected_operations=("get", "put"),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Reduced latency by eliminating the read",
                        cost_reduction="50% reduction in operations (eliminate get)",
                        score=0.5,
                    ),
                    frequency=pairs * 2,
                    detector=self.name,
                    metadata={
                        "table_name": table,
                        "key": key,
                        "occurrences": pairs,
                        "operation_reduction": 0.5,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Read-before-write: >= {self._min_occurrences} get->put pairs on one key "
            f"within {self._window_ms:.0f}ms."
        )
