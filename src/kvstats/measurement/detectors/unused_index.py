"""Unused secondary index detector.

Tracks the last time each ``table:index`` scope was used.  An index with no
recorded operation in the seven days before the reference time is flagged
for removal; it still costs storage and write capacity on every write.

The reference time is the engine's clock when it runs live, else the latest
record timestamp.
"""

from __future__ import annotations

from kvstats.domain.enums import Category, Severity
from kvstats.domain.values import EstimatedImpact, Recommendation
from kvstats.measurement.detectors.base import BaseDetector, DetectionContext

DAY_MS = 24 * 60 * 60 * 1000.0


class UnusedIndexDetector(BaseDetector):
    """Secondary indexes with no traffic inside the staleness window."""

    def __init__(self, stale_after_ms: float = 7 * DAY_MS) -> None:
        self._stale_after_ms = stale_after_ms

    @property
    def name(self) -> str:
        return "unused_index"

    @property
    def category(self) -> Category:
        return Category.UNUSED_INDEX

    def last_seen(self, ctx: DetectionContext) -> dict[tuple[str, str], tuple[float, int]]:
        """``(table, index) -> (last timestamp, operation count)``."""
        seen: dict[tuple[str, str], tuple[float, int]] = {}
        for record in ctx.records:
            if not record.index_name:
                continue
            key = (record.table_name, record.index_name)
            last, count = seen.get(key, (record.timestamp, 0))
            seen[key] = (max(last, record.timestamp), count + 1)
        return seen

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        reference = ctx.reference_time_ms
        if reference is None:
            return []

        recommendations: list[Recommendation] = []
        for (table, index), (last, count) in self.last_seen(ctx).items():
            idle_ms = reference - last
            if idle_ms <= self._stale_after_ms:
                continue
            idle_days = idle_ms / DAY_MS
            recommendations.append(
                Recommendation(
                    severity=Severity.INFO,
                    category=self.category,
                    message=f"Unused index detected: {table}:{index}",
                    details=(
                        f"Index '{index}' on table '{table}' has not been used for "
                        f"{idle_days:.1f} days ({count} operations recorded in total)."
                    ),
                    suggested_action=(
                        "Confirm no access pattern still needs the index, then remove "
                        "it to save storage and write capacity."
                    ),
                    affected_operations=(),
                    estimated_impact=EstimatedImpact(
                        cost_reduction="Saves index storage and the write units of replicating every write",
                        score=min(1.0, idle_ms / (idle_ms + self._stale_after_ms)),
                    ),
                    frequency=count,
                    detector=self.name,
                    metadata={
                        "table_name": table,
                        "index_name": index,
                        "last_used_timestamp": last,
                        "idle_days": idle_days,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return f"Unused index: no use for {self._stale_after_ms / DAY_MS:.0f} days."
