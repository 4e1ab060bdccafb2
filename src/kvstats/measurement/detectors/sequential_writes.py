"""Sequential writes (batch opportunity) detector.

Single-item puts and deletes issued in quick succession could travel in one
batch-write request.  Within each group the writes are sorted by timestamp
and swept into clusters that fit a 1-second span; every cluster of three or
more writes is reported.

Formula
-------
::

    batch_requests = ceil(cluster_size / 25)

where 25 is the store's batch-write item limit.
"""

from __future__ import annotations

import math

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    group_by,
    operation_tags,
)
from kvstats.measurement.detectors.windows import time_clusters

BATCH_WRITE_LIMIT = 25

_SINGLE_WRITES = frozenset({OperationType.PUT, OperationType.DELETE})


class SequentialWritesDetector(BaseDetector):
    """Clusters of individual writes that could be one batch request."""

    def __init__(
        self,
        window_ms: float = 1000.0,
        min_cluster_size: int = DEFAULT_MIN_SAMPLES,
        batch_limit: int = BATCH_WRITE_LIMIT,
    ) -> None:
        self._window_ms = window_ms
        self._min_cluster_size = max(2, min_cluster_size)
        self._batch_limit = max(1, batch_limit)

    @property
    def name(self) -> str:
        return "sequential_writes"

    @property
    def category(self) -> Category:
        return Category.BATCH_OPPORTUNITY

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) >= self._min_cluster_size

    def batch_requests(self, cluster_size: int) -> int:
        return math.ceil(cluster_size / self._batch_limit)

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        writes = ctx.where(lambda r: r.operation in _SINGLE_WRITES)
        groups = group_by(writes, lambda r: r.group_key)

        recommendations: list[Recommendation] = []
        for group, ops in groups.items():
            for cluster in time_clusters(ops, self._window_ms, self._min_cluster_size):
                recommendations.append(self._build(group, cluster))
        return recommendations

    def _build(self, group: str, cluster: list[OperationRecord]) -> Recommendation:
        size = len(cluster)
        batches = self.batch_requests(size)
        puts = sum(1 for op in cluster if op.operation is OperationType.PUT)
        deletes = size - puts
        span_ms = cluster[-1].timestamp - cluster[0].timestamp
        return Recommendation(
            severity=Severity.INFO,
            category=self.category,
            message=f"Sequential writes detected in {group}",
            details=(
                f"{size} individual write operations ({puts} puts, {deletes} deletes) "
                f"in '{group}' completed within {span_ms:.0f}ms. "
                f"{size} individual writes could become {batches} batch requests."
            ),
            suggested_action=(
                "Use batchWrite() to send up to "
                f"{self._batch_limit} puts and deletes in a single request."
            ),
            affected_operations=operation_tags(cluster),
            estimated_impact=EstimatedImpact(
                performance_improvement=f"Reduce {size} requests to {batches} batch requests",
                cost_reduction="Lower network overhead and improved latency",
                score=1.0 - batches / size,
            ),
            frequency=size,
            detector=self.name,
            metadata={
                "group": group,
                "cluster_size": size,
                "batch_requests": batches,
                "start_timestamp": cluster[0].timestamp,
                "end_timestamp": cluster[-1].timestamp,
            },
        )

    def describe(self) -> str:
        return (
            f"Sequential writes: >= {self._min_cluster_size} puts/deletes within "
            f"{self._window_ms:.0f}ms (batch limit {self._batch_limit})."
        )
