"""Batch-get opportunity detector.

Bursts of single-item gets against one access pattern could be served by a
single batch-get request.  Gets are swept into 1-second clusters exactly as
:mod:`~kvstats.measurement.detectors.sequential_writes` does for writes, with
a higher bar (five gets) since reads are cheap to issue one by one.

Formula
-------
::

    batch_requests = ceil(cluster_size / 100)

where 100 is the store's batch-get item limit.
"""

from __future__ import annotations

import math

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import BaseDetector, DetectionContext, group_by
from kvstats.measurement.detectors.windows import time_clusters

BATCH_GET_LIMIT = 100


class BatchGetDetector(BaseDetector):
    """Clusters of individual gets that could be one batch-get request."""

    def __init__(
        self,
        window_ms: float = 1000.0,
        min_cluster_size: int = 5,
        batch_limit: int = BATCH_GET_LIMIT,
    ) -> None:
        self._window_ms = window_ms
        self._min_cluster_size = max(2, min_cluster_size)
        self._batch_limit = max(1, batch_limit)

    @property
    def name(self) -> str:
        return "batch_get"

    @property
    def category(self) -> Category:
        return Category.BATCH_OPPORTUNITY

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) >= self._min_cluster_size

    def batch_requests(self, cluster_size: int) -> int:
        return math.ceil(cluster_size / self._batch_limit)

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        gets = ctx.where(lambda r: r.operation is OperationType.GET)
        recommendations: list[Recommendation] = []
        for group, ops in group_by(gets, lambda r: r.group_key).items():
            for cluster in time_clusters(ops, self._window_ms, self._min_cluster_size):
                recommendations.append(self._build(group, cluster))
        return recommendations

    def _build(self, group: str, cluster: list[OperationRecord]) -> Recommendation:
        size = len(cluster)
        batches = self.batch_requests(size)
        return Recommendation(
            severity=Severity.INFO,
            category=self.category,
            message=f"Batch get opportunity in {group}",
            details=(
                f"{size} individual get operations in '{group}' completed within "
                f"{self._window_ms:.0f}ms. They could be combined into {batches} "
                f"batchGet request{'s' if batches != 1 else ''}."
            ),
            suggested_action=(
                f"Use batchGet() to retrieve up to {self._batch_limit} items in a "
                "single request."
            ),
            affected_operations=(OperationType.GET.value,),
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
            f"Batch get: >= {self._min_cluster_size} gets within "
            f"{self._window_ms:.0f}ms (batch limit {self._batch_limit})."
        )
