"""Projection opportunity detector.

Reads that fetch whole items when the caller needs a few attributes waste
transfer and read capacity.  For each read operation type the detector
compares how many calls asked for a projection::

    usage_rate = projected_calls / calls

and reports the type when ``usage_rate < 0.5`` and more than ten calls
fetched full items.
"""

from __future__ import annotations

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, Recommendation
from kvstats.measurement.detectors.base import BaseDetector, DetectionContext, group_by, percent

_READ_OPERATIONS = (
    OperationType.GET,
    OperationType.QUERY,
    OperationType.SCAN,
    OperationType.BATCH_GET,
)


class ProjectionDetector(BaseDetector):
    """Read operation types that mostly fetch full items."""

    def __init__(self, max_usage_rate: float = 0.5, min_full_fetches: int = 10) -> None:
        self._max_usage_rate = max_usage_rate
        self._min_full_fetches = min_full_fetches

    @property
    def name(self) -> str:
        return "projection"

    @property
    def category(self) -> Category:
        return Category.PERFORMANCE

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) > self._min_full_fetches

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        reads = ctx.where(lambda r: r.operation in _READ_OPERATIONS)
        by_type = group_by(reads, lambda r: r.operation)

        recommendations: list[Recommendation] = []
        for op_type in _READ_OPERATIONS:
            ops = by_type.get(op_type)
            if not ops:
                continue
            full = sum(1 for op in ops if not op.used_projection)
            usage_rate = 1.0 - full / len(ops)
            if usage_rate >= self._max_usage_rate or full <= self._min_full_fetches:
                continue
            recommendations.append(
                Recommendation(
                    severity=Severity.INFO,
                    category=self.category,
                    message=f"Consider projection expressions for {op_type.value} operations",
                    details=(
                        f"Only {percent(usage_rate)} of {op_type.value} operations use a "
                        f"projection. {full} operations fetch full items when they might "
                        f"only need specific attributes."
                    ),
                    suggested_action=(
                        f"Add a projection expression to {op_type.value} calls to fetch "
                        "only the attributes you need."
                    ),
                    affected_operations=(op_type.value,),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Reduced data transfer and read capacity",
                        cost_reduction="Lower read capacity costs",
                        score=0.5 * (1.0 - usage_rate),
                    ),
                    frequency=full,
                    detector=self.name,
                    metadata={
                        "operation": op_type.value,
                        "projection_usage_rate": usage_rate,
                        "full_fetches": full,
                        "total_calls": len(ops),
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Projection: read types with projection usage below "
            f"{percent(self._max_usage_rate)} and > {self._min_full_fetches} full fetches."
        )
