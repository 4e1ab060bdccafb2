"""Frequent scans (missing index) detector.

A workload that keeps scanning a table is usually missing an index for one
of its access patterns.  Once more than ten scans are buffered, every table
with more than five of them is reported.
"""

from __future__ import annotations

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, Recommendation
from kvstats.measurement.detectors.base import BaseDetector, DetectionContext, group_by


class FrequentScansDetector(BaseDetector):
    """Tables scanned often enough to suggest a missing secondary index."""

    def __init__(self, min_total_scans: int = 10, min_table_scans: int = 5) -> None:
        self._min_total = min_total_scans
        self._min_table = min_table_scans

    @property
    def name(self) -> str:
        return "frequent_scans"

    @property
    def category(self) -> Category:
        return Category.PERFORMANCE

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) > self._min_total

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        scans = ctx.where(lambda r: r.operation is OperationType.SCAN)
        if len(scans) <= self._min_total:
            return []

        recommendations: list[Recommendation] = []
        for table, ops in group_by(scans, lambda r: r.table_name).items():
            count = len(ops)
            if count <= self._min_table:
                continue
            patterns = sorted({op.access_pattern_name for op in ops if op.access_pattern_name})
            recommendations.append(
                Recommendation(
                    severity=Severity.WARNING,
                    category=self.category,
                    message=f"Frequent scans detected on {table}",
                    details=(
                        f"Found {count} scan operations on {table}. Scans read the whole "
                        f"table and grow more expensive as it grows."
                    ),
                    suggested_action=(
                        "Add a secondary index that supports these access patterns and "
                        "replace the scans with queries."
                    ),
                    affected_operations=(OperationType.SCAN.value,),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Significantly faster queries",
                        cost_reduction="Lower capacity consumption",
                        score=count / len(scans),
                    ),
                    frequency=count,
                    detector=self.name,
                    metadata={
                        "table_name": table,
                        "scan_count": count,
                        "total_scans": len(scans),
                        "access_patterns": patterns,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Frequent scans: > {self._min_table} scans on one table once more than "
            f"{self._min_total} scans are buffered."
        )
