"""Threshold detectors driven by :class:`~kvstats.infrastructure.config.Thresholds`.

:class:`SlowOperationsDetector` reports operation types whose calls exceed
``slow_query_ms``.  :class:`HighCapacityUsageDetector` reports access
patterns whose calls consume more than ``high_read_units`` or
``high_write_units`` each.  Both read their cutoffs from the run's config, so
changing the config changes their behaviour without rebuilding the catalogue.
"""

from __future__ import annotations

import numpy as np

from kvstats.domain.enums import Category, Severity
from kvstats.domain.values import EstimatedImpact, Recommendation
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    group_by,
    operation_tags,
)


class SlowOperationsDetector(BaseDetector):
    """Operation types with repeated calls slower than ``slow_query_ms``."""

    def __init__(self, min_occurrences: int = DEFAULT_MIN_SAMPLES) -> None:
        self._min_occurrences = max(1, min_occurrences)

    @property
    def name(self) -> str:
        return "slow_operations"

    @property
    def category(self) -> Category:
        return Category.PERFORMANCE

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        limit = ctx.config.thresholds.slow_query_ms
        slow = ctx.where(lambda r: r.latency_ms > limit)

        recommendations: list[Recommendation] = []
        for operation, ops in group_by(slow, lambda r: r.operation).items():
            if len(ops) < self._min_occurrences:
                continue
            latencies = np.asarray([op.latency_ms for op in ops], dtype=np.float64)
            avg = float(latencies.mean())
            worst = float(latencies.max())
            groups = sorted({op.group_key for op in ops})
            recommendations.append(
                Recommendation(
                    severity=Severity.WARNING,
                    category=self.category,
                    message=f"Slow {operation.value} operations detected",
                    details=(
                        f"{len(ops)} {operation.value} operations took longer than "
                        f"{limit:.0f}ms (avg {avg:.0f}ms, max {worst:.0f}ms) in "
                        + ", ".join(f"'{g}'" for g in groups)
                        + "."
                    ),
                    suggested_action=(
                        "Check for scans or unselective queries behind these calls, "
                        "reduce page sizes, or add an index matching the access pattern."
                    ),
                    affected_operations=(operation.value,),
                    estimated_impact=EstimatedImpact(
                        performance_improvement=f"Bring latency under {limit:.0f}ms",
                        score=min(1.0, 1.0 - limit / avg) if avg > 0 else 0.0,
                    ),
                    frequency=len(ops),
                    detector=self.name,
                    metadata={
                        "operation": operation.value,
                        "slow_count": len(ops),
                        "avg_latency_ms": avg,
                        "max_latency_ms": worst,
                        "threshold_ms": limit,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Slow operations: >= {self._min_occurrences} calls of one type above "
            f"the slow_query_ms threshold."
        )


class HighCapacityUsageDetector(BaseDetector):
    """Access patterns whose calls consume unusually many capacity units."""

    def __init__(self, min_occurrences: int = DEFAULT_MIN_SAMPLES) -> None:
        self._min_occurrences = max(1, min_occurrences)

    @property
    def name(self) -> str:
        return "high_capacity_usage"

    @property
    def category(self) -> Category:
        return Category.COST

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        thresholds = ctx.config.thresholds
        recommendations: list[Recommendation] = []
        for kind, limit, units_of in (
            ("read", thresholds.high_read_units, lambda r: r.consumed_read_units or 0.0),
            ("write", thresholds.high_write_units, lambda r: r.consumed_write_units or 0.0),
        ):
            heavy = ctx.where(lambda r, f=units_of, lim=limit: f(r) > lim)
            for group, ops in group_by(heavy, lambda r: r.group_key).items():
                if len(ops) < self._min_occurrences:
                    continue
                units = np.asarray([units_of(op) for op in ops], dtype=np.float64)
                avg = float(units.mean())
                recommendations.append(
                    Recommendation(
                        severity=Severity.WARNING,
                        category=self.category,
                        message=f"High {kind} capacity usage in {group}",
                        details=(
                            f"{len(ops)} operations in '{group}' consumed more than "
                            f"{limit:.0f} {kind} units each (avg {avg:.1f}, total "
                            f"{float(units.sum()):.1f})."
                        ),
                        suggested_action=(
                            "Project only the attributes you need, narrow the key "
                            "condition, or shrink the items read or written."
                            if kind == "read"
                            else "Shrink the items written, or write only the changed "
                            "attributes with update()."
                        ),
                        affected_operations=operation_tags(ops),
                        estimated_impact=EstimatedImpact(
                            cost_reduction=f"Fewer consumed {kind} units per call",
                            score=min(1.0, 1.0 - limit / avg) if avg > 0 else 0.0,
                        ),
                        frequency=len(ops),
                        detector=self.name,
                        metadata={
                            "group": group,
                            "unit_kind": kind,
                            "avg_units": avg,
                            "total_units": float(units.sum()),
                            "threshold_units": limit,
                        },
                    )
                )
        return recommendations

    def describe(self) -> str:
        return (
            f"High capacity usage: >= {self._min_occurrences} calls above the "
            f"high_read_units / high_write_units thresholds."
        )
