"""Scan and fetch efficiency detectors.

Both detectors score groups of read operations by how much of what the store
examined was actually returned.

Formula
-------
::

    efficiency(op) = item_count / scanned_count          (capped to [0, 1])
    group_efficiency = mean(efficiency(op) for op in group)

Groups need at least three operations.

- ``group_efficiency < 20%`` -> ``warning``
- ``20% <= group_efficiency < 50%`` -> ``info``
- otherwise no recommendation

:class:`ScanInefficiencyDetector` looks at every scan and query that reports
``scanned_count``.  :class:`FetchingToFilterDetector` narrows that to calls
with ``filter_applied`` and recommends pushing the filter to the server.
"""

from __future__ import annotations

from abc import abstractmethod

import numpy as np

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    group_by,
    operation_tags,
    percent,
)

_SCAN_LIKE = frozenset({OperationType.SCAN, OperationType.QUERY})


class _EfficiencyDetector(BaseDetector):
    """Shared grouping and scoring for the efficiency detectors."""

    def __init__(
        self,
        warning_below: float = 0.20,
        info_below: float = 0.50,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        self._warning_below = warning_below
        self._info_below = info_below
        self._min_samples = max(1, min_samples)

    def _qualifies(self, record: OperationRecord) -> bool:
        return record.operation in _SCAN_LIKE and record.scanned_count is not None

    def _severity(self, efficiency: float) -> Severity | None:
        if efficiency < self._warning_below:
            return Severity.WARNING
        if efficiency < self._info_below:
            return Severity.INFO
        return None

    @abstractmethod
    def _build(
        self,
        group: str,
        ops: list[OperationRecord],
        efficiency: float,
        severity: Severity,
    ) -> Recommendation:
        """Turn one failing group into a recommendation."""
        ...

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        groups = group_by(
            ctx.where(self._qualifies),
            lambda r: r.group_key,
        )
        recommendations: list[Recommendation] = []
        for group, ops in groups.items():
            if len(ops) < self._min_samples:
                continue
            efficiency = float(np.mean([op.efficiency for op in ops]))
            severity = self._severity(efficiency)
            if severity is None:
                continue
            recommendations.append(self._build(group, ops, efficiency, severity))
        return recommendations


class ScanInefficiencyDetector(_EfficiencyDetector):
    """Scans and queries that examine far more items than they return."""

    @property
    def name(self) -> str:
        return "scan_inefficiency"

    @property
    def category(self) -> Category:
        return Category.SCAN_INEFFICIENCY

    def _build(
        self,
        group: str,
        ops: list[OperationRecord],
        efficiency: float,
        severity: Severity,
    ) -> Recommendation:
        scanned = sum(op.scanned_count or 0 for op in ops)
        returned = sum(op.item_count for op in ops)
        has_scan = any(op.operation is OperationType.SCAN for op in ops)
        action = (
            "Replace the scan with a query on an index whose key matches the access pattern."
            if has_scan
            else "Make the key condition more selective, or add an index keyed on the filtered attribute."
        )
        return Recommendation(
            severity=severity,
            category=self.category,
            message=f"Inefficient reads in {group}",
            details=(
                f"{len(ops)} operations in '{group}' averaged {percent(efficiency)} "
                f"efficiency ({returned} items returned out of {scanned} examined)."
            ),
            suggested_action=action,
            affected_operations=operation_tags(ops),
            estimated_impact=EstimatedImpact(
                cost_reduction=f"Up to {(1 - efficiency) * 100:.0f}% reduction in consumed read capacity",
                performance_improvement="Significantly faster reads",
                score=1.0 - efficiency,
            ),
            frequency=len(ops),
            detector=self.name,
            metadata={
                "group": group,
                "efficiency": efficiency,
                "scanned_count": scanned,
                "item_count": returned,
            },
        )

    def describe(self) -> str:
        return (
            f"Scan inefficiency: mean returned/examined ratio below "
            f"{percent(self._info_below)} per group."
        )


class FetchingToFilterDetector(_EfficiencyDetector):
    """Filtered reads that throw most of what they fetch away."""

    def _qualifies(self, record: OperationRecord) -> bool:
        return super()._qualifies(record) and record.filter_applied

    @property
    def name(self) -> str:
        return "fetching_to_filter"

    @property
    def category(self) -> Category:
        return Category.FETCHING_TO_FILTER

    def _build(
        self,
        group: str,
        ops: list[OperationRecord],
        efficiency: float,
        severity: Severity,
    ) -> Recommendation:
        low = sum(1 for op in ops if (op.efficiency or 0.0) < self._info_below)
        return Recommendation(
            severity=severity,
            category=self.category,
            message=f"Fetching to filter detected in {group}",
            details=(
                f"{len(ops)} filtered operations in '{group}' kept {percent(efficiency)} "
                f"of fetched items on average ({low} below {percent(self._info_below)})."
            ),
            suggested_action=(
                "Move the filtering into a server-side filter expression, or better, "
                "into the key condition so unwanted items are never read."
            ),
            affected_operations=operation_tags(ops),
            estimated_impact=EstimatedImpact(
                cost_reduction=f"Up to {(1 - efficiency) * 100:.0f}% less data transferred",
                performance_improvement="Reduced data transfer and faster responses",
                score=1.0 - efficiency,
            ),
            frequency=len(ops),
            detector=self.name,
            metadata={"group": group, "efficiency": efficiency, "low_efficiency_count": low},
        )

    def describe(self) -> str:
        return "Fetching to filter: filtered reads with low returned/examined ratio."
