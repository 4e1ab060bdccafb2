"""Large item detector.

Items near the store's 400 KB item ceiling are slow to read, expensive to
write and one schema change away from failing outright.

- ``100 KB <= size <= 300 KB`` -> ``info``
- ``size > 300 KB``            -> ``warning``

Sizes are bucketed per group; each non-empty bucket yields one
recommendation reporting the average and maximum size seen.
"""

from __future__ import annotations

import numpy as np

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    BaseDetector,
    DetectionContext,
    group_by,
    kilobytes,
    operation_tags,
)

KB = 1024
ITEM_SIZE_LIMIT_BYTES = 400 * KB

_ITEM_WRITES = frozenset({OperationType.PUT, OperationType.UPDATE})


class LargeItemDetector(BaseDetector):
    """Puts and updates carrying items close to the size ceiling."""

    def __init__(
        self,
        info_bytes: int = 100 * KB,
        warning_bytes: int = 300 * KB,
    ) -> None:
        if info_bytes > warning_bytes:
            raise ValueError(
                f"info_bytes ({info_bytes}) must not exceed warning_bytes ({warning_bytes})"
            )
        self._info_bytes = info_bytes
        self._warning_bytes = warning_bytes

    @property
    def name(self) -> str:
        return "large_item"

    @property
    def category(self) -> Category:
        return Category.LARGE_ITEM

    def _severity(self, size: int) -> Severity | None:
        if size > self._warning_bytes:
            return Severity.WARNING
        if size >= self._info_bytes:
            return Severity.INFO
        return None

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        sized = ctx.where(
            lambda r: r.operation in _ITEM_WRITES and r.item_size_bytes is not None
        )
        recommendations: list[Recommendation] = []
        for group, ops in group_by(sized, lambda r: r.group_key).items():
            buckets = group_by(ops, lambda r: self._severity(r.item_size_bytes or 0))
            # Warnings first so a group's worst bucket leads
            for severity in (Severity.WARNING, Severity.INFO):
                bucket = buckets.get(severity)
                if bucket:
                    recommendations.append(self._build(group, bucket, severity))
        return recommendations

    def _build(
        self,
        group: str,
        ops: list[OperationRecord],
        severity: Severity,
    ) -> Recommendation:
        sizes = np.asarray([op.item_size_bytes for op in ops], dtype=np.float64)
        avg_size = float(sizes.mean())
        max_size = int(sizes.max())
        headroom = max(0.0, 1.0 - max_size / ITEM_SIZE_LIMIT_BYTES)
        if severity is Severity.WARNING:
            details = (
                f"{len(ops)} writes in '{group}' stored items above "
                f"{kilobytes(self._warning_bytes)} (avg {kilobytes(avg_size)}, max "
                f"{kilobytes(max_size)}). The item size limit is "
                f"{kilobytes(ITEM_SIZE_LIMIT_BYTES)}; {headroom * 100:.0f}% headroom left."
            )
        else:
            details = (
                f"{len(ops)} writes in '{group}' stored items between "
                f"{kilobytes(self._info_bytes)} and {kilobytes(self._warning_bytes)} "
                f"(avg {kilobytes(avg_size)}, max {kilobytes(max_size)}). Large items "
                f"consume more capacity per read and write."
            )
        return Recommendation(
            severity=severity,
            category=self.category,
            message=f"Large items detected in {group}",
            details=details,
            suggested_action=(
                "Move large attributes to blob storage and keep a reference (key or "
                "URL) in the item, or split the item into several smaller items."
            ),
            affected_operations=operation_tags(ops),
            estimated_impact=EstimatedImpact(
                cost_reduction="Lower read and write capacity per request",
                performance_improvement="Smaller payloads and faster responses",
                score=min(1.0, max_size / ITEM_SIZE_LIMIT_BYTES),
            ),
            frequency=len(ops),
            detector=self.name,
            metadata={
                "group": group,
                "avg_size_bytes": avg_size,
                "max_size_bytes": max_size,
                "item_count": len(ops),
            },
        )

    def describe(self) -> str:
        return (
            f"Large items: info from {kilobytes(self._info_bytes)}, "
            f"warning above {kilobytes(self._warning_bytes)}."
        )
