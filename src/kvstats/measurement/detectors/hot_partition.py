"""Hot partition detector.

Counts operations per partition key (per table) and flags keys that take a
disproportionate share of all keyed traffic.

Formula
-------
::

    share(key) = count(key) / sum(count(k) for every key k)

Keys with ``share > 10%`` and at least three operations are reported.

- ``share > 50%`` -> ``error``
- ``share > 30%`` -> ``warning``
- otherwise       -> ``info``

Records without a partition key fall back to their ``table:index`` scope.
Scans touch every partition and are left out of the fallback.
"""

from __future__ import annotations

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


def _partition_of(record: OperationRecord) -> tuple[str, str, bool] | None:
    """``(table, label, is_index_scope)`` for a record, or ``None`` to skip it."""
    if record.partition_key_value:
        return (record.table_name, record.partition_key_value, False)
    if record.operation is OperationType.SCAN:
        return None
    return (record.table_name, record.scope, True)


class HotPartitionDetector(BaseDetector):
    """Flags partition keys receiving more than ``share_threshold`` of traffic."""

    def __init__(
        self,
        share_threshold: float = 0.10,
        warning_share: float = 0.30,
        error_share: float = 0.50,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ) -> None:
        self._share_threshold = share_threshold
        self._warning_share = warning_share
        self._error_share = error_share
        self._min_samples = max(1, min_samples)

    @property
    def name(self) -> str:
        return "hot_partition"

    @property
    def category(self) -> Category:
        return Category.HOT_PARTITION

    def _severity(self, share: float) -> Severity:
        if share > self._error_share:
            return Severity.ERROR
        if share > self._warning_share:
            return Severity.WARNING
        return Severity.INFO

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        groups = group_by(ctx.records, _partition_of)
        total = sum(len(ops) for ops in groups.values())
        if total == 0:
            return []

        recommendations: list[Recommendation] = []
        for (table, label, is_index_scope), ops in groups.items():
            count = len(ops)
            share = count / total
            if count < self._min_samples or share <= self._share_threshold:
                continue

            action = (
                "Implement write sharding (append a random or calculated suffix to "
                "the partition key) or redesign the key for a wider spread of values."
            )
            if is_index_scope and not label.endswith(":primary"):
                action += (
                    " For index partition keys, use a multi-attribute composite key "
                    "(e.g. add tenant, region or category) to spread the load."
                )

            recommendations.append(
                Recommendation(
                    severity=self._severity(share),
                    category=self.category,
                    message=f"Hot partition detected: {label}",
                    details=(
                        f"Partition '{label}' on table '{table}' receives "
                        f"{percent(share)} of all keyed traffic ({count} of {total} "
                        f"operations). Concentrated traffic leads to throttling."
                    ),
                    suggested_action=action,
                    affected_operations=operation_tags(ops),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Reduced throttling and improved latency",
                        score=share,
                    ),
                    frequency=count,
                    detector=self.name,
                    metadata={
                        "table_name": table,
                        "partition": label,
                        "access_count": count,
                        "share": share,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Hot partition: keys taking more than {percent(self._share_threshold)} "
            f"of keyed traffic (min {self._min_samples} operations)."
        )
