"""Uniform (sequential or temporal) partition key detector.

Partition keys that grow steadily, such as auto-increment ids or timestamps,
send all new writes to the same end of the key space.  Two passes run on the
partition key values written in each group, in arrival order:

(a) **sequential**: values that parse as integers (directly or after the last
    ``#``) increase on more than half of consecutive pairs.
(b) **temporal**: more than half of the values read as ISO-8601 dates or
    plausible Unix epochs.

Each pass needs at least 20 samples.  Either firing yields one ``warning``.
"""

from __future__ import annotations

import logging

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    BaseDetector,
    DetectionContext,
    group_by,
    operation_tags,
    percent,
)
from kvstats.measurement.detectors.key_patterns import (
    extract_integer,
    increasing_ratio,
    looks_temporal,
)

logger = logging.getLogger(__name__)

KEY_STATS_MIN_SAMPLES = 20

_KEY_WRITES = frozenset({OperationType.PUT, OperationType.UPDATE})


class UniformPartitionKeyDetector(BaseDetector):
    """Monotonically increasing or time-based partition key values."""

    def __init__(
        self,
        min_samples: int = KEY_STATS_MIN_SAMPLES,
        ratio_threshold: float = 0.5,
    ) -> None:
        self._min_samples = max(2, min_samples)
        self._ratio_threshold = ratio_threshold

    @property
    def name(self) -> str:
        return "uniform_partition_key"

    @property
    def category(self) -> Category:
        return Category.UNIFORM_PARTITION_KEY

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) >= self._min_samples

    def _sequential_ratio(self, values: list[str]) -> float | None:
        numbers = [n for n in (extract_integer(v) for v in values) if n is not None]
        if len(numbers) < self._min_samples:
            return None
        return increasing_ratio(numbers)

    def _temporal_ratio(self, values: list[str]) -> float:
        return sum(1 for v in values if looks_temporal(v)) / len(values)

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        keyed = ctx.where(
            lambda r: r.operation in _KEY_WRITES and bool(r.partition_key_value)
        )
        recommendations: list[Recommendation] = []
        for group, ops in group_by(keyed, lambda r: r.group_key).items():
            if len(ops) < self._min_samples:
                continue
            values = [op.partition_key_value or "" for op in ops]

            # Epoch integers also increase, so the temporal pass wins ties
            temporal = self._temporal_ratio(values)
            if temporal > self._ratio_threshold:
                recommendations.append(self._build(group, ops, "temporal", temporal))
                continue

            sequential = self._sequential_ratio(values)
            logger.debug(
                "uniform key group=%s samples=%d temporal=%.2f sequential=%s",
                group, len(values), temporal, sequential,
            )
            if sequential is not None and sequential > self._ratio_threshold:
                recommendations.append(self._build(group, ops, "sequential", sequential))
        return recommendations

    def _build(
        self,
        group: str,
        ops: list[OperationRecord],
        pattern: str,
        ratio: float,
    ) -> Recommendation:
        if pattern == "temporal":
            details = (
                f"{percent(ratio)} of {len(ops)} partition key values in '{group}' "
                f"are dates or timestamps. Time-based partition keys concentrate "
                f"current writes on a single partition."
            )
            action = (
                "Move the temporal element into the sort key and use a distributed "
                "partition key (entity id, or a date bucket plus a random shard suffix)."
            )
        else:
            details = (
                f"Partition key values in '{group}' increase sequentially in "
                f"{percent(ratio)} of {len(ops)} consecutive writes. Sequential keys "
                f"concentrate new writes on the newest partition."
            )
            action = (
                "Add a randomized or hashed component to the partition key (e.g. a "
                "hash prefix or shard suffix) so writes spread across partitions."
            )
        return Recommendation(
            severity=Severity.WARNING,
            category=self.category,
            message=f"Uniform partition key pattern detected in {group}",
            details=details,
            suggested_action=action,
            affected_operations=operation_tags(ops),
            estimated_impact=EstimatedImpact(
                performance_improvement="Even write distribution and less throttling",
                score=ratio,
            ),
            frequency=len(ops),
            detector=self.name,
            metadata={
                "group": group,
                "pattern": pattern,
                "ratio": ratio,
                "sample_count": len(ops),
            },
        )

    def describe(self) -> str:
        return (
            f"Uniform partition key: >= {self._min_samples} samples, sequential or "
            f"temporal in more than {percent(self._ratio_threshold)} of values."
        )
