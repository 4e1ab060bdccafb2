"""Concatenated key detector.

Keys built by joining ``TOKEN#value`` pairs (``TENANT#7#CUSTOMER#42``) pack
several attributes into one string.  Modern indexes accept multi-attribute
composite keys, so each part can live in its own typed attribute instead.
"""

from __future__ import annotations

from kvstats.domain.enums import Category, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    group_by,
    operation_tags,
)
from kvstats.measurement.detectors.key_patterns import KEY_DELIMITER, concatenated_shape


def _shapes(record: OperationRecord) -> list[tuple[str, tuple[str, ...]]]:
    """``(key attribute, token names)`` for every concatenated key on *record*."""
    found: list[tuple[str, tuple[str, ...]]] = []
    for attribute, value in (
        ("partition_key", record.partition_key_value),
        ("sort_key", record.sort_key_value),
    ):
        if value:
            tokens = concatenated_shape(value)
            if tokens is not None:
                found.append((attribute, tokens))
    return found


class ConcatenatedKeyDetector(BaseDetector):
    """Delimiter-joined key values that could be multi-attribute keys."""

    def __init__(self, min_samples: int = DEFAULT_MIN_SAMPLES) -> None:
        self._min_samples = max(1, min_samples)

    @property
    def name(self) -> str:
        return "concatenated_key"

    @property
    def category(self) -> Category:
        return Category.BEST_PRACTICE

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        by_shape: dict[tuple[str, str, tuple[str, ...]], list[OperationRecord]] = {}
        for group, ops in group_by(ctx.records, lambda r: r.group_key).items():
            for op in ops:
                for attribute, tokens in _shapes(op):
                    by_shape.setdefault((group, attribute, tokens), []).append(op)

        recommendations: list[Recommendation] = []
        for (group, attribute, tokens), ops in by_shape.items():
            if len(ops) < self._min_samples:
                continue
            template = KEY_DELIMITER.join(f"{t}{KEY_DELIMITER}<{t.lower()}>" for t in tokens)
            recommendations.append(
                Recommendation(
                    severity=Severity.INFO,
                    category=self.category,
                    message=f"Concatenated {attribute.replace('_', ' ')} detected in {group}",
                    details=(
                        f"{len(ops)} operations in '{group}' use {attribute.replace('_', ' ')} "
                        f"values shaped like '{template}', packing {len(tokens)} "
                        f"attributes into one string."
                    ),
                    suggested_action=(
                        "Store each part ("
                        + ", ".join(t.lower() for t in tokens)
                        + ") as its own attribute and use a multi-attribute composite "
                        "key, which keeps types intact and avoids string parsing."
                    ),
                    affected_operations=operation_tags(ops),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Typed key attributes and simpler queries",
                        score=0.2,
                    ),
                    frequency=len(ops),
                    detector=self.name,
                    metadata={
                        "group": group,
                        "key_attribute": attribute,
                        "tokens": list(tokens),
                        "segment_count": len(tokens) * 2,
                    },
                )
            )
        return recommendations

    def describe(self) -> str:
        return (
            f"Concatenated keys: >= {self._min_samples} operations with "
            f"'TOKEN{KEY_DELIMITER}value' composite key values."
        )
