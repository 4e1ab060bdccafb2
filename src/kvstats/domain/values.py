"""Value objects for kvstats.

All types here are frozen dataclasses -- immutable, compared by value.
An :class:`OperationRecord` is the unit of telemetry the client reports for
one completed store call; a :class:`Recommendation` is what the detectors
hand back.  Neither has identity beyond its content.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .enums import Category, OperationType, Severity

# ---------------------------------------------------------------------------
# OperationRecord
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationRecord:
    """Telemetry for one completed store operation.

    Attributes
    ----------
    operation:
        Which store call was made.  A plain string tag (``"put"``,
        ``"batchGet"``...) is coerced to :class:`OperationType`.
    timestamp:
        Completion time in milliseconds since the epoch.
    latency_ms:
        Duration of the call.
    table_name / index_name:
        Target collection and, optionally, the secondary index used.
    access_pattern_name:
        Caller-supplied label grouping calls that serve one logical query.
    consumed_read_units / consumed_write_units:
        Capacity units reported by the store, when available.
    item_count / scanned_count:
        Items returned or affected, and items examined server-side.
    partition_key_value / sort_key_value:
        String snapshots of the key values, used for pattern detection only.
    item_size_bytes:
        Size of the item written or read.
    filter_applied:
        ``True`` when a filter narrowed ``scanned_count`` to ``item_count``.
    used_projection:
        ``True`` when the call asked for a subset of attributes.
    metadata:
        Free-form caller data carried through ``export()``.  Excluded from
        ``hash()``; the record keeps its own copy.
    """

    operation: OperationType
    timestamp: float
    latency_ms: float = 0.0
    table_name: str = "default"
    index_name: str | None = None
    access_pattern_name: str | None = None
    consumed_read_units: float | None = None
    consumed_write_units: float | None = None
    item_count: int = 0
    scanned_count: int | None = None
    partition_key_value: str | None = None
    sort_key_value: str | None = None
    item_size_bytes: int | None = None
    filter_applied: bool = False
    used_projection: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # frozen=True prevents normal assignment; use object.__setattr__
        if not isinstance(self.operation, OperationType):
            object.__setattr__(self, "operation", OperationType(self.operation))
        # the record owns its metadata; later edits to the caller's dict do not leak in
        object.__setattr__(self, "metadata", dict(self.metadata or {}))

    # -- derived properties ---------------------------------------------------

    @property
    def scope(self) -> str:
        """``"<table>:<index>"``, or ``"<table>:primary"`` without an index."""
        return f"{self.table_name}:{self.index_name or 'primary'}"

    @property
    def group_key(self) -> str:
        """Logical query shape: the access pattern name, else the scope."""
        return self.access_pattern_name or self.scope

    @property
    def key_id(self) -> str | None:
        """Partition and sort key joined as ``pk#sk``; ``None`` without a pk."""
        if not self.partition_key_value:
            return None
        if self.sort_key_value:
            return f"{self.partition_key_value}#{self.sort_key_value}"
        return self.partition_key_value

    @property
    def efficiency(self) -> float | None:
        """Fraction of examined items that were returned, in ``[0, 1]``.

        ``None`` when the store did not report ``scanned_count``.  Records
        that violate ``item_count <= scanned_count`` degrade to 1.0.
        """
        if self.scanned_count is None:
            return None
        if self.scanned_count <= 0:
            return 1.0
        return max(0.0, min(1.0, self.item_count / self.scanned_count))

    # -- normalisation --------------------------------------------------------

    def normalized(self) -> OperationRecord:
        """Return a copy with impossible values clamped to zero.

        Negative latency, counts, capacity units and sizes become 0.  This
        never raises; malformed telemetry must not fail the caller.
        """
        changes: dict[str, Any] = {}
        if self.latency_ms < 0:
            changes["latency_ms"] = 0.0
        if self.item_count < 0:
            changes["item_count"] = 0
        for name in (
            "consumed_read_units",
            "consumed_write_units",
            "scanned_count",
            "item_size_bytes",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                changes[name] = type(value)(0)
        if not changes:
            return self
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# EstimatedImpact
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EstimatedImpact:
    """Free-form estimate of what acting on a recommendation buys.

    ``score`` is an optional number in ``[0, 1]`` the engine uses to rank
    recommendations of equal severity.
    """

    cost_reduction: str | None = None
    performance_improvement: str | None = None
    score: float | None = None

    def __post_init__(self) -> None:
        if self.score is not None and not (0.0 <= self.score <= 1.0):
            object.__setattr__(self, "score", max(0.0, min(1.0, self.score)))


# ---------------------------------------------------------------------------
# Recommendation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recommendation:
    """One prioritized, human-readable suggestion.

    Constructed fresh on every ``get_recommendations()`` call and never
    retained by the engine.

    Attributes
    ----------
    severity / category:
        How urgent, and what kind of problem.
    message / details:
        Short headline and longer explanation.
    suggested_action:
        What the caller should change.
    affected_operations:
        Operation tags involved (``"get"``, ``"put"``...).
    estimated_impact:
        Optional cost/performance estimate, possibly carrying a ranking score.
    frequency:
        Number of recorded operations behind this finding.
    detector:
        Name of the detector that emitted it.
    metadata:
        Structured numbers (percentages, batch counts, sizes) for callers
        that want more than the text.
    """

    severity: Severity
    category: Category
    message: str
    details: str
    suggested_action: str | None = None
    affected_operations: tuple[str, ...] = ()
    estimated_impact: EstimatedImpact | None = None
    frequency: int = 0
    detector: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", dict(self.metadata or {}))

    @property
    def impact_score(self) -> float | None:
        """Shortcut for ``estimated_impact.score``."""
        if self.estimated_impact is None:
            return None
        return self.estimated_impact.score

    def __repr__(self) -> str:
        return (
            f"Recommendation(severity={self.severity.value!r}, "
            f"category={self.category.value!r}, message={self.message!r})"
        )
