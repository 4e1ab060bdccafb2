"""Base detector abstraction for the recommendation catalogue.

:class:`BaseDetector` defines the **Template Method** pattern used by all
concrete detectors:

1. ``validate(ctx)`` -- check the buffer has enough data to say anything.
2. ``_detect(ctx)``  -- produce recommendation candidates (subclass
   responsibility).
3. ``describe()``    -- human-readable explanation.

The public entry point :meth:`detect` orchestrates these steps.  Detectors
hold only tuning constants, never per-run state, so calling ``detect`` twice
on the same context yields the same list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from kvstats.domain.enums import Category
from kvstats.domain.values import OperationRecord, Recommendation
from kvstats.infrastructure.config import StatsConfig
from kvstats.measurement.stats import TableStats

K = TypeVar("K", bound=Hashable)

# Below this many qualifying operations a group is too small to judge.
DEFAULT_MIN_SAMPLES = 3


# ---------------------------------------------------------------------------
# Detection context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectionContext:
    """Immutable view handed to every detector for one engine run.

    Attributes
    ----------
    records:
        Snapshot of the raw buffer, oldest first.
    stats:
        Aggregate snapshot taken together with ``records``.
    config:
        The collector configuration (thresholds, capacity baseline, pricing).
    now_ms:
        Wall-clock reference in epoch milliseconds when the engine runs
        live, else ``None`` (detectors fall back to the latest record).
    """

    records: tuple[OperationRecord, ...]
    stats: TableStats = field(default_factory=TableStats)
    config: StatsConfig = field(default_factory=StatsConfig)
    now_ms: float | None = None

    @property
    def reference_time_ms(self) -> float | None:
        """``now_ms`` if live, else the latest record timestamp."""
        if self.now_ms is not None:
            return self.now_ms
        if not self.records:
            return None
        return max(r.timestamp for r in self.records)

    def where(self, predicate: Callable[[OperationRecord], bool]) -> list[OperationRecord]:
        return [r for r in self.records if predicate(r)]


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------

def group_by(
    records: Iterable[OperationRecord],
    key: Callable[[OperationRecord], K | None],
) -> dict[K, list[OperationRecord]]:
    """Bucket *records* by *key*, keeping first-seen order.

    Records whose key is ``None`` are dropped.
    """
    groups: dict[K, list[OperationRecord]] = {}
    for record in records:
        k = key(record)
        if k is None:
            continue
        groups.setdefault(k, []).append(record)
    return groups


def operation_tags(records: Iterable[OperationRecord]) -> tuple[str, ...]:
    """Distinct operation tags in *records*, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        seen.setdefault(record.operation.value, None)
    return tuple(seen)


def percent(ratio: float) -> str:
    return f"{ratio * 100:.1f}%"


def kilobytes(size_bytes: float) -> str:
    return f"{size_bytes / 1024:.1f}KB"


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseDetector(ABC):
    """Template Method base class for all anti-pattern detectors.

    Subclasses must implement:
    - ``name`` (property)  -- unique detector identifier.
    - ``category`` (property) -- category of the recommendations emitted.
    - ``_detect(ctx)``     -- core analysis returning candidates.

    Subclasses *may* override:
    - ``validate(ctx)``    -- guard; default requires a non-empty buffer.
    - ``describe()``       -- human-readable explanation.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique detector identifier, e.g. ``'hot_partition'``."""
        ...

    @property
    @abstractmethod
    def category(self) -> Category:
        """Category attached to this detector's recommendations."""
        ...

    @abstractmethod
    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        """Core analysis -- return zero or more recommendations.

        Implementations can assume that ``validate(ctx)`` has already
        returned ``True``.
        """
        ...

    def validate(self, ctx: DetectionContext) -> bool:
        """Check whether *ctx* holds enough data for meaningful detection."""
        return len(ctx.records) > 0

    def describe(self) -> str:
        """Return a human-readable description of the detector."""
        return f"Detector: {self.name}"

    # -- template method (public API) -----------------------------------------

    def detect(self, ctx: DetectionContext) -> list[Recommendation]:
        """Run the detector on *ctx* using the template-method pipeline.

        **Do not override** -- customise behaviour through the hook methods
        ``validate``, ``_detect``, and ``describe``.
        """
        if not self.validate(ctx):
            return []
        return self._detect(ctx)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
