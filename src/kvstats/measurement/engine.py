"""Recommendation engine -- composite runner for the detector catalogue.

The :class:`RecommendationEngine` owns one :class:`StatsCollector` and a list
of :class:`BaseDetector` instances.  It ships with the **default catalogue**;
callers may add, remove, or replace individual detectors before running.

Each ``get_recommendations()`` call takes one consistent snapshot of the
buffer and aggregates, runs every detector on it outside the collector lock,
and orders the merged candidates by:

1. severity, highest first
2. impact score, highest first (no score sorts last)
3. frequency, highest first
4. catalogue position, then emission order

Usage::

    engine = RecommendationEngine()          # includes the default catalogue
    engine.record(OperationRecord(operation="get", timestamp=now_ms))
    for rec in engine.get_recommendations():
        print(rec.severity.value, rec.message)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence

from kvstats.domain.exceptions import DetectorError
from kvstats.domain.values import OperationRecord, Recommendation
from kvstats.infrastructure.config import StatsConfig
from kvstats.measurement.collector import StatsCollector
from kvstats.measurement.detectors.base import BaseDetector, DetectionContext
from kvstats.measurement.detectors.batch_get import BatchGetDetector
from kvstats.measurement.detectors.capacity_mode import CapacityModeDetector
from kvstats.measurement.detectors.concatenated_key import ConcatenatedKeyDetector
from kvstats.measurement.detectors.frequent_scans import FrequentScansDetector
from kvstats.measurement.detectors.hot_partition import HotPartitionDetector
from kvstats.measurement.detectors.large_item import LargeItemDetector
from kvstats.measurement.detectors.projection import ProjectionDetector
from kvstats.measurement.detectors.read_before_write import ReadBeforeWriteDetector
from kvstats.measurement.detectors.scan_efficiency import (
    FetchingToFilterDetector,
    ScanInefficiencyDetector,
)
from kvstats.measurement.detectors.sequential_writes import SequentialWritesDetector
from kvstats.measurement.detectors.thresholds import (
    HighCapacityUsageDetector,
    SlowOperationsDetector,
)
from kvstats.measurement.detectors.uniform_key import UniformPartitionKeyDetector
from kvstats.measurement.detectors.unused_index import UnusedIndexDetector
from kvstats.measurement.report import RecommendationReport
from kvstats.measurement.stats import TableStats

logger = logging.getLogger(__name__)


def default_detectors() -> list[BaseDetector]:
    """Return the default catalogue in priority (tiebreak) order."""
    return [
        HotPartitionDetector(),
        ScanInefficiencyDetector(),
        FetchingToFilterDetector(),
        FrequentScansDetector(),
        SequentialWritesDetector(),
        BatchGetDetector(),
        ReadBeforeWriteDetector(),
        LargeItemDetector(),
        UniformPartitionKeyDetector(),
        UnusedIndexDetector(),
        CapacityModeDetector(),
        ConcatenatedKeyDetector(),
        ProjectionDetector(),
        SlowOperationsDetector(),
        HighCapacityUsageDetector(),
    ]


def wall_clock_ms() -> float:
    """Current time in epoch milliseconds, for live engines."""
    return time.time() * 1000.0


def sort_key(rec: Recommendation, position: int, sequence: int) -> tuple:
    """Ordering key for one candidate; smaller sorts first."""
    score = rec.impact_score
    return (
        -rec.severity.rank,
        -(score if score is not None else -1.0),
        -rec.frequency,
        position,
        sequence,
    )


class RecommendationEngine:
    """Collector facade plus detector catalogue runner.

    Parameters
    ----------
    config:
        Configuration for the owned collector; validated at construction.
    detectors:
        Optional explicit detector list.  If ``None`` (the default), the
        full catalogue from :func:`default_detectors` is registered.
    clock:
        Zero-argument callable returning epoch milliseconds.  When given the
        engine runs *live* and time-relative detectors measure against it;
        otherwise they measure against the latest recorded timestamp, which
        keeps results reproducible.  Pass :func:`wall_clock_ms` for real time.
    """

    def __init__(
        self,
        config: StatsConfig | None = None,
        detectors: Sequence[BaseDetector] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._collector = StatsCollector(config)
        if detectors is not None:
            self._detectors: list[BaseDetector] = []
            for detector in detectors:
                self.add_detector(detector)
        else:
            self._detectors = default_detectors()
        self._clock = clock
        self._last_errors: dict[str, str] = {}

    # -- collector facade -----------------------------------------------------

    @property
    def collector(self) -> StatsCollector:
        return self._collector

    @property
    def config(self) -> StatsConfig:
        return self._collector.config

    def record(self, op: OperationRecord) -> None:
        self._collector.record(op)

    def record_many(self, ops: Iterable[OperationRecord]) -> None:
        self._collector.record_many(ops)

    def get_stats(self) -> TableStats:
        """Current aggregates; does not run any detector."""
        return self._collector.get_stats()

    def export(self) -> tuple[OperationRecord, ...]:
        return self._collector.export()

    def reset(self) -> None:
        """Clear buffer, aggregates and the last run's detector errors."""
        self._collector.reset()
        self._last_errors = {}

    # -- mutation -------------------------------------------------------------

    def add_detector(self, detector: BaseDetector) -> None:
        """Append a detector to the catalogue.

        Raises :class:`ValueError` if a detector with the same name already
        exists.
        """
        if detector.name in {d.name for d in self._detectors}:
            raise ValueError(
                f"Detector with name {detector.name!r} is already registered"
            )
        self._detectors.append(detector)

    def remove_detector(self, name: str) -> bool:
        """Remove the detector with the given *name*.

        Returns ``True`` if a detector was removed, ``False`` if not found.
        """
        before = len(self._detectors)
        self._detectors = [d for d in self._detectors if d.name != name]
        return len(self._detectors) < before

    def replace_detector(self, detector: BaseDetector) -> None:
        """Replace the detector with the same name in place, or append it."""
        for i, existing in enumerate(self._detectors):
            if existing.name == detector.name:
                self._detectors[i] = detector
                return
        self._detectors.append(detector)

    # -- query ----------------------------------------------------------------

    @property
    def detector_names(self) -> list[str]:
        """Return the names of all registered detectors in order."""
        return [d.name for d in self._detectors]

    def get_detector(self, name: str) -> BaseDetector | None:
        """Return the registered detector with the given *name*, or ``None``."""
        for d in self._detectors:
            if d.name == name:
                return d
        return None

    @property
    def last_errors(self) -> dict[str, str]:
        """Detector name to failure message from the most recent run."""
        return dict(self._last_errors)

    # -- analysis -------------------------------------------------------------

    def _context(self) -> tuple[DetectionContext, TableStats]:
        records, stats = self._collector.snapshot()
        now_ms = self._clock() if self._clock is not None else None
        ctx = DetectionContext(
            records=records,
            stats=stats,
            config=self._collector.config,
            now_ms=now_ms,
        )
        return ctx, stats

    def _run(self, ctx: DetectionContext) -> list[Recommendation]:
        keyed: list[tuple[tuple, Recommendation]] = []
        errors: dict[str, str] = {}
        sequence = 0

        for position, detector in enumerate(self._detectors):
            try:
                found = detector.detect(ctx)
            except Exception as exc:
                error = DetectorError(
                    f"{type(exc).__name__}: {exc}", detector=detector.name, cause=exc
                )
                logger.exception("Detector %s failed; skipping its results", detector.name)
                errors[detector.name] = str(error)
                continue

            logger.debug("Detector %s produced %d candidates", detector.name, len(found))
            for rec in found:
                keyed.append((sort_key(rec, position, sequence), rec))
                sequence += 1

        self._last_errors = errors
        keyed.sort(key=lambda item: item[0])
        return [rec for _, rec in keyed]

    def get_recommendations(self) -> list[Recommendation]:
        """Run the catalogue over a fresh snapshot and return ordered results.

        Never raises because of a detector: a failing detector is logged,
        recorded in :attr:`last_errors` and contributes nothing.
        """
        ctx, _ = self._context()
        return self._run(ctx)

    # -- report generation ----------------------------------------------------

    def build_report(self) -> RecommendationReport:
        """Run the catalogue and package the results into a report."""
        ctx, stats = self._context()
        recommendations = self._run(ctx)
        return RecommendationReport(
            recommendations=tuple(recommendations),
            stats=stats,
            timestamp=time.time(),
            errors=dict(self._last_errors),
            metadata={
                "buffered_records": len(ctx.records),
                "sampled_out": self._collector.sampled_out,
                "num_detectors": len(self._detectors),
            },
        )
