"""Operation collector -- ingests telemetry and keeps the raw buffer.

The :class:`StatsCollector` is the ingestion side of the engine.  The store
client hands it one :class:`OperationRecord` per completed call; the
collector normalizes the record, updates the running aggregates and, subject
to sampling, appends the record to an in-memory buffer that the detectors
later read.

Design notes
~~~~~~~~~~~~
* Aggregates always reflect every call.  Only the raw buffer is sampled, so
  ``get_stats()`` stays exact while pattern detectors see a representative
  subset.
* Buffer append and aggregate update happen under one lock, so readers never
  observe a record in one without the other.
* The buffer grows until ``reset()``.  Long-running callers are expected to
  ``export()`` and ``reset()`` periodically.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

import numpy as np

from kvstats.domain.enums import OperationType
from kvstats.domain.values import OperationRecord
from kvstats.infrastructure.config import StatsConfig, Thresholds
from kvstats.measurement.stats import StatsAccumulator, TableStats

logger = logging.getLogger(__name__)


class StatsCollector:
    """Thread-safe ingestion buffer with incremental aggregates.

    Parameters
    ----------
    config:
        Collector configuration.  Validated here, so a bad ``sample_rate``
        fails at construction rather than on the first ``record()``.

    Usage::

        collector = StatsCollector(StatsConfig(sample_rate=0.5))
        collector.record(OperationRecord(operation="get", timestamp=now_ms))
        stats = collector.get_stats()
    """

    def __init__(self, config: StatsConfig | None = None) -> None:
        self._config = config or StatsConfig()
        self._config.validate()
        self._lock = threading.Lock()
        self._records: list[OperationRecord] = []
        self._aggregates = StatsAccumulator()
        self._rng = np.random.default_rng(self._config.seed)
        self._sampled_out = 0

    # -- configuration --------------------------------------------------------

    @property
    def config(self) -> StatsConfig:
        return self._config

    @property
    def thresholds(self) -> Thresholds:
        return self._config.thresholds

    def is_enabled(self) -> bool:
        return self._config.enabled

    # -- ingestion ------------------------------------------------------------

    def record(self, op: OperationRecord) -> None:
        """Ingest one completed operation.

        A no-op while disabled.  Impossible values are clamped rather than
        rejected; telemetry must never fail the caller's store operation.
        """
        if not self._config.enabled:
            return

        op = op.normalized()
        with self._lock:
            self._aggregates.add(op)
            if self._keep():
                self._records.append(op)
            else:
                self._sampled_out += 1
                logger.debug("Sampled out %s at %s", op.operation.value, op.timestamp)

    def record_many(self, ops: Iterable[OperationRecord]) -> None:
        """Ingest several operations in order."""
        for op in ops:
            self.record(op)

    def _keep(self) -> bool:
        """Sampling draw.  Caller must hold ``self._lock``."""
        rate = self._config.sample_rate
        if rate >= 1.0:
            return True
        if rate <= 0.0:
            return False
        return bool(self._rng.random() < rate)

    # -- snapshots ------------------------------------------------------------

    def get_stats(self) -> TableStats:
        """Return the current aggregates without touching the buffer."""
        with self._lock:
            return self._aggregates.snapshot()

    def export(self) -> tuple[OperationRecord, ...]:
        """Return a copy of the raw (sampled) buffer, oldest first."""
        with self._lock:
            return tuple(self._records)

    def snapshot(self) -> tuple[tuple[OperationRecord, ...], TableStats]:
        """Return buffer and aggregates taken under one lock acquisition."""
        with self._lock:
            return tuple(self._records), self._aggregates.snapshot()

    def reset(self) -> None:
        """Clear the buffer and every aggregate atomically."""
        with self._lock:
            dropped = len(self._records)
            self._records.clear()
            self._aggregates.clear()
            self._sampled_out = 0
        logger.info("Stats collector reset (%d buffered records dropped)", dropped)

    # -- public query API -----------------------------------------------------

    @property
    def operation_count(self) -> int:
        """Number of records currently in the raw buffer."""
        with self._lock:
            return len(self._records)

    @property
    def sampled_out(self) -> int:
        """Number of calls counted in aggregates but dropped by sampling."""
        with self._lock:
            return self._sampled_out

    def get_operations_by_type(
        self, operation: OperationType | str
    ) -> list[OperationRecord]:
        """Return buffered records of one operation type."""
        op_type = OperationType(operation)
        return [r for r in self.export() if r.operation is op_type]

    def get_operations_by_pattern(self, pattern_name: str) -> list[OperationRecord]:
        """Return buffered records tagged with *pattern_name*."""
        return [r for r in self.export() if r.access_pattern_name == pattern_name]

    def get_operations_in_range(
        self, start_ms: float, end_ms: float
    ) -> list[OperationRecord]:
        """Return buffered records with ``start_ms <= timestamp <= end_ms``."""
        return [r for r in self.export() if start_ms <= r.timestamp <= end_ms]
