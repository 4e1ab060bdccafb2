"""Detector catalogue for the kvstats recommendation engine.

Each detector extends :class:`BaseDetector` using the Template Method
pattern and turns the raw operation buffer into zero or more
:class:`~kvstats.domain.values.Recommendation` candidates.

Available detectors
~~~~~~~~~~~~~~~~~~~
- :class:`HotPartitionDetector` -- keys taking a large share of traffic
- :class:`ScanInefficiencyDetector` -- reads examining far more than they return
- :class:`FetchingToFilterDetector` -- client-side filtering of fetched items
- :class:`FrequentScansDetector` -- tables scanned often enough to need an index
- :class:`SequentialWritesDetector` -- single writes that could be batched
- :class:`BatchGetDetector` -- single gets that could be one batch get
- :class:`ReadBeforeWriteDetector` -- get + put pairs that could be an update
- :class:`LargeItemDetector` -- items approaching the size ceiling
- :class:`UniformPartitionKeyDetector` -- sequential or time-based keys
- :class:`UnusedIndexDetector` -- indexes idle for a week
- :class:`CapacityModeDetector` -- billing mode vs observed traffic
- :class:`ConcatenatedKeyDetector` -- ``TOKEN#value`` composite key strings
- :class:`ProjectionDetector` -- reads fetching whole items
- :class:`SlowOperationsDetector` -- calls above ``slow_query_ms``
- :class:`HighCapacityUsageDetector` -- calls above the unit thresholds
"""

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

__all__ = [
    "BaseDetector",
    "DetectionContext",
    "BatchGetDetector",
    "CapacityModeDetector",
    "ConcatenatedKeyDetector",
    "FetchingToFilterDetector",
    "FrequentScansDetector",
    "HighCapacityUsageDetector",
    "HotPartitionDetector",
    "LargeItemDetector",
    "ProjectionDetector",
    "ReadBeforeWriteDetector",
    "ScanInefficiencyDetector",
    "SequentialWritesDetector",
    "SlowOperationsDetector",
    "UniformPartitionKeyDetector",
    "UnusedIndexDetector",
]
