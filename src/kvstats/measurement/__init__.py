"""Measurement layer for kvstats.

Provides operation collection, aggregate views, the detector catalogue and
the recommendation engine.

Public API
----------
- :class:`StatsCollector` -- thread-safe ingestion buffer with aggregates
- :class:`TableStats` -- aggregate snapshot (per operation type and pattern)
- :class:`RecommendationEngine` -- detector catalogue runner
- :class:`RecommendationReport` -- immutable report value object
- :class:`BaseDetector` / :class:`DetectionContext` -- detector protocol
"""

from kvstats.measurement.collector import StatsCollector
from kvstats.measurement.detectors import BaseDetector, DetectionContext
from kvstats.measurement.engine import (
    RecommendationEngine,
    default_detectors,
    wall_clock_ms,
)
from kvstats.measurement.report import RecommendationReport
from kvstats.measurement.stats import (
    AccessPatternStats,
    OperationTypeStats,
    TableStats,
    compute_stats,
)

__all__ = [
    # Collector & aggregates
    "StatsCollector",
    "TableStats",
    "OperationTypeStats",
    "AccessPatternStats",
    "compute_stats",
    # Engine & report
    "RecommendationEngine",
    "RecommendationReport",
    "default_detectors",
    "wall_clock_ms",
    # Detector base
    "BaseDetector",
    "DetectionContext",
]
