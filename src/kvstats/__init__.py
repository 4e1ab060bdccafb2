"""kvstats -- operation telemetry and anti-pattern recommendations.

Record one :class:`OperationRecord` per completed key-value store call and
ask the :class:`RecommendationEngine` what the traffic says about the data
model: hot partitions, inefficient scans, missed batching, oversized items,
sequential keys, idle indexes and mismatched capacity modes.
"""

__version__ = "0.1.0"

from kvstats.domain import (
    Category,
    OperationRecord,
    OperationType,
    Recommendation,
    Severity,
)
from kvstats.infrastructure.config import StatsConfig, Thresholds
from kvstats.measurement import RecommendationEngine, StatsCollector

__all__ = [
    "Category",
    "OperationRecord",
    "OperationType",
    "Recommendation",
    "RecommendationEngine",
    "Severity",
    "StatsCollector",
    "StatsConfig",
    "Thresholds",
]
