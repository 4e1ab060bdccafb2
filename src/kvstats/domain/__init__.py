"""Domain layer for kvstats.

Re-exports all public domain types so that consumers can write::

    from kvstats.domain import OperationRecord, OperationType, Severity
"""

# -- Enumerations -------------------------------------------------------------
from .enums import Category, CapacityMode, OperationType, Severity

# -- Value Objects ------------------------------------------------------------
from .values import EstimatedImpact, OperationRecord, Recommendation

# -- Exceptions ---------------------------------------------------------------
from .exceptions import ConfigurationError, DetectorError, KvStatsError

__all__ = [
    # Enums
    "Category",
    "CapacityMode",
    "OperationType",
    "Severity",
    # Values
    "EstimatedImpact",
    "OperationRecord",
    "Recommendation",
    # Exceptions
    "ConfigurationError",
    "DetectorError",
    "KvStatsError",
]
