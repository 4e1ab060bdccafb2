"""Domain enumerations for kvstats.

These enums capture the fixed vocabularies used across the engine: the
store operations a client can report, recommendation severities and
categories, and the billing modes the capacity detector reasons about.
"""

from enum import Enum


class OperationType(Enum):
    """Store operation tags, spelled as the client reports them."""

    GET = "get"
    PUT = "put"
    UPDATE = "update"
    DELETE = "delete"
    QUERY = "query"
    SCAN = "scan"
    BATCH_GET = "batchGet"
    BATCH_WRITE = "batchWrite"
    TRANSACT_WRITE = "transactWrite"
    TRANSACT_GET = "transactGet"

    @property
    def is_write(self) -> bool:
        return self in _WRITE_OPERATIONS

    @property
    def is_read(self) -> bool:
        return not self.is_write


_WRITE_OPERATIONS = frozenset({
    OperationType.PUT,
    OperationType.UPDATE,
    OperationType.DELETE,
    OperationType.BATCH_WRITE,
    OperationType.TRANSACT_WRITE,
})


class Severity(Enum):
    """Recommendation severity, lowest to highest."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        """Numeric rank used for ordering (higher = more urgent)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}


class Category(Enum):
    """What kind of problem a recommendation addresses."""

    HOT_PARTITION = "hot-partition"
    SCAN_INEFFICIENCY = "scan-inefficiency"
    FETCHING_TO_FILTER = "fetching-to-filter"
    BATCH_OPPORTUNITY = "batch-opportunity"
    READ_BEFORE_WRITE = "read-before-write"
    LARGE_ITEM = "large-item"
    UNIFORM_PARTITION_KEY = "uniform-partition-key"
    UNUSED_INDEX = "unused-index"
    CAPACITY = "capacity"
    COST = "cost"
    PERFORMANCE = "performance"
    BEST_PRACTICE = "best-practice"


class CapacityMode(Enum):
    """Billing modes for table throughput."""

    PROVISIONED = "provisioned"
    ON_DEMAND = "on-demand"
    UNKNOWN = "unknown"
