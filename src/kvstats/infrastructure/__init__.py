"""Infrastructure layer for kvstats.

Re-exports the public API surface for convenience::

    from kvstats.infrastructure import StatsConfig, load_config_from_json, to_json
"""

from kvstats.infrastructure.config import (
    CapacityBaseline,
    CapacityPricing,
    StatsConfig,
    Thresholds,
    load_config_from_json,
)
from kvstats.infrastructure.serialization import (
    deserialize,
    dumps_records,
    from_json,
    loads_records,
    record_from_dict,
    record_to_dict,
    recommendation_from_dict,
    recommendation_to_dict,
    serialize,
    to_json,
)

__all__ = [
    # Configuration
    "CapacityBaseline",
    "CapacityPricing",
    "StatsConfig",
    "Thresholds",
    "load_config_from_json",
    # Serialization
    "serialize",
    "deserialize",
    "to_json",
    "from_json",
    "dumps_records",
    "loads_records",
    "record_to_dict",
    "record_from_dict",
    "recommendation_to_dict",
    "recommendation_from_dict",
]
