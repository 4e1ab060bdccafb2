"""Configuration dataclasses for kvstats.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
:class:`~kvstats.domain.exceptions.ConfigurationError` (a ``ValueError``) on
out-of-range values.  Configs are **frozen** so one instance can be shared
between engines without risking silent mutation.

``from_dict`` accepts both snake_case keys and the camelCase spelling used by
the store client (``sampleRate``, ``slowQueryMs``, ``highRCU``...).
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from kvstats.domain.exceptions import ConfigurationError


def _pick(data: dict[str, Any], cls: type, aliases: dict[str, str]) -> dict[str, Any]:
    """Keep only keys that name a field of *cls*, translating *aliases*."""
    valid_keys = {f.name for f in fields(cls)}
    picked: dict[str, Any] = {}
    for key, value in data.items():
        name = aliases.get(key, key)
        if name in valid_keys:
            picked[name] = value
    return picked


# ===================================================================== #
#  Thresholds                                                            #
# ===================================================================== #

_THRESHOLD_ALIASES = {
    "slowQueryMs": "slow_query_ms",
    "highReadUnits": "high_read_units",
    "highWriteUnits": "high_write_units",
    "highRCU": "high_read_units",
    "highWCU": "high_write_units",
}


@dataclass(frozen=True)
class Thresholds:
    """Severity cutoffs shared by several detectors.

    Attributes
    ----------
    slow_query_ms:
        Latency above which an operation counts as slow.
    high_read_units:
        Read units per operation above which a read counts as expensive.
    high_write_units:
        Write units per operation above which a write counts as expensive.
    """

    slow_query_ms: float = 1000.0
    high_read_units: float = 100.0
    high_write_units: float = 100.0

    def validate(self) -> None:
        for name in ("slow_query_ms", "high_read_units", "high_write_units"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(
                    f"thresholds.{name} must be > 0, got {value}",
                    field_name=name,
                    value=value,
                )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Thresholds:
        cfg = cls(**_pick(data, cls, _THRESHOLD_ALIASES))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Capacity                                                              #
# ===================================================================== #

_BASELINE_ALIASES = {
    "readUnitsPerSecond": "read_units_per_second",
    "writeUnitsPerSecond": "write_units_per_second",
    "provisionedRCU": "read_units_per_second",
    "provisionedWCU": "write_units_per_second",
}


@dataclass(frozen=True)
class CapacityBaseline:
    """Provisioned throughput the table is (or would be) billed for.

    Both values are capacity units per second.  A zero value means that
    dimension is not provisioned and is ignored by utilization checks.
    """

    read_units_per_second: float = 0.0
    write_units_per_second: float = 0.0

    def validate(self) -> None:
        if self.read_units_per_second < 0:
            raise ConfigurationError(
                f"read_units_per_second must be >= 0, got {self.read_units_per_second}",
                field_name="read_units_per_second",
                value=self.read_units_per_second,
            )
        if self.write_units_per_second < 0:
            raise ConfigurationError(
                f"write_units_per_second must be >= 0, got {self.write_units_per_second}",
                field_name="write_units_per_second",
                value=self.write_units_per_second,
            )
        if self.read_units_per_second == 0 and self.write_units_per_second == 0:
            raise ConfigurationError(
                "capacity baseline needs at least one non-zero dimension",
                field_name="capacity_baseline",
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CapacityBaseline:
        cfg = cls(**_pick(data, cls, _BASELINE_ALIASES))
        cfg.validate()
        return cfg


@dataclass(frozen=True)
class CapacityPricing:
    """Unit-cost constants for the capacity cost estimate.

    The defaults are list prices for a typical region; the arithmetic is a
    rough estimate, never a pricing-API lookup.

    Attributes
    ----------
    provisioned_read_unit_hour / provisioned_write_unit_hour:
        Price of one provisioned unit-per-second for one hour.
    on_demand_read_per_million / on_demand_write_per_million:
        Price of one million on-demand request units.
    hours_per_month:
        Billing hours in a month.
    """

    provisioned_read_unit_hour: float = 0.00013
    provisioned_write_unit_hour: float = 0.00065
    on_demand_read_per_million: float = 0.25
    on_demand_write_per_million: float = 1.25
    hours_per_month: float = 730.0

    def validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ConfigurationError(
                    f"pricing.{f.name} must be >= 0, got {value}",
                    field_name=f.name,
                    value=value,
                )
        if self.hours_per_month <= 0:
            raise ConfigurationError(
                f"hours_per_month must be > 0, got {self.hours_per_month}",
                field_name="hours_per_month",
                value=self.hours_per_month,
            )

    def provisioned_monthly_cost(self, baseline: CapacityBaseline) -> float:
        """Monthly cost of keeping *baseline* provisioned around the clock."""
        hourly = (
            baseline.read_units_per_second * self.provisioned_read_unit_hour
            + baseline.write_units_per_second * self.provisioned_write_unit_hour
        )
        return hourly * self.hours_per_month

    def on_demand_monthly_cost(
        self,
        read_units_per_second: float,
        write_units_per_second: float,
    ) -> float:
        """Monthly on-demand cost of sustaining the given average unit rates."""
        seconds = self.hours_per_month * 3600.0
        return (
            read_units_per_second * seconds * self.on_demand_read_per_million / 1_000_000
            + write_units_per_second * seconds * self.on_demand_write_per_million / 1_000_000
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CapacityPricing:
        cfg = cls(**_pick(data, cls, {}))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Stats Configuration                                                   #
# ===================================================================== #

_STATS_ALIASES = {
    "sampleRate": "sample_rate",
    "capacityBaseline": "capacity_baseline",
}


@dataclass(frozen=True)
class StatsConfig:
    """Top-level configuration for one collector / engine instance.

    Attributes
    ----------
    enabled:
        When ``False``, ``record()`` is a no-op.
    sample_rate:
        Fraction of calls retained in the raw buffer, in ``[0, 1]``.
        Aggregates always count every call.
    thresholds:
        Severity cutoffs for the slow-operation and capacity detectors.
    capacity_baseline:
        Provisioned throughput to measure utilization against.  ``None``
        makes the capacity detector fall back to traffic-shape heuristics.
    pricing:
        Unit-cost constants for cost estimates.
    seed:
        Seed for the sampling generator; ``None`` draws fresh entropy.
    """

    enabled: bool = True
    sample_rate: float = 1.0
    thresholds: Thresholds = field(default_factory=Thresholds)
    capacity_baseline: CapacityBaseline | None = None
    pricing: CapacityPricing = field(default_factory=CapacityPricing)
    seed: int | None = None

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if any field is out of valid range."""
        if not (0.0 <= self.sample_rate <= 1.0):
            raise ConfigurationError(
                f"sample_rate must be in [0, 1], got {self.sample_rate}",
                field_name="sample_rate",
                value=self.sample_rate,
            )
        if self.seed is not None and self.seed < 0:
            raise ConfigurationError(
                f"seed must be >= 0, got {self.seed}",
                field_name="seed",
                value=self.seed,
            )
        self.thresholds.validate()
        self.pricing.validate()
        if self.capacity_baseline is not None:
            self.capacity_baseline.validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatsConfig:
        picked = _pick(data, cls, _STATS_ALIASES)
        if isinstance(picked.get("thresholds"), dict):
            picked["thresholds"] = Thresholds.from_dict(picked["thresholds"])
        if isinstance(picked.get("capacity_baseline"), dict):
            picked["capacity_baseline"] = CapacityBaseline.from_dict(
                picked["capacity_baseline"]
            )
        if isinstance(picked.get("pricing"), dict):
            picked["pricing"] = CapacityPricing.from_dict(picked["pricing"])
        cfg = cls(**picked)
        cfg.validate()
        return cfg


def load_config_from_json(json_str: str) -> StatsConfig:
    """Parse a JSON string into a validated :class:`StatsConfig`."""
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    return StatsConfig.from_dict(data)
