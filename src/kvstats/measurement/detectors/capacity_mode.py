"""Capacity-mode mismatch detector.

With a provisioned baseline
---------------------------
Provisioned throughput is enforced per second, so peaks are measured on
short buckets while the mean is taken over the span actually observed::

    peak = max(units(minute)) / (baseline_units_per_second * 60)
    mean = sum(units) / observed_seconds / baseline_units_per_second

``observed_seconds`` runs from the first record to the last and is never
shorter than one bucket.  Only dimensions that are provisioned and for which
at least one record reports consumed units are checked.

- any minute ``> 80%``  -> ``warning``: bursts exceed provisioned capacity.
- mean ``< 30%`` in every checked dimension -> ``info``: on-demand is
  cheaper.

The cost delta is plain arithmetic on :class:`CapacityPricing`.  Units are
scaled by ``1 / sample_rate`` so a sampled buffer still estimates the full
traffic.

Without a baseline
------------------
Falls back to the traffic-shape heuristic on hourly operation counts: a
coefficient of variation above 0.5 or long idle hours favour on-demand, a
steady busy workload (CV below 0.3, more than ten operations an hour)
favours provisioned.  Moderate traffic produces no recommendation.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from kvstats.domain.enums import CapacityMode, Category, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation
from kvstats.infrastructure.config import CapacityBaseline
from kvstats.measurement.detectors.base import (
    DEFAULT_MIN_SAMPLES,
    BaseDetector,
    DetectionContext,
    percent,
)

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


def bucket_totals(
    records: tuple[OperationRecord, ...] | list[OperationRecord],
    bucket_ms: float = HOUR_MS,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-bucket ``(operation counts, read units, write units)``.

    Buckets are aligned to multiples of *bucket_ms* and cover every bucket
    from the first record to the last, so idle buckets appear as zeros.
    Missing unit values count as zero.
    """
    buckets = np.asarray([int(r.timestamp // bucket_ms) for r in records], dtype=np.int64)
    offsets = buckets - buckets.min()
    size = int(offsets.max()) + 1
    counts = np.bincount(offsets, minlength=size).astype(np.float64)
    reads = np.bincount(
        offsets, weights=[r.consumed_read_units or 0.0 for r in records], minlength=size
    )
    writes = np.bincount(
        offsets, weights=[r.consumed_write_units or 0.0 for r in records], minlength=size
    )
    return counts, reads, writes


class CapacityModeDetector(BaseDetector):
    """Billing mode that does not match the observed traffic."""

    def __init__(
        self,
        low_utilization: float = 0.30,
        burst_utilization: float = 0.80,
        min_samples: int = DEFAULT_MIN_SAMPLES,
        peak_bucket_ms: float = MINUTE_MS,
    ) -> None:
        self._low = low_utilization
        self._burst = burst_utilization
        self._min_samples = max(1, min_samples)
        self._peak_bucket_ms = max(1000.0, peak_bucket_ms)

    @property
    def name(self) -> str:
        return "capacity_mode"

    @property
    def category(self) -> Category:
        return Category.CAPACITY

    def validate(self, ctx: DetectionContext) -> bool:
        return len(ctx.records) >= self._min_samples

    def _detect(self, ctx: DetectionContext) -> list[Recommendation]:
        baseline = ctx.config.capacity_baseline
        if baseline is not None:
            return self._against_baseline(ctx, baseline)
        return self._from_traffic_shape(ctx)

    # -- provisioned baseline ------------------------------------------------

    def _against_baseline(
        self,
        ctx: DetectionContext,
        baseline: CapacityBaseline,
    ) -> list[Recommendation]:
        records = ctx.records
        provisioned_ups: dict[str, float] = {}
        if baseline.read_units_per_second > 0 and any(
            r.consumed_read_units is not None for r in records
        ):
            provisioned_ups["read"] = baseline.read_units_per_second
        if baseline.write_units_per_second > 0 and any(
            r.consumed_write_units is not None for r in records
        ):
            provisioned_ups["write"] = baseline.write_units_per_second
        if not provisioned_ups:
            logger.debug("No consumed units reported for a provisioned dimension")
            return []

        _, reads, writes = bucket_totals(records, self._peak_bucket_ms)
        rate = ctx.config.sample_rate
        scale = 1.0 / rate if rate > 0 else 1.0
        totals = {"read": reads * scale, "write": writes * scale}

        bucket_seconds = self._peak_bucket_ms / 1000.0
        first = min(r.timestamp for r in records)
        last = max(r.timestamp for r in records)
        observed_seconds = max(last - first, self._peak_bucket_ms) / 1000.0

        peaks = {
            dim: float(totals[dim].max()) / (ups * bucket_seconds)
            for dim, ups in provisioned_ups.items()
        }
        means = {
            dim: float(totals[dim].sum()) / observed_seconds / ups
            for dim, ups in provisioned_ups.items()
        }
        logger.debug("capacity utilization means=%s peaks=%s", means, peaks)

        pricing = ctx.config.pricing
        provisioned = pricing.provisioned_monthly_cost(baseline)
        on_demand = pricing.on_demand_monthly_cost(
            float(totals["read"].sum()) / observed_seconds,
            float(totals["write"].sum()) / observed_seconds,
        )
        metadata: dict[str, Any] = {
            "observed_seconds": observed_seconds,
            "mean_utilization": means,
            "peak_utilization": peaks,
            "provisioned_monthly_cost": provisioned,
            "on_demand_monthly_cost": on_demand,
            "monthly_savings": provisioned - on_demand,
        }

        burst_dims = [dim for dim, peak in peaks.items() if peak > self._burst]
        if burst_dims:
            worst = max(peaks[d] for d in burst_dims)
            return [
                Recommendation(
                    severity=Severity.WARNING,
                    category=self.category,
                    message="Traffic bursts exceed provisioned capacity",
                    details=(
                        f"Peak {'/'.join(burst_dims)} utilization over "
                        f"{bucket_seconds:.0f}s buckets reached "
                        f"{percent(worst)} of the provisioned baseline (threshold "
                        f"{percent(self._burst)}). Bursts above provisioned capacity "
                        f"are throttled."
                    ),
                    suggested_action=(
                        "Raise provisioned capacity or enable auto scaling, or switch "
                        "to on-demand mode for spiky traffic."
                    ),
                    affected_operations=(),
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Fewer throttled requests during peaks",
                        cost_reduction=self._delta_text(provisioned, on_demand),
                        score=min(1.0, worst / 2),
                    ),
                    frequency=len(ctx.records),
                    detector=self.name,
                    metadata={**metadata, "recommended_mode": CapacityMode.ON_DEMAND.value},
                )
            ]

        if means and all(m < self._low for m in means.values()):
            savings = provisioned - on_demand
            return [
                Recommendation(
                    severity=Severity.INFO,
                    category=self.category,
                    message="Provisioned capacity is underutilized",
                    details=(
                        "Mean utilization over the observed window is "
                        + ", ".join(f"{dim} {percent(m)}" for dim, m in means.items())
                        + f" of the provisioned baseline (below {percent(self._low)})."
                    ),
                    suggested_action=(
                        "Switch to on-demand mode, or lower provisioned capacity to "
                        "match observed traffic."
                    ),
                    affected_operations=(),
                    estimated_impact=EstimatedImpact(
                        cost_reduction=self._delta_text(provisioned, on_demand),
                        score=max(0.0, min(1.0, savings / provisioned)) if provisioned > 0 else 0.0,
                    ),
                    frequency=len(ctx.records),
                    detector=self.name,
                    metadata={**metadata, "recommended_mode": CapacityMode.ON_DEMAND.value},
                )
            ]
        return []

    @staticmethod
    def _delta_text(provisioned: float, on_demand: float) -> str:
        savings = provisioned - on_demand
        if savings > 0:
            return (
                f"Estimated ${savings:.2f}/month saved (provisioned ${provisioned:.2f} "
                f"vs on-demand ${on_demand:.2f})"
            )
        return (
            f"On-demand would cost ${-savings:.2f}/month more (provisioned "
            f"${provisioned:.2f} vs on-demand ${on_demand:.2f})"
        )

    # -- traffic-shape fallback ----------------------------------------------

    def _from_traffic_shape(self, ctx: DetectionContext) -> list[Recommendation]:
        counts, _, _ = bucket_totals(ctx.records, HOUR_MS)
        active = counts[counts > 0]
        if len(active) < 2:
            return []

        mean = float(active.mean())
        cv = float(active.std() / mean) if mean > 0 else 0.0
        low = float(active.min())

        if cv > 0.5:
            mode = CapacityMode.ON_DEMAND
            reasoning = (
                f"Traffic is highly variable (CV: {cv:.2f}). On-demand mode handles "
                f"spiky workloads more cost-effectively."
            )
        elif low < mean * 0.2:
            mode = CapacityMode.ON_DEMAND
            reasoning = (
                "Traffic has significant idle periods. On-demand mode avoids paying "
                "for unused provisioned capacity."
            )
        elif cv < 0.3 and mean > 10:
            mode = CapacityMode.PROVISIONED
            reasoning = (
                f"Traffic is steady and predictable (CV: {cv:.2f}). Provisioned mode "
                f"offers better cost efficiency."
            )
        else:
            return []

        return [
            Recommendation(
                severity=Severity.INFO,
                category=self.category,
                message=f"Consider {mode.value} capacity mode",
                details=(
                    f"{reasoning} Observed {len(active)} active hours averaging "
                    f"{mean:.1f} operations per hour."
                ),
                suggested_action=(
                    f"Switch the table to {mode.value} mode. Supply a capacity "
                    f"baseline for a utilization-based estimate."
                ),
                affected_operations=(),
                estimated_impact=EstimatedImpact(
                    cost_reduction="Billing mode matched to the traffic shape",
                    score=min(1.0, cv) if mode is CapacityMode.ON_DEMAND else 0.3,
                ),
                frequency=len(ctx.records),
                detector=self.name,
                metadata={
                    "recommended_mode": mode.value,
                    "coefficient_of_variation": cv,
                    "avg_ops_per_hour": mean,
                    "min_ops_per_hour": low,
                    "active_hours": len(active),
                },
            )
        ]

    def describe(self) -> str:
        return (
            f"Capacity mode: utilization below {percent(self._low)} or bursts above "
            f"{percent(self._burst)} of the provisioned baseline."
        )
