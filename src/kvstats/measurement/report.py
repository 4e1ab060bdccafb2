"""Recommendation report value object.

:class:`RecommendationReport` is an immutable summary of one engine run: the
ordered recommendations, the aggregate snapshot they were derived from, and
any detector failures.  It supports lookup by category, dictionary
serialisation, and a human-readable text summary.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any

from kvstats.domain.enums import Category, Severity
from kvstats.domain.values import Recommendation
from kvstats.infrastructure.serialization import recommendation_to_dict
from kvstats.measurement.stats import TableStats


@dataclass(frozen=True)
class RecommendationReport:
    """Immutable report of one ``get_recommendations()`` run.

    Attributes
    ----------
    recommendations:
        Recommendations in priority order.
    stats:
        Aggregate snapshot taken together with the analysed buffer.
    timestamp:
        Unix timestamp (seconds) of when the report was generated.
    errors:
        Detector name to failure message for detectors that raised.
    metadata:
        Extra run data (buffer size, sampled-out count, detector count).
    """

    recommendations: tuple[Recommendation, ...]
    stats: TableStats
    timestamp: float
    errors: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    # -- lookup ---------------------------------------------------------------

    @property
    def counts_by_severity(self) -> dict[str, int]:
        """Severity value to count, with every severity present."""
        counts = {s.value: 0 for s in Severity}
        for rec in self.recommendations:
            counts[rec.severity.value] += 1
        return counts

    def by_category(self, category: Category | str) -> list[Recommendation]:
        """Return the recommendations of one category, in priority order."""
        wanted = Category(category)
        return [r for r in self.recommendations if r.category is wanted]

    def by_severity(self, severity: Severity | str) -> list[Recommendation]:
        wanted = Severity(severity)
        return [r for r in self.recommendations if r.severity is wanted]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialise the report to a plain dictionary.

        Returns a structure suitable for JSON serialisation::

            {
                "timestamp": 1234567890.0,
                "timestamp_iso": "2025-01-01T00:00:00+00:00",
                "counts_by_severity": {"info": 1, "warning": 2, "error": 0},
                "recommendations": [{...}, ...],
                "stats": {...},
                "errors": {},
                "metadata": {...}
            }
        """
        iso = datetime.datetime.fromtimestamp(
            self.timestamp, tz=datetime.timezone.utc
        ).isoformat()
        return {
            "timestamp": self.timestamp,
            "timestamp_iso": iso,
            "counts_by_severity": self.counts_by_severity,
            "recommendations": [recommendation_to_dict(r) for r in self.recommendations],
            "stats": self.stats.to_dict(),
            "errors": dict(self.errors),
            "metadata": dict(self.metadata),
        }

    # -- human-readable summary -----------------------------------------------

    def summary(self) -> str:
        """Return a human-readable table string.

        Example output::

            === Recommendation Report ===
            Severity  Category            Message
            ----------------------------------------------------------
            warning   large-item          Large items detected in default:primary
            info      batch-opportunity   Sequential writes detected in ...
            ----------------------------------------------------------
            1 warning, 1 info (2 operations recorded)
        """
        col_sev = "Severity"
        col_cat = "Category"
        sev_width = max(len(col_sev), *(len(s.value) for s in Severity))
        cat_width = max(
            len(col_cat),
            *(len(r.category.value) for r in self.recommendations),
        ) if self.recommendations else len(col_cat)

        sep = "-" * (sev_width + cat_width + 40)
        lines: list[str] = [
            "=== Recommendation Report ===",
            f"{col_sev:<{sev_width}}  {col_cat:<{cat_width}}  Message",
            sep,
        ]
        for r in self.recommendations:
            lines.append(
                f"{r.severity.value:<{sev_width}}  {r.category.value:<{cat_width}}  {r.message}"
            )
        if not self.recommendations:
            lines.append("(no recommendations)")
        lines.append(sep)

        counts = self.counts_by_severity
        tally = ", ".join(
            f"{counts[s.value]} {s.value}" for s in reversed(Severity) if counts[s.value]
        )
        lines.append(
            f"{tally or 'nothing to report'} "
            f"({self.stats.total_operations} operations recorded)"
        )

        if self.errors:
            lines.append("")
            for name, message in self.errors.items():
                lines.append(f"  detector {name} failed: {message}")

        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.recommendations)

    def __repr__(self) -> str:
        return (
            f"RecommendationReport(recommendations={len(self.recommendations)}, "
            f"errors={len(self.errors)})"
        )
