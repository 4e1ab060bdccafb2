"""Time-window helpers shared by the clustering detectors.

Both helpers work on an already-collected buffer, so they sort once and
sweep rather than maintain a live sliding window.
"""

from __future__ import annotations

import bisect
from collections.abc import Sequence

from kvstats.domain.values import OperationRecord


def sort_by_time(records: Sequence[OperationRecord]) -> list[OperationRecord]:
    """Stable sort by timestamp; ties keep arrival order."""
    return sorted(records, key=lambda r: r.timestamp)


def time_clusters(
    records: Sequence[OperationRecord],
    window_ms: float,
    min_size: int,
) -> list[list[OperationRecord]]:
    """Split *records* into clusters that each fit in one *window_ms* span.

    A cluster opens at its earliest record and takes every following record
    whose timestamp is at most ``window_ms`` later.  The first record outside
    the span opens the next cluster.  Only clusters with at least
    ``min_size`` members are returned.

    Example with ``window_ms=1000``::

        t = 0, 200, 900, 1500, 1600   ->   [0, 200, 900], [1500, 1600]
    """
    clusters: list[list[OperationRecord]] = []
    current: list[OperationRecord] = []

    for record in sort_by_time(records):
        if current and record.timestamp - current[0].timestamp > window_ms:
            if len(current) >= min_size:
                clusters.append(current)
            current = []
        current.append(record)

    if len(current) >= min_size:
        clusters.append(current)
    return clusters


def count_followed_by(
    leaders: Sequence[OperationRecord],
    followers: Sequence[OperationRecord],
    window_ms: float,
) -> int:
    """Count *leaders* that have a follower strictly after them within *window_ms*.

    Each leader counts at most once, however many followers fall inside its
    window.
    """
    times = sorted(f.timestamp for f in followers)
    count = 0
    for leader in leaders:
        # first follower strictly after the leader
        idx = bisect.bisect_right(times, leader.timestamp)
        if idx < len(times) and times[idx] - leader.timestamp <= window_ms:
            count += 1
    return count
