"""Format-sniffing predicates for key values.

Each predicate looks at one string and answers one question (is it an
integer, an ISO-8601 date, a Unix epoch, a ``TOKEN#value`` composite).  The
key-distribution detectors compose them; none of them raises.
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Sequence

import numpy as np

KEY_DELIMITER = "#"

_INT_RE = re.compile(r"[+-]?\d+")
_TOKEN_RE = re.compile(r"[A-Z][A-Z0-9_]*")

# Plausible epoch range: 2000-01-01 to 2100-01-01 UTC
_EPOCH_MIN_S = 946_684_800
_EPOCH_MAX_S = 4_102_444_800


def extract_integer(value: str) -> int | None:
    """Parse *value* as an integer, or the integer after its last delimiter.

    ``"42"`` -> 42, ``"ORDER#0042"`` -> 42, ``"USER#abc"`` -> ``None``.
    """
    text = value.strip()
    if _INT_RE.fullmatch(text):
        return int(text)
    tail = text.rsplit(KEY_DELIMITER, 1)[-1]
    if tail != text and _INT_RE.fullmatch(tail):
        return int(tail)
    return None


def is_iso_date(value: str) -> bool:
    """True for ISO-8601 dates or datetimes (``2024-05-01``, ``2024-05-01T10:00Z``).

    A value that merely starts with a date (``2024-05-01#evt``) also counts.
    """
    text = value.strip()
    if len(text) < 10 or text[4] != "-" or text[7] != "-":
        return False
    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        datetime.datetime.fromisoformat(candidate)
        return True
    except ValueError:
        pass
    try:
        datetime.date.fromisoformat(text[:10])
        return True
    except ValueError:
        return False


def is_epoch_timestamp(value: str) -> bool:
    """True for integers that read as a Unix time in seconds or milliseconds."""
    text = value.strip()
    if not text.isdigit() or len(text) not in (10, 13):
        return False
    number = int(text)
    if len(text) == 13:
        number //= 1000
    return _EPOCH_MIN_S <= number <= _EPOCH_MAX_S


def looks_temporal(value: str) -> bool:
    return is_iso_date(value) or is_epoch_timestamp(value)


def concatenated_shape(value: str) -> tuple[str, ...] | None:
    """Return the token names of a ``TOKEN#value#TOKEN#value`` key.

    ``"TENANT#7#CUSTOMER#42"`` -> ``("TENANT", "CUSTOMER")``.  Values with
    fewer than two token/value pairs, empty segments, or a segment in a token
    position that is not an upper-case identifier return ``None``.
    """
    segments = value.split(KEY_DELIMITER)
    if len(segments) < 4 or len(segments) % 2 != 0:
        return None
    if any(not s for s in segments):
        return None
    tokens = tuple(segments[0::2])
    if not all(_TOKEN_RE.fullmatch(t) for t in tokens):
        return None
    return tokens


def increasing_ratio(values: Sequence[int]) -> float:
    """Fraction of consecutive pairs where the next value is strictly larger."""
    if len(values) < 2:
        return 0.0
    diffs = np.diff(np.asarray(values, dtype=np.float64))
    return float(np.count_nonzero(diffs > 0)) / len(diffs)
