"""Domain exceptions for kvstats.

All library exceptions inherit from ``KvStatsError`` so callers can catch the
full family with a single ``except`` clause when needed.
"""

from __future__ import annotations

from typing import Any


class KvStatsError(Exception):
    """Base exception for all kvstats errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ConfigurationError(KvStatsError, ValueError):
    """Raised at construction time when a config value is out of range.

    Subclasses ``ValueError`` so existing ``except ValueError`` handlers keep
    working.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        field_name: str = "",
        value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_name = field_name
        self.value = value


class DetectorError(KvStatsError):
    """Diagnostic for a detector that raised while analysing the buffer.

    Never propagated out of ``RecommendationEngine.get_recommendations``;
    the engine keeps these in ``last_errors`` instead.
    """

    def __init__(
        self,
        message: str = "Detector failed",
        detector: str = "",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.detector = detector
        self.cause = cause
