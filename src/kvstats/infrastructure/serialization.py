"""Serialization utilities for kvstats.

Provides ``to_dict`` / ``from_dict`` conversion for operation records and
recommendations, plus JSON helpers for persisting ``export()`` output.

Design goals:
- stdlib ``json`` only.
- Every ``to_dict`` output is JSON-serializable (no enums, no tuples, no numpy).
- ``from_dict`` reconstructors accept snake_case and the client's camelCase
  keys, and raise ``ValueError`` for truly unrecoverable data.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from kvstats.domain.enums import Category, OperationType, Severity
from kvstats.domain.values import EstimatedImpact, OperationRecord, Recommendation

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Generic helpers                                                             #
# =========================================================================== #

def _enum_val(v: Any) -> Any:
    """Return the ``.value`` if *v* is an enum member, else *v* unchanged."""
    if hasattr(v, "value"):
        return v.value
    return v


def _plain(value: Any) -> Any:
    """Recursively turn tuples, enums and numpy scalars into JSON types."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if hasattr(value, "item") and callable(value.item):
        # numpy scalar
        return value.item()
    return _enum_val(value)


# =========================================================================== #
#  OperationRecord                                                             #
# =========================================================================== #

_RECORD_ALIASES = {
    "latencyMs": "latency_ms",
    "tableName": "table_name",
    "indexName": "index_name",
    "accessPatternName": "access_pattern_name",
    "consumedRCU": "consumed_read_units",
    "consumedWCU": "consumed_write_units",
    "consumedReadUnits": "consumed_read_units",
    "consumedWriteUnits": "consumed_write_units",
    "itemCount": "item_count",
    "scannedCount": "scanned_count",
    "partitionKeyValue": "partition_key_value",
    "sortKeyValue": "sort_key_value",
    "itemSizeBytes": "item_size_bytes",
    "filterApplied": "filter_applied",
    "usedProjection": "used_projection",
}

_RECORD_FIELDS = (
    "latency_ms",
    "table_name",
    "index_name",
    "access_pattern_name",
    "consumed_read_units",
    "consumed_write_units",
    "item_count",
    "scanned_count",
    "partition_key_value",
    "sort_key_value",
    "item_size_bytes",
    "filter_applied",
    "used_projection",
)


def record_to_dict(record: OperationRecord) -> dict[str, Any]:
    data: dict[str, Any] = {
        "operation": record.operation.value,
        "timestamp": record.timestamp,
    }
    for name in _RECORD_FIELDS:
        data[name] = getattr(record, name)
    data["metadata"] = _plain(record.metadata) if record.metadata else {}
    return data


def record_from_dict(data: dict[str, Any]) -> OperationRecord:
    """Rebuild an :class:`OperationRecord`, accepting camelCase keys.

    Raises ``ValueError`` when ``operation`` or ``timestamp`` is missing or
    the operation tag is unknown.  Unknown keys are ignored.
    """
    fields = {_RECORD_ALIASES.get(k, k): v for k, v in data.items()}
    if "operation" not in fields or "timestamp" not in fields:
        raise ValueError("record needs both 'operation' and 'timestamp'")

    kwargs: dict[str, Any] = {
        "operation": OperationType(fields["operation"]),
        "timestamp": float(fields["timestamp"]),
    }
    for name in _RECORD_FIELDS:
        if fields.get(name) is not None:
            kwargs[name] = fields[name]
    for name in ("latency_ms", "consumed_read_units", "consumed_write_units"):
        if name in kwargs:
            kwargs[name] = float(kwargs[name])
    for name in ("item_count", "scanned_count", "item_size_bytes"):
        if name in kwargs:
            kwargs[name] = int(kwargs[name])
    for name in ("filter_applied", "used_projection"):
        if name in kwargs:
            kwargs[name] = bool(kwargs[name])
    kwargs["metadata"] = dict(fields.get("metadata") or {})
    return OperationRecord(**kwargs)


# =========================================================================== #
#  Recommendation                                                              #
# =========================================================================== #

def impact_to_dict(impact: EstimatedImpact) -> dict[str, Any]:
    return {
        "cost_reduction": impact.cost_reduction,
        "performance_improvement": impact.performance_improvement,
        "score": impact.score,
    }


def impact_from_dict(data: dict[str, Any]) -> EstimatedImpact:
    score = data.get("score")
    return EstimatedImpact(
        cost_reduction=data.get("cost_reduction", data.get("costReduction")),
        performance_improvement=data.get(
            "performance_improvement", data.get("performanceImprovement")
        ),
        score=float(score) if score is not None else None,
    )


def recommendation_to_dict(rec: Recommendation) -> dict[str, Any]:
    return {
        "severity": rec.severity.value,
        "category": rec.category.value,
        "message": rec.message,
        "details": rec.details,
        "suggested_action": rec.suggested_action,
        "affected_operations": list(rec.affected_operations),
        "estimated_impact": (
            impact_to_dict(rec.estimated_impact) if rec.estimated_impact else None
        ),
        "frequency": rec.frequency,
        "detector": rec.detector,
        "metadata": _plain(rec.metadata) if rec.metadata else {},
    }


def recommendation_from_dict(data: dict[str, Any]) -> Recommendation:
    impact = data.get("estimated_impact", data.get("estimatedImpact"))
    return Recommendation(
        severity=Severity(data["severity"]),
        category=Category(data["category"]),
        message=str(data["message"]),
        details=str(data.get("details", "")),
        suggested_action=data.get("suggested_action", data.get("suggestedAction")),
        affected_operations=tuple(
            data.get("affected_operations", data.get("affectedOperations", ()))
        ),
        estimated_impact=impact_from_dict(impact) if impact else None,
        frequency=int(data.get("frequency", 0)),
        detector=str(data.get("detector", "")),
        metadata=dict(data.get("metadata") or {}),
    )


# =========================================================================== #
#  Dispatch                                                                    #
# =========================================================================== #

_SERIALIZERS: dict[type, tuple[Any, Any]] = {
    OperationRecord: (record_to_dict, record_from_dict),
    EstimatedImpact: (impact_to_dict, impact_from_dict),
    Recommendation: (recommendation_to_dict, recommendation_from_dict),
}


def serialize(obj: Any) -> dict[str, Any]:
    """Serialize a known kvstats object to a dict.

    Objects with their own ``to_dict`` (stats snapshots, reports, configs)
    are delegated to it.  Raises ``TypeError`` for unsupported types.
    """
    ser = _SERIALIZERS.get(type(obj))
    if ser is not None:
        to_fn, _ = ser
        return to_fn(obj)
    if hasattr(obj, "to_dict"):
        return _plain(obj.to_dict())
    raise TypeError(f"No serializer registered for {type(obj).__name__}")


def deserialize(data: dict[str, Any], target_type: type) -> Any:
    """Deserialize a dict into *target_type*.

    For configs, use their ``from_dict`` classmethod directly.
    """
    ser = _SERIALIZERS.get(target_type)
    if ser is not None:
        _, from_fn = ser
        return from_fn(data)
    if hasattr(target_type, "from_dict"):
        return target_type.from_dict(data)
    raise TypeError(f"No deserializer registered for {target_type.__name__}")


# =========================================================================== #
#  JSON helpers                                                                #
# =========================================================================== #

def to_json(obj: Any, *, indent: int | None = 2) -> str:
    """Serialize a kvstats object to a JSON string."""
    return json.dumps(serialize(obj), indent=indent, default=str)


def from_json(json_str: str, target_type: type) -> Any:
    """Deserialize a JSON string into *target_type*."""
    return deserialize(json.loads(json_str), target_type)


def dumps_records(records: Any, *, indent: int | None = None) -> str:
    """Serialize an iterable of records (e.g. ``export()`` output) to JSON."""
    return json.dumps([record_to_dict(r) for r in records], indent=indent, default=str)


def loads_records(json_str: str, *, strict: bool = True) -> list[OperationRecord]:
    """Parse a JSON array of records.

    With ``strict=False`` entries that cannot be rebuilt are logged and
    skipped instead of raising ``ValueError``.
    """
    data = json.loads(json_str)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

    records: list[OperationRecord] = []
    for index, entry in enumerate(data):
        try:
            if not isinstance(entry, dict):
                raise ValueError(f"expected an object, got {type(entry).__name__}")
            records.append(record_from_dict(entry))
        except (ValueError, TypeError) as exc:
            if strict:
                raise ValueError(f"Invalid record at index {index}: {exc}") from exc
            logger.warning("Skipping invalid record at index %d: %s", index, exc)
    return records
