"""
Serialization of engine records to plain, JSON-safe structures.

RULES:
1. Datetimes are ISO 8601 strings (UTC).
2. Enums use their .value.
3. Sets become sorted lists (deterministic output).
4. Non-finite floats become null; an undefined cut reads back as +inf.
5. delta keeps null for "no previous signal" and encodes an infinite
   change as the string "inf" or "-inf".
"""

import json
import math
from datetime import datetime, date
from enum import Enum
from typing import Any, Dict, Optional

from ..contracts.base import TemporalWindow
from ..contracts.signals import (
    CoherenceBoundary, CoherenceEvent, CoherenceEventType, CoherenceSignal
)


class CoherenceJSONEncoder(json.JSONEncoder):
    """JSON encoder for engine records and the types they contain."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(list(obj))
        if isinstance(obj, TemporalWindow):
            return window_to_dict(obj)
        if isinstance(obj, CoherenceSignal):
            return signal_to_dict(obj)
        if isinstance(obj, CoherenceEvent):
            return event_to_dict(obj)
        if isinstance(obj, CoherenceBoundary):
            return boundary_to_dict(obj)

        return super().default(obj)


def dumps(obj: Any, **kwargs: Any) -> str:
    return json.dumps(obj, cls=CoherenceJSONEncoder, allow_nan=False, **kwargs)


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value


def _encode_delta(value: Optional[float]) -> Any:
    if value is None or math.isfinite(value):
        return value
    return "inf" if value > 0 else "-inf"


def _decode_delta(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


# =============================================================================
# WINDOWS
# =============================================================================

def window_to_dict(window: TemporalWindow) -> Dict[str, Any]:
    return {
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "window_id": window.window_id,
    }


def window_from_dict(data: Dict[str, Any]) -> TemporalWindow:
    return TemporalWindow(
        start=_parse_time(data["start"]),
        end=_parse_time(data["end"]),
        window_id=int(data["window_id"])
    )


# =============================================================================
# SIGNALS
# =============================================================================

def signal_to_dict(signal: CoherenceSignal) -> Dict[str, Any]:
    return {
        "id": signal.id,
        "window": window_to_dict(signal.window),
        "min_cut_value": _finite(signal.min_cut_value),
        "node_count": signal.node_count,
        "edge_count": signal.edge_count,
        "partition_sizes": list(signal.partition_sizes) if signal.partition_sizes else None,
        "is_exact": signal.is_exact,
        "cut_nodes": list(signal.cut_nodes),
        "delta": _encode_delta(signal.delta),
        "component_count": signal.component_count,
    }


def signal_from_dict(data: Dict[str, Any]) -> CoherenceSignal:
    cut = data.get("min_cut_value")
    sizes = data.get("partition_sizes")
    return CoherenceSignal(
        id=data["id"],
        window=window_from_dict(data["window"]),
        min_cut_value=math.inf if cut is None else float(cut),
        node_count=int(data["node_count"]),
        edge_count=int(data["edge_count"]),
        partition_sizes=tuple(sizes) if sizes else None,
        is_exact=bool(data.get("is_exact", True)),
        cut_nodes=tuple(data.get("cut_nodes", ())),
        delta=_decode_delta(data.get("delta")),
        component_count=int(data.get("component_count", 0))
    )


# =============================================================================
# EVENTS & BOUNDARIES
# =============================================================================

def event_to_dict(event: CoherenceEvent) -> Dict[str, Any]:
    return {
        "event_type": event.event_type.value,
        "timestamp": event.timestamp.isoformat(),
        "nodes": list(event.nodes),
        "magnitude": _finite(event.magnitude),
        "context": dict(event.context),
    }


def event_from_dict(data: Dict[str, Any]) -> CoherenceEvent:
    magnitude = data.get("magnitude")
    return CoherenceEvent(
        event_type=CoherenceEventType(data["event_type"]),
        timestamp=_parse_time(data["timestamp"]),
        nodes=tuple(data.get("nodes", ())),
        magnitude=math.inf if magnitude is None else float(magnitude),
        context=tuple(sorted(data.get("context", {}).items()))
    )


def boundary_to_dict(boundary: CoherenceBoundary) -> Dict[str, Any]:
    return {
        "id": boundary.id,
        "side_a": sorted(boundary.side_a),
        "side_b": sorted(boundary.side_b),
        "cut_value": _finite(boundary.cut_value),
        "history": [[ts.isoformat(), _finite(value)] for ts, value in boundary.history],
        "first_seen": boundary.first_seen.isoformat(),
        "last_updated": boundary.last_updated.isoformat(),
        "stable": boundary.stable,
    }


def boundary_from_dict(data: Dict[str, Any]) -> CoherenceBoundary:
    return CoherenceBoundary(
        id=data["id"],
        side_a=frozenset(data["side_a"]),
        side_b=frozenset(data["side_b"]),
        cut_value=float(data["cut_value"]),
        history=tuple((_parse_time(ts), float(value)) for ts, value in data["history"]),
        first_seen=_parse_time(data["first_seen"]),
        last_updated=_parse_time(data["last_updated"]),
        stable=bool(data.get("stable", False))
    )
