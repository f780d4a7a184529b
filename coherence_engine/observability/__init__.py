"""
Observability & Audit Layer

RESPONSIBILITY: Audit logging and metrics for the coherence layers
ALLOWED INPUTS: Audit entries and metric samples from engine and windows
OUTPUTS: AuditLogEntry lists, MetricPoint series

WHAT THIS LAYER MUST NOT DO:
============================
- Modify engine behavior
- Filter or interpret events (only record them)
- Make decisions based on logged data

BOUNDARY ENFORCEMENT:
=====================
- Collectors are append-only
- Read access always returns copies
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import hashlib

from ..contracts.base import utc_now
from ..contracts.signals import AuditLogEntry, AuditEventType, MetricPoint


# =============================================================================
# LOG COLLECTOR
# =============================================================================

class LogCollector:
    """
    Append-only audit log for one layer.

    Entry ids are derived from layer, sequence and action so that two
    collectors fed the same actions produce the same ids.
    """

    def __init__(self, layer_name: str):
        self._layer_name = layer_name
        self._entries: List[AuditLogEntry] = []
        self._sequence: int = 0

    def record(
        self,
        event_type: AuditEventType,
        action: str,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        **metadata: object
    ) -> AuditLogEntry:
        """Create and collect an audit entry."""
        seed = f"{self._layer_name}|{self._sequence}|{action}|{entity_id or ''}"
        entry = AuditLogEntry(
            entry_id=f"audit_{hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]}",
            event_type=event_type,
            timestamp=utc_now(),
            layer=self._layer_name,
            action=action,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=tuple((k, str(v)) for k, v in sorted(metadata.items()))
        )
        self.collect(entry)
        return entry

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)
        self._sequence += 1

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        if action:
            entries = [e for e in entries if e.action == action]

        return list(entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Collect metric samples from the engine and window controller.

    Metrics are append-only time series data points.
    """

    def __init__(self):
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        """Register standard metrics."""
        defaults = [
            MetricDefinition(
                name="signals_computed_total",
                metric_type=MetricType.COUNTER,
                description="Total number of coherence signals appended to history",
                labels=("mode",)
            ),
            MetricDefinition(
                name="mincut_duration_ms",
                metric_type=MetricType.TIMING,
                description="Minimum cut computation time in milliseconds"
            ),
            MetricDefinition(
                name="graph_nodes",
                metric_type=MetricType.GAUGE,
                description="Node count of the graph behind the latest signal"
            ),
            MetricDefinition(
                name="mincut_trials_total",
                metric_type=MetricType.COUNTER,
                description="Randomized contraction trials executed"
            ),
            MetricDefinition(
                name="edges_dropped_total",
                metric_type=MetricType.COUNTER,
                description="Edges dropped below min_edge_weight"
            ),
            MetricDefinition(
                name="windows_finalized_total",
                metric_type=MetricType.COUNTER,
                description="Windows closed and turned into signals"
            ),
            MetricDefinition(
                name="records_rejected_total",
                metric_type=MetricType.COUNTER,
                description="Records rejected as out of order",
                labels=("reason",)
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = []

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = []

        label_tuple = tuple(sorted(labels.items())) if labels else ()

        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=utc_now(),
            labels=label_tuple
        )
        self._metrics[metric_name].append(point)

    def get_definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def definitions(self) -> List[MetricDefinition]:
        """Registered definitions in registration order."""
        return list(self._definitions.values())

    def summary(self, metric_name: str) -> Optional[float]:
        """
        Current reading of a registered metric: the running total for
        counters, the last sample for gauges and timings.
        """
        definition = self._definitions.get(metric_name)
        if definition is None:
            return None
        if definition.metric_type == MetricType.COUNTER:
            return self.total(metric_name)
        latest = self.get_latest(metric_name)
        return latest.value if latest else None

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, []))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def total(self, metric_name: str) -> float:
        """Sum of all points (meaningful for counters)."""
        return sum(p.value for p in self._metrics.get(metric_name, []))


__all__ = [
    'LogCollector',
    'MetricType',
    'MetricDefinition',
    'MetricsCollector',
]
