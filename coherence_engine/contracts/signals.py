"""
Signal Contracts

Immutable records produced by the coherence engine and consumed downstream.

DESIGN PRINCIPLES:
==================
1. Signals are append-only: once created they never change
2. Events are DERIVED from signal history, never stored by the engine
3. Boundaries evolve by REPLACEMENT (new record per observation)
4. Event types and error kinds are closed enumerations
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple
import math

from .base import Error, TemporalWindow


# =============================================================================
# MIN-CUT COMPUTATION
# =============================================================================

@dataclass(frozen=True)
class MinCutResult:
    """
    Raw output of one minimum cut computation.

    Partitions hold dense node indices, sorted ascending.
    Both partitions are empty when no cut exists (fewer than 2 nodes).
    """
    cut_value: float
    partition_a: Tuple[int, ...] = ()
    partition_b: Tuple[int, ...] = ()
    is_exact: bool = True
    trials: int = 0

    @property
    def has_partition(self) -> bool:
        return bool(self.partition_a) and bool(self.partition_b)

    @property
    def partition_sizes(self) -> Optional[Tuple[int, int]]:
        if not self.has_partition:
            return None
        return (len(self.partition_a), len(self.partition_b))


# =============================================================================
# COHERENCE SIGNAL
# =============================================================================

@dataclass(frozen=True)
class CoherenceSignal:
    """
    IMMUTABLE coherence measurement for one window.

    min_cut_value is +inf when the graph has fewer than two nodes.
    delta is relative to the previously stored signal of the same engine.
    """
    id: str
    window: TemporalWindow
    min_cut_value: float
    node_count: int
    edge_count: int
    partition_sizes: Optional[Tuple[int, int]] = None
    is_exact: bool = True
    cut_nodes: Tuple[str, ...] = field(default_factory=tuple)
    delta: Optional[float] = None
    component_count: int = 0

    def __post_init__(self):
        if not math.isnan(self.min_cut_value) and self.min_cut_value < 0:
            raise ValueError("min_cut_value must be non-negative")
        if self.partition_sizes is not None and sum(self.partition_sizes) != self.node_count:
            raise ValueError("partition_sizes must sum to node_count")

    @property
    def has_cut(self) -> bool:
        return math.isfinite(self.min_cut_value)


@dataclass(frozen=True)
class SignalComputationResult:
    """Result of compute_signals(). Signals is the full history on success."""
    success: bool
    signals: Tuple[CoherenceSignal, ...] = ()
    error: Optional[Error] = None
    processing_time_ms: float = 0.0

    @property
    def latest(self) -> Optional[CoherenceSignal]:
        return self.signals[-1] if self.signals else None


# =============================================================================
# COHERENCE EVENTS
# =============================================================================

class CoherenceEventType(Enum):
    """Closed set of coherence change classifications."""
    STRENGTHENED = "strengthened"
    WEAKENED = "weakened"
    SPLIT = "split"
    MERGED = "merged"
    THRESHOLD_CROSSED = "threshold_crossed"
    ANOMALY = "anomaly"


@dataclass(frozen=True)
class CoherenceEvent:
    """
    Derived change event between two consecutive signals.

    magnitude is always |delta| of the later signal.
    """
    event_type: CoherenceEventType
    timestamp: datetime
    nodes: Tuple[str, ...]
    magnitude: float
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.magnitude < 0:
            raise ValueError("magnitude must be non-negative")

    def context_dict(self) -> Dict[str, str]:
        return dict(self.context)


# =============================================================================
# COHERENCE BOUNDARIES
# =============================================================================

@dataclass(frozen=True)
class CoherenceBoundary:
    """
    A recurring seam between two node groups, tracked across windows.

    Each observation produces a NEW boundary record (replacement, not mutation).
    """
    id: str
    side_a: FrozenSet[str]
    side_b: FrozenSet[str]
    cut_value: float
    history: Tuple[Tuple[datetime, float], ...]
    first_seen: datetime
    last_updated: datetime
    stable: bool = False

    def __post_init__(self):
        if self.side_a & self.side_b:
            raise ValueError("boundary sides must be disjoint")
        if self.last_updated < self.first_seen:
            raise ValueError("last_updated must not precede first_seen")

    @property
    def observation_count(self) -> int:
        return len(self.history)


# =============================================================================
# OBSERVABILITY CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    GRAPH = "graph"
    COMPUTATION = "computation"
    WINDOW = "window"
    ERROR = "error"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: datetime
    layer: str
    action: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
