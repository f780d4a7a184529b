"""
Core Coherence Engine

RESPONSIBILITY: Graph accumulation, minimum cut, signal/event/boundary derivation
ALLOWED INPUTS: DataRecord items or explicit add_node/add_edge calls
OUTPUTS: CoherenceSignal history, CoherenceEvent lists, CoherenceBoundary records

WHAT THIS LAYER MUST NOT DO:
============================
- Window the record stream (temporal layer's job)
- Persist signals or boundaries
- Explain WHY coherence changed

BOUNDARY ENFORCEMENT:
=====================
- Signal history is append-only; failed computations append nothing
- Events are recomputed on demand, never stored
- Not thread-safe: one logical owner mutates an engine at a time

FLOW:
=====
GraphAccumulator -> MinCutEstimator -> SignalSynthesizer
                 -> (EventDetector, BoundaryTracker) over the history
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Tuple
import time

from ..config import CoherenceConfig
from ..contracts.base import DataRecord, Error, EstimationFailure, TemporalWindow, utc_now
from ..contracts.signals import (
    AuditEventType, AuditLogEntry, CoherenceBoundary, CoherenceEvent,
    CoherenceSignal, MinCutResult, SignalComputationResult,
)
from ..observability import LogCollector, MetricsCollector
from .boundaries import BoundaryTracker
from .detection import EventDetector
from .graph import GraphAccumulator
from .mincut import MinCutEstimator
from .synthesis import SignalSynthesizer
from .topology import TopologyEngine


class CoherenceEngine:
    """
    Coherence engine for computing signals from graph structure.

    The engine exclusively owns its node/edge tables, signal history and
    boundaries. clear() resets only the graph; reset() resets everything.
    """

    LAYER = "coherence_engine"

    def __init__(
        self,
        config: Optional[CoherenceConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._config = config or CoherenceConfig()
        self._config.validate()

        self._graph = GraphAccumulator(self._config.min_edge_weight)
        self._topology = TopologyEngine()
        self._estimator = MinCutEstimator(self._config)
        self._synthesizer = SignalSynthesizer(self._config.max_cut_nodes)
        self._detector = EventDetector(
            coherence_threshold=self._config.coherence_threshold,
            anomaly_sigma=self._config.anomaly_sigma,
            anomaly_window=self._config.anomaly_window,
            anomaly_min_samples=self._config.anomaly_min_samples
        )
        self._tracker = BoundaryTracker(
            match_threshold=self._config.boundary_match_threshold,
            stability_window=self._config.boundary_stability_window,
            stability_tolerance=self._config.boundary_stability_tolerance
        )

        self._signals: List[CoherenceSignal] = []
        self._audit = LogCollector(self.LAYER)
        self._metrics = metrics or MetricsCollector()

    # =========================================================================
    # GRAPH ACCUMULATION
    # =========================================================================

    def add_node(self, node_id: str) -> int:
        return self._graph.add_node(node_id)

    def add_edge(self, source_id: str, target_id: str, weight: float) -> None:
        if not self._graph.add_edge(source_id, target_id, weight):
            self._metrics.record("edges_dropped_total", 1.0)

    def node_count(self) -> int:
        return self._graph.node_count()

    def edge_count(self) -> int:
        return self._graph.edge_count()

    def build_from_records(self, records: Iterable[DataRecord]) -> None:
        dropped_before = self._graph.dropped_edge_count
        self._graph.build_from_records(records)
        dropped = self._graph.dropped_edge_count - dropped_before
        if dropped:
            self._metrics.record("edges_dropped_total", float(dropped))

    def clear(self) -> None:
        """Reset the graph. Signal history and boundaries are kept."""
        self._graph.clear()
        self._topology.clear()
        self._audit.record(AuditEventType.GRAPH, "graph_cleared")

    def reset(self) -> None:
        """Reset graph, signal history and tracked boundaries."""
        self.clear()
        self._signals.clear()
        self._tracker.clear()

    # =========================================================================
    # SIGNAL COMPUTATION
    # =========================================================================

    def compute_from_records(
        self,
        records: Iterable[DataRecord],
        window: Optional[TemporalWindow] = None
    ) -> SignalComputationResult:
        self.build_from_records(records)
        return self.compute_signals(window)

    def compute_signals(self, window: Optional[TemporalWindow] = None) -> SignalComputationResult:
        """
        Compute one signal over the current graph and append it to history.

        An empty graph is not an error: the result is successful with an
        empty signal tuple. Without an explicit window, the signal covers one
        configured window starting now.
        """
        if self._graph.node_count() == 0:
            return SignalComputationResult(success=True, signals=())

        window = window or TemporalWindow.starting_at(
            utc_now(), self._config.window_size, len(self._signals)
        )
        start = time.perf_counter()

        collapsed = self._graph.to_networkx()

        try:
            cut = self._estimator.estimate(self._graph, collapsed)
        except EstimationFailure as e:
            return self._failed(e.error, start)

        self._topology.build_graph(self._graph, collapsed)
        signal = self._synthesizer.synthesize(
            self._graph, cut, window, self._signals,
            component_count=self._topology.component_count()
        )
        self._signals.append(signal)

        if self._config.track_boundaries:
            self._track_boundary(cut, signal)

        elapsed_ms = (time.perf_counter() - start) * 1000
        mode = "exact" if cut.is_exact else "approximate"
        self._metrics.record("mincut_duration_ms", elapsed_ms)
        self._metrics.record("graph_nodes", float(signal.node_count))
        self._metrics.record("signals_computed_total", 1.0, {"mode": mode})
        if cut.trials:
            self._metrics.record("mincut_trials_total", float(cut.trials))
        self._audit.record(
            AuditEventType.COMPUTATION,
            "signal_computed",
            entity_id=signal.id,
            entity_type="coherence_signal",
            window_id=window.window_id,
            min_cut_value=signal.min_cut_value,
            mode=mode
        )

        return SignalComputationResult(
            success=True,
            signals=tuple(self._signals),
            processing_time_ms=elapsed_ms
        )

    def _failed(self, error: Error, start: float) -> SignalComputationResult:
        self._audit.record(
            AuditEventType.ERROR,
            "estimation_failed",
            error_code=error.code.name,
            message=error.message,
            node_count=self._graph.node_count()
        )
        return SignalComputationResult(
            success=False,
            signals=(),
            error=error,
            processing_time_ms=(time.perf_counter() - start) * 1000
        )

    def _track_boundary(self, cut: MinCutResult, signal: CoherenceSignal) -> None:
        if not cut.has_partition:
            return
        self._tracker.observe(
            side_a={self._graph.label(i) for i in cut.partition_a},
            side_b={self._graph.label(i) for i in cut.partition_b},
            cut_value=cut.cut_value,
            timestamp=signal.window.start
        )

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def detect_events(self, threshold: float) -> List[CoherenceEvent]:
        """Classify consecutive signal pairs. Read-only over history."""
        return self._detector.detect(self._signals, threshold)

    @property
    def signals(self) -> Tuple[CoherenceSignal, ...]:
        return tuple(self._signals)

    @property
    def latest_signal(self) -> Optional[CoherenceSignal]:
        return self._signals[-1] if self._signals else None

    @property
    def boundaries(self) -> Tuple[CoherenceBoundary, ...]:
        return self._tracker.boundaries

    @property
    def config(self) -> CoherenceConfig:
        return self._config

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def get_audit_log(self) -> List[AuditLogEntry]:
        return self._audit.get_entries()


__all__ = [
    'CoherenceEngine',
    'GraphAccumulator',
    'TopologyEngine',
    'MinCutEstimator',
    'SignalSynthesizer',
    'EventDetector',
    'BoundaryTracker',
]
