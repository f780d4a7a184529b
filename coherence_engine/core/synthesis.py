"""
Signal Synthesizer

Turns one MinCutResult into an immutable CoherenceSignal.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Optional, Sequence, Tuple
import math

from ..contracts.base import TemporalWindow
from ..contracts.signals import CoherenceSignal, MinCutResult
from .graph import GraphAccumulator


def signal_delta(current: float, previous: Optional[CoherenceSignal]) -> Optional[float]:
    """
    current - previous.min_cut_value, or None without a previous signal.

    Two undefined (+inf) cuts are treated as unchanged.
    """
    if previous is None:
        return None
    if math.isinf(current) and math.isinf(previous.min_cut_value):
        return 0.0
    return current - previous.min_cut_value


class SignalSynthesizer:
    """Build signals; never computes a cut itself."""

    def __init__(self, max_cut_nodes: int = 10):
        self._max_cut_nodes = max_cut_nodes

    def boundary_nodes(
        self,
        accumulator: GraphAccumulator,
        cut: MinCutResult
    ) -> Tuple[str, ...]:
        """
        Entity ids of partition_a incident to at least one crossing edge.

        partition_a is the canonical (smaller) side. Ordered by total
        crossing weight (descending), then id, and capped.
        """
        if not cut.has_partition:
            return ()

        in_a = set(cut.partition_a)
        crossing_weight: Dict[int, float] = defaultdict(float)
        for source, target, weight in accumulator.edges():
            if (source in in_a) != (target in in_a):
                inside = source if source in in_a else target
                crossing_weight[inside] += weight

        ranked = sorted(
            crossing_weight.items(),
            key=lambda item: (-item[1], accumulator.label(item[0]))
        )
        return tuple(accumulator.label(index) for index, _ in ranked[:self._max_cut_nodes])

    def synthesize(
        self,
        accumulator: GraphAccumulator,
        cut: MinCutResult,
        window: TemporalWindow,
        history: Sequence[CoherenceSignal],
        component_count: int = 0
    ) -> CoherenceSignal:
        previous = history[-1] if history else None

        return CoherenceSignal(
            id=f"signal_{len(history)}",
            window=window,
            min_cut_value=cut.cut_value,
            node_count=accumulator.node_count(),
            edge_count=accumulator.edge_count(),
            partition_sizes=cut.partition_sizes,
            is_exact=cut.is_exact,
            cut_nodes=self.boundary_nodes(accumulator, cut),
            delta=signal_delta(cut.cut_value, previous),
            component_count=component_count
        )
