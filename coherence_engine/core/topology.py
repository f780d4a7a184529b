"""
Topology Engine
===============

Structural analysis of the accumulated window graph.

This engine computes TOPOLOGY (connectivity), not COHESION STRENGTH.
Cut weights are the MinCut Estimator's job; here we only answer
"how many disconnected pieces are there, and which nodes are in them".

ALLOWED:
- Connected components
- Structural metrics (density, connectedness)

FORBIDDEN:
- Centrality measures - cut nodes are ranked by crossing weight elsewhere
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Set

import networkx as nx

from .graph import GraphAccumulator


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for a window graph."""
    node_count: int
    edge_count: int
    density: float
    is_connected: bool
    connected_components_count: int
    total_weight: float


class TopologyEngine:
    """
    Engine for structural analysis of the accumulated graph.

    Wraps NetworkX to expose connectivity only.
    """

    def __init__(self):
        self._graph = nx.Graph()
        self._edge_count = 0

    def build_graph(self, accumulator: GraphAccumulator, graph: Optional[nx.Graph] = None) -> None:
        """
        Build graph from the accumulator, or adopt an already collapsed one.

        Replaces internal graph state.
        """
        self._graph = graph if graph is not None else accumulator.to_networkx()
        self._edge_count = accumulator.edge_count()

    def get_connected_components(self) -> List[Set[int]]:
        """
        Disjoint node-index sets, ordered by their lowest index.
        """
        if not self._graph:
            return []

        components = [set(c) for c in nx.connected_components(self._graph)]
        components.sort(key=min)
        return components

    def component_count(self) -> int:
        if not self._graph:
            return 0
        return nx.number_connected_components(self._graph)

    def is_connected(self) -> bool:
        return bool(self._graph) and nx.is_connected(self._graph)

    def compute_metrics(self) -> GraphMetrics:
        if not self._graph:
            return GraphMetrics(0, 0, 0.0, False, 0, 0.0)

        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._edge_count,
            density=nx.density(self._graph),
            is_connected=nx.is_connected(self._graph),
            connected_components_count=nx.number_connected_components(self._graph),
            total_weight=float(self._graph.size(weight="weight"))
        )

    def clear(self):
        self._graph.clear()
        self._edge_count = 0
