"""
Graph Accumulator
=================

Owns the node/edge tables of the current window.

Nodes are external string ids mapped to dense integer indices (0..N-1),
assigned on first sight. Edges are kept as a flat multigraph list:
parallel edges stay separate entries and self-loops are allowed.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Tuple

import networkx as nx
import numpy as np

from ..contracts.base import DataRecord


Edge = Tuple[int, int, float]


class GraphAccumulator:
    """
    Arena-style weighted graph.

    GUARANTEES:
    ===========
    1. add_node is idempotent and never fails
    2. add_edge never fails - low-weight edges are silently dropped
    3. Index space stays dense until clear()
    """

    def __init__(self, min_edge_weight: float = 0.01):
        self._min_edge_weight = min_edge_weight
        self._index: Dict[str, int] = {}
        self._labels: List[str] = []
        self._edges: List[Edge] = []
        self._dropped_edges = 0

    def add_node(self, node_id: str) -> int:
        """Return the dense index for node_id, allocating it on first sight."""
        index = self._index.get(node_id)
        if index is not None:
            return index

        index = len(self._labels)
        self._index[node_id] = index
        self._labels.append(node_id)
        return index

    def add_edge(self, source_id: str, target_id: str, weight: float) -> bool:
        """
        Append an undirected edge. Returns False when the edge was dropped.

        NaN weights never compare >= threshold, so they are dropped too.
        """
        if not weight >= self._min_edge_weight:
            self._dropped_edges += 1
            return False

        source = self.add_node(source_id)
        target = self.add_node(target_id)
        self._edges.append((source, target, float(weight)))
        return True

    def build_from_records(self, records: Iterable[DataRecord]) -> None:
        """Register every record id, then an edge per relationship."""
        for record in records:
            self.add_node(record.id)

            for relationship in record.relationships:
                self.add_edge(record.id, relationship.target_id, relationship.weight)

    def clear(self) -> None:
        self._index.clear()
        self._labels.clear()
        self._edges.clear()
        self._dropped_edges = 0

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    def node_count(self) -> int:
        return len(self._labels)

    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def dropped_edge_count(self) -> int:
        return self._dropped_edges

    @property
    def min_edge_weight(self) -> float:
        return self._min_edge_weight

    def label(self, index: int) -> str:
        return self._labels[index]

    def labels(self) -> Tuple[str, ...]:
        return tuple(self._labels)

    def index_of(self, node_id: str) -> int:
        """Index of a known node. Raises KeyError for unknown ids."""
        return self._index[node_id]

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._index

    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    def edge_arrays(self, include_self_loops: bool = False) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Edges as parallel (source, target, weight) numpy arrays."""
        edges = self._edges if include_self_loops else [e for e in self._edges if e[0] != e[1]]
        if not edges:
            return (
                np.empty(0, dtype=np.int64),
                np.empty(0, dtype=np.int64),
                np.empty(0, dtype=np.float64),
            )
        sources, targets, weights = zip(*edges)
        return (
            np.asarray(sources, dtype=np.int64),
            np.asarray(targets, dtype=np.int64),
            np.asarray(weights, dtype=np.float64),
        )

    def to_networkx(self) -> nx.Graph:
        """
        Collapse the multigraph into a simple weighted nx.Graph.

        Parallel edges are summed; self-loops are dropped since they never
        cross a partition. Every node index is present, isolated or not.
        """
        graph = nx.Graph()
        graph.add_nodes_from(range(len(self._labels)))

        for source, target, weight in self._edges:
            if source == target:
                continue
            if graph.has_edge(source, target):
                graph[source][target]["weight"] += weight
            else:
                graph.add_edge(source, target, weight=weight)

        return graph
