"""
MinCut Estimator
================

Global minimum edge cut of the accumulated graph.

POLICY:
=======
- Fewer than 2 nodes: no cut exists, value is +inf, no partition
- Disconnected graph: value is 0, first component vs. the rest
- Exact mode: Stoer-Wagner (networkx) on the collapsed weighted graph
- Approximate mode: repeated weighted random contraction (Karger),
  minimum over independent, seeded trials

PARTITION ORDERING:
===================
partition_a is the smaller side; on equal sizes it is the side holding the
lowest node index. Both partitions are sorted ascending.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple
import math
import time

import networkx as nx
import numpy as np

from ..config import CoherenceConfig
from ..contracts.base import EstimationFailure
from ..contracts.signals import MinCutResult
from .graph import GraphAccumulator


TrialOutcome = Optional[Tuple[float, np.ndarray]]


def canonical_partition(side: np.ndarray) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """Split a boolean side mask into (partition_a, partition_b)."""
    first = tuple(int(i) for i in np.flatnonzero(side))
    second = tuple(int(i) for i in np.flatnonzero(~side))
    if len(second) < len(first):
        return second, first
    if len(second) == len(first) and second and second[0] < first[0]:
        return second, first
    return first, second


class MinCutEstimator:
    """
    Exact or randomized minimum cut over a GraphAccumulator.

    Randomized trials draw from numpy SeedSequence children of the
    configured seed, so a run is reproducible regardless of whether
    trials execute sequentially or on a thread pool.
    """

    def __init__(self, config: Optional[CoherenceConfig] = None):
        self._config = config or CoherenceConfig()

    def uses_exact(self, node_count: int) -> bool:
        config = self._config
        return (
            not config.approximate
            or node_count < config.exact_node_threshold
            or config.epsilon == 0
        )

    def trial_count(self, node_count: int) -> int:
        """
        Trials so that P(missing the minimum cut) <= epsilon.

        One contraction run finds a given minimum cut with probability at
        least 1 / C(n, 2); C(n, 2) * ln(1 / epsilon) runs bound the miss
        probability by epsilon. Capped by max_trials.
        """
        if node_count < 2:
            return 0
        pairs = node_count * (node_count - 1) / 2
        epsilon = self._config.epsilon
        if epsilon >= 1:
            return 1
        trials = math.ceil(pairs * math.log(1.0 / epsilon))
        return max(1, min(trials, self._config.max_trials))

    def estimate(self, accumulator: GraphAccumulator, graph: Optional[nx.Graph] = None) -> MinCutResult:
        """
        Compute (cut_value, partition_a, partition_b).

        graph, when given, must be accumulator.to_networkx() of the current
        tables; it is built here otherwise.

        Raises EstimationFailure when no valid cut can be produced.
        """
        node_count = accumulator.node_count()
        exact = self.uses_exact(node_count)

        if node_count < 2:
            return MinCutResult(cut_value=math.inf, is_exact=True)

        sources, targets, weights = accumulator.edge_arrays()
        if weights.size and not np.all(np.isfinite(weights)):
            raise EstimationFailure(
                "Edge weights must be finite",
                node_count=node_count,
                edge_count=accumulator.edge_count()
            )

        if graph is None:
            graph = accumulator.to_networkx()

        if not nx.is_connected(graph):
            first_component = min(nx.connected_components(graph), key=min)
            side = np.zeros(node_count, dtype=bool)
            side[list(first_component)] = True
            partition_a, partition_b = canonical_partition(side)
            return MinCutResult(0.0, partition_a, partition_b, is_exact=exact)

        if exact:
            result = self._stoer_wagner(graph, node_count)
        else:
            result = self._random_contraction(node_count, sources, targets, weights)

        if not math.isfinite(result.cut_value) or result.cut_value < 0:
            raise EstimationFailure(
                "Minimum cut produced an invalid value",
                cut_value=result.cut_value
            )
        return result

    # =========================================================================
    # EXACT: STOER-WAGNER
    # =========================================================================

    def _stoer_wagner(self, graph: nx.Graph, node_count: int) -> MinCutResult:
        try:
            cut_value, (first, _) = nx.stoer_wagner(graph, weight="weight")
        except nx.NetworkXError as e:
            raise EstimationFailure(f"Stoer-Wagner failed: {e}", node_count=node_count) from e

        side = np.zeros(node_count, dtype=bool)
        side[list(first)] = True
        partition_a, partition_b = canonical_partition(side)
        return MinCutResult(float(cut_value), partition_a, partition_b, is_exact=True)

    # =========================================================================
    # APPROXIMATE: WEIGHTED RANDOM CONTRACTION
    # =========================================================================

    def _random_contraction(
        self,
        node_count: int,
        sources: np.ndarray,
        targets: np.ndarray,
        weights: np.ndarray
    ) -> MinCutResult:
        trials = self.trial_count(node_count)
        seeds = np.random.SeedSequence(self._config.random_seed).spawn(trials)

        deadline = None
        if self._config.trial_time_budget_secs is not None:
            deadline = time.monotonic() + self._config.trial_time_budget_secs

        def run(indexed_seed: Tuple[int, np.random.SeedSequence]) -> TrialOutcome:
            index, seed = indexed_seed
            # The first trial always runs so a budget never yields no result
            if index > 0 and deadline is not None and time.monotonic() > deadline:
                return None
            return self._contract_once(node_count, sources, targets, weights, seed)

        if self._config.parallel and trials > 1:
            with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
                outcomes = list(executor.map(run, enumerate(seeds)))
        else:
            outcomes = [run(item) for item in enumerate(seeds)]

        best_value, best_side, completed = self._reduce(outcomes)
        if best_side is None:
            raise EstimationFailure("No contraction trial completed", trials=trials)

        partition_a, partition_b = canonical_partition(best_side)
        return MinCutResult(best_value, partition_a, partition_b, is_exact=False, trials=completed)

    @staticmethod
    def _reduce(outcomes: Sequence[TrialOutcome]) -> Tuple[float, Optional[np.ndarray], int]:
        """Minimum over completed trials; earliest trial wins ties."""
        best_value = math.inf
        best_side: Optional[np.ndarray] = None
        completed = 0
        for outcome in outcomes:
            if outcome is None:
                continue
            completed += 1
            value, side = outcome
            if best_side is None or value < best_value:
                best_value, best_side = value, side
        return best_value, best_side, completed

    @staticmethod
    def _contract_once(
        node_count: int,
        sources: np.ndarray,
        targets: np.ndarray,
        weights: np.ndarray,
        seed: np.random.SeedSequence
    ) -> Tuple[float, np.ndarray]:
        """
        One contraction run down to two super-nodes.

        Contracting edges in increasing order of Exp(1)/weight keys is
        equivalent to repeatedly picking a remaining edge with probability
        proportional to its weight.
        """
        rng = np.random.default_rng(seed)
        with np.errstate(divide="ignore", invalid="ignore"):
            keys = rng.exponential(size=weights.size) / weights
        order = np.argsort(keys, kind="stable")

        parent: List[int] = list(range(node_count))

        def find(x: int) -> int:
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        components = node_count
        for edge in order:
            if components == 2:
                break
            root_a = find(int(sources[edge]))
            root_b = find(int(targets[edge]))
            if root_a != root_b:
                parent[root_b] = root_a
                components -= 1

        roots = np.fromiter((find(i) for i in range(node_count)), dtype=np.int64, count=node_count)
        side = roots == roots[0]
        crossing = side[sources] != side[targets]
        return float(weights[crossing].sum()), side
