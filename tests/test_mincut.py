"""
MinCut Estimator Tests
======================

Exact (Stoer-Wagner) and randomized (contraction) minimum cut.

Verifies:
1. No cut below two nodes (+inf, no partition)
2. Disconnected graphs cut at 0 in both modes
3. Exact values on small reference graphs
4. Randomized mode is seeded, reproducible, and flagged inexact
5. Non-finite weights fail explicitly
"""

import math

import numpy as np
import pytest

from coherence_engine.config import CoherenceConfig
from coherence_engine.contracts.base import EstimationFailure
from coherence_engine.core.graph import GraphAccumulator
from coherence_engine.core.mincut import MinCutEstimator, canonical_partition


def triangle() -> GraphAccumulator:
    graph = GraphAccumulator()
    graph.add_edge("A", "B", 1.0)
    graph.add_edge("A", "C", 0.5)
    graph.add_edge("B", "C", 1.0)
    return graph


def two_cliques(bridge: float = 0.5) -> GraphAccumulator:
    """Two K4 cliques of unit weight joined by one bridge edge."""
    graph = GraphAccumulator()
    for prefix in ("a", "b"):
        names = [f"{prefix}{i}" for i in range(4)]
        for i in range(4):
            for j in range(i + 1, 4):
                graph.add_edge(names[i], names[j], 1.0)
    graph.add_edge("a0", "b0", bridge)
    return graph


def exact_config(**overrides) -> CoherenceConfig:
    return CoherenceConfig(approximate=False, **overrides)


def randomized_config(**overrides) -> CoherenceConfig:
    values = dict(approximate=True, exact_node_threshold=0, epsilon=0.001, parallel=False)
    values.update(overrides)
    return CoherenceConfig(**values)


def crossing_weight(graph: GraphAccumulator, partition_a) -> float:
    side = set(partition_a)
    return sum(w for s, t, w in graph.edges() if (s in side) != (t in side))


class TestDegenerateGraphs:

    def test_empty_graph_has_no_cut(self):
        result = MinCutEstimator(exact_config()).estimate(GraphAccumulator())

        assert math.isinf(result.cut_value)
        assert result.partition_sizes is None

    def test_single_node_has_no_cut(self):
        graph = GraphAccumulator()
        graph.add_node("A")

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert math.isinf(result.cut_value)
        assert result.has_partition is False

    def test_nodes_without_edges_cut_at_zero(self):
        graph = GraphAccumulator()
        graph.add_node("A")
        graph.add_node("B")

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert result.cut_value == 0.0
        assert result.partition_sizes == (1, 1)
        assert result.partition_a == (0,)

    @pytest.mark.parametrize("config", [exact_config(), randomized_config()])
    def test_disjoint_triangles_cut_at_zero(self, config):
        """Disconnected graphs are not an error in either mode."""
        graph = GraphAccumulator()
        for a, b in [("A", "B"), ("B", "C"), ("C", "A"), ("X", "Y"), ("Y", "Z"), ("Z", "X")]:
            graph.add_edge(a, b, 1.0)

        result = MinCutEstimator(config).estimate(graph)

        assert result.cut_value == 0.0
        assert result.partition_a == (0, 1, 2)
        assert result.partition_b == (3, 4, 5)


class TestExactMode:

    def test_triangle_reference_value(self):
        """A-B 1.0, A-C 0.5, B-C 1.0: isolate A or C for 1.5."""
        graph = triangle()

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert result.cut_value == pytest.approx(1.5)
        assert result.partition_sizes == (1, 2)
        assert result.partition_a in [(0,), (2,)]
        assert result.is_exact is True

    def test_bridge_between_cliques(self):
        graph = two_cliques(bridge=0.5)

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert result.cut_value == pytest.approx(0.5)
        assert result.partition_sizes == (4, 4)
        assert result.partition_a == (0, 1, 2, 3)

    def test_parallel_edges_are_summed(self):
        graph = GraphAccumulator()
        graph.add_edge("A", "B", 1.0)
        graph.add_edge("A", "B", 2.0)
        graph.add_edge("B", "C", 4.0)

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert result.cut_value == pytest.approx(3.0)

    def test_self_loops_do_not_count(self):
        graph = GraphAccumulator()
        graph.add_edge("A", "A", 100.0)
        graph.add_edge("A", "B", 2.0)

        result = MinCutEstimator(exact_config()).estimate(graph)

        assert result.cut_value == pytest.approx(2.0)

    def test_small_graph_uses_exact_even_when_approximate(self):
        config = CoherenceConfig(approximate=True, exact_node_threshold=32)

        result = MinCutEstimator(config).estimate(triangle())

        assert result.is_exact is True
        assert result.trials == 0

    def test_zero_epsilon_means_exact(self):
        config = CoherenceConfig(approximate=True, exact_node_threshold=0, epsilon=0.0)

        assert MinCutEstimator(config).uses_exact(100) is True


class TestRandomizedMode:

    def test_finds_bridge_and_is_flagged_inexact(self):
        graph = two_cliques(bridge=0.5)

        result = MinCutEstimator(randomized_config()).estimate(graph)

        assert result.is_exact is False
        assert result.trials > 0
        assert result.cut_value == pytest.approx(0.5)
        assert result.partition_sizes == (4, 4)

    def test_reported_partition_realizes_value(self):
        graph = two_cliques(bridge=2.5)

        result = MinCutEstimator(randomized_config()).estimate(graph)

        assert crossing_weight(graph, result.partition_a) == pytest.approx(result.cut_value)

    def test_same_seed_same_result(self):
        graph = two_cliques(bridge=1.5)

        first = MinCutEstimator(randomized_config(random_seed=7)).estimate(graph)
        second = MinCutEstimator(randomized_config(random_seed=7)).estimate(graph)

        assert first == second

    def test_parallel_matches_sequential(self):
        """Trials are independent; a thread pool changes nothing."""
        graph = two_cliques(bridge=1.5)

        sequential = MinCutEstimator(randomized_config(parallel=False)).estimate(graph)
        parallel = MinCutEstimator(randomized_config(parallel=True, max_workers=4)).estimate(graph)

        assert sequential == parallel

    def test_trial_count_scales_with_nodes_and_epsilon(self):
        estimator = MinCutEstimator(randomized_config(epsilon=0.1, max_trials=10_000))

        assert estimator.trial_count(1) == 0
        assert estimator.trial_count(2) == math.ceil(1 * math.log(10))
        assert estimator.trial_count(10) == math.ceil(45 * math.log(10))

    def test_trial_count_is_capped(self):
        estimator = MinCutEstimator(randomized_config(epsilon=0.001, max_trials=50))

        assert estimator.trial_count(100) == 50

    def test_time_budget_still_runs_one_trial(self):
        config = randomized_config(trial_time_budget_secs=1e-9)
        estimator = MinCutEstimator(config)

        result = estimator.estimate(two_cliques())

        assert 1 <= result.trials <= estimator.trial_count(8)
        assert math.isfinite(result.cut_value)


class TestFailures:

    @pytest.mark.parametrize("config", [exact_config(), randomized_config()])
    def test_infinite_weight_raises_estimation_failure(self, config):
        graph = GraphAccumulator()
        graph.add_edge("A", "B", math.inf)

        with pytest.raises(EstimationFailure) as exc_info:
            MinCutEstimator(config).estimate(graph)

        assert exc_info.value.error.code.name == "ESTIMATION_FAILED"


class TestCanonicalPartition:

    def test_smaller_side_first(self):
        a, b = canonical_partition(np.array([True, True, False]))
        assert (a, b) == ((2,), (0, 1))

    def test_equal_sizes_lowest_index_first(self):
        a, b = canonical_partition(np.array([False, True, True, False]))
        assert (a, b) == ((0, 3), (1, 2))
