"""
Event Detection Tests
=====================

Classification of consecutive signal pairs.
"""

from datetime import datetime, timedelta, timezone

import pytest

from coherence_engine.config import CoherenceConfig
from coherence_engine.contracts.base import DataRecord, TemporalWindow
from coherence_engine.contracts.signals import CoherenceEventType, CoherenceSignal
from coherence_engine.core import CoherenceEngine
from coherence_engine.core.detection import EventDetector


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_signals(cuts, deltas=None, components=None):
    """Hand-built history; deltas default to successive differences."""
    if deltas is None:
        deltas = [None] + [cuts[i] - cuts[i - 1] for i in range(1, len(cuts))]
    components = components or [0] * len(cuts)
    signals = []
    for i, (cut, delta, count) in enumerate(zip(cuts, deltas, components)):
        start = T0 + timedelta(days=i)
        signals.append(CoherenceSignal(
            id=f"signal_{i}",
            window=TemporalWindow(start=start, end=start + timedelta(days=1), window_id=i),
            min_cut_value=cut,
            node_count=4,
            edge_count=4,
            cut_nodes=(f"n{i}",),
            delta=delta,
            component_count=count
        ))
    return signals


def types(events):
    return [e.event_type for e in events]


class TestDeltaEvents:

    def test_threshold_filters_small_changes(self):
        """deltas None, +0.05, +0.2, -0.3 at threshold 0.1."""
        signals = make_signals(
            cuts=[1.0, 1.05, 1.25, 0.95],
            deltas=[None, 0.05, 0.2, -0.3]
        )

        events = EventDetector().detect(signals, threshold=0.1)

        assert types(events) == [CoherenceEventType.STRENGTHENED, CoherenceEventType.WEAKENED]
        assert events[0].magnitude == pytest.approx(0.2)
        assert events[1].magnitude == pytest.approx(0.3)

    def test_event_carries_window_and_nodes_of_later_signal(self):
        signals = make_signals(cuts=[1.0, 2.0])

        event = EventDetector().detect(signals, threshold=0.5)[0]

        assert event.timestamp == signals[1].window.start
        assert event.nodes == ("n1",)
        context = event.context_dict()
        assert context["signal_id"] == "signal_1"
        assert context["previous_signal_id"] == "signal_0"
        assert context["window_id"] == "1"

    def test_delta_equal_to_threshold_is_not_an_event(self):
        signals = make_signals(cuts=[1.0, 1.5], deltas=[None, 0.5])

        assert EventDetector().detect(signals, threshold=0.5) == []

    def test_fewer_than_two_signals(self):
        assert EventDetector().detect([], threshold=0.1) == []
        assert EventDetector().detect(make_signals(cuts=[1.0]), threshold=0.1) == []


class TestStructuralEvents:

    def test_split_then_merge(self):
        signals = make_signals(cuts=[1.0, 0.0, 1.0], components=[1, 2, 1])

        events = EventDetector().detect(signals, threshold=10.0)

        assert types(events) == [CoherenceEventType.SPLIT, CoherenceEventType.MERGED]
        assert events[0].context_dict()["components_after"] == "2"

    def test_missing_component_counts_are_ignored(self):
        signals = make_signals(cuts=[1.0, 0.0], components=[0, 2])

        assert EventDetector().detect(signals, threshold=10.0) == []

    def test_threshold_crossing_both_directions(self):
        detector = EventDetector(coherence_threshold=1.0)
        signals = make_signals(cuts=[1.5, 0.5, 1.0])

        events = detector.detect(signals, threshold=10.0)

        assert types(events) == [CoherenceEventType.THRESHOLD_CROSSED] * 2
        assert [e.context_dict()["direction"] for e in events] == ["below", "above"]

    def test_no_crossing_without_level(self):
        signals = make_signals(cuts=[1.5, 0.5])

        assert EventDetector().detect(signals, threshold=10.0) == []


class TestAnomalyEvents:

    def test_outlier_delta_is_anomalous(self):
        signals = make_signals(
            cuts=[1.0, 1.1, 1.0, 1.1, 1.0, 6.0],
            deltas=[None, 0.1, -0.1, 0.1, -0.1, 5.0]
        )

        events = EventDetector(anomaly_sigma=3.0).detect(signals, threshold=1.0)

        assert types(events) == [CoherenceEventType.STRENGTHENED, CoherenceEventType.ANOMALY]
        assert float(events[1].context_dict()["z_score"]) == pytest.approx(50.0)

    def test_needs_minimum_samples(self):
        signals = make_signals(cuts=[1.0, 1.1, 1.0, 6.0], deltas=[None, 0.1, -0.1, 5.0])

        events = EventDetector(anomaly_min_samples=3).detect(signals, threshold=10.0)

        assert events == []

    def test_constant_history_is_never_anomalous(self):
        signals = make_signals(
            cuts=[1.0, 1.1, 1.2, 1.3, 5.0],
            deltas=[None, 0.1, 0.1, 0.1, 3.7]
        )

        events = EventDetector().detect(signals, threshold=10.0)

        assert events == []


class TestEngineDetection:

    def test_weaken_and_split(self):
        engine = CoherenceEngine(CoherenceConfig(approximate=False))
        engine.compute_from_records([
            DataRecord.create("A", T0, (("B", 1.0), ("C", 0.5))),
            DataRecord.create("B", T0, (("C", 1.0),)),
        ])
        engine.clear()
        for a, b in [("A", "B"), ("B", "C"), ("C", "A"), ("X", "Y"), ("Y", "Z"), ("Z", "X")]:
            engine.add_edge(a, b, 1.0)
        engine.compute_signals()

        events = engine.detect_events(0.1)

        assert types(events) == [CoherenceEventType.WEAKENED, CoherenceEventType.SPLIT]
        assert events[0].magnitude == pytest.approx(1.5)

    def test_detection_is_read_only(self):
        engine = CoherenceEngine(CoherenceConfig(approximate=False))
        engine.add_edge("A", "B", 1.0)
        engine.compute_signals()
        engine.add_edge("A", "B", 1.0)
        engine.compute_signals()
        before = engine.signals

        first = engine.detect_events(0.5)
        second = engine.detect_events(0.5)

        assert first == second
        assert engine.signals == before
        assert engine.detect_events(5.0) == []
