"""
Serialization Tests
===================

Engine records to JSON-safe structures.
"""

import json
import math
from datetime import datetime, timedelta, timezone

from coherence_engine.contracts.base import TemporalWindow
from coherence_engine.contracts.signals import (
    CoherenceBoundary, CoherenceEvent, CoherenceEventType, CoherenceSignal
)
from coherence_engine.domain.serialization import (
    boundary_from_dict, boundary_to_dict, dumps, event_from_dict, event_to_dict,
    signal_from_dict, signal_to_dict
)


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
WINDOW = TemporalWindow(start=T0, end=T0 + timedelta(days=1), window_id=3)


class TestSignals:

    def test_signal_dict_is_json_safe(self):
        signal = CoherenceSignal(
            id="signal_0", window=WINDOW, min_cut_value=1.5, node_count=3, edge_count=3,
            partition_sizes=(1, 2), cut_nodes=("A", "B"), delta=-0.5, component_count=1
        )

        data = json.loads(dumps(signal))

        assert data["min_cut_value"] == 1.5
        assert data["partition_sizes"] == [1, 2]
        assert data["window"]["window_id"] == 3
        assert data["window"]["start"] == "2024-01-01T00:00:00+00:00"
        assert signal_from_dict(data) == signal

    def test_infinite_cut_serializes_as_null(self):
        signal = CoherenceSignal(
            id="signal_0", window=WINDOW, min_cut_value=math.inf, node_count=1, edge_count=0
        )

        data = signal_to_dict(signal)

        assert data["min_cut_value"] is None
        assert data["delta"] is None
        assert math.isinf(signal_from_dict(data).min_cut_value)

    def test_infinite_delta_round_trips(self):
        """A cut appearing after an undefined one is an infinite change, not a missing one."""
        for delta in (math.inf, -math.inf):
            signal = CoherenceSignal(
                id="signal_1", window=WINDOW, min_cut_value=2.0, node_count=2, edge_count=1,
                partition_sizes=(1, 1), cut_nodes=("A",), delta=delta, component_count=1
            )

            data = json.loads(dumps(signal))

            assert data["delta"] == ("inf" if delta > 0 else "-inf")
            assert signal_from_dict(data).delta == delta
            assert signal_from_dict(data) == signal


class TestEventsAndBoundaries:

    def test_event_round_trip(self):
        event = CoherenceEvent(
            event_type=CoherenceEventType.SPLIT,
            timestamp=T0,
            nodes=("A",),
            magnitude=1.5,
            context=(("components_after", "2"), ("signal_id", "signal_1"))
        )

        data = event_to_dict(event)

        assert data["event_type"] == "split"
        assert data["context"] == {"components_after": "2", "signal_id": "signal_1"}
        assert event_from_dict(data) == event

    def test_boundary_sides_sorted(self):
        boundary = CoherenceBoundary(
            id="boundary_x",
            side_a=frozenset({"c", "a"}),
            side_b=frozenset({"b"}),
            cut_value=0.5,
            history=((T0, 0.5),),
            first_seen=T0,
            last_updated=T0
        )

        data = boundary_to_dict(boundary)

        assert data["side_a"] == ["a", "c"]
        assert json.loads(dumps(boundary)) == data
        assert boundary_from_dict(data) == boundary

    def test_encoder_handles_enums_and_sets(self):
        payload = {"type": CoherenceEventType.ANOMALY, "ids": {"b", "a"}, "at": T0}

        assert json.loads(dumps(payload)) == {
            "type": "anomaly", "ids": ["a", "b"], "at": "2024-01-01T00:00:00+00:00"
        }
