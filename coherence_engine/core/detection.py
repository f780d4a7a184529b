"""
Event Detector

Read-only classification of signal history into CoherenceEvents.

Detection never mutates history and may be re-run with any threshold.
Per consecutive pair of signals, at most one event of each type is emitted,
in this order:

- STRENGTHENED / WEAKENED: |delta| exceeds the delta threshold
- SPLIT / MERGED: connected component count rose / fell
- THRESHOLD_CROSSED: min_cut_value moved across the absolute level
- ANOMALY: delta is more than anomaly_sigma standard deviations from the
  rolling mean of preceding deltas
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple
import math

import numpy as np

from ..contracts.signals import CoherenceEvent, CoherenceEventType, CoherenceSignal


class EventDetector:

    def __init__(
        self,
        coherence_threshold: Optional[float] = None,
        anomaly_sigma: float = 3.0,
        anomaly_window: int = 10,
        anomaly_min_samples: int = 3
    ):
        self._coherence_threshold = coherence_threshold
        self._anomaly_sigma = anomaly_sigma
        self._anomaly_window = anomaly_window
        self._anomaly_min_samples = anomaly_min_samples

    def detect(
        self,
        signals: Sequence[CoherenceSignal],
        threshold: float
    ) -> List[CoherenceEvent]:
        events: List[CoherenceEvent] = []

        for i in range(1, len(signals)):
            previous = signals[i - 1]
            current = signals[i]
            delta = current.delta
            magnitude = abs(delta) if delta is not None else 0.0
            base_context = (
                ("signal_id", current.id),
                ("previous_signal_id", previous.id),
                ("window_id", str(current.window.window_id)),
                ("delta", str(delta)),
            )

            def emit(event_type: CoherenceEventType, *extra: Tuple[str, str]):
                events.append(CoherenceEvent(
                    event_type=event_type,
                    timestamp=current.window.start,
                    nodes=current.cut_nodes,
                    magnitude=magnitude,
                    context=base_context + extra
                ))

            if delta is not None and abs(delta) > threshold:
                if delta > 0:
                    emit(CoherenceEventType.STRENGTHENED)
                elif delta < 0:
                    emit(CoherenceEventType.WEAKENED)

            structural = self._structural_change(previous, current)
            if structural is not None:
                emit(
                    structural,
                    ("components_before", str(previous.component_count)),
                    ("components_after", str(current.component_count)),
                )

            direction = self._crossing_direction(previous, current)
            if direction is not None:
                emit(
                    CoherenceEventType.THRESHOLD_CROSSED,
                    ("threshold", str(self._coherence_threshold)),
                    ("direction", direction),
                )

            z_score = self._anomaly_score(signals[1:i], delta)
            if z_score is not None and z_score > self._anomaly_sigma:
                emit(CoherenceEventType.ANOMALY, ("z_score", f"{z_score:.6f}"))

        return events

    @staticmethod
    def _structural_change(
        previous: CoherenceSignal,
        current: CoherenceSignal
    ) -> Optional[CoherenceEventType]:
        # Signals built by hand may not carry a component count
        if previous.component_count <= 0 or current.component_count <= 0:
            return None
        if current.component_count > previous.component_count:
            return CoherenceEventType.SPLIT
        if current.component_count < previous.component_count:
            return CoherenceEventType.MERGED
        return None

    def _crossing_direction(
        self,
        previous: CoherenceSignal,
        current: CoherenceSignal
    ) -> Optional[str]:
        level = self._coherence_threshold
        if level is None:
            return None
        if previous.min_cut_value >= level > current.min_cut_value:
            return "below"
        if previous.min_cut_value < level <= current.min_cut_value:
            return "above"
        return None

    def _anomaly_score(
        self,
        preceding: Sequence[CoherenceSignal],
        delta: Optional[float]
    ) -> Optional[float]:
        if delta is None or not math.isfinite(delta):
            return None

        recent = [
            s.delta for s in preceding
            if s.delta is not None and math.isfinite(s.delta)
        ][-self._anomaly_window:]
        if len(recent) < self._anomaly_min_samples:
            return None

        values = np.asarray(recent, dtype=np.float64)
        std = float(values.std())
        if std == 0.0:
            return None
        return abs(delta - float(values.mean())) / std
