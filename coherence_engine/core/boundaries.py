"""
Boundary Tracker

Long-lived CoherenceBoundary records, one per recurring seam.

A seam is matched across windows by approximate side-set equality: the mean
Jaccard similarity of the two sides (in the better of both orientations)
must reach boundary_match_threshold. Matched boundaries are REPLACED by a
new record with the observation appended; nothing is mutated in place.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import AbstractSet, FrozenSet, List, Optional, Tuple
import hashlib

import numpy as np

from ..contracts.signals import CoherenceBoundary


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def boundary_id(side_a: FrozenSet[str], side_b: FrozenSet[str]) -> str:
    """Deterministic id, independent of side orientation."""
    halves = sorted(",".join(sorted(side)) for side in (side_a, side_b))
    digest = hashlib.sha256("|".join(halves).encode("utf-8")).hexdigest()[:16]
    return f"boundary_{digest}"


class BoundaryTracker:

    def __init__(
        self,
        match_threshold: float = 0.8,
        stability_window: int = 5,
        stability_tolerance: float = 0.01
    ):
        self._match_threshold = match_threshold
        self._stability_window = stability_window
        self._stability_tolerance = stability_tolerance
        self._boundaries: List[CoherenceBoundary] = []

    @property
    def boundaries(self) -> Tuple[CoherenceBoundary, ...]:
        return tuple(self._boundaries)

    def observe(
        self,
        side_a: AbstractSet[str],
        side_b: AbstractSet[str],
        cut_value: float,
        timestamp: datetime
    ) -> CoherenceBoundary:
        """Record one observed seam; returns the created or updated boundary."""
        side_a, side_b = frozenset(side_a), frozenset(side_b)
        match = self._find_match(side_a, side_b)

        if match is None:
            boundary = CoherenceBoundary(
                id=boundary_id(side_a, side_b),
                side_a=side_a,
                side_b=side_b,
                cut_value=cut_value,
                history=((timestamp, cut_value),),
                first_seen=timestamp,
                last_updated=timestamp,
                stable=False
            )
            self._boundaries.append(boundary)
            return boundary

        index, swapped = match
        existing = self._boundaries[index]
        if swapped:
            side_a, side_b = side_b, side_a
        history = existing.history + ((timestamp, cut_value),)

        # Sides follow the latest observation so a slowly drifting seam stays matched
        updated = replace(
            existing,
            side_a=side_a,
            side_b=side_b,
            cut_value=cut_value,
            history=history,
            last_updated=max(timestamp, existing.last_updated),
            stable=self._is_stable(history)
        )
        self._boundaries[index] = updated
        return updated

    def clear(self) -> None:
        self._boundaries.clear()

    def _find_match(
        self,
        side_a: FrozenSet[str],
        side_b: FrozenSet[str]
    ) -> Optional[Tuple[int, bool]]:
        """Best matching boundary index and whether sides are swapped."""
        best: Optional[Tuple[float, int, bool]] = None

        for index, boundary in enumerate(self._boundaries):
            direct = (jaccard(side_a, boundary.side_a) + jaccard(side_b, boundary.side_b)) / 2
            swapped = (jaccard(side_a, boundary.side_b) + jaccard(side_b, boundary.side_a)) / 2
            score, is_swapped = (swapped, True) if swapped > direct else (direct, False)
            if score >= self._match_threshold and (best is None or score > best[0]):
                best = (score, index, is_swapped)

        if best is None:
            return None
        return best[1], best[2]

    def _is_stable(self, history: Tuple[Tuple[datetime, float], ...]) -> bool:
        recent = [value for _, value in history[-self._stability_window:]]
        if len(recent) < 2:
            return False
        return float(np.var(np.asarray(recent, dtype=np.float64))) < self._stability_tolerance
