"""
Coherence Engine

Structural coherence signals over a time-evolving, weighted relationship
graph. The minimum edge cut of each time window measures how tightly the
window's entities hang together; sharp changes become typed events.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable records shared by all layers: DataRecord, TemporalWindow,
     CoherenceSignal, CoherenceEvent, CoherenceBoundary, error codes

2. CORE ENGINE (core/)
   - Responsibility: graph accumulation, minimum cut, signal synthesis,
     event detection, boundary tracking
   - MUST NOT: window the stream, persist anything

3. TEMPORAL LAYER (temporal/)
   - Responsibility: split the record stream into windows, drive the engine
   - MUST NOT: reopen a finalized window

4. OBSERVABILITY (observability/)
   - Responsibility: audit log and metrics
   - MUST NOT: modify engine behavior

5. API (api/)
   - HTTP access to a single stream controller

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: signals, events and boundaries are frozen records
- Append-only signal history; failed computations append nothing
- Deterministic: the randomized estimator is always seeded
- Explicit errors: closed ErrorCode set, no silent fallbacks
"""

from .config import CoherenceConfig
from .contracts import (
    CoherenceBoundary, CoherenceEvent, CoherenceEventType, CoherenceSignal,
    ConfigurationError, DataRecord, EstimationFailure, OutOfOrderRecord,
    Relationship, SignalComputationResult, TemporalWindow,
)
from .core import CoherenceEngine
from .temporal import StreamingCoherence, WindowState

__version__ = "0.1.0"

__all__ = [
    'CoherenceConfig',
    'CoherenceEngine',
    'StreamingCoherence',
    'WindowState',
    'DataRecord',
    'Relationship',
    'TemporalWindow',
    'CoherenceSignal',
    'CoherenceEvent',
    'CoherenceEventType',
    'CoherenceBoundary',
    'SignalComputationResult',
    'ConfigurationError',
    'OutOfOrderRecord',
    'EstimationFailure',
]
