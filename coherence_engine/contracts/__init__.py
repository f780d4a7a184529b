"""
Contracts Module

Immutable data transfer objects shared by every layer of the engine.
No layer may import implementation details from another layer; they
exchange only the types defined here.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All failures are explicit ErrorCode values
3. All timestamps are UTC and never mutated
"""

from .base import (
    ErrorCode, Error,
    CoherenceError, ConfigurationError, OutOfOrderRecord, EstimationFailure, InvalidWindow,
    Relationship, DataRecord, TemporalWindow, utc, utc_now,
)
from .signals import (
    MinCutResult, CoherenceSignal, SignalComputationResult,
    CoherenceEventType, CoherenceEvent, CoherenceBoundary,
    AuditEventType, AuditLogEntry, MetricPoint,
)

__all__ = [
    'ErrorCode', 'Error',
    'CoherenceError', 'ConfigurationError', 'OutOfOrderRecord', 'EstimationFailure', 'InvalidWindow',
    'Relationship', 'DataRecord', 'TemporalWindow', 'utc', 'utc_now',
    'MinCutResult', 'CoherenceSignal', 'SignalComputationResult',
    'CoherenceEventType', 'CoherenceEvent', 'CoherenceBoundary',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
]
