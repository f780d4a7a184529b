"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from enum import Enum, auto


def utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Closed set - every failure the engine can report is enumerated here.
    """
    CONFIGURATION_INVALID = auto()
    OUT_OF_ORDER_RECORD = auto()
    ESTIMATION_FAILED = auto()
    INVALID_WINDOW = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data - they can be stored, queried and attached to results.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: Any) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=utc_now(),
            context=tuple((k, str(v)) for k, v in sorted(context.items()))
        )

    def context_dict(self) -> Dict[str, str]:
        return dict(self.context)


class CoherenceError(Exception):
    """Base exception. Always carries the structured Error record."""

    code = ErrorCode.ESTIMATION_FAILED

    def __init__(self, message: str, error: Optional[Error] = None, **context: Any):
        super().__init__(message)
        self.error = error or Error.create(self.code, message, **context)


class ConfigurationError(CoherenceError, ValueError):
    """Invalid configuration. Fatal at construction, never clamped."""
    code = ErrorCode.CONFIGURATION_INVALID


class OutOfOrderRecord(CoherenceError):
    """Record timestamp precedes the open window; the record is rejected."""
    code = ErrorCode.OUT_OF_ORDER_RECORD


class EstimationFailure(CoherenceError):
    """Minimum cut could not be produced for the accumulated graph."""
    code = ErrorCode.ESTIMATION_FAILED


class InvalidWindow(CoherenceError, ValueError):
    """Window bounds or id are malformed."""
    code = ErrorCode.INVALID_WINDOW


# =============================================================================
# INPUT RECORDS (Consumed from the external record stream)
# =============================================================================

@dataclass(frozen=True)
class Relationship:
    """Weighted, typed link from a record to another entity id."""
    target_id: str
    weight: float = 1.0
    rel_type: str = "related"
    properties: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DataRecord:
    """
    One item of the record stream.

    Only id, timestamp and relationships drive coherence computation.
    The remaining fields travel with the record for downstream consumers.
    """
    id: str
    timestamp: datetime
    relationships: Tuple[Relationship, ...] = field(default_factory=tuple)
    source: str = ""
    record_type: str = "node"
    data: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)
    embedding: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("DataRecord id must be a non-empty string")
        object.__setattr__(self, 'timestamp', utc(self.timestamp))
        object.__setattr__(self, 'relationships', tuple(self.relationships))

    @staticmethod
    def create(
        record_id: str,
        timestamp: datetime,
        relationships: Tuple[Tuple[str, float], ...] = (),
        **kwargs: Any
    ) -> DataRecord:
        """Factory taking (target_id, weight) pairs."""
        return DataRecord(
            id=record_id,
            timestamp=timestamp,
            relationships=tuple(
                Relationship(target_id=target, weight=weight)
                for target, weight in relationships
            ),
            **kwargs
        )


# =============================================================================
# TEMPORAL TYPES
# =============================================================================

@dataclass(frozen=True)
class TemporalWindow:
    """
    Half-open time range [start, end) with a monotonic sequence number.
    All bounds are UTC.
    """
    start: datetime
    end: datetime
    window_id: int

    def __post_init__(self):
        object.__setattr__(self, 'start', utc(self.start))
        object.__setattr__(self, 'end', utc(self.end))
        if self.end <= self.start:
            raise InvalidWindow(
                "TemporalWindow end must be after start",
                start=self.start.isoformat(),
                end=self.end.isoformat()
            )
        if self.window_id < 0:
            raise InvalidWindow("window_id must be non-negative", window_id=self.window_id)

    @staticmethod
    def starting_at(start: datetime, duration: timedelta, window_id: int) -> TemporalWindow:
        return TemporalWindow(start=start, end=utc(start) + duration, window_id=window_id)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= utc(timestamp) < self.end
