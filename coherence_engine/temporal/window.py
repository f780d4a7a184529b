"""
Streaming Window Controller
===========================

Partitions a timestamp-ordered record stream into fixed-size, fixed-step
windows and turns each closed window into one CoherenceSignal.

STATE MACHINE:
==============
NO_WINDOW --first record--> ACCUMULATING --rollover--> ACCUMULATING
ACCUMULATING --flush()--> NO_WINDOW

INVARIANTS:
- window_id strictly increases across the stream
- Each record is buffered into exactly one window, unless replay_overlap
  is enabled, in which case records in the overlap of two consecutive
  windows are carried into the next one
- A record before the open window's start is rejected with OutOfOrderRecord
- A record that closes a window always goes into the next window, even
  when it falls in the gap before it (window_step > window_size) or when
  closing the previous window failed
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from ..config import CoherenceConfig
from ..contracts.base import (
    DataRecord, EstimationFailure, OutOfOrderRecord, TemporalWindow
)
from ..contracts.signals import AuditEventType, AuditLogEntry, CoherenceSignal
from ..core import CoherenceEngine
from ..observability import LogCollector


class WindowState(Enum):
    NO_WINDOW = "no_window"
    ACCUMULATING = "accumulating"


class StreamingCoherence:
    """
    Streaming coherence computation over a record stream.

    process() is synchronous: a rollover runs a full signal computation
    before returning. The controller exclusively owns the pending buffer
    and the open window; the engine is only driven through its API.
    """

    LAYER = "window_controller"

    def __init__(
        self,
        config: Optional[CoherenceConfig] = None,
        engine: Optional[CoherenceEngine] = None
    ):
        self._config = config or (engine.config if engine else CoherenceConfig())
        self._engine = engine or CoherenceEngine(self._config)
        self._window_size = self._config.window_size
        self._window_step = self._config.window_step

        self._window: Optional[TemporalWindow] = None
        self._buffer: List[DataRecord] = []
        self._next_window_id = 0
        self._audit = LogCollector(self.LAYER)

    # =========================================================================
    # STREAM INTERFACE
    # =========================================================================

    def process(self, record: DataRecord) -> Optional[CoherenceSignal]:
        """
        Feed one record. Returns the signal of a window closed by it, if any.

        Raises OutOfOrderRecord for records that cannot be placed, and
        EstimationFailure if closing the previous window failed.
        """
        timestamp = record.timestamp

        if self._window is None:
            self._open(TemporalWindow.starting_at(timestamp, self._window_size, self._next_window_id))

        window = self._window

        if timestamp < window.start:
            self._reject(record, window)

        if window.contains(timestamp):
            self._accept(record)
            return None

        next_window = self._next_window(window, timestamp)
        carried: List[DataRecord] = []
        if self._config.replay_overlap:
            carried = [r for r in self._buffer if next_window.contains(r.timestamp)]

        # The next window opens and takes the triggering record even if finalization fails
        try:
            signal = self.finalize_window()
        finally:
            self._open(next_window)
            self._buffer.extend(carried)
            if timestamp < next_window.start:
                self._audit_gap(record, next_window)
            self._accept(record)

        return signal

    def process_all(self, records: Iterable[DataRecord]) -> List[CoherenceSignal]:
        """Feed records in order and collect every signal produced."""
        signals = []
        for record in records:
            signal = self.process(record)
            if signal is not None:
                signals.append(signal)
        return signals

    def finalize_window(self) -> Optional[CoherenceSignal]:
        """
        Rebuild the engine graph from the buffered records and compute.

        An empty buffer produces no signal. On failure the buffer is
        discarded and EstimationFailure is raised; history is unchanged.
        """
        if not self._buffer or self._window is None:
            return None

        window = self._window
        records = list(self._buffer)
        self._buffer.clear()

        self._engine.clear()
        self._engine.build_from_records(records)
        result = self._engine.compute_signals(window)

        if not result.success:
            self._audit.record(
                AuditEventType.ERROR,
                "window_failed",
                entity_id=str(window.window_id),
                entity_type="temporal_window",
                record_count=len(records)
            )
            raise EstimationFailure(result.error.message, error=result.error)

        signal = result.latest
        self._engine.metrics.record("windows_finalized_total", 1.0)
        self._audit.record(
            AuditEventType.WINDOW,
            "window_finalized",
            entity_id=str(window.window_id),
            entity_type="temporal_window",
            record_count=len(records),
            signal_id=signal.id if signal else ""
        )
        return signal

    def flush(self) -> Optional[CoherenceSignal]:
        """Finalize the open window at end of stream and return to NO_WINDOW."""
        try:
            return self.finalize_window()
        finally:
            self._window = None

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _next_window(self, window: TemporalWindow, timestamp: datetime) -> TemporalWindow:
        """
        Advance by window_step until the window end passes timestamp.
        Skipped windows would be empty; they still consume window ids.
        """
        start = window.start + self._window_step
        window_id = window.window_id + 1
        while timestamp >= start + self._window_size:
            start += self._window_step
            window_id += 1
        return TemporalWindow.starting_at(start, self._window_size, window_id)

    def _open(self, window: TemporalWindow) -> None:
        self._window = window
        self._next_window_id = window.window_id + 1
        self._audit.record(
            AuditEventType.WINDOW,
            "window_opened",
            entity_id=str(window.window_id),
            entity_type="temporal_window",
            start=window.start.isoformat(),
            end=window.end.isoformat()
        )

    def _accept(self, record: DataRecord) -> None:
        self._buffer.append(record)

    def _audit_gap(self, record: DataRecord, window: TemporalWindow) -> None:
        self._audit.record(
            AuditEventType.WINDOW,
            "record_in_gap",
            entity_id=record.id,
            entity_type="data_record",
            timestamp=record.timestamp.isoformat(),
            window_id=window.window_id
        )

    def _reject(self, record: DataRecord, window: TemporalWindow) -> None:
        self._engine.metrics.record("records_rejected_total", 1.0, {"reason": "out_of_order"})
        self._audit.record(
            AuditEventType.ERROR,
            "record_rejected",
            entity_id=record.id,
            entity_type="data_record",
            timestamp=record.timestamp.isoformat(),
            window_start=window.start.isoformat()
        )
        raise OutOfOrderRecord(
            f"Record {record.id} at {record.timestamp.isoformat()} precedes "
            f"window {window.window_id} starting {window.start.isoformat()}",
            record_id=record.id,
            window_id=window.window_id
        )

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def state(self) -> WindowState:
        return WindowState.NO_WINDOW if self._window is None else WindowState.ACCUMULATING

    @property
    def current_window(self) -> Optional[TemporalWindow]:
        return self._window

    @property
    def pending_count(self) -> int:
        return len(self._buffer)

    @property
    def engine(self) -> CoherenceEngine:
        return self._engine

    def get_audit_log(self) -> List[AuditLogEntry]:
        return self._audit.get_entries()
