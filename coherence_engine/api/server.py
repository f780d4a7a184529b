"""
Coherence Engine: Signal API Server
===================================

HTTP surface over one streaming coherence controller.

Endpoints:
- GET  /health
- POST /api/v1/records          -> feed one record, returns closed-window signal
- POST /api/v1/windows/flush    -> finalize the open window
- GET  /api/v1/signals          -> signal history
- GET  /api/v1/events           -> events derived from history
- GET  /api/v1/boundaries       -> tracked boundaries
- GET  /api/v1/metrics          -> registered metrics with current readings

Configuration comes from COHERENCE_* environment variables.

Usage:
    uvicorn coherence_engine.api.server:app --reload
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import CoherenceConfig
from ..contracts.base import (
    ConfigurationError, DataRecord, EstimationFailure, OutOfOrderRecord, Relationship
)
from ..domain.serialization import (
    boundary_to_dict, event_to_dict, signal_to_dict, window_to_dict
)
from ..temporal.window import StreamingCoherence

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

stream_instance: Optional[StreamingCoherence] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the stream controller on startup."""
    global stream_instance

    try:
        config = CoherenceConfig.from_env()
    except ConfigurationError as e:
        print(f"[!] Invalid configuration: {e}")
        raise

    stream_instance = StreamingCoherence(config)
    print(f"[*] Coherence stream ready (window {config.window_size_secs}s, step {config.window_step_secs}s)")

    yield

    print("[*] Shutting down coherence stream.")
    stream_instance = None


app = FastAPI(
    title="Coherence Engine API",
    version="0.1.0",
    description="Structural coherence signals over a streaming relationship graph",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class RelationshipIn(BaseModel):
    target_id: str
    weight: float = 1.0
    rel_type: str = "related"


class RecordIn(BaseModel):
    id: str = Field(min_length=1)
    timestamp: datetime
    relationships: List[RelationshipIn] = Field(default_factory=list)
    source: str = ""
    record_type: str = "node"

    def to_record(self) -> DataRecord:
        return DataRecord(
            id=self.id,
            timestamp=self.timestamp,
            relationships=tuple(
                Relationship(target_id=r.target_id, weight=r.weight, rel_type=r.rel_type)
                for r in self.relationships
            ),
            source=self.source,
            record_type=self.record_type
        )


def _stream() -> StreamingCoherence:
    if not stream_instance:
        raise HTTPException(status_code=503, detail="Stream not initialized")
    return stream_instance


def _window_view(stream: StreamingCoherence):
    window = stream.current_window
    return {
        "state": stream.state.value,
        "window": window_to_dict(window) if window else None,
        "pending_count": stream.pending_count,
    }


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    stream = _stream()
    return {"status": "online", "signals": len(stream.engine.signals)}


@app.post("/api/v1/records")
async def ingest_record(record: RecordIn):
    """
    Feed one record to the window controller.
    Returns the signal of the window it closed, if any.
    """
    stream = _stream()
    try:
        signal = stream.process(record.to_record())
    except OutOfOrderRecord as e:
        raise HTTPException(status_code=409, detail=str(e))
    except EstimationFailure as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "signal": signal_to_dict(signal) if signal else None,
        **_window_view(stream),
    }


@app.post("/api/v1/windows/flush")
async def flush_window():
    """Finalize the open window (end of stream)."""
    stream = _stream()
    try:
        signal = stream.flush()
    except EstimationFailure as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "signal": signal_to_dict(signal) if signal else None,
        **_window_view(stream),
    }


@app.get("/api/v1/signals")
async def get_signals(limit: int = Query(100, ge=1), offset: int = Query(0, ge=0)):
    """Signal history, oldest first."""
    signals = _stream().engine.signals
    page = signals[offset:offset + limit]
    return {
        "total": len(signals),
        "signals": [signal_to_dict(s) for s in page],
    }


@app.get("/api/v1/events")
async def get_events(threshold: float = Query(0.1, ge=0.0)):
    """Events over the current history for the given delta threshold."""
    events = _stream().engine.detect_events(threshold)
    return {
        "threshold": threshold,
        "events": [event_to_dict(e) for e in events],
    }


@app.get("/api/v1/boundaries")
async def get_boundaries():
    """Tracked coherence boundaries."""
    boundaries = _stream().engine.boundaries
    return {"boundaries": [boundary_to_dict(b) for b in boundaries]}


@app.get("/api/v1/metrics")
async def get_metrics():
    """Registered metrics with their current reading."""
    metrics = _stream().engine.metrics
    return {
        "metrics": [
            {
                "name": d.name,
                "type": d.metric_type.value,
                "description": d.description,
                "labels": list(d.labels),
                "value": metrics.summary(d.name),
                "samples": len(metrics.get_metric(d.name)),
            }
            for d in metrics.definitions()
        ]
    }
