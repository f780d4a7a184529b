"""
API Tests
=========

HTTP surface over the streaming controller.
"""

import pytest
from fastapi.testclient import TestClient

from coherence_engine.api.server import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("COHERENCE_WINDOW_SIZE_SECS", "10")
    monkeypatch.setenv("COHERENCE_WINDOW_STEP_SECS", "10")
    monkeypatch.setenv("COHERENCE_APPROXIMATE", "false")
    with TestClient(app) as test_client:
        yield test_client


def post_record(client, record_id, seconds, rels=()):
    return client.post("/api/v1/records", json={
        "id": record_id,
        "timestamp": f"2024-01-01T00:00:{seconds:02d}Z",
        "relationships": [{"target_id": t, "weight": w} for t, w in rels],
    })


class TestRecords:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "online", "signals": 0}

    def test_window_rollover_returns_signal(self, client):
        assert post_record(client, "A", 0, [("B", 1.0), ("C", 0.5)]).json()["signal"] is None
        post_record(client, "B", 1, [("C", 1.0)])

        body = post_record(client, "D", 10).json()

        assert body["signal"]["min_cut_value"] == 1.5
        assert body["signal"]["partition_sizes"] == [1, 2]
        assert body["state"] == "accumulating"
        assert body["window"]["window_id"] == 1
        assert body["pending_count"] == 1

    def test_out_of_order_is_conflict(self, client):
        post_record(client, "A", 30)

        response = post_record(client, "B", 5)

        assert response.status_code == 409

    def test_empty_id_is_rejected(self, client):
        response = post_record(client, "", 0)

        assert response.status_code == 422


class TestReadEndpoints:

    def test_flush_then_signals_and_events(self, client):
        post_record(client, "A", 0, [("B", 1.0)])
        post_record(client, "A", 10, [("B", 3.0)])

        flushed = client.post("/api/v1/windows/flush").json()
        assert flushed["signal"]["delta"] == 2.0
        assert flushed["state"] == "no_window"
        assert flushed["window"] is None

        signals = client.get("/api/v1/signals").json()
        assert signals["total"] == 2
        assert [s["id"] for s in signals["signals"]] == ["signal_0", "signal_1"]

        page = client.get("/api/v1/signals", params={"limit": 1, "offset": 1}).json()
        assert [s["id"] for s in page["signals"]] == ["signal_1"]

        events = client.get("/api/v1/events", params={"threshold": 0.5}).json()
        assert [e["event_type"] for e in events["events"]] == ["strengthened"]

    def test_boundaries(self, client):
        post_record(client, "A", 0, [("B", 1.0)])
        client.post("/api/v1/windows/flush")

        boundaries = client.get("/api/v1/boundaries").json()["boundaries"]

        assert len(boundaries) == 1
        assert boundaries[0]["side_a"] == ["A"]
        assert boundaries[0]["side_b"] == ["B"]

    def test_metrics_report_counters_and_gauges(self, client):
        post_record(client, "A", 0, [("B", 1.0)])
        client.post("/api/v1/windows/flush")

        metrics = {m["name"]: m for m in client.get("/api/v1/metrics").json()["metrics"]}

        assert metrics["signals_computed_total"]["type"] == "counter"
        assert metrics["signals_computed_total"]["value"] == 1.0
        assert metrics["graph_nodes"]["type"] == "gauge"
        assert metrics["graph_nodes"]["value"] == 2.0
        assert metrics["records_rejected_total"]["labels"] == ["reason"]
        assert metrics["records_rejected_total"]["value"] == 0
        assert metrics["mincut_trials_total"]["samples"] == 0
