"""
Tests for the FastAPI web server and its WebSocket detection endpoint.
"""
import pytest
import numpy as np
import sys
import os
import json
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

import web_server
from chord_listener.chroma import rotate_chroma
from chord_listener.errors import AcquisitionError
from chord_listener.templates import build_chord_templates

TEMPLATES = build_chord_templates()


class ConstantExtractor:
    """Loud frames that always report an E minor chord (A-referenced)."""

    def rms(self, frame):
        return 0.3

    def chroma(self, frame):
        return rotate_chroma(TEMPLATES['E:min'], 3)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(web_server.app.state, 'extractor_factory',
                        lambda config, sample_rate: ConstantExtractor())
    return TestClient(web_server.app)


def chunk_bytes(size=100):
    return np.zeros(size, dtype=np.float32).tobytes()


class TestHttpEndpoints:
    """Test plain HTTP routes."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "connections": 0}

    def test_index(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Chord Listener" in response.text


class TestParseConfig:
    """Test client configuration parsing."""

    def test_sample_rate(self):
        assert web_server.parse_config(json.dumps({"sample_rate": 48000})).sample_rate == 48000

    def test_defaults_on_bad_json(self):
        config = web_server.parse_config("not json")
        assert config.sample_rate == 44100
        assert config.buffer_size == 8192

    def test_defaults_on_bad_sample_rate(self):
        assert web_server.parse_config(json.dumps({"sample_rate": "fast"})).sample_rate == 44100
        assert web_server.parse_config(json.dumps({"sample_rate": [48000]})).sample_rate == 44100

    def test_defaults_on_non_object(self):
        assert web_server.parse_config("[1, 2]").sample_rate == 44100


class TestWebSocket:
    """Test streaming detection over /ws."""

    def test_stream_detects_chord(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text(json.dumps({"sample_rate": 48000}))
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            assert connected["config"]["sample_rate"] == 48000
            assert ws.receive_json()["state"] == "initializing"
            assert ws.receive_json()["state"] == "active"

            for _ in range(81):
                ws.send_bytes(chunk_bytes())
            time.sleep(0.3)  # let the smoothing window elapse
            ws.send_bytes(chunk_bytes())

            result = ws.receive_json()
            assert result["type"] == "chord"
            assert result["chord"] == "E:min"
            assert [name for name, _ in result["notes"]] == ["E", "G", "B"]

            ws.send_text(json.dumps({"type": "stop"}))
            idle = ws.receive_json()
            assert idle["state"] == "idle"
            assert idle["last_result"]["chord"] == "E:min"

            ws.send_text(json.dumps({"type": "result"}))
            assert ws.receive_json()["chord"] == "E:min"

    def test_non_object_commands_are_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{}")
            ws.receive_json()
            ws.receive_json()
            ws.receive_json()
            ws.send_text("[1, 2]")
            ws.send_text('"stop"')
            ws.send_text(json.dumps({"type": "result"}))
            result = ws.receive_json()
            assert result["type"] == "chord"
            assert result["chord"] == "none"
            assert web_server.active_connections

    def test_restart_after_stop(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{}")
            ws.receive_json()
            ws.receive_json()
            ws.receive_json()
            ws.send_text(json.dumps({"type": "stop"}))
            assert ws.receive_json()["state"] == "idle"
            ws.send_text(json.dumps({"type": "start"}))
            assert ws.receive_json()["state"] == "initializing"
            assert ws.receive_json()["state"] == "active"

    def test_acquisition_error_reported(self, monkeypatch):
        def broken_factory(config, sample_rate):
            raise AcquisitionError("feature extractor unavailable")

        monkeypatch.setattr(web_server.app.state, 'extractor_factory', broken_factory)
        client = TestClient(web_server.app)
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{}")
            message = ws.receive_json()
            assert message == {"type": "error", "message": "feature extractor unavailable"}

    def test_connection_cleanup(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("{}")
            ws.receive_json()
            assert len(web_server.active_connections) == 1
        # Give the server task a moment to run its cleanup
        for _ in range(50):
            if not web_server.active_connections:
                break
            time.sleep(0.02)
        assert web_server.active_connections == {}
