"""
Integration tests for the FastAPI application.
Uses httpx.AsyncClient with the ASGI transport (no running server needed).
Fixtures are provided by tests/conftest.py.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from starlette.websockets import WebSocketDisconnect

from unsent.api.app import create_app
from unsent.config import Config


async def _new_session(client) -> str:
    r = await client.post("/sessions")
    assert r.status_code == 201
    return r.json()["session_id"]


class TestHealth:
    async def test_health_ok(self, client):
        r = await client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["sessions"] == 0


class TestSessions:
    async def test_create_and_end(self, client):
        sid = await _new_session(client)
        assert (await client.get("/health")).json()["sessions"] == 1
        r = await client.delete(f"/sessions/{sid}")
        assert r.status_code == 200
        assert r.json()["active"] is False
        assert (await client.delete(f"/sessions/{sid}")).status_code == 404

    async def test_unknown_session_404(self, client):
        assert (await client.get("/sessions/nope/stats")).status_code == 404
        r = await client.post("/sessions/nope/events", json={"type": "keydown", "data": {"key": "a"}})
        assert r.status_code == 404

    async def test_ingest_keydown(self, client):
        sid = await _new_session(client)
        r = await client.post(f"/sessions/{sid}/events", json={
            "type": "keydown", "timestamp": 1_700_000_000_000.0, "data": {"key": "a"},
        })
        assert r.status_code == 202
        assert r.json() == {"status": "accepted", "recorded": True}

    async def test_modifier_key_accepted_but_not_recorded(self, client):
        sid = await _new_session(client)
        r = await client.post(f"/sessions/{sid}/events", json={"type": "keydown", "data": {"key": "Shift"}})
        assert r.status_code == 202
        assert r.json()["recorded"] is False

    async def test_unknown_event_type_422(self, client):
        sid = await _new_session(client)
        r = await client.post(f"/sessions/{sid}/events", json={"type": "teleport", "data": {}})
        assert r.status_code == 422

    async def test_batch_and_stats(self, client):
        sid = await _new_session(client)
        base = 1_700_000_000_000.0
        batch = [
            {"type": "keydown", "timestamp": base + i * 200, "data": {"key": "a"}}
            for i in range(5)
        ]
        batch.append({"type": "keydown", "timestamp": base + 1000, "data": {"key": "Backspace"}})
        batch.append({"type": "resize", "data": {}})
        r = await client.post(f"/sessions/{sid}/events/batch", json=batch)
        assert r.status_code == 202
        assert r.json() == {"accepted": 6, "recorded": 6, "total": 7}

        stats = (await client.get(f"/sessions/{sid}/stats")).json()
        assert stats["typing_speed"] == pytest.approx(5.0)
        assert stats["delete_count"] == 1
        assert 0.0 <= stats["stress_level"] <= 1.0

    async def test_metrics_shape(self, client):
        sid = await _new_session(client)
        r = await client.get(f"/sessions/{sid}/metrics")
        assert r.status_code == 200
        body = r.json()
        assert set(body) == {
            "timing_patterns", "emotional_indicators", "content_patterns", "behavioral_signatures",
        }
        assert len(body["timing_patterns"]["word_pause_distribution"]) == 6

    async def test_exhaust(self, client):
        sid = await _new_session(client)
        r = await client.get(f"/sessions/{sid}/exhaust", params={"session_frequency": 7})
        assert r.status_code == 200
        body = r.json()
        assert body["exhaust"]["interaction_metrics"]["session_frequency"] == 7
        assert "compulsive_revisiting" in body["profile"]["behavioral_patterns"]


class TestScoring:
    async def test_analyze(self, client):
        r = await client.post("/scoring/analyze", json={
            "text": "I HATE YOU!! I hate this so much", "time_spent_seconds": 5,
        })
        assert r.status_code == 200
        body = r.json()
        assert body["stage"] == "anger"
        assert "hate" in body["keywords"]
        assert set(body["factors"]) == {
            "keyword_matches", "sentiment_intensity", "message_length",
            "emotional_words", "time_spent",
        }

    async def test_analyze_empty(self, client):
        r = await client.post("/scoring/analyze", json={})
        assert r.status_code == 200
        assert r.json()["score"] == 2

    async def test_conversation_update(self, client):
        r = await client.post("/scoring/conversation", json={
            "current_score": 0, "new_message_score": 100, "message_count": 1,
        })
        assert r.json() == {"score": 10, "stage": "denial", "weight": 0.1, "ready_for_closure": False}

    async def test_conversation_rejects_out_of_range(self, client):
        r = await client.post("/scoring/conversation", json={
            "current_score": 0, "new_message_score": 150, "message_count": 1,
        })
        assert r.status_code == 422

    @pytest.mark.parametrize("score, count, ready", [(89, 10, False), (90, 4, False), (90, 5, True)])
    async def test_closure(self, client, score, count, ready):
        r = await client.get("/scoring/closure", params={"score": score, "message_count": count})
        assert r.status_code == 200
        assert r.json()["ready_for_closure"] is ready


class TestStages:
    async def test_list_in_order(self, client):
        r = await client.get("/stages")
        ids = [s["id"] for s in r.json()]
        assert ids == ["denial", "anger", "bargaining", "depression", "acceptance"]

    async def test_read_stage(self, client):
        r = await client.get("/stages/bargaining")
        assert r.status_code == 200
        assert r.json()["range"] == [41, 60]

    async def test_unknown_stage_404(self, client):
        assert (await client.get("/stages/grief")).status_code == 404
        assert (await client.get("/stages/grief/fragment")).status_code == 404

    async def test_fragments(self, client):
        stage = (await client.get("/stages/depression")).json()
        r = await client.get("/stages/depression/fragment")
        assert r.json()["fragment"] in stage["fragments"]
        r = await client.get("/stages/fragment")
        assert r.json()["stage"] is None
        assert r.json()["fragment"]


class TestStageOverrides:
    def test_content_override_served(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps({"anger": {"poetic_name": "The Ember"}}))
        app = create_app(Config(stages_file=str(path)))
        with TestClient(app) as tc:
            assert tc.get("/stages/anger").json()["poetic_name"] == "The Ember"


class TestWebSocket:
    def test_streams_stats(self):
        app = create_app(Config(stream_interval_s=0.05))
        with TestClient(app) as tc:
            sid = tc.post("/sessions").json()["session_id"]
            with tc.websocket_connect(f"/sessions/{sid}/ws") as ws:
                first = ws.receive_json()
                second = ws.receive_json()
        assert first["event_count"] == 1
        assert set(second) == set(first)

    def test_unknown_session_closes(self):
        app = create_app(Config())
        with TestClient(app) as tc:
            with pytest.raises(WebSocketDisconnect) as exc:
                with tc.websocket_connect("/sessions/nope/ws") as ws:
                    ws.receive_json()
        assert exc.value.code == 4404

    def test_binary_frames_ignored(self):
        app = create_app(Config(stream_interval_s=0.05))
        with TestClient(app) as tc:
            sid = tc.post("/sessions").json()["session_id"]
            with tc.websocket_connect(f"/sessions/{sid}/ws") as ws:
                ws.receive_json()
                ws.send_bytes(b"\x00\x01")
                ws.send_text("ping")
                assert "typing_speed" in ws.receive_json()
                assert "typing_speed" in ws.receive_json()

    def test_closes_when_session_ends(self):
        app = create_app(Config(stream_interval_s=0.05))
        with TestClient(app) as tc:
            sid = tc.post("/sessions").json()["session_id"]
            with tc.websocket_connect(f"/sessions/{sid}/ws") as ws:
                ws.receive_json()
                assert tc.delete(f"/sessions/{sid}").status_code == 200
                with pytest.raises(WebSocketDisconnect) as exc:
                    for _ in range(100):
                        ws.receive_json()
        assert exc.value.code == 1000


class TestPeriodicAnalysis:
    async def test_pass_stores_latest_metrics(self):
        app = create_app(Config(analysis_interval_s=0.01))
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                sid = await _new_session(ac)
                body = {}
                for _ in range(200):
                    await asyncio.sleep(0.02)
                    body = (await ac.get(f"/sessions/{sid}/metrics/latest")).json()
                    if body["metrics"] is not None:
                        break
        assert body["analyzed_at"] is not None
        assert set(body["metrics"]) == {
            "timing_patterns", "emotional_indicators", "content_patterns", "behavioral_signatures",
        }

    async def test_latest_metrics_empty_before_first_pass(self, client):
        sid = await _new_session(client)
        body = (await client.get(f"/sessions/{sid}/metrics/latest")).json()
        assert body == {"analyzed_at": None, "metrics": None}

    async def test_pass_evicts_idle_sessions(self):
        app = create_app(Config(analysis_interval_s=0.01, session_idle_timeout_s=0.05))
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                sid = await _new_session(ac)
                remaining = 1
                for _ in range(200):
                    await asyncio.sleep(0.02)
                    remaining = (await ac.get("/health")).json()["sessions"]
                    if remaining == 0:
                        break
                assert remaining == 0
                assert (await ac.get(f"/sessions/{sid}/stats")).status_code == 404
