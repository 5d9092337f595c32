"""Tests for the health check and application wiring."""

from fastapi.testclient import TestClient

from sage_engine import __version__
from sage_engine.core.sessions import SessionRegistry
from sage_engine.main import app

client = TestClient(app)


def test_health_check():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_app_metadata():
    assert app.title == "Sage Codex Engine"
    assert app.version == __version__


def test_session_registry_on_app_state():
    assert isinstance(app.state.sessions, SessionRegistry)


def test_v1_routes_mounted():
    paths = {route.path for route in app.routes}

    assert "/v1/chat" in paths
    assert "/v1/chat/{conversation_id}/cancel" in paths
    assert "/v1/chat/{conversation_id}" in paths
    assert "/v1/chat/{conversation_id}/sections/{scene_arc_id}" in paths
